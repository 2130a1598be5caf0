"""Config commands -- view and modify the worker configuration.

Provides the ``storyworker config`` sub-command group for reading,
updating, and resetting the user's configuration file
(:class:`~storyworker.models.WorkerConfig`). Changing ``version`` and then
running ``storyworker activate`` rolls the stores over to the new
deployment.
"""

from __future__ import annotations

import json

import typer

from storyworker.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the effective configuration, after env and project overrides.

    Example::

        storyworker config show
        storyworker --json config show
    """
    from storyworker.app import resolve_from_context
    from storyworker.config import get_config_dir

    config = resolve_from_context(ctx)
    info(f"Config directory: {get_config_dir()}")
    data = config.model_dump(mode="json")
    data["stores"] = list(config.current_cache_names)
    format_response(data)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'request.timeout')."
    ),
    value: str = typer.Argument(help="Value to set (JSON for lists and numbers)."),
) -> None:
    """Set a value in the user configuration.

    The value is parsed as JSON when possible (so ``30``, ``true`` and
    ``["/", "/index.html"]`` keep their types) and used as a plain string
    otherwise. The result is validated before saving.

    Example::

        storyworker config set version v2
        storyworker config set api_origin https://story-api.dicoding.dev
        storyworker config set request.timeout 10
    """
    from storyworker.config import load_worker_config, save_worker_config
    from storyworker.models import WorkerConfig

    data = load_worker_config().model_dump(mode="json")

    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    try:
        coerced = json.loads(value)
    except json.JSONDecodeError:
        coerced = value
    if isinstance(target[final_key], str) and not isinstance(coerced, str):
        coerced = value
    target[final_key] = coerced

    try:
        new_config = WorkerConfig.model_validate(data)
    except ValueError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_worker_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset the configuration to defaults."""
    from storyworker.config import save_worker_config
    from storyworker.models import WorkerConfig

    if not force:
        if not typer.confirm("Reset all config to defaults?"):
            info("Cancelled.")
            raise typer.Exit()

    save_worker_config(WorkerConfig())
    success("Configuration reset to defaults.")
