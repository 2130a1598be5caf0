"""Typer application factory and CLI entry point for storyworker.

The root commands deliver the worker's events by hand:

* ``activate`` -- install the shell for the configured version, drop stale
  stores, claim control.
* ``fetch`` -- send one request through the interception engine.
* ``push`` -- display a push payload, optionally simulating a click.
* ``sync`` -- deliver a reconnect signal to the replay coordinator.

Maintenance lives in the ``cache``, ``config`` and ``queue`` sub-groups.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Unhandled exceptions are written to a crash log under
the data directory.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Coroutine, Optional, TypeVar

import typer

from storyworker import __version__
from storyworker.exit_codes import EXIT_GENERIC_FAILURE

T = TypeVar("T")

app = typer.Typer(
    name="storyworker",
    help="Offline-first request interception for the StoryMap client.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"storyworker {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    release: Optional[str] = typer.Option(
        None, "--release", "-r", help="Deployment version tag (e.g. v2)."
    ),
    api_origin: Optional[str] = typer.Option(
        None, "--api-origin", help="Origin served network-first."
    ),
    app_origin: Optional[str] = typer.Option(
        None, "--app-origin", help="Origin of the application itself."
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback: installs the output manager and stores shared options."""
    from storyworker.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    ctx.ensure_object(dict)
    ctx.obj["release"] = release
    ctx.obj["api_origin"] = api_origin
    ctx.obj["app_origin"] = app_origin


def resolve_from_context(ctx: typer.Context):
    """Resolve the effective :class:`~storyworker.models.WorkerConfig` for a command."""
    from storyworker.config import resolve_config

    obj = ctx.obj or {}
    return resolve_config(
        cli_version=obj.get("release"),
        cli_api_origin=obj.get("api_origin"),
        cli_app_origin=obj.get("app_origin"),
    )


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run *coro*, turning :class:`StoryworkerError` into a clean exit."""
    from storyworker.exceptions import StoryworkerError
    from storyworker.output import error

    try:
        return asyncio.run(coro)
    except StoryworkerError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


# ------------------------------------------------------------------ #
# Event commands
# ------------------------------------------------------------------ #


@app.command("activate")
def activate_command(ctx: typer.Context) -> None:
    """Install the app shell for the configured version and drop stale stores.

    Example::

        storyworker --release v2 activate
    """
    from storyworker.output import format_response, success
    from storyworker.runtime import open_runtime
    from storyworker.worker import ActivateEvent, InstallEvent

    config = resolve_from_context(ctx)

    async def _activate() -> tuple[int, list[str]]:
        async with open_runtime(config) as runtime:
            cached = await runtime.worker.dispatch(InstallEvent())
            deleted = await runtime.worker.dispatch(ActivateEvent())
            return cached, deleted

    cached, deleted = run_async(_activate())
    success(f"Version {config.version} active: {cached} shell resource(s) cached")
    format_response({"version": config.version, "cached": cached, "deleted": deleted})


@app.command("fetch")
def fetch_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Absolute URL to request."),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method."),
    header: list[str] = typer.Option(
        [], "--header", "-H", help="Request header as 'Name: value'."
    ),
) -> None:
    """Send one request through the interception engine.

    Example::

        storyworker fetch https://story-api.dicoding.dev/v1/stories
    """
    from storyworker.models import InterceptedRequest
    from storyworker.output import error, format_response, info
    from storyworker.runtime import open_runtime
    from storyworker.worker import FetchEvent

    headers: dict[str, str] = {}
    for item in header:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            error(f"Invalid header: {item!r} (expected 'Name: value')")
            raise typer.Exit(code=2)
        headers[name.strip()] = value.strip()

    config = resolve_from_context(ctx)
    request = InterceptedRequest(method=method.upper(), url=url, headers=headers)

    async def _fetch():
        async with open_runtime(config) as runtime:
            response = await runtime.worker.dispatch(FetchEvent(request))
            if response is None:
                response = await runtime.components.engine.fetch(request)
            return response

    response = run_async(_fetch())
    info(f"HTTP {response.status_code} ({response.type.value})")
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        format_response(response.text, "application/json")
    elif response.body:
        format_response(response.text, content_type or "text/plain")


@app.command("push")
def push_command(
    ctx: typer.Context,
    payload: Optional[str] = typer.Argument(
        None, help="Push payload (JSON object or plain text)."
    ),
    click: Optional[str] = typer.Option(
        None,
        "--click",
        help="Simulate a click: 'view', 'close', or 'default' for the body.",
    ),
) -> None:
    """Display a push notification.

    Example::

        storyworker push '{"title": "Hi", "body": "New story", "data": {"url": "/#/stories/1"}}'
        storyworker push --click view
    """
    from storyworker.output import error, format_response
    from storyworker.runtime import open_runtime
    from storyworker.worker import NotificationClickEvent, PushEvent

    if click is not None and click not in ("view", "close", "default"):
        error(f"Unknown action: {click}")
        raise typer.Exit(code=2)

    config = resolve_from_context(ctx)

    async def _push() -> dict[str, Any]:
        async with open_runtime(config) as runtime:
            notification = await runtime.worker.dispatch(PushEvent(payload))
            window = None
            if click is not None:
                action = "" if click == "default" else click
                window = await runtime.worker.dispatch(
                    NotificationClickEvent(notification, action)
                )
            return {
                "title": notification.title,
                "state": notification.state.value,
                "options": notification.options.model_dump(mode="json"),
                "window": window.model_dump(mode="json") if window else None,
            }

    format_response(run_async(_push()))


@app.command("sync")
def sync_command(
    ctx: typer.Context,
    tag: Optional[str] = typer.Option(
        None, "--tag", "-t", help="Reconnect tag (defaults to the configured sync tag)."
    ),
) -> None:
    """Deliver a reconnect signal and replay unsynced records.

    Exits with code 6 when the batched write fails, so that the caller can
    retry the signal later.
    """
    from dataclasses import asdict

    from storyworker.output import format_response, info
    from storyworker.runtime import open_runtime
    from storyworker.worker import SyncEvent

    config = resolve_from_context(ctx)
    sync_tag = tag or config.sync_tag

    async def _sync():
        async with open_runtime(config) as runtime:
            return await runtime.worker.dispatch(SyncEvent(sync_tag))

    result = run_async(_sync())
    if result is None:
        info(f"Ignored unknown sync tag: {sync_tag}")
        return
    format_response(asdict(result))


# ------------------------------------------------------------------ #
# Entry point
# ------------------------------------------------------------------ #


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from storyworker.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def register_commands() -> None:
    from storyworker.commands.cache import cache_app
    from storyworker.commands.config import config_app
    from storyworker.commands.queue import queue_app

    app.add_typer(cache_app, name="cache", help="Inspect and clear the versioned stores.")
    app.add_typer(config_app, name="config", help="Configuration management.")
    app.add_typer(queue_app, name="queue", help="Inspect the local record queue.")


register_commands()


def main() -> None:
    """CLI entry point invoked by the ``storyworker`` console script.

    :class:`~storyworker.exceptions.StoryworkerError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from storyworker.exceptions import StoryworkerError
        from storyworker.output import error

        if isinstance(exc, StoryworkerError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
