"""Cache commands -- inspect and clear the versioned stores.

Provides the ``storyworker cache`` sub-command group. Stores belonging to
the configured version are marked ``current``; everything else is what
the next ``activate`` will delete.
"""

from __future__ import annotations

from typing import Optional

import typer

from storyworker.output import error, info, print_table, success


cache_app = typer.Typer(no_args_is_help=True)


def _open_storage(ctx: typer.Context):
    from storyworker.app import resolve_from_context
    from storyworker.cache import CacheStorage
    from storyworker.config import resolve_cache_dir

    config = resolve_from_context(ctx)
    return config, CacheStorage(resolve_cache_dir(config), config.key_headers)


@cache_app.command("list")
def cache_list(ctx: typer.Context) -> None:
    """List every store with its entry count.

    Example::

        storyworker cache list
        storyworker --json cache list
    """
    config, storage = _open_storage(ctx)
    try:
        current = set(config.current_cache_names)
        rows = [
            [item["name"], str(item["entries"]), "current" if item["name"] in current else "stale"]
            for item in storage.stats()
        ]
    finally:
        storage.close()

    if not rows:
        info(f"No stores under {storage.root}")
        return
    print_table(["Store", "Entries", "Status"], rows, title="Cache stores")


@cache_app.command("show")
def cache_show(
    ctx: typer.Context,
    name: str = typer.Argument(help="Store name."),
) -> None:
    """List the URLs held by one store."""
    _, storage = _open_storage(ctx)
    try:
        if not storage.has(name):
            error(f"Store not found: {name}")
            raise typer.Exit(code=2)
        urls = storage.open(name).urls()
    finally:
        storage.close()
    print_table(["URL"], [[url] for url in urls], title=name)


@cache_app.command("clear")
def cache_clear(
    ctx: typer.Context,
    name: Optional[str] = typer.Argument(None, help="Store to delete (default: all)."),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Delete one store, or every store.

    Example::

        storyworker cache clear storymap-dynamic-v1
        storyworker cache clear --force
    """
    _, storage = _open_storage(ctx)
    try:
        targets = [name] if name else storage.keys()
        if name and not storage.has(name):
            error(f"Store not found: {name}")
            raise typer.Exit(code=2)
        if not name and not force:
            if not typer.confirm(f"Delete all {len(targets)} store(s)?"):
                info("Cancelled.")
                raise typer.Exit()
        for target in targets:
            storage.delete(target)
    finally:
        storage.close()
    success(f"Deleted {len(targets)} store(s).")
