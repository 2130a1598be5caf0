"""Queue commands -- add and list records in the local ``favorites`` queue.

These commands stand in for the application side: ``queue add`` creates an
unsynced record the way the application would while offline, and
``queue list`` shows the ``synced`` flag that ``storyworker sync``
advances.
"""

from __future__ import annotations

import asyncio

import typer

from storyworker.output import error, info, print_table, success


queue_app = typer.Typer(no_args_is_help=True)


def _open_queue():
    from storyworker.queue import DiskRecordQueue
    from storyworker.runtime import queue_dir

    return DiskRecordQueue(queue_dir())


@queue_app.command("add")
def queue_add(
    record_id: str = typer.Argument(help="Record id."),
    field: list[str] = typer.Option(
        [], "--field", "-F", help="Extra record field as key=value."
    ),
) -> None:
    """Queue an unsynced record.

    Example::

        storyworker queue add story-42 --field name="Sunset at Kuta"
    """
    from storyworker.models import QueuedRecord

    extras: dict[str, str] = {}
    for item in field:
        key, sep, value = item.partition("=")
        if not sep or not key or key in ("id", "synced"):
            error(f"Invalid field: {item!r} (expected key=value)")
            raise typer.Exit(code=2)
        extras[key] = value

    queue = _open_queue()
    try:
        asyncio.run(queue.add(QueuedRecord(id=record_id, synced=False, **extras)))
    finally:
        queue.close()
    success(f"Queued {record_id}")


@queue_app.command("list")
def queue_list() -> None:
    """List queued records and their sync state."""
    queue = _open_queue()
    try:
        records = asyncio.run(queue.read_all())
    finally:
        queue.close()

    if not records:
        info("Queue is empty.")
        return
    rows = [[record.id, "yes" if record.synced else "no"] for record in records]
    print_table(["Id", "Synced"], rows, title=queue.collection)
