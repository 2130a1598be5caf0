"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~storyworker.exceptions.StoryworkerError` subclass.
Shell wrappers scheduling ``storyworker sync`` can inspect the exit code to
decide whether to retry the signal later.

Example::

    $ storyworker sync
    $ echo $?
    6   # EXIT_QUEUE_WRITE_FAILED -- retry the sync signal later
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or an unknown event."""

EXIT_STORE_UNAVAILABLE = 3
"""A cache store could not be opened, read, or written."""

EXIT_NETWORK_UNAVAILABLE = 4
"""A network-level error occurred (DNS failure, connection refused, reset)."""

EXIT_DECODE_FAILED = 5
"""A push payload could not be decoded."""

EXIT_QUEUE_WRITE_FAILED = 6
"""The batched update of the local record queue failed."""
