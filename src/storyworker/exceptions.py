"""Exception hierarchy for storyworker.

All exceptions inherit from :class:`StoryworkerError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`storyworker.exit_codes`.
The top-level error handler in :func:`storyworker.app.main` catches
``StoryworkerError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    StoryworkerError          (exit 1)
    +-- InvalidUsageError     (exit 2)
    +-- StoreUnavailable      (exit 3)
    +-- NetworkUnavailable    (exit 4)
    |   +-- ShellPopulationFailed
    +-- DecodePayloadFailed   (exit 5)
    +-- QueueWriteFailed      (exit 6)
    +-- ConfigError           (exit 1)
"""

from storyworker.exit_codes import (
    EXIT_DECODE_FAILED,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NETWORK_UNAVAILABLE,
    EXIT_QUEUE_WRITE_FAILED,
    EXIT_STORE_UNAVAILABLE,
)


class StoryworkerError(Exception):
    """Base exception for all storyworker errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`storyworker.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(StoryworkerError):
    """Raised for invalid CLI arguments or events with no registered handler."""

    exit_code = EXIT_INVALID_USAGE


class StoreUnavailable(StoryworkerError):
    """Raised when a cache store cannot be opened, read, or written.

    Always treated as best-effort on write paths: the interception engine
    logs and swallows it rather than failing the response.
    """

    exit_code = EXIT_STORE_UNAVAILABLE


class NetworkUnavailable(StoryworkerError):
    """Raised on network-level failures (DNS resolution, connection refused, reset).

    Recovered by a cache fallback for API-origin requests and propagated
    unchanged for static-asset requests.
    """

    exit_code = EXIT_NETWORK_UNAVAILABLE


class ShellPopulationFailed(NetworkUnavailable):
    """Raised when any shell resource cannot be fetched during install."""


class DecodePayloadFailed(StoryworkerError):
    """Raised when a push payload is not valid structured data."""

    exit_code = EXIT_DECODE_FAILED


class QueueWriteFailed(StoryworkerError):
    """Raised when the batched write of replayed records fails."""

    exit_code = EXIT_QUEUE_WRITE_FAILED


class ConfigError(StoryworkerError):
    """Raised for configuration problems (invalid JSON, failed validation)."""

    exit_code = EXIT_GENERIC_FAILURE
