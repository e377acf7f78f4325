"""
habitcore exception hierarchy.

All habitcore exceptions inherit from HabitCoreError, making it easy for
consumers to catch library-level errors while still distinguishing the
failure modes the progress engine cares about: bad input, flaky remote
calls, and broken local storage.
"""

class HabitCoreError(Exception):
    """Base exception class for all habitcore errors."""

class ConfigurationError(HabitCoreError):
    """Raised for configuration errors (missing keys, invalid values)."""

class ValidationError(HabitCoreError, ValueError):
    """Raised for malformed input (bad date key, unknown activity key).

    Always raised synchronously, before anything reaches the queue or cache.
    """

class RemoteError(HabitCoreError):
    """Raised by a RemoteGateway when a request does not succeed."""

class TransientIOError(RemoteError):
    """Network or server failure that is worth retrying later."""

class NetworkError(TransientIOError):
    """The remote store could not be reached (offline, DNS, timeout)."""

class ServerError(TransientIOError):
    """The remote store answered with a server-side failure."""

class AuthenticationError(RemoteError):
    """Raised when the remote store rejects the session."""

class StorageError(HabitCoreError):
    """Base exception for durable local storage errors."""

class StoragePermissionError(StorageError):
    """Raised when a storage operation is not permitted."""

class ComputationInvariantViolation(HabitCoreError, AssertionError):
    """A pure computation produced an impossible result (e.g. negative streak)."""
