"""Error taxonomy shared by the services and mapped to HTTP responses in app.main."""


class TaskTrackerError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TaskTrackerError):
    """Missing or malformed required input. Nothing was mutated."""

    status_code = 400


class NotFoundError(TaskTrackerError):
    """Referenced task or user does not exist (or is not visible to the caller)."""

    status_code = 404


class InvalidStateError(TaskTrackerError):
    """Action attempted on a task that no longer accepts it (completed)."""

    status_code = 409


class ConflictError(TaskTrackerError):
    """Unique value already taken (email, billing name)."""

    status_code = 409


class StorageError(TaskTrackerError):
    """Underlying persistence failure."""

    status_code = 500


class NotificationError(TaskTrackerError):
    """Email delivery failed. Logged by callers, never returned to API clients."""
