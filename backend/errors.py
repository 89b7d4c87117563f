"""Error types raised by the record store."""


class HealthTrackerError(Exception):
    """Base class for every error the record store reports."""


class ValidationError(HealthTrackerError):
    """A record failed its domain constraints and was not persisted."""

    def __init__(self, messages: list[str], prefix: str = "Invalid data"):
        self.messages = list(messages)
        super().__init__(f"{prefix}: {', '.join(self.messages)}")


class NotFoundError(HealthTrackerError):
    """A referenced record does not exist."""


class StorageUnavailableError(HealthTrackerError):
    """The key/value medium could not be written, or holds unreadable data."""


class InputError(HealthTrackerError):
    """Malformed call-site arguments, e.g. a missing date key."""
