"""Error kinds raised by the tracker core."""

from typing import Optional


class TrackerError(Exception):
    """Base class for every error the tracker surfaces to the user."""


class ValidationError(TrackerError, ValueError):
    """User input was rejected before reaching storage."""

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        detail = "; ".join(f"{field}: {message}" for field, message in self.errors.items())
        super().__init__(detail or "Invalid input")

    @classmethod
    def from_pydantic(cls, exc) -> "ValidationError":
        """Build from a pydantic ValidationError, keyed by field name."""
        errors = {}
        for error in exc.errors():
            field = ".".join(str(part) for part in error.get("loc", ())) or "input"
            message = error.get("msg", "Invalid value")
            # pydantic prefixes messages raised from validators
            errors.setdefault(field, message.removeprefix("Value error, "))
        return cls(errors)


class NotFoundError(TrackerError, KeyError):
    """No application exists with the given id."""

    def __init__(self, application_id: str):
        self.application_id = application_id
        super().__init__(application_id)

    def __str__(self) -> str:
        return f"Job application not found: {self.application_id}"


class StorageError(TrackerError):
    """The underlying key-value store failed to read or write."""

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        super().__init__(message)
