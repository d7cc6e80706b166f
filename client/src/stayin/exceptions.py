"""Custom exceptions for StayIN."""


class StayinError(Exception):
    """Base class for StayIN errors."""


class ProfileFetchError(StayinError):
    """Raised when a profile could not be fetched after all attempts."""

    def __init__(self, identity_id: str, attempts: int, cause: Exception | None = None) -> None:
        self.identity_id = identity_id
        self.attempts = attempts
        self.cause = cause
        super().__init__(
            f"Profile fetch failed for identity={identity_id} after {attempts} attempt(s)"
            + (f": {cause}" if cause else "")
        )


class ReadinessTaskError(StayinError):
    """Raised (and reported) when a startup task fails."""

    def __init__(self, task: str, cause: Exception) -> None:
        self.task = task
        self.cause = cause
        super().__init__(f"Startup task '{task}' failed: {cause}")


class NotSignedInError(StayinError):
    """Raised when an operation needs a signed-in identity and there is none."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Cannot {operation}: no signed-in identity")
