class SongjamError(Exception):
    """Base class for every error raised by the voting client."""


class NotAuthenticatedError(SongjamError):
    """Raised when an operation needs a user identity and there is none."""


class StoreError(SongjamError):
    """
    Non-retryable failure reported by the remote store (bad request,
    permission denied, malformed payload).
    """

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class TransientStoreError(StoreError):
    """Network failure or 5xx/429 answer. The retry policy may mask it."""


class VoteConflictError(StoreError):
    """Insert refused because a row for this (user, entry) pair already exists."""
