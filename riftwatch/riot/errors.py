# riot/errors.py

from typing import Optional


class RiotAPIError(Exception):
    """Base exception for Riot API errors."""

    def __init__(self, message: str, operation: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.operation = operation
        self.status = status

    def __str__(self) -> str:
        base = super().__str__()
        if self.operation:
            return f"{self.operation}: {base}"
        return base


class RateLimitError(RiotAPIError):
    """Upstream answered 429. The only failure the retry policy retries."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 status: Optional[int] = 429, retry_after: Optional[float] = None):
        super().__init__(message, operation, status)
        self.retry_after = retry_after


class InvalidCredentialError(RiotAPIError):
    """Upstream answered 401: the API key is invalid or expired."""
    pass


class ForbiddenError(RiotAPIError):
    """Upstream answered 403: the API key has no access to the endpoint."""
    pass


class NotFoundError(RiotAPIError):
    """Upstream answered 404."""
    pass


class UpstreamError(RiotAPIError):
    """Any other upstream failure (5xx, unexpected status, network, timeout, bad body)."""
    pass


class ReferenceDataError(Exception):
    """Raised when the Data Dragon reference dataset cannot be fetched."""
    pass


def is_retriable(exc: BaseException) -> bool:
    """True for upstream throttling, False for everything else."""
    return isinstance(exc, RateLimitError)
