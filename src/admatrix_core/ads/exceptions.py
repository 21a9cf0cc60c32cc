"""Custom exceptions for ad-spend API clients."""
from typing import Optional


class AdsApiError(Exception):
    """Raised for ad platform errors (HTTP errors, error payloads, transport)."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[int] = None,
    ):
        self.status = status
        self.code = code
        super().__init__(message)


class AdsRateLimitError(AdsApiError):
    """Raised when the rate-limit error persists after all retries."""

    def __init__(
        self,
        attempts: int,
        message: str,
        status: Optional[int] = None,
        code: Optional[int] = None,
    ):
        self.attempts = attempts
        super().__init__(
            f"Rate limited after {attempts} attempts: {message}",
            status=status,
            code=code,
        )
