"""Rate-limit-aware HTTP caller for ad platform APIs.

Only responses carrying the platform's rate-limit error code are retried,
with a fixed backoff between attempts. Every other failure is fatal.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

import aiohttp

from .exceptions import AdsApiError, AdsRateLimitError


# Meta Marketing API: "User request limit reached"
META_RATE_LIMIT_CODE = 17


@dataclass(frozen=True)
class HttpRequest:
    """Immutable request descriptor; retries resend it unchanged."""

    method: str
    url: str
    params: dict = field(default_factory=dict)
    headers: dict = field(default_factory=dict)


def error_code(payload: Any) -> Optional[int]:
    """Extract `error.code` from a Graph-API style error payload."""
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if not isinstance(error, dict):
        return None
    code = error.get("code")
    try:
        return int(code) if code is not None else None
    except (TypeError, ValueError):
        return None


def error_message(payload: Any) -> Optional[str]:
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        return payload["error"].get("message")
    return None


class RetryingHttpCaller:
    """Sends a request, retrying only on a rate-limit error code."""

    MAX_RETRIES = 3
    BACKOFF_SECONDS = 2.0
    REQUEST_TIMEOUT_SECONDS = 30
    CONNECT_TIMEOUT_SECONDS = 10

    def __init__(
        self,
        session: aiohttp.ClientSession,
        rate_limit_code: int = META_RATE_LIMIT_CODE,
        max_retries: int = MAX_RETRIES,
        backoff_seconds: float = BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        redact: Optional[Callable[[str], str]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize caller.

        Args:
            session: Injected aiohttp ClientSession
            rate_limit_code: Vendor error code treated as retryable
            max_retries: Retries beyond the first attempt
            backoff_seconds: Fixed wait before each retry
            sleep: Awaitable sleep (injectable for tests)
            redact: Optional function scrubbing secrets from log text
            logger: Optional logger instance
        """
        self.session = session
        self.rate_limit_code = rate_limit_code
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep
        self._redact = redact or (lambda text: text)
        self.logger = logger or logging.getLogger(__name__)

    async def call(self, request: HttpRequest) -> Any:
        """Send the request and return the parsed JSON body.

        Raises:
            AdsRateLimitError: If every attempt was rate limited
            AdsApiError: On any non-retryable failure
        """
        attempt = 0
        while True:
            attempt += 1
            status, payload = await self._send(request)

            code = error_code(payload)
            if status == 200 and code is None:
                return payload

            message = error_message(payload) or f"HTTP {status}"

            if code != self.rate_limit_code:
                raise AdsApiError(
                    f"HTTP {status} (non-retryable, code={code}): "
                    f"{self._redact(message)[:500]}",
                    status=status,
                    code=code,
                )

            if attempt > self.max_retries:
                raise AdsRateLimitError(
                    attempt, self._redact(message)[:200], status=status, code=code
                )

            self.logger.warning(
                "Rate limit (code=%s), retrying in %.1fs, attempt=%s",
                code,
                self.backoff_seconds,
                attempt,
            )
            await self._sleep(self.backoff_seconds)

    async def _send(self, request: HttpRequest) -> tuple[int, Any]:
        timeout = aiohttp.ClientTimeout(
            total=self.REQUEST_TIMEOUT_SECONDS,
            connect=self.CONNECT_TIMEOUT_SECONDS,
        )
        try:
            async with self.session.request(
                request.method,
                request.url,
                params=request.params,
                headers=request.headers,
                timeout=timeout,
            ) as response:
                try:
                    payload = await response.json(content_type=None)
                except ValueError:
                    payload = {"error": {"message": (await response.text())[:500]}}
                return response.status, payload
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise AdsApiError(f"Network error: {self._redact(str(exc))}") from exc
