"""Meta Marketing API ad spend client.

Spend that cannot be fetched degrades to 0.0 and is logged, so one
rate-limited account never aborts a storefront's sync.
"""
import json
import logging
from datetime import date
from typing import Any, Optional

import aiohttp

from ..schemas.metrics import Storefront
from .exceptions import AdsApiError
from .retry import HttpRequest, RetryingHttpCaller


logger = logging.getLogger(__name__)

DEFAULT_GRAPH_API_VERSION = "v19.0"


def _safe_float(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class MetaSpendClient:
    """Fetches account-level spend for a storefront's Meta ad account."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        access_token: Optional[str] = None,
        api_version: str = DEFAULT_GRAPH_API_VERSION,
        caller: Optional[RetryingHttpCaller] = None,
    ) -> None:
        """Initialize Meta spend client.

        Args:
            session: aiohttp session for requests
            access_token: Default token when a storefront carries none
            api_version: Graph API version (e.g., 'v19.0')
            caller: Optional pre-built retrying caller
        """
        self._default_token = access_token
        self.api_version = api_version
        self.caller = caller or RetryingHttpCaller(session, redact=self._redact)

    def _redact(self, text: str) -> str:
        if not text or not self._default_token:
            return text
        return text.replace(self._default_token, "[REDACTED]")

    async def fetch_spend(self, storefront: Storefront, start: date, end: date) -> float:
        """Return total spend for the account over [start, end].

        Args:
            storefront: Storefront with meta_account_id
            start: First IST calendar date
            end: Last IST calendar date

        Returns:
            Spend amount, or 0.0 when unconfigured or the fetch failed
        """
        account_id = storefront.meta_account_id
        token = storefront.meta_access_token or self._default_token

        if not account_id or not token:
            logger.warning(
                "Meta credentials not configured for %s, using zero spend",
                storefront.name,
            )
            return 0.0

        time_range = json.dumps({"since": start.isoformat(), "until": end.isoformat()})
        request = HttpRequest(
            method="GET",
            url=f"https://graph.facebook.com/{self.api_version}/{account_id}/insights",
            params={
                "access_token": token,
                "level": "account",
                "fields": "spend",
                "time_range": time_range,
            },
        )

        logger.info(
            "Meta spend fetch for %s (%s): %s", storefront.name, account_id, time_range
        )

        try:
            result = await self.caller.call(request)
        except AdsApiError as exc:
            message = str(exc)
            if storefront.meta_access_token:
                message = message.replace(storefront.meta_access_token, "[REDACTED]")
            logger.warning(
                "Meta spend unavailable for %s %s..%s, recording 0.0: %s",
                storefront.name,
                start.isoformat(),
                end.isoformat(),
                self._redact(message),
            )
            return 0.0

        rows = result.get("data") or []
        spend = sum(_safe_float(row.get("spend")) for row in rows)
        logger.debug("Meta spend for %s: %.2f", storefront.name, spend)
        return spend
