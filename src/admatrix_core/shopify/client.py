"""Async Shopify Admin GraphQL client bound to one storefront."""
import asyncio
import logging
from typing import Optional

import aiohttp

from ..schemas.metrics import Storefront
from .exceptions import ShopifyApiError, ShopifyGraphQLError


DEFAULT_API_VERSION = "2024-10"


def _redact(text: str, token: str) -> str:
    if not text or not token:
        return text
    return text.replace(token, "[REDACTED]")


class ShopifyGraphQLClient:
    """Executes GraphQL documents against a storefront's Admin API.

    Failures are not retried: callers abort the whole walk on any error
    rather than aggregate a partial result.
    """

    REQUEST_TIMEOUT_SECONDS = 60
    CONNECT_TIMEOUT_SECONDS = 10

    def __init__(
        self,
        storefront: Storefront,
        session: aiohttp.ClientSession,
        api_version: str = DEFAULT_API_VERSION,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize client.

        Args:
            storefront: Storefront whose domain and token are used
            session: Injected aiohttp ClientSession
            api_version: e.g., "2024-10"
            logger: Optional logger instance
        """
        self.storefront = storefront
        self.session = session
        self.api_version = api_version
        self._access_token = storefront.shopify_token
        self.logger = logger or logging.getLogger(__name__)

        self.graphql_endpoint = (
            f"https://{storefront.shopify_store_url}/admin/api/{api_version}/graphql.json"
        )

    async def execute(self, query: str, variables: Optional[dict] = None) -> dict:
        """POST a GraphQL document and return its `data` object.

        Raises:
            ShopifyApiError: On HTTP errors, network errors or missing data
            ShopifyGraphQLError: If the response carries root-level errors
        """
        headers = {
            "X-Shopify-Access-Token": self._access_token,
            "Content-Type": "application/json",
        }
        payload = {"query": query, "variables": variables or {}}
        timeout = aiohttp.ClientTimeout(
            total=self.REQUEST_TIMEOUT_SECONDS,
            connect=self.CONNECT_TIMEOUT_SECONDS,
        )

        try:
            async with self.session.post(
                self.graphql_endpoint,
                json=payload,
                headers=headers,
                timeout=timeout,
            ) as response:
                if response.status != 200:
                    error_body = await response.text()
                    self.logger.error(
                        "Shopify GraphQL error for %s (%s): %s",
                        self.storefront.name,
                        response.status,
                        _redact(error_body[:500], self._access_token),
                    )
                    raise ShopifyApiError(
                        f"Shopify GraphQL request failed: {response.status}",
                        status=response.status,
                    )

                result = await response.json()

        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ShopifyApiError(
                f"Shopify network error for {self.storefront.name}: "
                f"{_redact(str(exc), self._access_token)}"
            ) from exc

        if result.get("errors"):
            self.logger.error(
                "Shopify GraphQL errors for %s: %s",
                self.storefront.name,
                result["errors"],
            )
            messages = [
                error.get("message", str(error)) if isinstance(error, dict) else str(error)
                for error in result["errors"]
            ]
            raise ShopifyGraphQLError(f"GraphQL root errors: {'; '.join(messages)}")

        data = result.get("data")
        if data is None:
            raise ShopifyApiError("Shopify GraphQL response missing data")

        return data
