"""Google Ads spend client placeholder."""
import logging
from datetime import date

from ..schemas.metrics import Storefront


logger = logging.getLogger(__name__)


class GoogleSpendClient:
    """Search-ads adapter with the same call shape as MetaSpendClient.

    Returns 0.0 until the Google Ads API integration lands.
    """

    async def fetch_spend(self, storefront: Storefront, start: date, end: date) -> float:
        logger.debug(
            "Google Ads spend not integrated for %s (%s..%s, customer=%s), using 0.0",
            storefront.name,
            start.isoformat(),
            end.isoformat(),
            storefront.google_ads_customer_id or "unset",
        )
        return 0.0
