"""Ad-spend platform clients."""
from .exceptions import AdsApiError, AdsRateLimitError
from .google_spend import GoogleSpendClient
from .meta_spend import MetaSpendClient
from .retry import HttpRequest, RetryingHttpCaller

__all__ = [
    "AdsApiError",
    "AdsRateLimitError",
    "GoogleSpendClient",
    "HttpRequest",
    "MetaSpendClient",
    "RetryingHttpCaller",
]
