"""Custom exceptions for the Shopify orders and analytics clients."""


class ShopifyClientError(Exception):
    """Base exception for all Shopify client errors."""


class ShopifyApiError(ShopifyClientError):
    """Raised for HTTP failures, transport errors and missing response data."""

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(message)


class ShopifyGraphQLError(ShopifyClientError):
    """Raised when GraphQL returns root-level errors."""

    def __init__(self, errors: object):
        self.errors = errors
        if isinstance(errors, str):
            message = errors
        else:
            message = f"GraphQL errors: {errors}"
        super().__init__(message)


class ShopifyQLParseError(ShopifyClientError):
    """Raised when an analytics (ShopifyQL) query reports parse errors."""

    def __init__(self, parse_errors: list):
        self.parse_errors = parse_errors
        messages = [
            error.get("message", str(error)) if isinstance(error, dict) else str(error)
            for error in parse_errors
        ]
        super().__init__(f"ShopifyQL parse errors: {'; '.join(messages)}")
