"""
Error taxonomy for the storefront core.
Fetchers raise these; aggregation and filtering never do.
"""
from typing import Optional


class StorefrontError(Exception):
    """Base class for every storefront error."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class ConfigError(StorefrontError):
    """Raised when required configuration is missing or invalid."""
    pass


class FetchError(StorefrontError):
    """Base class for failures obtaining data from the catalog API."""
    pass


class TransportError(FetchError):
    """No response was received (connection refused, unreachable, timeout)."""
    pass


class DecodeError(FetchError):
    """A response arrived but did not match the expected shape."""
    pass


class NotFoundError(FetchError):
    """The requested entity does not exist."""
    pass


class ValidationError(FetchError):
    """The request was rejected, e.g. a duplicate review."""
    pass


class PermissionDeniedError(FetchError):
    """The caller is not authenticated or not allowed to do this."""
    pass


class ServerError(FetchError):
    """The catalog API answered with a 5xx status."""
    pass
