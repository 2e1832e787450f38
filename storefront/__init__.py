"""
Perfume storefront - catalog browsing core with rating aggregation and client-side querying.
"""

__version__ = "1.0.0"

from storefront.config import config
from storefront.logger import logger
from storefront.errors import (
    StorefrontError,
    ConfigError,
    FetchError,
    TransportError,
    DecodeError,
    NotFoundError,
    ValidationError,
    PermissionDeniedError,
    ServerError
)

__all__ = [
    'config',
    'logger',
    'StorefrontError',
    'ConfigError',
    'FetchError',
    'TransportError',
    'DecodeError',
    'NotFoundError',
    'ValidationError',
    'PermissionDeniedError',
    'ServerError'
]
