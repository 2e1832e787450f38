"""
Services package initialization.
Centralizes service imports.
"""

from storefront.services.catalog_service import CatalogService

__all__ = [
    'CatalogService'
]
