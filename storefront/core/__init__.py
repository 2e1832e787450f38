"""
Client-side catalog core: rating aggregation, querying and per-view state.
"""
from storefront.core.catalog_view import CatalogView
from storefront.core.invalidation import ReviewInvalidator
from storefront.core.query import QueryState, derive_view
from storefront.core.rating import aggregate
from storefront.core.suggestions import SuggestionSearcher

__all__ = [
    'CatalogView',
    'ReviewInvalidator',
    'QueryState',
    'derive_view',
    'aggregate',
    'SuggestionSearcher'
]
