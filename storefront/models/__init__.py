from storefront.models.catalog import (
    Brand,
    Overview,
    Product,
    RatedProduct,
    RatingSummary,
    Review,
)

__all__ = [
    'Brand',
    'Overview',
    'Product',
    'RatedProduct',
    'RatingSummary',
    'Review'
]
