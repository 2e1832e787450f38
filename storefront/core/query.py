"""
Client-side search, filter and sort over a loaded product collection.

Every function here is pure: inputs are never modified and each call returns a
new list. Filters combine with AND across dimensions and OR within a
multi-value dimension, so the order they are applied in does not matter.
"""
from __future__ import annotations

import math
import unicodedata
from collections import Counter
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence

from storefront.models.catalog import Brand, Product, RatedProduct, RatingSummary

PRICE_BUCKETS: Dict[str, tuple] = {
    "0-50": (0.0, 50.0),
    "50-100": (50.0, 100.0),
    "100-200": (100.0, 200.0),
    "200+": (200.0, math.inf),
}

SORT_KEYS = ("name", "price-low", "price-high", "rating")
DEFAULT_SORT = "name"

_MULTI_VALUE = ("brands", "price_buckets", "genders")

_NO_RATING = RatingSummary(average=0.0, count=0)


@dataclass(frozen=True)
class QueryState:
    """Search text, filter selections and sort key behind one product view."""
    search_text: str = ""
    brands: FrozenSet[str] = field(default_factory=frozenset)
    price_buckets: FrozenSet[str] = field(default_factory=frozenset)
    min_rating: Optional[float] = None
    genders: FrozenSet[str] = field(default_factory=frozenset)
    sort: str = DEFAULT_SORT

    def __post_init__(self):
        for name in _MULTI_VALUE:
            value = getattr(self, name)
            if not isinstance(value, frozenset):
                object.__setattr__(self, name, frozenset(value or ()))

    @property
    def is_empty(self) -> bool:
        """True when no filter dimension constrains the view."""
        return not (
            self.search_text.strip()
            or self.brands
            or self.price_buckets
            or self.min_rating
            or self.genders
        )

    def toggle(self, dimension: str, value: str) -> "QueryState":
        """Add `value` to a multi-select dimension, or remove it if present."""
        if dimension not in _MULTI_VALUE:
            raise ValueError(f"Not a multi-select filter: {dimension}")
        current = getattr(self, dimension)
        updated = current - {value} if value in current else current | {value}
        return replace(self, **{dimension: updated})

    def with_min_rating(self, value: Optional[float]) -> "QueryState":
        """Single-select threshold: picking the active value again clears it."""
        if value is None or value == self.min_rating:
            return replace(self, min_rating=None)
        return replace(self, min_rating=value)

    def with_search(self, text: str) -> "QueryState":
        return replace(self, search_text=text or "")

    def with_sort(self, key: str) -> "QueryState":
        return replace(self, sort=key or DEFAULT_SORT)

    def cleared(self) -> "QueryState":
        """Drop every filter, keeping search text and sort."""
        return QueryState(search_text=self.search_text, sort=self.sort)


def _rating_for(product: Product, ratings: Mapping[str, RatingSummary]) -> float:
    return ratings.get(product.id, _NO_RATING).average


def matches_search(product: Product, text: str) -> bool:
    needle = text.strip().lower()
    if not needle:
        return True
    return (
        needle in product.name.lower()
        or needle in product.brand_name.lower()
        or needle in product.description.lower()
    )


def in_price_bucket(price: float, bucket: str) -> bool:
    bounds = PRICE_BUCKETS.get(bucket)
    # Unknown bucket keys do not constrain the price
    if bounds is None:
        return True
    low, high = bounds
    return low <= price < high


def _predicates(query: QueryState, ratings: Mapping[str, RatingSummary]) -> List[Callable[[Product], bool]]:
    predicates = []

    if query.search_text.strip():
        predicates.append(lambda p: matches_search(p, query.search_text))

    if query.brands:
        predicates.append(lambda p: p.brand_name in query.brands)

    if query.price_buckets:
        predicates.append(
            lambda p: any(in_price_bucket(p.price, bucket) for bucket in query.price_buckets)
        )

    if query.min_rating:
        predicates.append(lambda p: _rating_for(p, ratings) >= query.min_rating)

    if query.genders:
        predicates.append(lambda p: p.target_audience in query.genders)

    return predicates


def name_sort_key(name: str) -> tuple:
    """Case- and accent-insensitive ordering, with the raw name as tie-breaker."""
    decomposed = unicodedata.normalize("NFKD", name)
    folded = "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()
    return (folded, name)


def sort_products(
    products: Iterable[Product],
    ratings: Mapping[str, RatingSummary],
    sort: str = DEFAULT_SORT
) -> List[Product]:
    """Stable sort; unknown keys fall back to name order."""
    if sort == "price-low":
        return sorted(products, key=lambda p: p.price)
    if sort == "price-high":
        return sorted(products, key=lambda p: -p.price)
    if sort == "rating":
        return sorted(products, key=lambda p: -_rating_for(p, ratings))
    return sorted(products, key=lambda p: name_sort_key(p.name))


def derive_view(
    products: Sequence[Product],
    ratings: Optional[Mapping[str, RatingSummary]],
    query: Optional[QueryState] = None
) -> List[Product]:
    """Filter then sort `products` for `query`, returning a new list."""
    query = query or QueryState()
    ratings = ratings or {}

    predicates = _predicates(query, ratings)
    filtered = [p for p in products if all(predicate(p) for predicate in predicates)]
    return sort_products(filtered, ratings, query.sort)


def rate(products: Iterable[Product], ratings: Optional[Mapping[str, RatingSummary]]) -> List[RatedProduct]:
    """Pair each product with its rating; products without one show zero."""
    ratings = ratings or {}
    return [RatedProduct(product=p, rating=ratings.get(p.id, _NO_RATING)) for p in products]


def active_brands(brands: Iterable[Brand]) -> List[Brand]:
    """Brands that may appear in lists and filter options."""
    return [brand for brand in brands if not brand.is_deleted]


def brand_product_counts(products: Iterable[Product]) -> Dict[str, int]:
    return dict(Counter(product.brand_name for product in products))


def related_products(products: Iterable[Product], current: Product, limit: int = 4) -> List[Product]:
    """Other products of the same brand, in collection order."""
    related = [
        p for p in products
        if p.id != current.id and p.brand_name == current.brand_name
    ]
    return related[:limit]
