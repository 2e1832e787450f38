"""
Per-view catalog state: products, their ratings, and the derived ordering.
Each view owns its own copy; nothing is shared between views.
"""
from typing import Dict, List, Optional

from storefront.core.invalidation import ReviewInvalidator
from storefront.core.query import QueryState, derive_view, rate
from storefront.errors import FetchError
from storefront.logger import logger
from storefront.models.catalog import Product, RatedProduct, RatingSummary
from storefront.session import Session


class CatalogView:
    """
    Loads a product collection and renders it for any query.

    Ratings are aggregated over the review set the viewer may see, so admins
    and the public can get different averages for the same product.
    """

    def __init__(self, service, session: Optional[Session] = None,
                 invalidator: Optional[ReviewInvalidator] = None):
        self.service = service
        self.session = session or Session.anonymous()
        self.invalidator = invalidator
        self.products: List[Product] = []
        self.ratings: Dict[str, RatingSummary] = {}
        self.error: Optional[FetchError] = None
        self.loaded = False
        self._unsubscribe = invalidator.subscribe(self._on_stale) if invalidator else None
        self._pending: set = set()

    def _on_stale(self, product_id: str):
        if any(p.id == product_id for p in self.products):
            self._pending.add(product_id)

    @property
    def needs_refresh(self) -> bool:
        return bool(self._pending)

    async def load(self, q: Optional[str] = None, brand: Optional[str] = None) -> List[Product]:
        """
        Fetch products, then every product's rating.

        Raises:
            FetchError: If the product list itself could not be loaded
        """
        try:
            products = await self.service.fetch_products(q=q, brand=brand)
        except FetchError as e:
            logger.error(f"Failed to load perfumes: {e}")
            self.error = e
            self.products = []
            self.ratings = {}
            self.loaded = False
            raise

        self.error = None
        self.products = products
        self.ratings = await self.service.fetch_ratings(products, is_admin=self.session.is_admin)
        self._pending.clear()
        if self.invalidator is not None:
            # Ratings just fetched are current for every product loaded
            for product in products:
                self.invalidator.clear(product.id)
        self.loaded = True
        return self.products

    async def refresh_stale(self) -> List[str]:
        """Refetch ratings for products whose reviews changed; returns their ids."""
        pending = set(self._pending)
        if self.invalidator is not None:
            pending |= {pid for pid in self.invalidator.stale_ids() if self._holds(pid)}
        if not pending:
            return []

        stale = [p for p in self.products if p.id in pending]
        refreshed = await self.service.fetch_ratings(stale, is_admin=self.session.is_admin)
        self.ratings = {**self.ratings, **refreshed}

        for product_id in refreshed:
            self._pending.discard(product_id)
            if self.invalidator is not None:
                self.invalidator.clear(product_id)

        logger.info(f"Refreshed ratings for {len(refreshed)} products")
        return list(refreshed)

    def _holds(self, product_id: str) -> bool:
        return any(p.id == product_id for p in self.products)

    def rating_for(self, product_id: str) -> RatingSummary:
        return self.ratings.get(product_id, RatingSummary())

    def render(self, query: Optional[QueryState] = None) -> List[RatedProduct]:
        return rate(derive_view(self.products, self.ratings, query), self.ratings)

    def close(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
