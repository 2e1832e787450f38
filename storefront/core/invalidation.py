"""
Review staleness tracking.
Mutation call sites mark a product's reviews stale; views decide when to refetch.
"""
from typing import Callable, List, Set

from storefront.logger import logger

StaleCallback = Callable[[str], None]


class ReviewInvalidator:
    """
    Explicit replacement for a process-wide "review changed" event.
    Pass one instance to the mutating service and to the views that care.
    """

    def __init__(self):
        self._stale: Set[str] = set()
        self._subscribers: List[StaleCallback] = []

    def subscribe(self, callback: StaleCallback) -> Callable[[], None]:
        """Register `callback(product_id)`; returns a function that unsubscribes."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def mark_stale(self, product_id: str):
        self._stale.add(product_id)
        logger.debug(f"Reviews for product {product_id} marked stale")

        for callback in list(self._subscribers):
            try:
                callback(product_id)
            except Exception as e:
                logger.error(f"Stale-review subscriber failed for {product_id}: {e}", exc_info=True)

    def is_stale(self, product_id: str) -> bool:
        return product_id in self._stale

    def stale_ids(self) -> Set[str]:
        return set(self._stale)

    def clear(self, product_id: str):
        self._stale.discard(product_id)
