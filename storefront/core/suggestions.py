"""
Debounced search suggestions.
Only the most recent keystroke's request may produce a visible result.
"""
import asyncio
from typing import Awaitable, Callable, List, Optional

from storefront.config import config
from storefront.errors import FetchError
from storefront.logger import logger
from storefront.models.catalog import Product

SuggestionFetch = Callable[[str], Awaitable[List[Product]]]


class SuggestionSearcher:
    """
    Last-write-wins suggestion lookup.

    Each call to `search` takes a new generation number. A call that is no
    longer the newest after its quiet period, or after its fetch completes,
    returns None and leaves `suggestions` untouched.
    """

    def __init__(self, fetch: SuggestionFetch, debounce: Optional[float] = None,
                 limit: Optional[int] = None):
        self.fetch = fetch
        self.debounce = config.SUGGESTION_DEBOUNCE if debounce is None else debounce
        self.limit = config.SUGGESTION_LIMIT if limit is None else limit
        self.suggestions: List[Product] = []
        self.error: Optional[FetchError] = None
        self._generation = 0

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def search(self, text: str) -> Optional[List[Product]]:
        """
        Look up suggestions for `text`.

        Returns:
            The suggestions now shown, or None if a newer search superseded this one
        """
        self._generation += 1
        generation = self._generation
        query = (text or "").strip()

        if not query:
            self.suggestions = []
            self.error = None
            return []

        await asyncio.sleep(self.debounce)
        if not self._is_current(generation):
            return None

        try:
            results = await self.fetch(query)
        except FetchError as e:
            if not self._is_current(generation):
                return None
            logger.warning(f"Suggestion lookup failed for '{query}': {e}")
            self.suggestions = []
            self.error = e
            return []

        if not self._is_current(generation):
            logger.debug(f"Discarding stale suggestions for '{query}'")
            return None

        self.suggestions = list(results)[:self.limit]
        self.error = None
        return self.suggestions
