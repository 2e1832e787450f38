"""
Test debounced, last-write-wins search suggestions.
"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from storefront.core import SuggestionSearcher
from storefront.errors import TransportError
from storefront.models.catalog import Product
from storefront.services import CatalogService


def products(*names):
    return [Product(id=name.lower(), name=name) for name in names]


@pytest.mark.asyncio
async def test_blank_text_clears_without_fetching():
    fetch = AsyncMock(return_value=products("Rose"))
    searcher = SuggestionSearcher(fetch, debounce=0)
    searcher.suggestions = products("Old")

    result = await searcher.search("   ")

    assert result == []
    assert searcher.suggestions == []
    fetch.assert_not_called()


@pytest.mark.asyncio
async def test_search_trims_and_limits():
    fetch = AsyncMock(return_value=products("A", "B", "C", "D"))
    searcher = SuggestionSearcher(fetch, debounce=0, limit=2)

    result = await searcher.search("  rose ")

    fetch.assert_awaited_once_with("rose")
    assert [p.name for p in result] == ["A", "B"]
    assert searcher.suggestions == result


@pytest.mark.asyncio
async def test_keystrokes_within_quiet_period_fetch_once():
    fetch = AsyncMock(return_value=products("Chanel No 5"))
    searcher = SuggestionSearcher(fetch, debounce=0.05)

    first = asyncio.create_task(searcher.search("ch"))
    await asyncio.sleep(0)
    latest = await searcher.search("cha")

    assert await first is None
    fetch.assert_awaited_once_with("cha")
    assert [p.name for p in latest] == ["Chanel No 5"]


@pytest.mark.asyncio
async def test_stale_response_is_discarded():
    started = asyncio.Event()
    release = asyncio.Event()

    async def fetch(text):
        if text == "a":
            started.set()
            await release.wait()
            return products("Slow")
        return products("Fast")

    searcher = SuggestionSearcher(fetch, debounce=0)

    slow = asyncio.create_task(searcher.search("a"))
    await started.wait()
    fast = await searcher.search("ab")
    release.set()

    assert await slow is None
    assert [p.name for p in fast] == ["Fast"]
    assert [p.name for p in searcher.suggestions] == ["Fast"]


@pytest.mark.asyncio
async def test_fetch_error_clears_suggestions():
    fetch = AsyncMock(side_effect=TransportError("Catalog service unavailable"))
    searcher = SuggestionSearcher(fetch, debounce=0)
    searcher.suggestions = products("Old")

    result = await searcher.search("rose")

    assert result == []
    assert searcher.suggestions == []
    assert isinstance(searcher.error, TransportError)


@pytest.mark.asyncio
async def test_blank_text_supersedes_pending_search():
    fetch = AsyncMock(return_value=products("Rose"))
    searcher = SuggestionSearcher(fetch, debounce=0.05)

    pending = asyncio.create_task(searcher.search("ro"))
    await asyncio.sleep(0)
    await searcher.search("")

    assert await pending is None
    assert searcher.suggestions == []
    fetch.assert_not_called()


@pytest.mark.asyncio
async def test_searcher_over_catalog_service():
    response = AsyncMock()
    response.status = 200
    response.json = AsyncMock(return_value=[
        {"_id": "p1", "perfumeName": "Noir", "brand": "Chanel", "price": 120},
        {"_id": "p2", "perfumeName": "Noir Intense", "brand": "Chanel", "price": 150},
    ])
    service = CatalogService(base_url="http://catalog.test")
    service.session = AsyncMock()
    service.session.request.return_value = response
    searcher = SuggestionSearcher(service.fetch_suggestions, debounce=0, limit=1)

    first = asyncio.ensure_future(searcher.search("no"))
    second = asyncio.ensure_future(searcher.search("noi"))
    results = await asyncio.gather(first, second)

    assert results[0] is None
    assert [p.name for p in results[1]] == ["Noir"]
    assert service.session.request.await_count == 1
    assert service.session.request.await_args.kwargs["params"] == {"q": "noi"}
