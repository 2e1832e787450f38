"""
Test backend reachability checks and the caller-side retry decorator.
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from storefront.errors import NotFoundError, ServerError, TransportError
from storefront.status import CONNECTED, DISCONNECTED, BackendStatusMonitor
from storefront.utils.retry import RetryExhaustedError, async_retry


def make_monitor(side_effect=None, max_retries=0):
    service = MagicMock()
    service.fetch_brands = AsyncMock(return_value=[], side_effect=side_effect)
    return BackendStatusMonitor(service, max_retries=max_retries), service


@pytest.mark.asyncio
async def test_check_connected():
    monitor, service = make_monitor()

    assert await monitor.check() == CONNECTED
    assert monitor.is_connected
    service.fetch_brands.assert_awaited_once_with(active_only=False)
    assert monitor.get_status()["last_checked"] is not None


@pytest.mark.asyncio
async def test_check_disconnected_on_transport_error():
    monitor, _ = make_monitor(side_effect=TransportError("Catalog service unavailable"))

    assert await monitor.check() == DISCONNECTED
    assert await monitor.check() == DISCONNECTED

    status = monitor.get_status()
    assert status["consecutive_failures"] == 2
    assert "unavailable" in status["last_error"]


@pytest.mark.asyncio
async def test_check_error_response_still_connected():
    monitor, _ = make_monitor(side_effect=ServerError("Server error", status=500))

    assert await monitor.check() == CONNECTED
    assert monitor.get_status()["last_error"] == "Server error"


@pytest.mark.asyncio
async def test_check_recovers_after_retry():
    monitor, service = make_monitor(
        side_effect=[TransportError("down"), []],
        max_retries=2
    )

    with patch("storefront.utils.retry.asyncio.sleep", new=AsyncMock()) as mock_sleep:
        assert await monitor.check() == CONNECTED

    assert service.fetch_brands.await_count == 2
    mock_sleep.assert_awaited_once()


@pytest.mark.asyncio
async def test_async_retry_exhaustion():
    calls = []

    @async_retry(max_retries=2, backoff_factor=2)
    async def flaky():
        calls.append(1)
        raise TransportError("down")

    with patch("storefront.utils.retry.asyncio.sleep", new=AsyncMock()) as mock_sleep:
        with pytest.raises(RetryExhaustedError) as exc_info:
            await flaky()

    assert len(calls) == 3
    assert [c.args[0] for c in mock_sleep.await_args_list] == [1, 2]
    assert isinstance(exc_info.value.last_error, TransportError)


@pytest.mark.asyncio
async def test_async_retry_does_not_retry_other_errors():
    calls = []

    @async_retry(max_retries=3)
    async def missing():
        calls.append(1)
        raise NotFoundError("gone", status=404)

    with pytest.raises(NotFoundError):
        await missing()

    assert len(calls) == 1
