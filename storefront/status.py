"""
Backend reachability check.
Browsing already-loaded data never depends on this.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from storefront.errors import FetchError
from storefront.logger import logger
from storefront.services.catalog_service import CatalogService
from storefront.utils.retry import RetryExhaustedError, async_retry

CONNECTED = "connected"
DISCONNECTED = "disconnected"
CHECKING = "checking"


class BackendStatusMonitor:
    """
    Tracks whether the catalog API answers at all.
    Only transport failures count as disconnected; any answer, even an error, is connected.
    """

    def __init__(self, service: CatalogService, max_retries: Optional[int] = None):
        self.service = service
        self.status = CHECKING
        self.consecutive_failures = 0
        self.last_checked: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self._probe = async_retry(max_retries=max_retries)(self._fetch_brands)

    async def _fetch_brands(self):
        return await self.service.fetch_brands(active_only=False)

    async def check(self) -> str:
        self.status = CHECKING
        try:
            await self._probe()
            self.status = CONNECTED
            self.last_error = None
            self.consecutive_failures = 0
        except RetryExhaustedError as e:
            self.status = DISCONNECTED
            self.last_error = str(e.last_error or e)
            self.consecutive_failures += 1
            logger.warning(f"Catalog API unreachable ({self.consecutive_failures} failed checks): {self.last_error}")
        except FetchError as e:
            # The service answered; treat it as up with issues
            self.status = CONNECTED
            self.last_error = str(e)
            self.consecutive_failures = 0
            logger.info(f"Catalog API reachable but returned an error: {e}")
        finally:
            self.last_checked = datetime.now(timezone.utc)

        return self.status

    @property
    def is_connected(self) -> bool:
        return self.status == CONNECTED

    def get_status(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "last_checked": self.last_checked.isoformat() if self.last_checked else None,
            "consecutive_failures": self.consecutive_failures,
            "last_error": self.last_error
        }
