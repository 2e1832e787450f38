"""
Sentry initialization for centralized error tracking.
Observes fetch failures, never changes how they propagate.
"""
import logging
from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from storefront.config import config
from storefront.errors import FetchError
from storefront.logger import logger


def initialize_sentry() -> bool:
    """Initialize Sentry SDK if DSN is configured."""
    if not config.has_sentry:
        logger.info("Sentry not configured, skipping initialization")
        return False

    try:
        sentry_sdk.init(
            dsn=config.SENTRY_DSN,
            environment=config.ENVIRONMENT,
            integrations=[
                AsyncioIntegration(),
                LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)
            ],
            traces_sample_rate=0.1,
            send_default_pii=False,
            before_send=_enrich_sentry_event
        )
        logger.info("Sentry initialized for error tracking")
        return True

    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}")
        return False


def _enrich_sentry_event(event: Dict[str, Any], hint: Dict[str, Any]) -> Dict[str, Any]:
    """Tag events with the system name and group fetch errors by type and status."""
    event.setdefault("tags", {})
    event["tags"]["system"] = "perfume-storefront"
    event["tags"]["environment"] = config.ENVIRONMENT

    exc_info = (hint or {}).get("exc_info")
    if exc_info and isinstance(exc_info[1], FetchError):
        exc = exc_info[1]
        event["fingerprint"] = ["{{ default }}", type(exc).__name__, str(exc.status)]

    return event


def capture_fetch_error(operation: str, error: FetchError, context: Optional[Dict[str, Any]] = None):
    """Capture a fetch failure in Sentry."""
    if not config.has_sentry:
        return

    with sentry_sdk.new_scope() as scope:
        scope.set_tag("operation", operation)
        scope.set_tag("error_type", type(error).__name__)
        scope.set_extra("status", error.status)
        scope.set_extra("context", context or {})
        scope.set_level("error")
        sentry_sdk.capture_exception(error)


def capture_decode_error(raw_data: Any, error: str):
    """Capture a payload that could not be decoded into catalog records."""
    if not config.has_sentry:
        return

    with sentry_sdk.new_scope() as scope:
        scope.set_tag("error_type", "decode")
        scope.set_extra("payload_type", type(raw_data).__name__)
        if isinstance(raw_data, dict):
            scope.set_extra("raw_data_keys", list(raw_data.keys()))
        scope.set_level("warning")
        sentry_sdk.capture_message(f"Catalog payload could not be decoded: {error}", "warning")
