"""
Wrapper for the remote catalog API.
Includes timeout, response validation, error translation and normalization.
All network logic is isolated here.
"""
import asyncio
import json
from typing import Any, Dict, Iterable, List, Optional

import aiohttp

from storefront.config import config
from storefront.core.invalidation import ReviewInvalidator
from storefront.core.rating import aggregate, visible_reviews
from storefront.errors import (
    DecodeError,
    FetchError,
    NotFoundError,
    PermissionDeniedError,
    ServerError,
    TransportError,
    ValidationError,
)
from storefront.logger import logger
from storefront.models.catalog import Brand, Overview, Product, RatingSummary, Review
from storefront.normalizers.catalog import CatalogNormalizer
from storefront.sentry import capture_decode_error, capture_fetch_error
from storefront.session import Session

_GENERIC_MESSAGES = {
    401: "Please log in to continue.",
    403: "You do not have permission to perform this action.",
    404: "The requested resource was not found.",
}


class CatalogService:
    """
    Client for the perfume catalog REST API.
    Views never call the API directly. Nothing here retries.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 invalidator: Optional[ReviewInvalidator] = None):
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        self.timeout = timeout or config.REQUEST_TIMEOUT
        self.invalidator = invalidator
        self.normalizer = CatalogNormalizer()
        self.session: Optional[aiohttp.ClientSession] = None

    async def initialize(self):
        """Initialize HTTP session (called after startup)."""
        if self.session is not None:
            return

        self.session = aiohttp.ClientSession(
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json"
            },
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        )
        logger.info(f"Catalog service initialized for {self.base_url}")

    async def close(self):
        """Close HTTP session."""
        if self.session:
            await self.session.close()
            self.session = None

    async def __aenter__(self) -> "CatalogService":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                       payload: Optional[Dict[str, Any]] = None,
                       headers: Optional[Dict[str, str]] = None) -> Any:
        """
        Perform one API call and decode its JSON body.

        Raises:
            TransportError: No response (connection failure or timeout)
            DecodeError: Body is not JSON
            NotFoundError, ValidationError, PermissionDeniedError, ServerError:
                Non-2xx statuses
        """
        if self.session is None:
            await self.initialize()

        url = f"{self.base_url}{path}"
        query = {k: v for k, v in (params or {}).items() if v not in (None, "")}

        try:
            response = await self.session.request(
                method, url, params=query or None, json=payload, headers=headers
            )

            if response.status == 204:
                return None

            if response.status >= 400:
                raise await self._status_error(response, method, path)

            return await response.json()

        except FetchError:
            raise
        except aiohttp.ContentTypeError as e:
            logger.error(f"Non-JSON response from {method} {path}: {e}")
            raise DecodeError(f"Invalid response from catalog API: {e.message}") from e
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON response from {method} {path}: {e}")
            raise DecodeError(f"Invalid JSON response from catalog API: {e}") from e
        except (UnicodeDecodeError, ValueError) as e:
            logger.error(f"Undecodable response body from {method} {path}: {e}")
            raise DecodeError(f"Invalid response encoding from catalog API: {e}") from e
        except aiohttp.ClientError as e:
            logger.error(f"Network error calling {method} {path}: {e}")
            raise TransportError(f"Catalog service unavailable: {e}") from e
        except asyncio.TimeoutError as e:
            logger.error(f"Timeout calling {method} {path} after {self.timeout}s")
            raise TransportError(f"Catalog service timed out after {self.timeout}s") from e

    async def _status_error(self, response, method: str, path: str) -> FetchError:
        """Translate a non-2xx response into the matching FetchError."""
        status = response.status
        message = await self._server_message(response)
        logger.error(f"Catalog API error {status} for {method} {path}: {message or '<no message>'}")

        if status == 404:
            return NotFoundError(message or _GENERIC_MESSAGES[404], status=status)
        if status in (401, 403):
            return PermissionDeniedError(message or _GENERIC_MESSAGES[status], status=status)
        if status >= 500:
            return ServerError("Server error. Please try again later.", status=status)
        return ValidationError(message or "The request could not be completed.", status=status)

    @staticmethod
    async def _server_message(response) -> Optional[str]:
        try:
            text = await response.text()
        except (aiohttp.ClientError, UnicodeDecodeError):
            return None
        if not text:
            return None
        try:
            body = json.loads(text)
        except json.JSONDecodeError:
            return None
        if isinstance(body, dict) and isinstance(body.get("message"), str):
            return body["message"]
        return None

    def _decode(self, operation: str, normalize, payload: Any):
        try:
            return normalize(payload)
        except DecodeError as e:
            logger.error(f"Could not decode {operation} response: {e}")
            capture_decode_error(payload, str(e))
            raise

    # ------------------------------------------------------------------
    # Public reads
    # ------------------------------------------------------------------

    async def fetch_products(self, q: Optional[str] = None, brand: Optional[str] = None) -> List[Product]:
        """
        List perfumes, optionally narrowed server-side by text or brand name.

        Raises:
            FetchError: If the list cannot be obtained or decoded
        """
        try:
            payload = await self._request("GET", "/api/public/perfumes", params={"q": q, "brand": brand})
        except FetchError as e:
            capture_fetch_error("fetch_products", e, {"q": q, "brand": brand})
            raise

        products = self._decode("fetch_products", self.normalizer.normalize_products, payload)
        logger.info(f"Fetched {len(products)} perfumes")
        return products

    async def fetch_product(self, product_id: str) -> Product:
        payload = await self._request("GET", f"/api/public/perfumes/{product_id}")
        return self._decode("fetch_product", self.normalizer.normalize_product, payload)

    async def fetch_brands(self, active_only: bool = True) -> List[Brand]:
        """List brands; soft-deleted ones are dropped unless `active_only` is False."""
        payload = await self._request("GET", "/api/public/brands")
        brands = self._decode("fetch_brands", self.normalizer.normalize_brands, payload)
        if active_only:
            brands = [brand for brand in brands if not brand.is_deleted]
        return brands

    async def fetch_reviews(self, product_id: str) -> List[Review]:
        payload = await self._request("GET", f"/api/comments/perfume/{product_id}")
        return self._decode("fetch_reviews", self.normalizer.normalize_reviews, payload)

    async def fetch_overview(self) -> Overview:
        payload = await self._request("GET", "/api/public/overview")
        return self._decode("fetch_overview", self.normalizer.normalize_overview, payload)

    async def fetch_suggestions(self, text: str, limit: Optional[int] = None) -> List[Product]:
        products = await self.fetch_products(q=text)
        return products[:limit or config.SUGGESTION_LIMIT]

    async def fetch_rating(self, product_id: str, is_admin: bool = False) -> RatingSummary:
        reviews = await self.fetch_reviews(product_id)
        return aggregate(visible_reviews(reviews, is_admin=is_admin))

    async def fetch_ratings(self, products: Iterable[Product], is_admin: bool = False) -> Dict[str, RatingSummary]:
        """
        Fetch every product's reviews concurrently and aggregate them.

        A product whose reviews cannot be fetched is rated zero instead of
        failing the whole collection. Results are keyed by product id.
        """
        product_ids = list(dict.fromkeys(p.id for p in products))

        async def rate_one(product_id: str) -> RatingSummary:
            try:
                return await self.fetch_rating(product_id, is_admin=is_admin)
            except FetchError as e:
                logger.warning(f"Reviews unavailable for product {product_id}: {e}")
                return RatingSummary(average=0.0, count=0)

        summaries = await asyncio.gather(*(rate_one(pid) for pid in product_ids))
        return dict(zip(product_ids, summaries))

    # ------------------------------------------------------------------
    # Authenticated calls
    # ------------------------------------------------------------------

    @staticmethod
    def _require_session(session: Optional[Session]) -> Session:
        if session is None or not session.is_authenticated:
            raise PermissionDeniedError("Please log in to continue.", status=401)
        return session

    @staticmethod
    def _review_payload(content: Optional[str], rating: Optional[float]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {}
        if content is not None:
            content = content.strip()
            if not content:
                raise ValidationError("Please enter a comment")
            payload["content"] = content
        if rating:
            if isinstance(rating, bool) or not isinstance(rating, (int, float)) or not 1 <= rating <= 5:
                raise ValidationError("Rating must be between 1 and 5")
            payload["rating"] = rating
        return payload

    def _invalidate(self, product_id: Optional[str]):
        if self.invalidator is not None and product_id:
            self.invalidator.mark_stale(product_id)

    async def fetch_all_reviews(self, session: Session) -> List[Review]:
        """Every review including unapproved ones, for moderation."""
        session = self._require_session(session)
        payload = await self._request("GET", "/api/comments/all", headers=session.auth_headers)
        return self._decode("fetch_all_reviews", self.normalizer.normalize_reviews, payload)

    async def add_review(self, session: Session, product_id: str, content: str,
                         rating: Optional[float] = None) -> Review:
        """
        Post a review for a product.

        Raises:
            PermissionDeniedError: If the session is anonymous
            ValidationError: Empty content, out-of-range rating, or rejected by the server
        """
        session = self._require_session(session)
        body = self._review_payload(content, rating)

        payload = await self._request(
            "POST", f"/api/comments/perfume/{product_id}", payload=body, headers=session.auth_headers
        )
        review = self._decode("add_review", self.normalizer.normalize_review, payload)

        logger.info(f"Review {review.id} added to product {product_id}")
        self._invalidate(product_id)
        return review

    async def update_review(self, session: Session, review_id: str, product_id: str,
                            content: Optional[str] = None, rating: Optional[float] = None) -> Review:
        session = self._require_session(session)
        body = self._review_payload(content, rating)

        payload = await self._request(
            "PUT", f"/api/comments/{review_id}", payload=body, headers=session.auth_headers
        )
        review = self._decode("update_review", self.normalizer.normalize_review, payload)

        logger.info(f"Review {review_id} updated")
        self._invalidate(product_id)
        return review

    async def set_review_approval(self, session: Session, review_id: str, product_id: str,
                                  approved: bool) -> Review:
        session = self._require_session(session)
        if not session.is_admin:
            raise PermissionDeniedError(_GENERIC_MESSAGES[403], status=403)

        payload = await self._request(
            "PUT", f"/api/comments/{review_id}", payload={"isApproved": approved},
            headers=session.auth_headers
        )
        review = self._decode("set_review_approval", self.normalizer.normalize_review, payload)

        logger.info(f"Review {review_id} {'approved' if approved else 'unapproved'}")
        self._invalidate(product_id)
        return review

    async def delete_review(self, session: Session, review_id: str, product_id: str):
        session = self._require_session(session)
        await self._request("DELETE", f"/api/comments/{review_id}", headers=session.auth_headers)

        logger.info(f"Review {review_id} deleted")
        self._invalidate(product_id)
