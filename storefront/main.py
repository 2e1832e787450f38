"""
Main application entry point.
Serves derived catalog views as JSON for the storefront pages.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from storefront.config import config
from storefront.core.catalog_view import CatalogView
from storefront.core.invalidation import ReviewInvalidator
from storefront.core.query import QueryState, brand_product_counts, rate, related_products
from storefront.core.rating import aggregate, can_modify, has_reviewed, visible_reviews
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
from storefront.sentry import initialize_sentry
from storefront.services.catalog_service import CatalogService
from storefront.session import Session
from storefront.status import BackendStatusMonitor

# Initialize services
review_invalidator = ReviewInvalidator()
catalog_service = CatalogService(invalidator=review_invalidator)
# Single probe per /health request, no backoff
status_monitor = BackendStatusMonitor(catalog_service, max_retries=0)

_ERROR_STATUS = (
    (NotFoundError, 404),
    (ValidationError, 400),
    (PermissionDeniedError, 403),
    (DecodeError, 502),
    (TransportError, 503),
    (ServerError, 503),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    logger.info("Starting perfume storefront")
    initialize_sentry()
    await catalog_service.initialize()

    yield

    logger.info("Shutting down perfume storefront")
    await catalog_service.close()


app = FastAPI(
    title="Perfume Storefront API",
    description="Catalog browsing with consistent ratings and client-side search, filters and sorting",
    version="1.0.0",
    lifespan=lifespan
)


class ReviewCreate(BaseModel):
    content: str
    rating: Optional[float] = Field(default=None, ge=0, le=5)


class ReviewUpdate(BaseModel):
    product_id: str
    content: Optional[str] = None
    rating: Optional[float] = Field(default=None, ge=0, le=5)


class ReviewApproval(BaseModel):
    product_id: str
    approved: bool


def get_session(
    authorization: Optional[str] = Header(default=None),
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None)
) -> Session:
    """Build the viewer session from request headers; identity itself lives elsewhere."""
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip() or None
    return Session(
        token=token,
        user_id=x_user_id or None,
        is_admin=(x_user_role or "").lower() == "admin"
    )


@app.exception_handler(FetchError)
async def fetch_error_handler(request: Request, exc: FetchError):
    status_code = 500
    for error_type, code in _ERROR_STATUS:
        if isinstance(exc, error_type):
            status_code = code
            break

    message = exc.message
    if isinstance(exc, (TransportError, ServerError)):
        message = "Service unavailable"

    logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": message}
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Perfume Storefront",
        "version": "1.0.0",
        "catalog_api": catalog_service.base_url,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/health")
async def health_check():
    """Reports whether the catalog API is reachable."""
    status = await status_monitor.check()
    return {
        "status": "healthy" if status == "connected" else "degraded",
        "backend": status_monitor.get_status(),
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/perfumes")
async def list_perfumes(
    search: str = "",
    brand: List[str] = Query(default=[]),
    price: List[str] = Query(default=[]),
    rating: Optional[float] = None,
    gender: List[str] = Query(default=[]),
    sort: str = "name",
    session: Session = Depends(get_session)
):
    """Search, filter and sort the full catalog with per-product ratings."""
    view = CatalogView(catalog_service, session=session, invalidator=review_invalidator)
    try:
        await view.load()
    finally:
        view.close()

    query = QueryState(
        search_text=search,
        brands=brand,
        price_buckets=price,
        min_rating=rating,
        genders=gender,
        sort=sort
    )
    results = view.render(query)

    return {
        "count": len(results),
        "total": len(view.products),
        "results": [item.to_dict() for item in results]
    }


@app.get("/featured")
async def featured_perfumes(session: Session = Depends(get_session)):
    products = (await catalog_service.fetch_products())[:config.FEATURED_LIMIT]
    ratings = await catalog_service.fetch_ratings(products, is_admin=session.is_admin)
    return {"results": [item.to_dict() for item in rate(products, ratings)]}


@app.get("/perfumes/{product_id}")
async def perfume_detail(product_id: str, session: Session = Depends(get_session)):
    """One perfume with its visible reviews, rating and same-brand suggestions."""
    product = await catalog_service.fetch_product(product_id)

    try:
        reviews = await catalog_service.fetch_reviews(product_id)
    except FetchError as e:
        logger.warning(f"Reviews unavailable for product {product_id}: {e}")
        reviews = []

    shown = visible_reviews(reviews, is_admin=session.is_admin)

    try:
        same_brand = await catalog_service.fetch_products(brand=product.brand_name)
        related = related_products(same_brand, product, limit=config.RELATED_LIMIT)
    except FetchError as e:
        logger.warning(f"Related perfumes unavailable for product {product_id}: {e}")
        related = []

    return {
        "product": product.to_dict(),
        "rating": aggregate(shown).to_dict(),
        "reviews": [
            {**review.to_dict(), "can_modify": can_modify(review, session)}
            for review in shown
        ],
        "already_reviewed": has_reviewed(reviews, session.user_id),
        "related": [p.to_dict() for p in related]
    }


@app.get("/brands")
async def list_brands():
    """Active brands with how many perfumes each one has."""
    brands = await catalog_service.fetch_brands()
    counts = brand_product_counts(await catalog_service.fetch_products())
    return {
        "results": [
            {**brand.to_dict(), "product_count": counts.get(brand.brand_name, 0)}
            for brand in brands
        ]
    }


@app.get("/overview")
async def overview():
    return (await catalog_service.fetch_overview()).to_dict()


@app.get("/suggestions")
async def suggestions(q: str = ""):
    text = q.strip()
    if not text:
        return {"query": text, "results": []}
    products = await catalog_service.fetch_suggestions(text)
    return {"query": text, "results": [p.to_dict() for p in products]}


@app.post("/perfumes/{product_id}/reviews", status_code=201)
async def add_review(product_id: str, body: ReviewCreate, session: Session = Depends(get_session)):
    review = await catalog_service.add_review(session, product_id, body.content, body.rating)
    return {"review": review.to_dict(), "stale_product_id": product_id}


@app.put("/reviews/{review_id}")
async def update_review(review_id: str, body: ReviewUpdate, session: Session = Depends(get_session)):
    review = await catalog_service.update_review(
        session, review_id, body.product_id, content=body.content, rating=body.rating
    )
    return {"review": review.to_dict(), "stale_product_id": body.product_id}


@app.patch("/reviews/{review_id}/approval")
async def set_review_approval(review_id: str, body: ReviewApproval,
                              session: Session = Depends(get_session)):
    review = await catalog_service.set_review_approval(
        session, review_id, body.product_id, body.approved
    )
    return {"review": review.to_dict(), "stale_product_id": body.product_id}


@app.delete("/reviews/{review_id}")
async def delete_review(review_id: str, product_id: str, session: Session = Depends(get_session)):
    await catalog_service.delete_review(session, review_id, product_id)
    return {"deleted": review_id, "stale_product_id": product_id}


@app.get("/admin/reviews")
async def moderation_queue(session: Session = Depends(get_session)):
    """Every review, approved or not, for moderation."""
    if not session.is_admin:
        raise PermissionDeniedError("You do not have permission to perform this action.", status=403)

    reviews = await catalog_service.fetch_all_reviews(session)
    pending = [review for review in reviews if not review.is_approved]
    return {
        "count": len(reviews),
        "pending": len(pending),
        "results": [review.to_dict() for review in reviews]
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
