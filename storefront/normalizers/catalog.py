"""
Explicit normalization layer.
Converts catalog API records (perfumes, brands, comments) into the internal model.
"""
import math
from typing import Any, List, Mapping, Optional

from storefront.errors import DecodeError
from storefront.models.catalog import (
    AUDIENCES,
    DEFAULT_AUDIENCE,
    DEFAULT_CONCENTRATION,
    DEFAULT_VOLUME,
    UNKNOWN_BRAND,
    Brand,
    Overview,
    Product,
    Review,
)


def normalize_brand_name(value: Any) -> str:
    """
    Resolve a brand reference to its display name.

    Accepts a plain string, a mapping with `brandName`, a `Brand`, or anything
    else. Never raises; unresolvable references become "Unknown".
    """
    if isinstance(value, Brand):
        value = value.brand_name
    elif isinstance(value, Mapping):
        value = value.get("brandName")

    if isinstance(value, str):
        name = value.strip()
        if name:
            return name

    return UNKNOWN_BRAND


class CatalogNormalizer:
    """
    Normalizes raw catalog API records into internal models.
    Records that cannot be keyed by id fail closed with DecodeError.
    """

    @staticmethod
    def normalize_product(raw_product: Any) -> Product:
        """
        Convert an API perfume record to a Product.

        Expected fields: _id, perfumeName (or name), brand, price, uri (or
        imageUrl), description, targetAudience (or category), volume,
        concentration, ingredients.

        Raises:
            DecodeError: If the record is not an object or has no id
        """
        if not isinstance(raw_product, Mapping):
            raise DecodeError(f"Expected perfume object, got {type(raw_product).__name__}")

        product_id = CatalogNormalizer._extract_id(raw_product)
        if product_id is None:
            raise DecodeError(
                f"Perfume record has no id. Data keys: {list(raw_product.keys())}"
            )

        return Product(
            id=product_id,
            name=CatalogNormalizer._text(raw_product.get("perfumeName") or raw_product.get("name")),
            brand_name=normalize_brand_name(raw_product.get("brand")),
            price=CatalogNormalizer._normalize_price(raw_product.get("price")),
            description=CatalogNormalizer._text(raw_product.get("description")),
            image_ref=CatalogNormalizer._text(raw_product.get("uri") or raw_product.get("imageUrl")),
            target_audience=CatalogNormalizer._normalize_audience(
                raw_product.get("targetAudience") or raw_product.get("category")
            ),
            volume=CatalogNormalizer._text(raw_product.get("volume")) or DEFAULT_VOLUME,
            concentration=CatalogNormalizer._text(raw_product.get("concentration")) or DEFAULT_CONCENTRATION,
            ingredients=CatalogNormalizer._normalize_ingredients(raw_product.get("ingredients")),
            reviews=CatalogNormalizer._embedded_reviews(raw_product.get("comments"))
        )

    @staticmethod
    def normalize_review(raw_review: Any) -> Review:
        """Convert an API comment record to a Review."""
        if not isinstance(raw_review, Mapping):
            raise DecodeError(f"Expected comment object, got {type(raw_review).__name__}")

        review_id = CatalogNormalizer._extract_id(raw_review)
        if review_id is None:
            raise DecodeError(
                f"Comment record has no id. Data keys: {list(raw_review.keys())}"
            )

        author = raw_review.get("user") or raw_review.get("author")
        author_id = None
        author_name = None
        if isinstance(author, Mapping):
            author_id = CatalogNormalizer._extract_id(author)
            author_name = author.get("name")
        elif isinstance(author, str) and author:
            author_id = author

        return Review(
            id=review_id,
            content=CatalogNormalizer._text(raw_review.get("content")),
            rating=CatalogNormalizer._normalize_rating(raw_review.get("rating")),
            author_id=author_id,
            author_name=author_name,
            is_approved=CatalogNormalizer._normalize_approval(raw_review),
            created_at=raw_review.get("createdAt")
        )

    @staticmethod
    def normalize_brand(raw_brand: Any) -> Brand:
        """Convert an API brand record to a Brand."""
        if not isinstance(raw_brand, Mapping):
            raise DecodeError(f"Expected brand object, got {type(raw_brand).__name__}")

        brand_id = CatalogNormalizer._extract_id(raw_brand)
        if brand_id is None:
            raise DecodeError(
                f"Brand record has no id. Data keys: {list(raw_brand.keys())}"
            )

        return Brand(
            id=brand_id,
            brand_name=normalize_brand_name(raw_brand),
            is_deleted=bool(raw_brand.get("isDeleted", False)),
            overview=CatalogNormalizer._text(raw_brand.get("overview"))
        )

    @staticmethod
    def normalize_overview(raw: Any) -> Overview:
        """Convert the overview payload into an Overview."""
        if not isinstance(raw, Mapping):
            raise DecodeError(f"Expected overview object, got {type(raw).__name__}")

        stats = raw.get("statistics") or {}
        brands = []
        for entry in raw.get("brandsWithProducts") or []:
            if not isinstance(entry, Mapping):
                continue
            brands.append({
                "id": CatalogNormalizer._extract_id(entry),
                "brand_name": normalize_brand_name(entry),
                "product_count": CatalogNormalizer._count(entry.get("productCount")),
                "has_products": bool(entry.get("hasProducts", False))
            })

        return Overview(
            total_brands=CatalogNormalizer._count(stats.get("totalBrands")),
            total_perfumes=CatalogNormalizer._count(stats.get("totalPerfumes")),
            total_comments=CatalogNormalizer._count(stats.get("totalComments")),
            brands_with_products=brands,
            recent_perfumes=CatalogNormalizer.normalize_products(raw.get("recentPerfumes") or [])
        )

    @staticmethod
    def normalize_products(raw_products: Any) -> List[Product]:
        """
        Normalize a list of perfume records.

        Raises:
            DecodeError: If the payload is not a list or any record is unusable
        """
        return [
            CatalogNormalizer.normalize_product(raw)
            for raw in CatalogNormalizer._expect_list(raw_products, "perfumes")
        ]

    @staticmethod
    def normalize_reviews(raw_reviews: Any) -> List[Review]:
        return [
            CatalogNormalizer.normalize_review(raw)
            for raw in CatalogNormalizer._expect_list(raw_reviews, "comments")
        ]

    @staticmethod
    def normalize_brands(raw_brands: Any) -> List[Brand]:
        return [
            CatalogNormalizer.normalize_brand(raw)
            for raw in CatalogNormalizer._expect_list(raw_brands, "brands")
        ]

    @staticmethod
    def _embedded_reviews(raw_comments: Any) -> tuple:
        """Comments embedded in a perfume record; unusable entries are skipped."""
        if not isinstance(raw_comments, list):
            return ()

        reviews = []
        for raw in raw_comments:
            try:
                reviews.append(CatalogNormalizer.normalize_review(raw))
            except DecodeError:
                continue
        return tuple(reviews)

    @staticmethod
    def _expect_list(payload: Any, what: str) -> List[Any]:
        if not isinstance(payload, list):
            raise DecodeError(f"Expected a list of {what}, got {type(payload).__name__}")
        return payload

    @staticmethod
    def _extract_id(raw: Mapping) -> Optional[str]:
        """Read `_id` (or `id`) as a string."""
        value = raw.get("_id")
        if value is None:
            value = raw.get("id")
        if value is None or value == "":
            return None
        return str(value)

    @staticmethod
    def _text(value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @staticmethod
    def _normalize_price(raw_price: Any) -> float:
        """Prices are non-negative floats; anything unusable becomes 0."""
        if isinstance(raw_price, bool):
            return 0.0
        try:
            price = float(raw_price)
        except (TypeError, ValueError):
            return 0.0
        if not math.isfinite(price) or price < 0:
            return 0.0
        return price

    @staticmethod
    def _normalize_rating(raw_rating: Any) -> Optional[float]:
        """Only real positive numbers count as a rating."""
        if isinstance(raw_rating, bool) or not isinstance(raw_rating, (int, float)):
            return None
        if not math.isfinite(raw_rating) or raw_rating <= 0:
            return None
        return float(raw_rating)

    @staticmethod
    def _normalize_audience(raw_audience: Any) -> str:
        audience = CatalogNormalizer._text(raw_audience).lower()
        if audience in AUDIENCES:
            return audience
        return DEFAULT_AUDIENCE

    @staticmethod
    def _normalize_ingredients(raw: Any) -> tuple:
        if not isinstance(raw, list):
            return ()
        return tuple(str(item).strip() for item in raw if item is not None and str(item).strip())

    @staticmethod
    def _normalize_approval(raw_review: Mapping) -> bool:
        # The public endpoint only ever returns approved comments
        if "isApproved" not in raw_review:
            return True
        return raw_review["isApproved"] is True

    @staticmethod
    def _count(raw: Any) -> int:
        if isinstance(raw, bool):
            return 0
        try:
            return max(0, int(raw))
        except (TypeError, ValueError, OverflowError):
            return 0