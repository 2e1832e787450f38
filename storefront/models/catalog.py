"""
Canonical internal catalog contract.
Everything the core reads, aggregates and reorders has one of these shapes.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

UNKNOWN_BRAND = "Unknown"
DEFAULT_VOLUME = "100ml"
DEFAULT_CONCENTRATION = "Eau de Parfum"
DEFAULT_AUDIENCE = "unisex"
AUDIENCES = ("male", "female", "unisex")


@dataclass(frozen=True)
class Review:
    """A user review attached to a product, subject to moderation."""
    id: str
    content: str = ""
    rating: Optional[float] = None
    author_id: Optional[str] = None
    author_name: Optional[str] = None
    is_approved: bool = True
    created_at: Optional[str] = None

    @property
    def has_rating(self) -> bool:
        return self.rating is not None and self.rating > 0

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "content": self.content,
            "rating": self.rating,
            "author_id": self.author_id,
            "author_name": self.author_name,
            "is_approved": self.is_approved,
            "created_at": self.created_at
        }


@dataclass(frozen=True)
class Product:
    """
    Read-only projection of a perfume.
    Volume, concentration and audience carry display defaults, not stored values.
    """
    id: str
    name: str
    brand_name: str = UNKNOWN_BRAND
    price: float = 0.0
    description: str = ""
    image_ref: str = ""
    target_audience: str = DEFAULT_AUDIENCE
    volume: str = DEFAULT_VOLUME
    concentration: str = DEFAULT_CONCENTRATION
    ingredients: Tuple[str, ...] = ()
    reviews: Tuple[Review, ...] = ()

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "brand_name": self.brand_name,
            "price": self.price,
            "description": self.description,
            "image_ref": self.image_ref,
            "target_audience": self.target_audience,
            "volume": self.volume,
            "concentration": self.concentration,
            "ingredients": list(self.ingredients)
        }


@dataclass(frozen=True)
class Brand:
    id: str
    brand_name: str
    is_deleted: bool = False
    overview: str = ""

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "brand_name": self.brand_name,
            "is_deleted": self.is_deleted,
            "overview": self.overview
        }


@dataclass(frozen=True)
class RatingSummary:
    """
    Aggregate rating of one review set.

    `average` is the unrounded mean of valid ratings and is what filters compare
    against. `count` is the number of review records in the set, rated or not.
    """
    average: float = 0.0
    count: int = 0

    @property
    def display_average(self) -> float:
        return round(self.average, 1)

    def to_dict(self) -> Dict:
        return {
            "average": self.average,
            "display_average": self.display_average,
            "count": self.count
        }


@dataclass(frozen=True)
class RatedProduct:
    """A product paired with the rating shown beside it."""
    product: Product
    rating: RatingSummary = field(default_factory=RatingSummary)

    def to_dict(self) -> Dict:
        data = self.product.to_dict()
        data["rating"] = self.rating.to_dict()
        return data


@dataclass(frozen=True)
class Overview:
    """Catalog-wide statistics computed by the remote service."""
    total_brands: int = 0
    total_perfumes: int = 0
    total_comments: int = 0
    brands_with_products: List[Dict] = field(default_factory=list)
    recent_perfumes: List[Product] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "statistics": {
                "total_brands": self.total_brands,
                "total_perfumes": self.total_perfumes,
                "total_comments": self.total_comments
            },
            "brands_with_products": list(self.brands_with_products),
            "recent_perfumes": [p.to_dict() for p in self.recent_perfumes]
        }
