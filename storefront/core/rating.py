"""
Rating aggregation.
The one place a product's average rating is computed, for every view.
"""
import math
from typing import Any, Iterable, List, Mapping, Optional

from storefront.models.catalog import RatingSummary, Review
from storefront.session import Session


def _rating_of(review: Any) -> Any:
    if isinstance(review, Mapping):
        return review.get("rating")
    return getattr(review, "rating", None)


def is_valid_rating(value: Any) -> bool:
    """A rating counts only when it is a real, finite number above zero."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def aggregate(reviews: Optional[Iterable[Any]]) -> RatingSummary:
    """
    Average the valid ratings of a review set.

    `count` is every record passed in, rated or not, so "(N reviews)" matches
    the list shown next to it. Records may be Review objects or raw mappings.
    """
    if not reviews:
        return RatingSummary(average=0.0, count=0)

    total = 0.0
    rated = 0
    count = 0
    for review in reviews:
        count += 1
        value = _rating_of(review)
        if is_valid_rating(value):
            total += value
            rated += 1

    average = total / rated if rated else 0.0
    return RatingSummary(average=average, count=count)


def visible_reviews(reviews: Optional[Iterable[Review]], is_admin: bool = False) -> List[Review]:
    """Approved reviews only, unless the viewer is moderating."""
    if not reviews:
        return []
    if is_admin:
        return list(reviews)
    return [review for review in reviews if review.is_approved]


def has_reviewed(reviews: Optional[Iterable[Review]], user_id: Optional[str]) -> bool:
    if not user_id or not reviews:
        return False
    return any(review.author_id == user_id for review in reviews)


def can_modify(review: Review, session: Optional[Session]) -> bool:
    """Authors may edit or delete their own review; admins may touch any."""
    if session is None or not session.is_authenticated:
        return False
    if session.is_admin:
        return True
    return bool(session.user_id) and review.author_id == session.user_id
