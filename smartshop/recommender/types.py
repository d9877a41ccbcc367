"""Record types shared by the recommendation engine.

Defines the interaction, user and product records supplied by the stores,
the canonical candidate record every recommender produces, and the cached
recommendation record.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class RecommendationReason(str, Enum):
    """Provenance tag attached to every candidate."""

    COLLABORATIVE_FILTERING = "collaborative_filtering"
    ITEM_BASED = "item_based"
    CONTENT_BASED = "content_based"
    POPULAR = "popular"
    POPULAR_FALLBACK = "popular_fallback"
    RECENT = "recent"
    RECENT_ALL = "recent_all"
    ULTIMATE_FALLBACK = "ultimate_fallback"
    MANUAL = "manual"


POPULARITY_REASONS = frozenset(
    {
        RecommendationReason.POPULAR,
        RecommendationReason.POPULAR_FALLBACK,
        RecommendationReason.RECENT,
        RecommendationReason.RECENT_ALL,
        RecommendationReason.ULTIMATE_FALLBACK,
    }
)


@dataclass(frozen=True)
class Interaction:
    """A timestamped user action on a product."""

    user_id: str
    product_id: str
    type: str
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class User:
    """A user and their stated preference tags."""

    id: str
    name: str = ""
    preferences: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Product:
    """A catalog product. Category and tags are its only matching features."""

    id: str
    name: str = ""
    category: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    price: Optional[float] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class SimilarUser:
    """A neighbor found by the similarity engine."""

    user_id: str
    similarity: float
    interaction_count: int


@dataclass(frozen=True)
class Candidate:
    """A scored recommendation candidate.

    Attributes:
        product_id: Id of the recommended product.
        product: Resolved product record, or None if it could not be resolved.
        score: Relative ranking signal. Not a probability and not bounded.
        reason: Which recommender path produced the candidate.
    """

    product_id: str
    product: Optional[Product]
    score: float
    reason: RecommendationReason

    def with_score(self, score: float) -> "Candidate":
        return replace(self, score=score)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "score": float(self.score),
            "reason": self.reason.value,
        }


@dataclass
class RecommendationRecord:
    """The live recommendation list of one user."""

    user_id: str
    recommendations: List[Candidate]
    generated_at: datetime
    message: Optional[str] = None


def rank_candidates(candidates: List[Candidate], limit: int) -> List[Candidate]:
    """Sort candidates by score descending and truncate to ``limit``.

    The sort is stable, so equal scores keep their incoming order.
    """
    if limit <= 0:
        return []
    return sorted(candidates, key=lambda c: c.score, reverse=True)[:limit]
