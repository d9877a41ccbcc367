"""Recommendation endpoints for the SmartShop API.

This module exposes a user's recommendation list (cached hybrid results or
a single recommendation path computed on demand), forced regeneration,
manual storage of a list and a neighbor view for debugging.
"""

import logging
from datetime import datetime, timezone
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import BaseModel, Field

from smartshop.recommender.service import RecommendationService
from smartshop.recommender.types import Candidate, RecommendationRecord

# Configure module logger
logger = logging.getLogger(__name__)

# Create API router
router = APIRouter(
    prefix="/recommendations",
    tags=["recommendations"],
)

# Upper bound on the number of items a single request may ask for
MAX_LIMIT = 100

Mode = Literal["hybrid", "collaborative", "item", "content", "popular"]


class RecommendationItem(BaseModel):
    """A single recommended product."""

    product_id: str = Field(..., description="Recommended product ID")
    score: float = Field(..., description="Relevance score")
    reason: str = Field(..., description="Path that produced the recommendation")


class RecommendationResponse(BaseModel):
    """Response model for recommendation requests.

    Attributes:
        user_id: The user ID for which recommendations were generated.
        recommendations: Ranked recommendations, highest score first.
        generated_at: When the list was generated.
        message: Set when no recommendations could be produced.
    """

    user_id: str = Field(..., description="User ID for recommendations")
    recommendations: List[RecommendationItem] = Field(
        default_factory=list, description="Ranked recommendations"
    )
    generated_at: datetime = Field(..., description="Generation timestamp")
    message: Optional[str] = Field(default=None, description="Explanation for an empty list")


class ManualRecommendation(BaseModel):
    product_id: str = Field(..., min_length=1, description="Product ID")
    score: float = Field(..., ge=0, description="Non-negative score")


class ManualRecommendationRequest(BaseModel):
    """Request body for storing a recommendation list by hand."""

    recommendations: List[ManualRecommendation] = Field(
        ..., description="Recommendations to store as the user's live list"
    )


class SimilarUserItem(BaseModel):
    user_id: str
    similarity: float
    interaction_count: int


class SimilarUsersResponse(BaseModel):
    user_id: str
    similar_users: List[SimilarUserItem]


def get_service(request: Request) -> RecommendationService:
    """Return the service the application was built with."""
    return request.app.state.service


def _items(candidates: List[Candidate]) -> List[RecommendationItem]:
    return [RecommendationItem(**candidate.to_dict()) for candidate in candidates]


def _response(record: RecommendationRecord) -> RecommendationResponse:
    return RecommendationResponse(
        user_id=record.user_id,
        recommendations=_items(record.recommendations),
        generated_at=record.generated_at,
        message=record.message,
    )


@router.get("/{user_id}", response_model=RecommendationResponse)
def get_recommendations(
    user_id: str,
    limit: Optional[int] = Query(default=None, ge=1, le=MAX_LIMIT),
    mode: Mode = "hybrid",
    service: RecommendationService = Depends(get_service),
) -> RecommendationResponse:
    """Get product recommendations for a user.

    ``mode=hybrid`` serves the cached list while it is fresh and regenerates
    it otherwise. The other modes run a single recommendation path and
    bypass the cache.

    Example:
        GET /recommendations/u1?limit=5&mode=item
    """
    logger.info(
        f"Recommendations requested for user {user_id}",
        extra={"user_id": user_id, "mode": mode, "limit": limit},
    )

    if mode == "hybrid":
        return _response(service.get_recommendations(user_id, limit=limit))

    candidates = service.recommend(user_id, mode, limit=limit)
    return RecommendationResponse(
        user_id=user_id,
        recommendations=_items(candidates),
        generated_at=datetime.now(timezone.utc),
    )


@router.post("/{user_id}/regenerate", response_model=RecommendationResponse)
def regenerate_recommendations(
    user_id: str,
    limit: Optional[int] = Query(default=None, ge=1, le=MAX_LIMIT),
    service: RecommendationService = Depends(get_service),
) -> RecommendationResponse:
    """Regenerate a user's recommendations regardless of cache freshness."""
    return _response(service.regenerate(user_id, limit=limit))


@router.post(
    "/{user_id}",
    response_model=RecommendationResponse,
    status_code=status.HTTP_201_CREATED,
)
def save_recommendations(
    user_id: str,
    body: ManualRecommendationRequest,
    service: RecommendationService = Depends(get_service),
) -> RecommendationResponse:
    """Store a manually supplied list as the user's live recommendations."""
    entries = [(item.product_id, item.score) for item in body.recommendations]
    record = service.save_recommendations(user_id, entries)
    logger.info(
        f"Stored {len(entries)} manual recommendations for user {user_id}",
        extra={"user_id": user_id},
    )
    return _response(record)


@router.get("/{user_id}/similar-users", response_model=SimilarUsersResponse)
def get_similar_users(
    user_id: str,
    top_n: Optional[int] = Query(default=None, ge=1, le=MAX_LIMIT),
    service: RecommendationService = Depends(get_service),
) -> SimilarUsersResponse:
    neighbors = service.similar_users(user_id, top_n=top_n)
    return SimilarUsersResponse(
        user_id=user_id,
        similar_users=[
            SimilarUserItem(
                user_id=n.user_id,
                similarity=n.similarity,
                interaction_count=n.interaction_count,
            )
            for n in neighbors
        ],
    )
