"""Recommendation service.

Sits between callers and the engine: serves a user's cached list while it is
fresh, regenerates it through the hybrid recommender when it is missing,
stale or explicitly forced, and turns a total engine failure into an explicit
empty response.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional, Tuple

from smartshop.api.exceptions import (
    InvalidRecommendationError,
    RecommendationError,
    UserNotFoundError,
)
from smartshop.api.metrics import MetricsService, metrics_service
from smartshop.config import RecommenderConfig
from smartshop.recommender.cache import RecommendationCache, create_cache
from smartshop.recommender.hybrid import HybridRecommender, create_hybrid_recommender
from smartshop.recommender.stores import InteractionStore, ProductStore, UserStore
from smartshop.recommender.types import (
    Candidate,
    RecommendationReason,
    RecommendationRecord,
    SimilarUser,
    User,
)

# Configure module logger
logger = logging.getLogger(__name__)

NO_RECOMMENDATIONS_MESSAGE = (
    "No recommendations available yet. "
    "Interact with more products to get personalized recommendations."
)

RECOMMENDATION_MODES = ("hybrid", "collaborative", "item", "content", "popular")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecommendationService:
    """Cache-aware entry point to the recommendation engine.

    Holds only handles to the stores, the recommender and the cache; every
    request is computed independently.
    """

    def __init__(
        self,
        recommender: HybridRecommender,
        interaction_store: InteractionStore,
        product_store: ProductStore,
        user_store: UserStore,
        cache: RecommendationCache,
        config: Optional[RecommenderConfig] = None,
        metrics: Optional[MetricsService] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.recommender = recommender
        self.interaction_store = interaction_store
        self.product_store = product_store
        self.user_store = user_store
        self.cache = cache
        self.config = config or RecommenderConfig()
        self.metrics = metrics or metrics_service
        self.clock = clock

    def require_user(self, user_id: str) -> User:
        user = self.user_store.find_by_id(user_id)
        if user is None:
            logger.warning(f"User {user_id} not found", extra={"user_id": user_id})
            raise UserNotFoundError(user_id)
        return user

    def is_stale(self, record: Optional[RecommendationRecord]) -> bool:
        """A record is stale when absent or older than the cache TTL."""
        if record is None:
            return True
        generated_at = record.generated_at
        if generated_at.tzinfo is None:
            generated_at = generated_at.replace(tzinfo=timezone.utc)
        return self.clock() - generated_at > timedelta(hours=self.config.cache_ttl_hours)

    def _generate(self, user_id: str, limit: int) -> List[Candidate]:
        start_time = time.time()
        recommendations = self.recommender.get_hybrid_recommendations(user_id, limit)
        latency_ms = (time.time() - start_time) * 1000
        self.metrics.record_generation(latency_ms, [c.reason.value for c in recommendations])

        logger.info(
            "Recommendations generated",
            extra={
                "user_id": user_id,
                "num_recommendations": len(recommendations),
                "total_time_ms": round(latency_ms, 2),
            },
        )
        return recommendations

    def _empty_record(self, user_id: str) -> RecommendationRecord:
        return RecommendationRecord(
            user_id=user_id,
            recommendations=[],
            generated_at=self.clock(),
            message=NO_RECOMMENDATIONS_MESSAGE,
        )

    def get_recommendations(
        self,
        user_id: str,
        limit: Optional[int] = None,
        force: bool = False,
    ) -> RecommendationRecord:
        """Return the user's recommendations, regenerating when needed.

        Args:
            user_id: User to recommend for.
            limit: Maximum number of recommendations; config default if None.
            force: Regenerate even if the cached list is fresh.

        Returns:
            The cached or freshly generated record. On total engine failure,
            an empty record carrying an explanatory message; the cache is
            left untouched in that case.

        Raises:
            UserNotFoundError: If the user does not exist.
        """
        limit = self.config.default_limit if limit is None else limit
        self.require_user(user_id)

        record = None if force else self.cache.get(user_id)
        if not force and not self.is_stale(record):
            self.metrics.record_cache_hit()
            logger.info("Using cached recommendations", extra={"user_id": user_id})
            return RecommendationRecord(
                user_id=record.user_id,
                recommendations=record.recommendations[:limit],
                generated_at=record.generated_at,
            )

        if not force:
            self.metrics.record_cache_miss()
        logger.info(
            "Generating new recommendations",
            extra={"user_id": user_id, "forced": force, "limit": limit},
        )

        try:
            recommendations = self._generate(user_id, limit)
        except RecommendationError as e:
            self.metrics.record_failure()
            logger.error(
                f"Failed to generate recommendations for user {user_id}: {e.message}",
                extra={"user_id": user_id, "stage": e.details.get("stage")},
            )
            return self._empty_record(user_id)

        if not recommendations:
            logger.warning("No recommendations found", extra={"user_id": user_id})

        generated_at = self.clock()
        try:
            return self.cache.put(user_id, recommendations, generated_at=generated_at)
        except Exception as e:
            # Serve the fresh list uncached; the next request regenerates.
            logger.error(
                f"Failed to cache recommendations for user {user_id}: {e}",
                extra={"user_id": user_id, "stage": "cache_put", "error_type": type(e).__name__},
                exc_info=True,
            )
            return RecommendationRecord(
                user_id=user_id,
                recommendations=recommendations,
                generated_at=generated_at,
            )

    def regenerate(self, user_id: str, limit: Optional[int] = None) -> RecommendationRecord:
        """Force regeneration regardless of cache freshness."""
        logger.info("Force regenerating recommendations", extra={"user_id": user_id})
        return self.get_recommendations(user_id, limit=limit, force=True)

    def recommend(self, user_id: str, mode: str, limit: Optional[int] = None) -> List[Candidate]:
        """Compute recommendations with a single path, bypassing the cache.

        Args:
            user_id: User to recommend for.
            mode: One of ``RECOMMENDATION_MODES``.
            limit: Maximum number of recommendations.

        Raises:
            ValueError: If the mode is unknown.
            UserNotFoundError: If the user does not exist.
            RecommendationError: If every fallback tier failed.
        """
        if mode not in RECOMMENDATION_MODES:
            raise ValueError(f"Unknown recommendation mode: {mode!r}")
        limit = self.config.default_limit if limit is None else limit
        self.require_user(user_id)

        if mode == "hybrid":
            return self._generate(user_id, limit)
        if mode == "collaborative":
            return self.recommender.user_based.generate(user_id, limit)
        if mode == "item":
            return self.recommender.item_based.generate(user_id, limit)
        if mode == "content":
            return self.recommender.content_based.generate(user_id, limit)

        return self.recommender.popular_for(user_id, limit)

    def save_recommendations(
        self,
        user_id: str,
        entries: Iterable[Tuple[str, float]],
    ) -> RecommendationRecord:
        """Store a manually supplied list as the user's live record.

        Raises:
            UserNotFoundError: If the user does not exist.
            InvalidRecommendationError: If a product is unknown or a score is
                negative.
        """
        self.require_user(user_id)
        entries = list(entries)

        for index, (product_id, score) in enumerate(entries):
            if not product_id:
                raise InvalidRecommendationError(
                    f"Recommendation at index {index} is missing product_id", index
                )
            if score is None or score < 0:
                raise InvalidRecommendationError(
                    f"Score at index {index} must be a non-negative number", index
                )

        products = {p.id: p for p in self.product_store.find_by_ids([pid for pid, _ in entries])}
        candidates = []
        for index, (product_id, score) in enumerate(entries):
            product = products.get(str(product_id))
            if product is None:
                raise InvalidRecommendationError(
                    f"Unknown product_id {product_id} at index {index}", index
                )
            candidates.append(
                Candidate(
                    product_id=product.id,
                    product=product,
                    score=float(score),
                    reason=RecommendationReason.MANUAL,
                )
            )

        return self.cache.put(user_id, candidates, generated_at=self.clock())

    def similar_users(self, user_id: str, top_n: Optional[int] = None) -> List[SimilarUser]:
        self.require_user(user_id)
        top_n = self.config.neighbor_count if top_n is None else top_n
        return self.recommender.similarity_engine.find_similar_users(user_id, top_n)


def create_recommendation_service(
    interaction_store: InteractionStore,
    product_store: ProductStore,
    user_store: UserStore,
    config: Optional[RecommenderConfig] = None,
    cache: Optional[RecommendationCache] = None,
) -> RecommendationService:
    """Build a service and its recommender stack over the given stores."""
    config = config or RecommenderConfig()
    recommender = create_hybrid_recommender(interaction_store, product_store, user_store, config)
    return RecommendationService(
        recommender=recommender,
        interaction_store=interaction_store,
        product_store=product_store,
        user_store=user_store,
        cache=cache or create_cache(config.cache_dir),
        config=config,
    )
