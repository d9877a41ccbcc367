"""Hybrid recommendation module.

Combines user-based collaborative filtering and item-based matching into a
single ranked list, with the popularity chain covering cold-start users and
empty merges.
"""

import logging
import math
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Dict, List, Optional, Tuple

from smartshop.config import RecommenderConfig
from smartshop.recommender.collaborative import UserBasedRecommender
from smartshop.recommender.content_based import ContentBasedRecommender
from smartshop.recommender.item_based import ItemBasedRecommender
from smartshop.recommender.popularity import PopularityRecommender
from smartshop.recommender.similarity import SimilarityEngine
from smartshop.recommender.stores import InteractionStore, ProductStore, UserStore
from smartshop.recommender.types import Candidate, rank_candidates

# Configure module logger
logger = logging.getLogger(__name__)


class HybridRecommender:
    """Merges user-based and item-based recommendations.
    """

    def __init__(
        self,
        interaction_store: InteractionStore,
        user_based: UserBasedRecommender,
        item_based: ItemBasedRecommender,
        popularity: PopularityRecommender,
        content_based: Optional[ContentBasedRecommender] = None,
        similarity_engine: Optional[SimilarityEngine] = None,
        config: Optional[RecommenderConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the recommender.
        """
        self.interaction_store = interaction_store
        self.user_based = user_based
        self.item_based = item_based
        self.popularity = popularity
        self.content_based = content_based
        self.similarity_engine = similarity_engine
        self.config = config or RecommenderConfig()
        self.logger = logger or logging.getLogger(__name__)

        self.logger.info(
            f"Initialized HybridRecommender: "
            f"collaborative share={self.config.collaborative_share:.2f}, "
            f"item-based share={self.config.item_based_share:.2f}, "
            f"merge damping={self.config.item_merge_damping:.2f}"
        )

    def _branch_limits(self, limit: int) -> Tuple[int, int]:
        return (
            math.ceil(limit * self.config.collaborative_share),
            math.ceil(limit * self.config.item_based_share),
        )

    def _run_branches(
        self,
        user_id: str,
        limit: int,
    ) -> Tuple[Optional[List[Candidate]], Optional[List[Candidate]], bool]:
        """Run both sub-recommenders concurrently and wait for both.

        Returns:
            (user-based result, item-based result, timed_out). A branch that
            raised or did not finish in time comes back as None.
        """
        collaborative_limit, item_limit = self._branch_limits(limit)

        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="hybrid")
        try:
            branches: Dict[str, Future] = {
                "collaborative": executor.submit(self.user_based.generate, user_id, collaborative_limit),
                "item_based": executor.submit(self.item_based.generate, user_id, item_limit),
            }
            done, not_done = wait(branches.values(), timeout=self.config.hybrid_timeout_seconds)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        results: Dict[str, Optional[List[Candidate]]] = {}
        for name, future in branches.items():
            if future not in done:
                self.logger.warning(
                    f"{name} branch timed out for user {user_id}",
                    extra={"user_id": user_id, "stage": name},
                )
                results[name] = None
                continue
            try:
                results[name] = future.result()
            except Exception as e:
                self.logger.error(
                    f"{name} branch failed for user {user_id}: {e}",
                    extra={"user_id": user_id, "stage": name, "error_type": type(e).__name__},
                )
                results[name] = None

        return results["collaborative"], results["item_based"], bool(not_done)

    def _merge(
        self,
        collaborative: List[Candidate],
        item_based: List[Candidate],
    ) -> List[Candidate]:
        """Merge by product; item-based scores are damped when added onto an existing entry."""
        merged: Dict[str, Candidate] = {}

        for candidate in collaborative:
            merged[candidate.product_id] = candidate

        for candidate in item_based:
            existing = merged.get(candidate.product_id)
            if existing is not None:
                merged[candidate.product_id] = existing.with_score(
                    existing.score + candidate.score * self.config.item_merge_damping
                )
            else:
                merged[candidate.product_id] = candidate

        return list(merged.values())

    def popular_for(self, user_id: str, limit: int) -> List[Candidate]:
        try:
            excluded = {i.product_id for i in self.interaction_store.find(user_id=user_id)}
        except Exception as e:
            self.logger.error(
                f"Could not load exclusions for user {user_id}: {e}",
                extra={"user_id": user_id, "stage": "load_exclusions", "error_type": type(e).__name__},
            )
            excluded = set()
        return self.popularity.get_popular(limit, excluded)

    def get_hybrid_recommendations(
        self,
        user_id: str,
        limit: int,
        return_scores: bool = False,
    ) -> List[Candidate] | Tuple[List[Candidate], Dict]:
        """Get hybrid recommendations for a user.

        Users without interactions get popular products directly. Otherwise
        the user-based and item-based recommenders run concurrently and their
        results are merged, sorted and truncated to ``limit``.
        """
        self.logger.info(
            f"Generating hybrid recommendations for user {user_id}, limit={limit}",
            extra={"user_id": user_id, "limit": limit},
        )

        if limit <= 0:
            return ([], {"method": "empty"}) if return_scores else []

        try:
            interaction_count: Optional[int] = self.interaction_store.count_by_user(user_id)
        except Exception as e:
            # Unknown history: the sub-recommenders degrade on their own
            self.logger.error(
                f"Could not count interactions for user {user_id}: {e}",
                extra={"user_id": user_id, "stage": "count_interactions", "error_type": type(e).__name__},
            )
            interaction_count = None

        if interaction_count == 0:
            self.logger.info(
                "User has no interactions, returning popular products",
                extra={"user_id": user_id, "stage": "cold_start"},
            )
            recommendations = self.popularity.get_popular(limit, set())
            if return_scores:
                return recommendations, {"method": "cold_start"}
            return recommendations

        collaborative, item_based, timed_out = self._run_branches(user_id, limit)

        if timed_out:
            self.logger.warning(
                "Hybrid fan-out timed out, using popular products",
                extra={"user_id": user_id, "stage": "hybrid_timeout"},
            )
            recommendations = self.popular_for(user_id, limit)
            if return_scores:
                return recommendations, {"method": "timeout"}
            return recommendations

        collaborative = collaborative or []
        item_based = item_based or []
        self.logger.info(
            f"Collaborative: {len(collaborative)}, Item-based: {len(item_based)}",
            extra={"user_id": user_id},
        )

        recommendations = rank_candidates(self._merge(collaborative, item_based), limit)
        method = "hybrid"

        if not recommendations:
            self.logger.warning(
                "No recommendations generated, using popular products as final fallback",
                extra={"user_id": user_id, "stage": "hybrid_fallback"},
            )
            recommendations = self.popular_for(user_id, limit)
            method = "fallback"

        self.logger.info(
            f"Generated {len(recommendations)} hybrid recommendations for user {user_id}",
            extra={"user_id": user_id, "count": len(recommendations)},
        )

        if return_scores:
            score_breakdown = {
                "method": method,
                "collaborative_scores": {c.product_id: c.score for c in collaborative},
                "item_based_scores": {c.product_id: c.score for c in item_based},
                "hybrid_scores": {c.product_id: c.score for c in recommendations},
                "item_merge_damping": self.config.item_merge_damping,
            }
            return recommendations, score_breakdown

        return recommendations


def create_hybrid_recommender(
    interaction_store: InteractionStore,
    product_store: ProductStore,
    user_store: UserStore,
    config: Optional[RecommenderConfig] = None,
) -> HybridRecommender:
    """Wire up the full recommender stack over the given stores.
    """
    config = config or RecommenderConfig()

    popularity = PopularityRecommender(interaction_store, product_store, config)
    similarity_engine = SimilarityEngine(interaction_store)
    user_based = UserBasedRecommender(
        interaction_store,
        product_store,
        user_store,
        similarity_engine,
        popularity,
        config,
    )
    item_based = ItemBasedRecommender(interaction_store, product_store, popularity, config)
    content_based = ContentBasedRecommender(
        interaction_store, product_store, user_store, popularity, config
    )

    return HybridRecommender(
        interaction_store=interaction_store,
        user_based=user_based,
        item_based=item_based,
        popularity=popularity,
        content_based=content_based,
        similarity_engine=similarity_engine,
        config=config,
    )
