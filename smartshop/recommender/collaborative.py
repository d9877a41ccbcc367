"""User-based collaborative filtering.

Recommends products that a user's nearest neighbors interacted with, weighted
by how similar each neighbor is, then boosts candidates that match the user's
stated preferences.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set

from smartshop.api.exceptions import RecommendationError
from smartshop.config import RecommenderConfig
from smartshop.recommender.popularity import PopularityRecommender
from smartshop.recommender.similarity import SimilarityEngine
from smartshop.recommender.stores import InteractionStore, ProductStore, UserStore
from smartshop.recommender.types import (
    Candidate,
    Product,
    RecommendationReason,
    SimilarUser,
    rank_candidates,
)
from smartshop.recommender.weighting import build_weighted_vector

# Configure module logger
logger = logging.getLogger(__name__)


def apply_preference_bonus(
    score: float,
    product: Product,
    preferences: Iterable[str],
    category_bonus: float,
    tag_bonus: float,
) -> float:
    """Boost a score for each preference the product matches.

    A category match multiplies by ``category_bonus``; every distinct
    matching tag multiplies by ``1 + tag_bonus``. Users without preferences
    get the score unchanged.
    """
    preference_set = set(preferences)
    if not preference_set:
        return score

    if product.category and product.category in preference_set:
        score *= category_bonus

    for tag in dict.fromkeys(product.tags):
        if tag in preference_set:
            score *= 1 + tag_bonus

    return score


class UserBasedRecommender:
    """Neighbor-weighted collaborative filtering."""

    def __init__(
        self,
        interaction_store: InteractionStore,
        product_store: ProductStore,
        user_store: UserStore,
        similarity_engine: SimilarityEngine,
        popularity: PopularityRecommender,
        config: Optional[RecommenderConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.interaction_store = interaction_store
        self.product_store = product_store
        self.user_store = user_store
        self.similarity_engine = similarity_engine
        self.popularity = popularity
        self.config = config or RecommenderConfig()
        self.logger = logger or logging.getLogger(__name__)

    def _accumulate_scores(
        self,
        neighbors: List[SimilarUser],
        excluded: Set[str],
    ) -> Dict[str, float]:
        """Sum neighbor weights scaled by similarity, skipping seen products."""
        scores: Dict[str, float] = {}
        skipped = 0

        for neighbor in neighbors:
            vector = build_weighted_vector(self.interaction_store.find(user_id=neighbor.user_id))
            for product_id, weight in vector.items():
                if product_id in excluded:
                    skipped += 1
                    continue
                scores[product_id] = scores.get(product_id, 0.0) + weight * neighbor.similarity

        self.logger.debug(
            f"Accumulated {len(scores)} candidates, skipped {skipped} already interacted",
            extra={"candidates": len(scores), "skipped": skipped},
        )
        return scores

    def generate(self, user_id: str, limit: int) -> List[Candidate]:
        """Generate user-based recommendations.

        Falls back to popular products (excluding what the user has already
        interacted with) when there are no neighbors, no unseen candidates,
        or a store fails along the way.

        Args:
            user_id: User to recommend for.
            limit: Maximum number of recommendations.

        Returns:
            Candidates sorted by score descending.
        """
        if limit <= 0:
            return []

        self.logger.info(
            f"Generating user-based recommendations for user {user_id}, limit={limit}",
            extra={"user_id": user_id, "limit": limit},
        )

        excluded: Set[str] = set()
        stage = "load_user"
        try:
            excluded = {i.product_id for i in self.interaction_store.find(user_id=user_id)}
            user = self.user_store.find_by_id(user_id)
            preferences = list(user.preferences) if user else []

            stage = "find_similar_users"
            neighbors = self.similarity_engine.find_similar_users(
                user_id, self.config.neighbor_count
            )
            if not neighbors:
                self.logger.info(
                    "No similar users, using popular products fallback",
                    extra={"user_id": user_id, "stage": stage},
                )
                return self.popularity.get_popular(limit, excluded)

            stage = "score_candidates"
            scores = self._accumulate_scores(neighbors, excluded)
            if not scores:
                self.logger.info(
                    "No candidate products, using popular products fallback",
                    extra={"user_id": user_id, "stage": stage},
                )
                return self.popularity.get_popular(limit, excluded)

            stage = "apply_preferences"
            candidates = [
                Candidate(
                    product_id=product.id,
                    product=product,
                    score=apply_preference_bonus(
                        scores[product.id],
                        product,
                        preferences,
                        self.config.category_bonus,
                        self.config.tag_bonus,
                    ),
                    reason=RecommendationReason.COLLABORATIVE_FILTERING,
                )
                for product in self.product_store.find_by_ids(list(scores))
            ]
            recommendations = rank_candidates(candidates, limit)

        except RecommendationError:
            raise
        except Exception as e:
            self.logger.error(
                f"User-based recommendation failed for user {user_id}: {e}",
                extra={"user_id": user_id, "stage": stage, "error_type": type(e).__name__},
                exc_info=True,
            )
            return self.popularity.get_popular(limit, excluded)

        if not recommendations:
            self.logger.info(
                "No final recommendations, using popular products fallback",
                extra={"user_id": user_id},
            )
            return self.popularity.get_popular(limit, excluded)

        self.logger.info(
            f"Generated {len(recommendations)} user-based recommendations for user {user_id}",
            extra={"user_id": user_id, "count": len(recommendations)},
        )
        return recommendations
