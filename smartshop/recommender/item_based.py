"""Item-based recommendations.

Recommends unseen products that share a category or tags with the products a
user liked or purchased.
"""

import logging
from typing import List, Optional, Set

from smartshop.api.exceptions import RecommendationError
from smartshop.config import RecommenderConfig
from smartshop.recommender.popularity import PopularityRecommender
from smartshop.recommender.stores import InteractionStore, ProductStore
from smartshop.recommender.types import Candidate, RecommendationReason, rank_candidates
from smartshop.recommender.weighting import POSITIVE_INTERACTION_TYPES

# Configure module logger
logger = logging.getLogger(__name__)


class ItemBasedRecommender:
    """Category and tag overlap with liked or purchased products."""

    def __init__(
        self,
        interaction_store: InteractionStore,
        product_store: ProductStore,
        popularity: PopularityRecommender,
        config: Optional[RecommenderConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.interaction_store = interaction_store
        self.product_store = product_store
        self.popularity = popularity
        self.config = config or RecommenderConfig()
        self.logger = logger or logging.getLogger(__name__)

    def generate(self, user_id: str, limit: int) -> List[Candidate]:
        """Generate item-based recommendations.

        Views are ignored as a weak signal. Each candidate scores
        ``item_category_score`` for a category match plus ``item_tag_score``
        per matching tag.

        Args:
            user_id: User to recommend for.
            limit: Maximum number of recommendations.

        Returns:
            Candidates sorted by score descending.
        """
        if limit <= 0:
            return []

        self.logger.info(
            f"Generating item-based recommendations for user {user_id}, limit={limit}",
            extra={"user_id": user_id, "limit": limit},
        )

        excluded: Set[str] = set()
        stage = "load_liked"
        try:
            liked = self.interaction_store.find(user_id=user_id, types=POSITIVE_INTERACTION_TYPES)
            excluded = {i.product_id for i in self.interaction_store.find(user_id=user_id)}

            if not liked:
                self.logger.info(
                    "No likes or purchases, using popular products",
                    extra={"user_id": user_id, "stage": stage},
                )
                return self.popularity.get_popular(limit, excluded)

            stage = "collect_features"
            liked_products = self.product_store.find_by_ids([i.product_id for i in liked])
            categories = {p.category for p in liked_products if p.category}
            tags = {tag for p in liked_products for tag in p.tags}

            self.logger.debug(
                f"Categories: {sorted(categories)}, tags: {sorted(tags)}",
                extra={"user_id": user_id},
            )

            stage = "find_similar_products"
            similar_products = self.product_store.find_by_category_or_tags(
                categories, tags, excluded
            )

            candidates = []
            for product in similar_products:
                score = 0.0
                if product.category in categories:
                    score += self.config.item_category_score
                score += self.config.item_tag_score * len(tags.intersection(product.tags))
                candidates.append(
                    Candidate(
                        product_id=product.id,
                        product=product,
                        score=score,
                        reason=RecommendationReason.ITEM_BASED,
                    )
                )
            recommendations = rank_candidates(candidates, limit)

        except RecommendationError:
            raise
        except Exception as e:
            self.logger.error(
                f"Item-based recommendation failed for user {user_id}: {e}",
                extra={"user_id": user_id, "stage": stage, "error_type": type(e).__name__},
                exc_info=True,
            )
            return self.popularity.get_popular(limit, excluded)

        if not recommendations:
            self.logger.info(
                "No item-based recommendations, using popular products fallback",
                extra={"user_id": user_id},
            )
            return self.popularity.get_popular(limit, excluded)

        self.logger.info(
            f"Generated {len(recommendations)} item-based recommendations for user {user_id}",
            extra={"user_id": user_id, "count": len(recommendations)},
        )
        return recommendations
