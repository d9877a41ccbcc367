"""Content-based recommendations from stated preferences."""

import logging
from typing import List, Optional, Set

from smartshop.api.exceptions import RecommendationError
from smartshop.config import RecommenderConfig
from smartshop.recommender.popularity import PopularityRecommender
from smartshop.recommender.stores import InteractionStore, ProductStore, UserStore
from smartshop.recommender.types import Candidate, RecommendationReason

# Configure module logger
logger = logging.getLogger(__name__)


class ContentBasedRecommender:
    """Matches a user's preference tags against product category and tags.

    Independent of interaction history except for excluding seen products.
    Every match gets the same flat score, so results keep catalog order.
    """

    def __init__(
        self,
        interaction_store: InteractionStore,
        product_store: ProductStore,
        user_store: UserStore,
        popularity: PopularityRecommender,
        config: Optional[RecommenderConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.interaction_store = interaction_store
        self.product_store = product_store
        self.user_store = user_store
        self.popularity = popularity
        self.config = config or RecommenderConfig()
        self.logger = logger or logging.getLogger(__name__)

    def generate(self, user_id: str, limit: int) -> List[Candidate]:
        if limit <= 0:
            return []

        excluded: Set[str] = set()
        stage = "load_preferences"
        try:
            excluded = {i.product_id for i in self.interaction_store.find(user_id=user_id)}
            user = self.user_store.find_by_id(user_id)
            preferences = list(user.preferences) if user else []

            if not preferences:
                self.logger.info(
                    "No stated preferences, using popular products",
                    extra={"user_id": user_id, "stage": stage},
                )
                return self.popularity.get_popular(limit, excluded)

            stage = "match_preferences"
            matches = self.product_store.find_by_category_or_tags(
                preferences, preferences, excluded
            )
            recommendations = [
                Candidate(
                    product_id=product.id,
                    product=product,
                    score=self.config.content_score,
                    reason=RecommendationReason.CONTENT_BASED,
                )
                for product in matches[:limit]
            ]

        except RecommendationError:
            raise
        except Exception as e:
            self.logger.error(
                f"Content-based recommendation failed for user {user_id}: {e}",
                extra={"user_id": user_id, "stage": stage, "error_type": type(e).__name__},
                exc_info=True,
            )
            return self.popularity.get_popular(limit, excluded)

        if not recommendations:
            self.logger.info(
                "No products match preferences, using popular products fallback",
                extra={"user_id": user_id},
            )
            return self.popularity.get_popular(limit, excluded)

        return recommendations
