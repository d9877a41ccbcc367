"""Popularity fallback recommendations.

The last line of defence of every recommender path. Ranks products by global
interaction counts and cascades through weaker tiers (unfiltered popularity,
recent products, any products) so that a non-empty list comes back whenever
the catalog has anything in it.
"""

import logging
from typing import Iterable, List, Optional, Tuple

from smartshop.api.exceptions import RecommendationError
from smartshop.config import RecommenderConfig
from smartshop.recommender.stores import InteractionStore, ProductStore
from smartshop.recommender.types import Candidate, Product, RecommendationReason

# Configure module logger
logger = logging.getLogger(__name__)


class PopularityRecommender:
    """Cascading popularity fallback chain."""

    def __init__(
        self,
        interaction_store: InteractionStore,
        product_store: ProductStore,
        config: Optional[RecommenderConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.interaction_store = interaction_store
        self.product_store = product_store
        self.config = config or RecommenderConfig()
        self.logger = logger or logging.getLogger(__name__)

    def _resolve_counts(
        self,
        counts: List[Tuple[str, int]],
        reason: RecommendationReason,
    ) -> List[Candidate]:
        """Attach product records to (product_id, count) pairs, keeping count order."""
        if not counts:
            return []
        products = {p.id: p for p in self.product_store.find_by_ids([pid for pid, _ in counts])}
        return [
            Candidate(product_id=pid, product=products[pid], score=float(count), reason=reason)
            for pid, count in counts
            if pid in products
        ]

    @staticmethod
    def _as_candidates(
        products: List[Product],
        score: float,
        reason: RecommendationReason,
    ) -> List[Candidate]:
        return [
            Candidate(product_id=p.id, product=p, score=score, reason=reason)
            for p in products
        ]

    def get_popular(
        self,
        limit: int,
        exclude_ids: Optional[Iterable[str]] = None,
    ) -> List[Candidate]:
        """Get popular products, cascading through fallback tiers.

        Tiers, each tried only if the previous produced nothing:

        1. Most interacted-with products, excluding ``exclude_ids``.
        2. Most interacted-with products, no exclusions.
        3. Most recently created products, excluding ``exclude_ids``.
        4. Most recently created products, no exclusions (only when
           exclusions were given).

        If any tier raises, any ``limit`` catalog products are returned
        instead.

        Args:
            limit: Maximum number of candidates.
            exclude_ids: Product ids to leave out in the filtered tiers.

        Returns:
            Up to ``limit`` candidates tagged with the tier that produced them.

        Raises:
            RecommendationError: If even the catalog sample cannot be read.
        """
        if limit <= 0:
            return []

        excluded = {str(pid) for pid in exclude_ids} if exclude_ids else set()
        self.logger.info(
            f"Getting {limit} popular products, excluding {len(excluded)} products",
            extra={"limit": limit, "excluded": len(excluded), "stage": "popularity"},
        )

        try:
            candidates = self._resolve_counts(
                self.interaction_store.aggregate_counts_by_product(excluded, limit=limit),
                RecommendationReason.POPULAR,
            )
            if candidates:
                return candidates

            self.logger.warning("No popular products after exclusions, trying without exclusions")
            candidates = self._resolve_counts(
                self.interaction_store.aggregate_counts_by_product(limit=limit),
                RecommendationReason.POPULAR_FALLBACK,
            )
            if candidates:
                return candidates

            self.logger.warning("No popular products at all, using recent products")
            candidates = self._as_candidates(
                self.product_store.most_recent(limit, excluded),
                self.config.recent_score,
                RecommendationReason.RECENT,
            )
            if candidates or not excluded:
                return candidates

            self.logger.warning("No recent products after exclusions, trying all products")
            return self._as_candidates(
                self.product_store.most_recent(limit),
                self.config.recent_all_score,
                RecommendationReason.RECENT_ALL,
            )

        except Exception as e:
            self.logger.error(
                f"Popularity ranking failed: {e}",
                extra={"stage": "popularity", "error_type": type(e).__name__},
                exc_info=True,
            )

        try:
            products = self.product_store.take_any(limit)
        except Exception as e:
            self.logger.error(
                f"Ultimate fallback failed: {e}",
                extra={"stage": "ultimate_fallback", "error_type": type(e).__name__},
            )
            raise RecommendationError(stage="ultimate_fallback", error=e) from e

        self.logger.info(f"Ultimate fallback: returning {len(products)} products")
        return self._as_candidates(
            products,
            self.config.ultimate_fallback_score,
            RecommendationReason.ULTIMATE_FALLBACK,
        )
