"""Tests for the hybrid recommender.

Covers cold start, merging of the user-based and item-based branches,
ordering guarantees and degradation on slow or failing branches.
"""

import time

import pytest

from conftest import FailingInteractionStore, FailingProductStore, make_products
from smartshop.api.exceptions import RecommendationError
from smartshop.config import RecommenderConfig
from smartshop.recommender.hybrid import HybridRecommender, create_hybrid_recommender
from smartshop.recommender.popularity import PopularityRecommender
from smartshop.recommender.types import (
    POPULARITY_REASONS,
    Candidate,
    Product,
    RecommendationReason,
)


class StaticRecommender:
    """Returns a fixed candidate list and records requested limits."""

    def __init__(self, candidates, delay=0.0, error=None):
        self.candidates = candidates
        self.delay = delay
        self.error = error
        self.limits = []

    def generate(self, user_id, limit):
        self.limits.append(limit)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.candidates[:limit]


def candidate(product_id, score, reason):
    return Candidate(product_id=product_id, product=Product(id=product_id), score=score, reason=reason)


def build_hybrid(interaction_store, product_store, user_based, item_based, config=None):
    config = config or RecommenderConfig()
    return HybridRecommender(
        interaction_store=interaction_store,
        user_based=user_based,
        item_based=item_based,
        popularity=PopularityRecommender(interaction_store, product_store, config),
        config=config,
    )


@pytest.fixture
def hybrid(interaction_store, product_store, user_store):
    return create_hybrid_recommender(interaction_store, product_store, user_store)


def test_cold_start_user_gets_only_popular_products(hybrid):
    """Test that a user without interactions gets the popularity chain."""
    results = hybrid.get_hybrid_recommendations("dave", 10)

    assert results
    assert all(c.reason in POPULARITY_REASONS for c in results)
    assert [c.product_id for c in results] == ["p1", "p2", "p3", "p6", "p4"]


def test_cold_start_unknown_user(hybrid):
    """Test that an id never seen in the log is treated as cold start."""
    results, breakdown = hybrid.get_hybrid_recommendations("nobody", 3, return_scores=True)

    assert breakdown["method"] == "cold_start"
    assert all(c.reason in POPULARITY_REASONS for c in results)


def test_merges_user_based_and_item_based(hybrid):
    """Test the merged ranking for a user with neighbors and liked books."""
    results, breakdown = hybrid.get_hybrid_recommendations("alice", 10, return_scores=True)

    assert breakdown["method"] == "hybrid"
    assert [c.product_id for c in results] == ["p3", "p4", "p6"]
    # p4 came from both branches and keeps its user-based reason
    assert results[1].reason == RecommendationReason.COLLABORATIVE_FILTERING
    assert results[1].score == pytest.approx(
        breakdown["collaborative_scores"]["p4"] + 0.5 * breakdown["item_based_scores"]["p4"]
    )


def test_item_score_is_damped_only_on_collision(interaction_store, product_store):
    """Test that item scores are halved when added onto an existing entry."""
    user_based = StaticRecommender([
        candidate("a", 4.0, RecommendationReason.COLLABORATIVE_FILTERING),
        candidate("b", 1.0, RecommendationReason.COLLABORATIVE_FILTERING),
    ])
    item_based = StaticRecommender([
        candidate("b", 2.0, RecommendationReason.ITEM_BASED),
        candidate("c", 3.0, RecommendationReason.ITEM_BASED),
    ])
    hybrid = build_hybrid(interaction_store, product_store, user_based, item_based)

    results = hybrid.get_hybrid_recommendations("alice", 10)

    assert [(c.product_id, c.score) for c in results] == [("a", 4.0), ("c", 3.0), ("b", 2.0)]
    assert results[2].reason == RecommendationReason.COLLABORATIVE_FILTERING


def test_branch_limits_split_the_limit(interaction_store, product_store):
    """Test that the branches are asked for ceil(0.7n) and ceil(0.3n) items."""
    user_based = StaticRecommender([])
    item_based = StaticRecommender([])
    hybrid = build_hybrid(interaction_store, product_store, user_based, item_based)

    hybrid.get_hybrid_recommendations("alice", 5)

    assert user_based.limits == [4]
    assert item_based.limits == [2]


def test_output_sorted_and_within_limit(hybrid):
    """Test that the output is sorted by score and never exceeds the limit."""
    for user_id in ("alice", "bob", "carol", "dave"):
        for limit in (1, 2, 5, 10):
            results = hybrid.get_hybrid_recommendations(user_id, limit)
            scores = [c.score for c in results]
            assert len(results) <= limit
            assert scores == sorted(scores, reverse=True)


def test_repeated_calls_are_identical(hybrid):
    """Test that the same state gives the same ordering."""
    first = hybrid.get_hybrid_recommendations("alice", 10)
    second = hybrid.get_hybrid_recommendations("alice", 10)

    assert [(c.product_id, c.score) for c in first] == [(c.product_id, c.score) for c in second]


def test_empty_merge_falls_back_to_popular(interaction_store, product_store):
    """Test that two empty branches yield popular unseen products."""
    hybrid = build_hybrid(
        interaction_store, product_store, StaticRecommender([]), StaticRecommender([])
    )

    results, breakdown = hybrid.get_hybrid_recommendations("alice", 10, return_scores=True)

    assert breakdown["method"] == "fallback"
    assert [c.product_id for c in results] == ["p3", "p6", "p4"]


def test_failed_branch_counts_as_empty(interaction_store, product_store):
    """Test that a raising branch does not discard the other branch."""
    user_based = StaticRecommender([], error=RuntimeError("boom"))
    item_based = StaticRecommender([candidate("p4", 2.0, RecommendationReason.ITEM_BASED)])
    hybrid = build_hybrid(interaction_store, product_store, user_based, item_based)

    results = hybrid.get_hybrid_recommendations("alice", 10)

    assert [c.product_id for c in results] == ["p4"]
    assert results[0].reason == RecommendationReason.ITEM_BASED


def test_timeout_falls_back_to_popular(interaction_store, product_store):
    """Test that a branch exceeding the timeout yields popular products."""
    config = RecommenderConfig(hybrid_timeout_seconds=0.05)
    user_based = StaticRecommender(
        [candidate("p5", 9.0, RecommendationReason.COLLABORATIVE_FILTERING)], delay=0.5
    )
    item_based = StaticRecommender([])
    hybrid = build_hybrid(interaction_store, product_store, user_based, item_based, config)

    results, breakdown = hybrid.get_hybrid_recommendations("alice", 10, return_scores=True)

    assert breakdown["method"] == "timeout"
    assert all(c.reason in POPULARITY_REASONS for c in results)
    assert "p5" not in {c.product_id for c in results}


def test_branches_run_concurrently(interaction_store, product_store):
    """Test that two slow branches finish together inside one timeout window."""
    config = RecommenderConfig(hybrid_timeout_seconds=0.5)
    user_based = StaticRecommender(
        [candidate("p5", 2.0, RecommendationReason.COLLABORATIVE_FILTERING)], delay=0.3
    )
    item_based = StaticRecommender(
        [candidate("p6", 1.0, RecommendationReason.ITEM_BASED)], delay=0.3
    )
    hybrid = build_hybrid(interaction_store, product_store, user_based, item_based, config)

    results, breakdown = hybrid.get_hybrid_recommendations("alice", 10, return_scores=True)

    assert breakdown["method"] == "hybrid"
    assert {c.product_id for c in results} == {"p5", "p6"}


def test_zero_limit(hybrid):
    """Test that a zero limit returns nothing."""
    assert hybrid.get_hybrid_recommendations("alice", 0) == []


def test_store_outage_degrades_to_catalog_sample(user_store, product_store):
    """Test that a failing interaction log still yields products."""
    hybrid = create_hybrid_recommender(FailingInteractionStore(), product_store, user_store)

    results = hybrid.get_hybrid_recommendations("alice", 3)

    assert [c.reason for c in results] == [RecommendationReason.ULTIMATE_FALLBACK] * 3


def test_total_outage_raises(user_store):
    """Test that losing both stores surfaces a RecommendationError."""
    hybrid = create_hybrid_recommender(
        FailingInteractionStore(),
        FailingProductStore.from_records(make_products()),
        user_store,
    )

    with pytest.raises(RecommendationError):
        hybrid.get_hybrid_recommendations("alice", 3)
