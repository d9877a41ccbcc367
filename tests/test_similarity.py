"""Tests for interaction weighting and user similarity."""

import math

import numpy as np
import pytest

from conftest import make_interactions
from smartshop.recommender.similarity import (
    SimilarityEngine,
    batch_cosine_similarity,
    cosine_similarity,
    jaccard_similarity,
)
from smartshop.recommender.stores import DataFrameInteractionStore
from smartshop.recommender.types import Interaction
from smartshop.recommender.weighting import build_weighted_vector, interaction_weight


def test_interaction_weights():
    """Test that purchases outweigh likes, which outweigh views."""
    assert interaction_weight("purchase") == 5.0
    assert interaction_weight("like") == 3.0
    assert interaction_weight("view") == 1.0
    assert interaction_weight("PURCHASE") == 5.0


def test_unknown_interaction_type_weighs_one():
    """Test that unrecognized interaction types get the default weight."""
    assert interaction_weight("share") == 1.0
    assert interaction_weight("") == 1.0


def test_weighted_vector_accumulates_repeated_interactions():
    """Test that repeated interactions on one product add up."""
    vector = build_weighted_vector([
        Interaction("u", "a", "view"),
        Interaction("u", "b", "like"),
        Interaction("u", "a", "purchase"),
    ])

    assert vector == {"a": 6.0, "b": 3.0}
    assert list(vector) == ["a", "b"]


def test_jaccard_similarity():
    """Test Jaccard index over product sets."""
    assert jaccard_similarity({"a", "b"}, {"b", "c"}) == pytest.approx(1 / 3)
    assert jaccard_similarity({"a"}, {"a"}) == 1.0
    assert jaccard_similarity({"a"}, {"b"}) == 0.0
    assert jaccard_similarity(set(), set()) == 0.0


def test_cosine_similarity_self_is_one():
    """Test that a vector is perfectly similar to itself."""
    vector = {"a": 5.0, "b": 1.0, "c": 3.0}
    assert cosine_similarity(vector, vector) == pytest.approx(1.0)


def test_cosine_similarity_disjoint_is_zero():
    """Test that vectors without shared products have zero similarity."""
    assert cosine_similarity({"a": 5.0}, {"b": 3.0}) == 0.0


def test_cosine_similarity_zero_magnitude():
    """Test that empty or all-zero vectors yield zero instead of dividing by zero."""
    assert cosine_similarity({}, {"a": 1.0}) == 0.0
    assert cosine_similarity({}, {}) == 0.0
    assert cosine_similarity({"a": 0.0}, {"a": 1.0}) == 0.0


def test_cosine_similarity_partial_overlap():
    """Test cosine over the union of products."""
    similarity = cosine_similarity({"a": 5.0, "b": 1.0}, {"a": 3.0})
    assert similarity == pytest.approx(5 / math.sqrt(26))


def test_batch_cosine_matches_pairwise():
    """Test that the sparse batch computation agrees with the pairwise one."""
    target = {"a": 5.0, "b": 1.0}
    candidates = [{"a": 3.0}, {"b": 3.0, "c": 1.0}, {"d": 1.0}]

    batch = batch_cosine_similarity(target, candidates)

    expected = [cosine_similarity(target, candidate) for candidate in candidates]
    assert np.allclose(batch, expected)


def test_batch_cosine_without_candidates():
    """Test that no candidates yields an empty array."""
    assert len(batch_cosine_similarity({"a": 1.0}, [])) == 0


def test_find_similar_users_ranks_by_similarity(interaction_store):
    """Test that neighbors are co-interacting users ranked by cosine."""
    engine = SimilarityEngine(interaction_store)

    neighbors = engine.find_similar_users("alice")

    assert [n.user_id for n in neighbors] == ["bob", "carol"]
    assert neighbors[0].similarity == pytest.approx(5 / math.sqrt(26))
    assert neighbors[1].similarity == pytest.approx(1 / math.sqrt(26))
    assert all(n.interaction_count == 1 for n in neighbors)


def test_find_similar_users_excludes_target(interaction_store):
    """Test that a user is never their own neighbor."""
    engine = SimilarityEngine(interaction_store)

    for user_id in ("alice", "bob", "carol"):
        assert user_id not in {n.user_id for n in engine.find_similar_users(user_id)}


def test_find_similar_users_respects_top_n(interaction_store):
    """Test truncation to the requested neighbor count."""
    engine = SimilarityEngine(interaction_store)

    assert len(engine.find_similar_users("alice", top_n=1)) == 1
    assert engine.find_similar_users("alice", top_n=0) == []


def test_find_similar_users_without_interactions(interaction_store):
    """Test that users with no history have no neighbors."""
    engine = SimilarityEngine(interaction_store)
    assert engine.find_similar_users("dave") == []


def test_find_similar_users_without_overlap():
    """Test that users sharing no products are never neighbors."""
    store = DataFrameInteractionStore.from_records([
        Interaction("u1", "a", "purchase"),
        Interaction("u2", "b", "purchase"),
    ])
    assert SimilarityEngine(store).find_similar_users("u1") == []


def test_find_similar_users_ties_keep_discovery_order():
    """Test that equally similar neighbors stay in log order."""
    store = DataFrameInteractionStore.from_records([
        Interaction("target", "a", "like"),
        Interaction("second", "a", "like"),
        Interaction("first", "a", "like"),
    ])

    neighbors = SimilarityEngine(store).find_similar_users("target")

    assert [n.user_id for n in neighbors] == ["second", "first"]


def test_find_similar_users_is_deterministic():
    """Test that repeated calls return identical neighbor lists."""
    store = DataFrameInteractionStore.from_records(make_interactions())
    engine = SimilarityEngine(store)

    assert engine.find_similar_users("carol") == engine.find_similar_users("carol")
