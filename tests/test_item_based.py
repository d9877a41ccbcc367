"""Tests for item-based and content-based recommendations."""

from conftest import FailingProductStore, make_products
from smartshop.recommender.content_based import ContentBasedRecommender
from smartshop.recommender.item_based import ItemBasedRecommender
from smartshop.recommender.popularity import PopularityRecommender
from smartshop.recommender.stores import (
    DataFrameInteractionStore,
    DataFrameProductStore,
    DataFrameUserStore,
)
from smartshop.recommender.types import (
    POPULARITY_REASONS,
    Interaction,
    Product,
    RecommendationReason,
    User,
)


def item_recommender(interaction_store, product_store):
    return ItemBasedRecommender(
        interaction_store,
        product_store,
        PopularityRecommender(interaction_store, product_store),
    )


def content_recommender(interaction_store, product_store, user_store):
    return ContentBasedRecommender(
        interaction_store,
        product_store,
        user_store,
        PopularityRecommender(interaction_store, product_store),
    )


def test_item_based_books_scenario():
    """Test that a category match (2) ranks above a single tag match (1)."""
    interactions = DataFrameInteractionStore.from_records([
        Interaction("u", "liked", "like"),
    ])
    products = DataFrameProductStore.from_records([
        Product(id="liked", category="Books", tags=["fiction"]),
        Product(id="tagged", category="Music", tags=["fiction"]),
        Product(id="book", category="Books", tags=[]),
        Product(id="other", category="Garden", tags=["outdoor"]),
    ])

    results = item_recommender(interactions, products).generate("u", 10)

    assert [(c.product_id, c.score) for c in results] == [("book", 2.0), ("tagged", 1.0)]
    assert all(c.reason == RecommendationReason.ITEM_BASED for c in results)


def test_item_based_adds_tag_matches_to_category_match():
    """Test that category and tag scores add up."""
    interactions = DataFrameInteractionStore.from_records([
        Interaction("u", "liked", "purchase"),
    ])
    products = DataFrameProductStore.from_records([
        Product(id="liked", category="Books", tags=["fiction", "scifi"]),
        Product(id="both", category="Books", tags=["scifi", "fiction"]),
    ])

    results = item_recommender(interactions, products).generate("u", 10)

    assert [(c.product_id, c.score) for c in results] == [("both", 4.0)]


def test_item_based_uses_likes_and_purchases(interaction_store, product_store):
    """Test recommendations from a purchased book."""
    results = item_recommender(interaction_store, product_store).generate("alice", 10)

    assert [(c.product_id, c.score) for c in results] == [("p4", 2.0)]


def test_item_based_ignores_views():
    """Test that a user with only views gets popular products."""
    interactions = DataFrameInteractionStore.from_records([
        Interaction("u", "p1", "view"),
        Interaction("v", "p2", "purchase"),
    ])
    products = DataFrameProductStore.from_records(make_products())

    results = item_recommender(interactions, products).generate("u", 10)

    assert [c.product_id for c in results] == ["p2"]
    assert all(c.reason in POPULARITY_REASONS for c in results)


def test_item_based_never_returns_seen_products(interaction_store, product_store):
    """Test that products the user interacted with are excluded."""
    recommender = item_recommender(interaction_store, product_store)

    for user_id in ("alice", "bob", "carol"):
        seen = {i.product_id for i in interaction_store.find(user_id=user_id)}
        results = recommender.generate(user_id, 10)
        item_based = [c for c in results if c.reason == RecommendationReason.ITEM_BASED]
        assert not seen.intersection(c.product_id for c in item_based)


def test_item_based_store_failure_falls_back(interaction_store):
    """Test that a failing product store degrades to the fallback chain."""
    products = FailingProductStore.from_records(make_products())
    recommender = ItemBasedRecommender(
        interaction_store,
        products,
        PopularityRecommender(interaction_store, DataFrameProductStore.from_records(make_products())),
    )

    results = recommender.generate("alice", 2)

    assert [c.product_id for c in results] == ["p3", "p6"]
    assert all(c.reason == RecommendationReason.POPULAR for c in results)


def test_content_based_matches_preferences(interaction_store, product_store, user_store):
    """Test that stated preferences match categories of unseen products."""
    results = content_recommender(interaction_store, product_store, user_store).generate("alice", 10)

    assert [c.product_id for c in results] == ["p4"]
    assert results[0].reason == RecommendationReason.CONTENT_BASED
    assert results[0].score == 1.0


def test_content_based_matches_tags(product_store):
    """Test that a preference can also match a product tag."""
    users = DataFrameUserStore.from_records([User(id="u", preferences=["audio"])])
    interactions = DataFrameInteractionStore()

    results = content_recommender(interactions, product_store, users).generate("u", 10)

    assert [c.product_id for c in results] == ["p3", "p6"]


def test_content_based_without_preferences(interaction_store, product_store, user_store):
    """Test that a user without preferences gets popular unseen products."""
    results = content_recommender(interaction_store, product_store, user_store).generate("carol", 10)

    assert [c.product_id for c in results] == ["p1", "p6"]
    assert all(c.reason == RecommendationReason.POPULAR for c in results)


def test_content_based_respects_limit(product_store):
    """Test truncation to the requested number of items."""
    users = DataFrameUserStore.from_records([User(id="u", preferences=["Books"])])

    results = content_recommender(DataFrameInteractionStore(), product_store, users).generate("u", 2)

    assert [c.product_id for c in results] == ["p1", "p2"]
