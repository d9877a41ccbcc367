"""Shared fixtures for the SmartShop test suite.

Builds small in-memory stores over a fixed catalog so recommender tests run
without CSV files.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List

import pytest

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from smartshop.api.metrics import metrics_service
from smartshop.recommender.stores import (
    DataFrameInteractionStore,
    DataFrameProductStore,
    DataFrameUserStore,
)
from smartshop.recommender.types import Interaction, Product, SimilarUser, User


def make_products() -> List[Product]:
    """Catalog shared by most tests."""
    return [
        Product(id="p1", name="Dune", category="Books", tags=["fiction", "scifi"],
                created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)),
        Product(id="p2", name="Emma", category="Books", tags=["fiction"],
                created_at=datetime(2024, 2, 1, tzinfo=timezone.utc)),
        Product(id="p3", name="Headphones", category="Electronics", tags=["audio"],
                created_at=datetime(2024, 3, 1, tzinfo=timezone.utc)),
        Product(id="p4", name="SPQR", category="Books", tags=["history"],
                created_at=datetime(2024, 4, 1, tzinfo=timezone.utc)),
        Product(id="p5", name="Kettle", category="Home", tags=["kitchen"],
                created_at=datetime(2024, 5, 1, tzinfo=timezone.utc)),
        Product(id="p6", name="Speaker", category="Electronics", tags=["audio", "wireless"],
                created_at=datetime(2024, 6, 1, tzinfo=timezone.utc)),
    ]


def make_users() -> List[User]:
    return [
        User(id="alice", name="Alice", preferences=["Books"]),
        User(id="bob", name="Bob", preferences=["Electronics", "audio"]),
        User(id="carol", name="Carol", preferences=[]),
        User(id="dave", name="Dave", preferences=["Home"]),
    ]


def make_interactions() -> List[Interaction]:
    # dave has no interactions
    return [
        Interaction("alice", "p1", "purchase"),
        Interaction("alice", "p2", "view"),
        Interaction("bob", "p1", "like"),
        Interaction("bob", "p3", "purchase"),
        Interaction("bob", "p6", "view"),
        Interaction("carol", "p2", "like"),
        Interaction("carol", "p4", "purchase"),
        Interaction("carol", "p3", "view"),
    ]


class StubSimilarityEngine:
    """Returns a fixed neighbor list."""

    def __init__(self, neighbors: List[SimilarUser]):
        self.neighbors = neighbors
        self.calls = []

    def find_similar_users(self, target_user_id, top_n=10):
        self.calls.append((target_user_id, top_n))
        return self.neighbors[:top_n]


class FailingInteractionStore(DataFrameInteractionStore):
    """Interaction store whose reads always fail."""

    def find(self, user_id=None, types=None):
        raise ConnectionError("interaction store unavailable")

    def find_by_products(self, product_ids, exclude_user_id=None):
        raise ConnectionError("interaction store unavailable")

    def count_by_user(self, user_id):
        raise ConnectionError("interaction store unavailable")

    def aggregate_counts_by_product(self, exclude_ids=None, limit=None):
        raise ConnectionError("interaction store unavailable")


class FailingProductStore(DataFrameProductStore):
    """Product store whose reads always fail."""

    def find_by_ids(self, ids):
        raise ConnectionError("product store unavailable")

    def find_by_category_or_tags(self, categories, tags, exclude_ids=None):
        raise ConnectionError("product store unavailable")

    def most_recent(self, limit, exclude_ids=None):
        raise ConnectionError("product store unavailable")

    def take_any(self, limit):
        raise ConnectionError("product store unavailable")


@pytest.fixture
def products():
    return make_products()


@pytest.fixture
def product_store(products):
    return DataFrameProductStore.from_records(products)


@pytest.fixture
def user_store():
    return DataFrameUserStore.from_records(make_users())


@pytest.fixture
def interaction_store():
    return DataFrameInteractionStore.from_records(make_interactions())


@pytest.fixture
def empty_interaction_store():
    return DataFrameInteractionStore()


@pytest.fixture(autouse=True)
def reset_metrics():
    """Reset the metrics singleton between tests."""
    metrics_service.reset()
    yield
    metrics_service.reset()
