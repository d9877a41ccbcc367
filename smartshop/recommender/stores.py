"""Store interfaces consumed by the recommendation engine.

The engine never talks to a database directly. It reads interactions,
products and users through the abstract stores defined here, which keeps the
recommenders free of persistence details and lets tests pass in-memory
doubles. The ``DataFrame*`` implementations hold the records in pandas
DataFrames and back the API, the CLI and the tests.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import asdict
from typing import Iterable, List, Optional, Tuple

import pandas as pd

from smartshop.recommender.types import Interaction, Product, User

# Configure module logger
logger = logging.getLogger(__name__)

INTERACTION_COLUMNS = ["user_id", "product_id", "type", "timestamp"]
PRODUCT_COLUMNS = ["id", "name", "category", "tags", "price", "created_at"]
USER_COLUMNS = ["id", "name", "preferences"]

# Separator for multi-valued tag and preference cells
LABEL_SEPARATOR = "|"


class InteractionStore(ABC):
    """Read access to the interaction log."""

    @abstractmethod
    def find(
        self,
        user_id: Optional[str] = None,
        types: Optional[Iterable[str]] = None,
    ) -> List[Interaction]:
        """Return interactions, optionally filtered by user and type."""

    @abstractmethod
    def find_by_products(
        self,
        product_ids: Iterable[str],
        exclude_user_id: Optional[str] = None,
    ) -> List[Interaction]:
        """Return interactions on any of ``product_ids`` in log order."""

    @abstractmethod
    def count_by_user(self, user_id: str) -> int:
        """Return the number of interactions of a user."""

    @abstractmethod
    def aggregate_counts_by_product(
        self,
        exclude_ids: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, int]]:
        """Return (product_id, count) pairs sorted by count descending."""

    @abstractmethod
    def add(self, interaction: Interaction) -> None:
        """Append an interaction to the log."""

    @abstractmethod
    def count(self) -> int:
        """Return the total number of interactions."""


class ProductStore(ABC):
    """Read access to the product catalog."""

    @abstractmethod
    def find_by_ids(self, ids: Iterable[str]) -> List[Product]:
        """Return the products with the given ids, in request order."""

    @abstractmethod
    def find_by_category_or_tags(
        self,
        categories: Iterable[str],
        tags: Iterable[str],
        exclude_ids: Optional[Iterable[str]] = None,
    ) -> List[Product]:
        """Return products matching any category or sharing any tag."""

    @abstractmethod
    def most_recent(
        self,
        limit: int,
        exclude_ids: Optional[Iterable[str]] = None,
    ) -> List[Product]:
        """Return the most recently created products."""

    @abstractmethod
    def take_any(self, limit: int) -> List[Product]:
        """Return up to ``limit`` products regardless of any criteria."""

    @abstractmethod
    def count(self) -> int:
        """Return the catalog size."""


class UserStore(ABC):
    """Read access to users."""

    @abstractmethod
    def find_by_id(self, user_id: str) -> Optional[User]:
        """Return the user or None if unknown."""

    @abstractmethod
    def count(self) -> int:
        """Return the number of users."""


def _normalize_labels(value) -> List[str]:
    """Coerce a tags/preferences cell to a list of distinct strings."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(LABEL_SEPARATOR)
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
    elif pd.isna(value):
        return []
    else:
        items = [value]
    labels = [str(item).strip() for item in items if item is not None]
    return list(dict.fromkeys(label for label in labels if label))


def _optional_str(value) -> Optional[str]:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    return str(value)


def _optional_timestamp(value):
    if value is None or pd.isna(value):
        return None
    return pd.Timestamp(value).to_pydatetime()


class DataFrameInteractionStore(InteractionStore):
    """Interaction log held in a pandas DataFrame."""

    def __init__(self, frame: Optional[pd.DataFrame] = None):
        if frame is None:
            frame = pd.DataFrame(columns=INTERACTION_COLUMNS)

        missing = set(INTERACTION_COLUMNS) - set(frame.columns)
        if missing:
            raise ValueError(f"Interaction frame missing required columns: {missing}")

        frame = frame[INTERACTION_COLUMNS].reset_index(drop=True)
        frame = frame.astype({"user_id": str, "product_id": str, "type": str})
        frame["type"] = frame["type"].str.lower()
        self._frame = frame
        self._lock = threading.RLock()

        logger.debug(f"Initialized DataFrameInteractionStore with {len(frame)} interactions")

    @classmethod
    def from_records(cls, interactions: Iterable[Interaction]) -> "DataFrameInteractionStore":
        rows = [asdict(interaction) for interaction in interactions]
        return cls(pd.DataFrame(rows, columns=INTERACTION_COLUMNS))

    @staticmethod
    def _to_interactions(frame: pd.DataFrame) -> List[Interaction]:
        return [
            Interaction(
                user_id=row.user_id,
                product_id=row.product_id,
                type=row.type,
                timestamp=_optional_timestamp(row.timestamp),
            )
            for row in frame.itertuples(index=False)
        ]

    def find(
        self,
        user_id: Optional[str] = None,
        types: Optional[Iterable[str]] = None,
    ) -> List[Interaction]:
        with self._lock:
            frame = self._frame
        if user_id is not None:
            frame = frame[frame["user_id"] == str(user_id)]
        if types is not None:
            frame = frame[frame["type"].isin([t.lower() for t in types])]
        return self._to_interactions(frame)

    def find_by_products(
        self,
        product_ids: Iterable[str],
        exclude_user_id: Optional[str] = None,
    ) -> List[Interaction]:
        with self._lock:
            frame = self._frame
        mask = frame["product_id"].isin([str(pid) for pid in product_ids])
        if exclude_user_id is not None:
            mask &= frame["user_id"] != str(exclude_user_id)
        return self._to_interactions(frame[mask])

    def count_by_user(self, user_id: str) -> int:
        with self._lock:
            return int((self._frame["user_id"] == str(user_id)).sum())

    def aggregate_counts_by_product(
        self,
        exclude_ids: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Tuple[str, int]]:
        with self._lock:
            frame = self._frame
        if exclude_ids:
            frame = frame[~frame["product_id"].isin([str(pid) for pid in exclude_ids])]
        if frame.empty:
            return []

        # Ties keep first appearance in the log
        counts = (
            frame.groupby("product_id", sort=False)
            .size()
            .sort_values(ascending=False, kind="mergesort")
        )
        if limit is not None:
            counts = counts.head(limit)
        return [(str(pid), int(count)) for pid, count in counts.items()]

    def add(self, interaction: Interaction) -> None:
        row = pd.DataFrame([asdict(interaction)], columns=INTERACTION_COLUMNS)
        row = row.astype({"user_id": str, "product_id": str, "type": str})
        row["type"] = row["type"].str.lower()
        with self._lock:
            if self._frame.empty:
                self._frame = row
            else:
                self._frame = pd.concat([self._frame, row], ignore_index=True)

    def count(self) -> int:
        with self._lock:
            return len(self._frame)


class DataFrameProductStore(ProductStore):
    """Product catalog held in a pandas DataFrame."""

    def __init__(self, frame: Optional[pd.DataFrame] = None):
        if frame is None:
            frame = pd.DataFrame(columns=PRODUCT_COLUMNS)

        if "id" not in frame.columns:
            raise ValueError("Product frame missing required column: 'id'")

        frame = frame.reset_index(drop=True).copy()
        for column in PRODUCT_COLUMNS:
            if column not in frame.columns:
                frame[column] = None
        frame = frame[PRODUCT_COLUMNS]
        frame["id"] = frame["id"].astype(str)
        frame["tags"] = frame["tags"].map(_normalize_labels)
        frame["created_at"] = pd.to_datetime(frame["created_at"], errors="coerce", utc=True)
        self._frame = frame
        self._lock = threading.RLock()

        logger.debug(f"Initialized DataFrameProductStore with {len(frame)} products")

    @classmethod
    def from_records(cls, products: Iterable[Product]) -> "DataFrameProductStore":
        rows = [asdict(product) for product in products]
        return cls(pd.DataFrame(rows, columns=PRODUCT_COLUMNS))

    @staticmethod
    def _to_products(frame: pd.DataFrame) -> List[Product]:
        products = []
        for row in frame.itertuples(index=False):
            price = None if row.price is None or pd.isna(row.price) else float(row.price)
            products.append(
                Product(
                    id=row.id,
                    name=_optional_str(row.name) or "",
                    category=_optional_str(row.category),
                    tags=list(row.tags),
                    price=price,
                    created_at=_optional_timestamp(row.created_at),
                )
            )
        return products

    def _without(self, frame: pd.DataFrame, exclude_ids: Optional[Iterable[str]]) -> pd.DataFrame:
        if not exclude_ids:
            return frame
        return frame[~frame["id"].isin([str(pid) for pid in exclude_ids])]

    def find_by_ids(self, ids: Iterable[str]) -> List[Product]:
        wanted = list(dict.fromkeys(str(pid) for pid in ids))
        with self._lock:
            frame = self._frame
        by_id = {product.id: product for product in self._to_products(frame[frame["id"].isin(wanted)])}
        return [by_id[pid] for pid in wanted if pid in by_id]

    def find_by_category_or_tags(
        self,
        categories: Iterable[str],
        tags: Iterable[str],
        exclude_ids: Optional[Iterable[str]] = None,
    ) -> List[Product]:
        category_set = set(categories)
        tag_set = set(tags)
        with self._lock:
            frame = self._without(self._frame, exclude_ids)
        if frame.empty or not (category_set or tag_set):
            return []

        category_match = frame["category"].isin(list(category_set))
        tag_match = frame["tags"].map(lambda labels: bool(tag_set.intersection(labels))).astype(bool)
        return self._to_products(frame[category_match | tag_match])

    def most_recent(
        self,
        limit: int,
        exclude_ids: Optional[Iterable[str]] = None,
    ) -> List[Product]:
        if limit <= 0:
            return []
        with self._lock:
            frame = self._without(self._frame, exclude_ids)
        frame = frame.sort_values("created_at", ascending=False, kind="mergesort", na_position="last")
        return self._to_products(frame.head(limit))

    def take_any(self, limit: int) -> List[Product]:
        if limit <= 0:
            return []
        with self._lock:
            return self._to_products(self._frame.head(limit))

    def count(self) -> int:
        with self._lock:
            return len(self._frame)


class DataFrameUserStore(UserStore):
    """Users held in a pandas DataFrame."""

    def __init__(self, frame: Optional[pd.DataFrame] = None):
        if frame is None:
            frame = pd.DataFrame(columns=USER_COLUMNS)

        if "id" not in frame.columns:
            raise ValueError("User frame missing required column: 'id'")

        frame = frame.reset_index(drop=True).copy()
        for column in USER_COLUMNS:
            if column not in frame.columns:
                frame[column] = None
        frame = frame[USER_COLUMNS]
        frame["id"] = frame["id"].astype(str)
        frame["preferences"] = frame["preferences"].map(_normalize_labels)
        self._frame = frame

    @classmethod
    def from_records(cls, users: Iterable[User]) -> "DataFrameUserStore":
        rows = [asdict(user) for user in users]
        return cls(pd.DataFrame(rows, columns=USER_COLUMNS))

    def find_by_id(self, user_id: str) -> Optional[User]:
        matches = self._frame[self._frame["id"] == str(user_id)]
        if matches.empty:
            return None
        row = next(matches.itertuples(index=False))
        return User(
            id=row.id,
            name=_optional_str(row.name) or "",
            preferences=list(row.preferences),
        )

    def count(self) -> int:
        return len(self._frame)
