"""Utility functions for loading recommendation data.

This module provides helpers that read users, products and interactions from
CSV files into the pandas-backed stores used by the engine.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

import pandas as pd

from smartshop.api.exceptions import StoreError
from smartshop.recommender.stores import (
    DataFrameInteractionStore,
    DataFrameProductStore,
    DataFrameUserStore,
    INTERACTION_COLUMNS,
)

# Configure module logger
logger = logging.getLogger(__name__)

# Data filenames
USERS_FILENAME = "users.csv"
PRODUCTS_FILENAME = "products.csv"
INTERACTIONS_FILENAME = "interactions.csv"


def _read_csv(csv_path: str, required_columns: set) -> pd.DataFrame:
    """Read a CSV with string ids and validate its columns.

    Raises:
        FileNotFoundError: If CSV file does not exist.
        ValueError: If CSV is missing required columns.
    """
    csv_file = Path(csv_path)
    if not csv_file.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    logger.info(f"Loading CSV from {csv_path}")
    df = pd.read_csv(csv_path, dtype=str, keep_default_na=False, na_values=[""])

    if not required_columns.issubset(df.columns):
        missing = required_columns - set(df.columns)
        raise ValueError(f"CSV missing required columns: {missing}")

    logger.info(f"Loaded {len(df)} records from {csv_file.name}")
    return df


def load_interactions_csv(csv_path: str) -> DataFrameInteractionStore:
    """Load interactions from a CSV file.

    Expects columns ``user_id``, ``product_id``, ``type`` and ``timestamp``.

    Args:
        csv_path: Path to CSV file containing interaction data.

    Returns:
        Interaction store over the loaded records.

    Raises:
        FileNotFoundError: If CSV file does not exist.
        ValueError: If CSV is missing required columns.

    Example:
        >>> store = load_interactions_csv("data/interactions.csv")
        >>> print(f"Loaded {store.count()} interactions")
    """
    df = _read_csv(csv_path, set(INTERACTION_COLUMNS))
    df["timestamp"] = pd.to_datetime(df["timestamp"], errors="coerce", utc=True)

    logger.info(f"Unique users: {df['user_id'].nunique()}")
    logger.info(f"Unique products: {df['product_id'].nunique()}")

    return DataFrameInteractionStore(df)


def load_products_csv(csv_path: str) -> DataFrameProductStore:
    """Load the product catalog from a CSV file.

    Expects an ``id`` column; ``name``, ``category``, ``tags`` (separated by
    ``|``), ``price`` and ``created_at`` are optional.
    """
    df = _read_csv(csv_path, {"id"})
    if "price" in df.columns:
        df["price"] = pd.to_numeric(df["price"], errors="coerce")
    return DataFrameProductStore(df)


def load_users_csv(csv_path: str) -> DataFrameUserStore:
    """Load users from a CSV file.

    Expects an ``id`` column; ``name`` and ``preferences`` (separated by
    ``|``) are optional.
    """
    df = _read_csv(csv_path, {"id"})
    return DataFrameUserStore(df)


def get_data_paths(data_dir: str) -> Tuple[Path, Path, Path]:
    """Get file paths for the data files without loading them.

    Returns:
        A tuple containing Path objects for users, products and interactions.
    """
    data_path = Path(data_dir)
    return (
        data_path / USERS_FILENAME,
        data_path / PRODUCTS_FILENAME,
        data_path / INTERACTIONS_FILENAME,
    )


def load_stores(
    data_dir: Optional[str],
) -> Tuple[DataFrameInteractionStore, DataFrameProductStore, DataFrameUserStore]:
    """Load all three stores from a data directory.

    Missing files yield empty stores, so a fresh deployment starts with an
    empty catalog rather than failing.

    Args:
        data_dir: Directory with users.csv, products.csv and interactions.csv.

    Returns:
        (interaction store, product store, user store).

    Raises:
        StoreError: If a file exists but cannot be parsed.
    """
    interactions = DataFrameInteractionStore()
    products = DataFrameProductStore()
    users = DataFrameUserStore()

    if not data_dir:
        return interactions, products, users

    users_path, products_path, interactions_path = get_data_paths(data_dir)

    store_name = "user"
    try:
        if users_path.exists():
            users = load_users_csv(str(users_path))
        store_name = "product"
        if products_path.exists():
            products = load_products_csv(str(products_path))
        store_name = "interaction"
        if interactions_path.exists():
            interactions = load_interactions_csv(str(interactions_path))
    except (ValueError, pd.errors.ParserError) as e:
        logger.error(f"Failed to load {store_name} data from {data_dir}: {e}", exc_info=True)
        raise StoreError(store_name, e) from e

    if not any(path.exists() for path in (users_path, products_path, interactions_path)):
        logger.warning(f"No data files found in {data_dir}, starting with empty stores")

    return interactions, products, users
