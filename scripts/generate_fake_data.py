"""Generate fake shop data for testing and development.

This module provides functionality to create a synthetic catalog, users with
category preferences and a log of view/like/purchase interactions. The CSV
files it writes are the ones the API and the CLI load from the data
directory.

Example:
    Run the script directly to generate default data:
        $ python scripts/generate_fake_data.py

    Or import and use programmatically:
        from scripts.generate_fake_data import generate_fake_interactions
        df = generate_fake_interactions(users, products, num_interactions=500)
"""

import random
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import pandas as pd

# Default configuration constants
DEFAULT_NUM_USERS = 50
DEFAULT_NUM_PRODUCTS = 100
DEFAULT_NUM_INTERACTIONS = 1000
DEFAULT_DAYS_BACK = 90
SECONDS_PER_DAY = 86400

CATEGORIES = ["Books", "Electronics", "Home", "Sports", "Toys", "Clothing"]
TAGS = [
    "fiction", "scifi", "history", "audio", "wireless", "kitchen", "garden",
    "outdoor", "fitness", "kids", "puzzle", "summer", "winter", "sale", "eco",
]

# Views dominate, purchases are rare
INTERACTION_TYPES = ["view", "like", "purchase"]
INTERACTION_TYPE_WEIGHTS = [0.7, 0.2, 0.1]


def generate_fake_products(
    num_products: int = DEFAULT_NUM_PRODUCTS,
    end_date: Optional[datetime] = None,
) -> pd.DataFrame:
    """Generate a synthetic product catalog.

    Returns:
        A DataFrame with columns id, name, category, tags (``|``-separated),
        price and created_at.
    """
    if num_products <= 0:
        raise ValueError("num_products must be positive")
    if end_date is None:
        end_date = datetime.now()

    products = []
    for index in range(1, num_products + 1):
        category = random.choice(CATEGORIES)
        tags = random.sample(TAGS, k=random.randint(1, 3))
        created_at = end_date - timedelta(
            days=random.randrange(DEFAULT_DAYS_BACK * 4),
            seconds=random.randrange(SECONDS_PER_DAY),
        )
        products.append({
            'id': f"p{index}",
            'name': f"{category} item {index}",
            'category': category,
            'tags': "|".join(tags),
            'price': round(random.uniform(2.0, 250.0), 2),
            'created_at': created_at,
        })

    return pd.DataFrame(products)


def generate_fake_users(num_users: int = DEFAULT_NUM_USERS) -> pd.DataFrame:
    """Generate users with one or two preferred categories each."""
    if num_users <= 0:
        raise ValueError("num_users must be positive")

    users = []
    for index in range(1, num_users + 1):
        preferences = random.sample(CATEGORIES, k=random.randint(1, 2))
        users.append({
            'id': f"u{index}",
            'name': f"User {index}",
            'preferences': "|".join(preferences),
        })

    return pd.DataFrame(users)


def generate_fake_interactions(
    users: pd.DataFrame,
    products: pd.DataFrame,
    num_interactions: int = DEFAULT_NUM_INTERACTIONS,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> pd.DataFrame:
    """Generate synthetic user-product interactions.

    Users lean towards their preferred categories so that neighbors and
    category matches exist in the generated log.

    Args:
        users: Users as returned by ``generate_fake_users``.
        products: Products as returned by ``generate_fake_products``.
        num_interactions: Total number of interaction records to generate.
            Must be positive.
        start_date: Start date for timestamps. If None, defaults to
            90 days before the end date.
        end_date: End date for timestamps. If None, defaults to now.

    Returns:
        A DataFrame with columns user_id, product_id, type and timestamp,
        sorted by timestamp in ascending order.

    Raises:
        ValueError: If num_interactions is non-positive, if users or products
            are empty, or if start_date is not before end_date.
    """
    if num_interactions <= 0:
        raise ValueError("num_interactions must be positive")
    if users.empty or products.empty:
        raise ValueError("users and products must not be empty")

    if end_date is None:
        end_date = datetime.now()
    if start_date is None:
        start_date = end_date - timedelta(days=DEFAULT_DAYS_BACK)
    if start_date >= end_date:
        raise ValueError("start_date must be before end_date")

    days_range = max((end_date - start_date).days, 1)
    by_category = {
        category: group['id'].tolist()
        for category, group in products.groupby('category')
    }
    all_products = products['id'].tolist()

    interactions = []
    for _ in range(num_interactions):
        user = users.sample(n=1).iloc[0]
        preferred = [
            pid
            for category in str(user['preferences']).split("|")
            for pid in by_category.get(category, [])
        ]
        pool = preferred if preferred and random.random() < 0.8 else all_products

        timestamp = start_date + timedelta(
            days=random.randrange(days_range),
            seconds=random.randrange(SECONDS_PER_DAY),
        )
        interactions.append({
            'user_id': user['id'],
            'product_id': random.choice(pool),
            'type': random.choices(INTERACTION_TYPES, weights=INTERACTION_TYPE_WEIGHTS)[0],
            'timestamp': timestamp,
        })

    df = pd.DataFrame(interactions)
    df = df.sort_values('timestamp').reset_index(drop=True)

    return df


def main() -> None:
    """Main entry point for the data generation script.

    Generates users, products and interactions with default parameters and
    saves them to the data directory. Prints summary statistics upon
    completion.
    """
    print(f"Generating {DEFAULT_NUM_USERS} users, {DEFAULT_NUM_PRODUCTS} products "
          f"and {DEFAULT_NUM_INTERACTIONS} interactions...")

    try:
        users = generate_fake_users(DEFAULT_NUM_USERS)
        products = generate_fake_products(DEFAULT_NUM_PRODUCTS)
        interactions = generate_fake_interactions(
            users, products, num_interactions=DEFAULT_NUM_INTERACTIONS
        )
    except ValueError as e:
        print(f"Error generating data: {e}")
        return

    # Ensure data directory exists
    data_dir = Path(__file__).parent.parent / 'data'
    data_dir.mkdir(exist_ok=True)

    users.to_csv(data_dir / 'users.csv', index=False)
    products.to_csv(data_dir / 'products.csv', index=False)
    interactions.to_csv(data_dir / 'interactions.csv', index=False)

    # Print results summary
    print(f"\nData generated successfully!")
    print(f"Saved to: {data_dir}")
    print(f"\nInteractions preview:")
    print(interactions.head(10))
    print(f"\nData summary:")
    print(f"  Total interactions: {len(interactions)}")
    print(f"  By type: {interactions['type'].value_counts().to_dict()}")
    print(f"  Unique users: {interactions['user_id'].nunique()}")
    print(f"  Unique products: {interactions['product_id'].nunique()}")
    print(
        f"  Date range: {interactions['timestamp'].min()} to {interactions['timestamp'].max()}"
    )


if __name__ == '__main__':
    main()
