"""Interaction weighting.

Maps interaction types to signal strengths and folds a user's interactions
into a weighted product vector.
"""

from typing import Dict, Iterable

from smartshop.recommender.types import Interaction

INTERACTION_WEIGHTS: Dict[str, float] = {
    "purchase": 5.0,
    "like": 3.0,
    "view": 1.0,
}
DEFAULT_INTERACTION_WEIGHT = 1.0

# Interaction types that signal a positive opinion of a product
POSITIVE_INTERACTION_TYPES = ("like", "purchase")


def interaction_weight(interaction_type: str) -> float:
    """Return the strength of an interaction type; unknown types weigh 1."""
    if not interaction_type:
        return DEFAULT_INTERACTION_WEIGHT
    return INTERACTION_WEIGHTS.get(interaction_type.lower(), DEFAULT_INTERACTION_WEIGHT)


def build_weighted_vector(interactions: Iterable[Interaction]) -> Dict[str, float]:
    """Sum interaction weights per product.

    Repeated interactions on the same product accumulate. Keys keep the order
    in which products were first seen.
    """
    vector: Dict[str, float] = {}
    for interaction in interactions:
        vector[interaction.product_id] = (
            vector.get(interaction.product_id, 0.0) + interaction_weight(interaction.type)
        )
    return vector
