"""User similarity and neighbor discovery.

Provides the two user-to-user similarity metrics (Jaccard over raw product
sets, cosine over weighted interaction vectors) and the engine that finds a
user's nearest neighbors among users who co-interacted with at least one of
the same products.
"""

import logging
from typing import Dict, Iterable, List, Optional

import numpy as np
from scipy.sparse import csr_matrix
from sklearn.metrics.pairwise import cosine_similarity as pairwise_cosine_similarity

from smartshop.config import DEFAULT_NEIGHBOR_COUNT
from smartshop.recommender.stores import InteractionStore
from smartshop.recommender.types import SimilarUser
from smartshop.recommender.weighting import build_weighted_vector, interaction_weight

# Configure module logger
logger = logging.getLogger(__name__)


def jaccard_similarity(products_a: Iterable[str], products_b: Iterable[str]) -> float:
    """Jaccard index of two product sets; 0 when both are empty."""
    set_a = {str(pid) for pid in products_a}
    set_b = {str(pid) for pid in products_b}
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def cosine_similarity(vector_a: Dict[str, float], vector_b: Dict[str, float]) -> float:
    """Cosine similarity of two weighted product vectors.

    Products missing from one vector count as zero weight. Returns 0 when
    either vector has zero magnitude.
    """
    keys = list(dict.fromkeys([*vector_a, *vector_b]))
    if not keys:
        return 0.0

    a = np.array([vector_a.get(key, 0.0) for key in keys], dtype=np.float64)
    b = np.array([vector_b.get(key, 0.0) for key in keys], dtype=np.float64)

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = np.dot(a, b) / (norm_a * norm_b)
    return float(np.clip(similarity, 0.0, 1.0))


def batch_cosine_similarity(
    target_vector: Dict[str, float],
    candidate_vectors: List[Dict[str, float]],
) -> np.ndarray:
    """Cosine similarity of one vector against many, via a sparse matrix.

    Row 0 of the matrix is the target, the following rows are the candidates,
    and columns span the union of their products.

    Returns:
        Array of similarities aligned with ``candidate_vectors``.
    """
    if not candidate_vectors:
        return np.zeros(0)

    product_index: Dict[str, int] = {}
    rows, cols, data = [], [], []
    for row, vector in enumerate([target_vector, *candidate_vectors]):
        for product_id, weight in vector.items():
            col = product_index.setdefault(product_id, len(product_index))
            rows.append(row)
            cols.append(col)
            data.append(weight)

    if not product_index:
        return np.zeros(len(candidate_vectors))

    matrix = csr_matrix(
        (np.asarray(data, dtype=np.float64), (rows, cols)),
        shape=(len(candidate_vectors) + 1, len(product_index)),
    )
    similarities = pairwise_cosine_similarity(matrix[0], matrix[1:])[0]
    return np.clip(similarities, 0.0, 1.0)


class SimilarityEngine:
    """Finds a user's nearest neighbors from the interaction log."""

    def __init__(
        self,
        interaction_store: InteractionStore,
        logger: Optional[logging.Logger] = None,
    ):
        self.interaction_store = interaction_store
        self.logger = logger or logging.getLogger(__name__)

    def find_similar_users(
        self,
        target_user_id: str,
        top_n: int = DEFAULT_NEIGHBOR_COUNT,
    ) -> List[SimilarUser]:
        """Find the users most similar to ``target_user_id``.

        Only users who interacted with at least one of the target's products
        are compared. A candidate's vector is built from its interactions on
        those shared products. Candidates with zero similarity are dropped;
        the rest are sorted by similarity descending, ties keeping the order
        in which candidates were discovered in the log.

        Args:
            target_user_id: User to find neighbors for.
            top_n: Maximum number of neighbors to return.

        Returns:
            Up to ``top_n`` neighbors, most similar first.
        """
        target_interactions = self.interaction_store.find(user_id=target_user_id)
        if not target_interactions:
            self.logger.info(
                "No interactions for target user, no neighbors possible",
                extra={"user_id": target_user_id, "stage": "find_similar_users"},
            )
            return []

        target_vector = build_weighted_vector(target_interactions)

        overlapping = self.interaction_store.find_by_products(
            list(target_vector), exclude_user_id=target_user_id
        )

        # Group by neighbor in discovery order
        candidate_vectors: Dict[str, Dict[str, float]] = {}
        candidate_counts: Dict[str, int] = {}
        for interaction in overlapping:
            vector = candidate_vectors.setdefault(interaction.user_id, {})
            vector[interaction.product_id] = (
                vector.get(interaction.product_id, 0.0) + interaction_weight(interaction.type)
            )
            candidate_counts[interaction.user_id] = candidate_counts.get(interaction.user_id, 0) + 1

        self.logger.info(
            f"Found {len(candidate_vectors)} candidate neighbors for user {target_user_id}",
            extra={
                "user_id": target_user_id,
                "target_products": len(target_vector),
                "candidates": len(candidate_vectors),
            },
        )

        candidate_ids = list(candidate_vectors)
        similarities = batch_cosine_similarity(
            target_vector, [candidate_vectors[uid] for uid in candidate_ids]
        )

        neighbors = [
            SimilarUser(
                user_id=uid,
                similarity=float(similarity),
                interaction_count=candidate_counts[uid],
            )
            for uid, similarity in zip(candidate_ids, similarities)
            if similarity > 0
        ]
        neighbors.sort(key=lambda n: n.similarity, reverse=True)
        top_neighbors = neighbors[:top_n] if top_n > 0 else []

        if top_neighbors:
            self.logger.debug(
                "Top neighbors: "
                + ", ".join(f"{n.user_id} ({n.similarity:.3f})" for n in top_neighbors[:3]),
                extra={"user_id": target_user_id},
            )

        return top_neighbors
