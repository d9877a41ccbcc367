"""CLI script for getting product recommendations.

Useful for testing and evaluation. Loads the CSV data directory, gets
recommendations for a user and prints them to the console.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from smartshop.api.exceptions import SmartShopException
from smartshop.config import RecommenderConfig
from smartshop.recommender.service import RECOMMENDATION_MODES, create_recommendation_service
from smartshop.recommender.types import Candidate
from smartshop.recommender.utils import load_stores

# Setup logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s"
)
logger = logging.getLogger(__name__)


def get_recommendations(
    user_id: str,
    data_dir: str = "data",
    top_n: int = 10,
    mode: str = "hybrid",
    explain: bool = False,
) -> Tuple[List[Candidate], Optional[Dict]]:
    """Get recommendations for a user.

    Args:
        user_id: User ID to get recommendations for
        data_dir: Directory with users.csv, products.csv and interactions.csv
        top_n: Number of recommendations to return
        mode: One of the recommendation modes
        explain: If True, also return the hybrid score breakdown

    Returns:
        Tuple of (recommendations list, optional scores dict)
    """
    config = RecommenderConfig(data_dir=data_dir)
    try:
        interaction_store, product_store, user_store = load_stores(data_dir)
        service = create_recommendation_service(
            interaction_store, product_store, user_store, config
        )
        service.require_user(user_id)

        if mode == "hybrid" and explain:
            return service.recommender.get_hybrid_recommendations(
                user_id, top_n, return_scores=True
            )
        return service.recommend(user_id, mode, limit=top_n), None

    except SmartShopException as e:
        print(f"Error: {e.message}", file=sys.stderr)
        sys.exit(1)


def main() -> None:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Get product recommendations for a user",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/predict_cli.py u42
  python scripts/predict_cli.py u42 --top-n 5
  python scripts/predict_cli.py u42 --mode item
  python scripts/predict_cli.py u42 --mode hybrid --explain
        """
    )

    parser.add_argument(
        "user_id",
        type=str,
        help="User ID to get recommendations for"
    )

    parser.add_argument(
        "--top-n",
        type=int,
        default=10,
        help="Number of recommendations to return (default: 10)"
    )

    parser.add_argument(
        "--mode",
        type=str,
        choices=RECOMMENDATION_MODES,
        default="hybrid",
        help="Recommendation mode (default: hybrid)"
    )

    parser.add_argument(
        "--data-dir",
        type=str,
        default="data",
        help="Directory containing the CSV data files (default: data)"
    )

    parser.add_argument(
        "--explain",
        action="store_true",
        help="Show score and reason for each recommendation"
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.INFO)

    recommendations, scores = get_recommendations(
        user_id=args.user_id,
        data_dir=args.data_dir,
        top_n=args.top_n,
        mode=args.mode,
        explain=args.explain,
    )

    # Print results
    print(f"\nRecommendations for user {args.user_id} (mode: {args.mode}):")
    if not recommendations:
        print("  No recommendations available.")
    for rank, candidate in enumerate(recommendations, start=1):
        if args.explain:
            print(f"  {rank:2d}. {candidate.product_id}  score={candidate.score:.3f}  "
                  f"reason={candidate.reason.value}")
        else:
            print(f"  {rank:2d}. {candidate.product_id}")

    if args.explain and scores:
        print(f"\nScore breakdown:")
        if "method" in scores:
            print(f"  Method: {scores['method']}")
        if scores.get("collaborative_scores"):
            print(f"  Collaborative scores: {scores['collaborative_scores']}")
        if scores.get("item_based_scores"):
            print(f"  Item-based scores: {scores['item_based_scores']}")
        if scores.get("hybrid_scores"):
            print(f"  Hybrid scores: {scores['hybrid_scores']}")

    print()


if __name__ == "__main__":
    main()
