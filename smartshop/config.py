"""Configuration for the SmartShop recommendation engine.

Holds the fixed policy constants of the engine (weights, bonuses, split
ratios, fallback scores) together with runtime settings such as the data
directory and log level. Values can be overridden from ``SMARTSHOP_*``
environment variables.
"""

import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

# Engine policy constants
DEFAULT_LIMIT = 10
DEFAULT_NEIGHBOR_COUNT = 10
DEFAULT_CACHE_TTL_HOURS = 24.0
DEFAULT_HYBRID_TIMEOUT_SECONDS = 10.0
DEFAULT_COLLABORATIVE_SHARE = 0.7
DEFAULT_ITEM_BASED_SHARE = 0.3
DEFAULT_ITEM_MERGE_DAMPING = 0.5
DEFAULT_CATEGORY_BONUS = 1.2
DEFAULT_TAG_BONUS = 0.1
DEFAULT_ITEM_CATEGORY_SCORE = 2.0
DEFAULT_ITEM_TAG_SCORE = 1.0
DEFAULT_CONTENT_SCORE = 1.0
DEFAULT_RECENT_SCORE = 0.5
DEFAULT_RECENT_ALL_SCORE = 0.1
DEFAULT_ULTIMATE_FALLBACK_SCORE = 0.1

# Runtime defaults
DEFAULT_DATA_DIR = "data"
DEFAULT_LOG_LEVEL = "INFO"

ENV_PREFIX = "SMARTSHOP_"


@dataclass(frozen=True)
class RecommenderConfig:
    """Policy constants and runtime settings for the engine.

    Attributes:
        default_limit: Number of recommendations returned when none is given.
        neighbor_count: Number of similar users consulted by the user-based
            recommender.
        cache_ttl_hours: Age after which a cached list is regenerated.
        hybrid_timeout_seconds: Upper bound on the concurrent hybrid fan-out.
        collaborative_share: Fraction of the limit requested from the
            user-based recommender.
        item_based_share: Fraction of the limit requested from the item-based
            recommender.
        item_merge_damping: Multiplier applied to an item-based score when it
            is added onto an existing user-based entry.
        category_bonus: Multiplier for a candidate whose category is one of
            the user's stated preferences.
        tag_bonus: Per-tag multiplier increment for preference tag matches.
        item_category_score: Item-based score for a category match.
        item_tag_score: Item-based score per matching tag.
        content_score: Flat content-based score.
        recent_score: Score of "recent" fallback items.
        recent_all_score: Score of "recent_all" fallback items.
        ultimate_fallback_score: Score of "ultimate_fallback" items.
        data_dir: Directory holding users.csv, products.csv, interactions.csv.
        cache_dir: Directory for the joblib cache; in-memory cache when None.
        log_level: Logging level name.
    """

    default_limit: int = DEFAULT_LIMIT
    neighbor_count: int = DEFAULT_NEIGHBOR_COUNT
    cache_ttl_hours: float = DEFAULT_CACHE_TTL_HOURS
    hybrid_timeout_seconds: float = DEFAULT_HYBRID_TIMEOUT_SECONDS
    collaborative_share: float = DEFAULT_COLLABORATIVE_SHARE
    item_based_share: float = DEFAULT_ITEM_BASED_SHARE
    item_merge_damping: float = DEFAULT_ITEM_MERGE_DAMPING
    category_bonus: float = DEFAULT_CATEGORY_BONUS
    tag_bonus: float = DEFAULT_TAG_BONUS
    item_category_score: float = DEFAULT_ITEM_CATEGORY_SCORE
    item_tag_score: float = DEFAULT_ITEM_TAG_SCORE
    content_score: float = DEFAULT_CONTENT_SCORE
    recent_score: float = DEFAULT_RECENT_SCORE
    recent_all_score: float = DEFAULT_RECENT_ALL_SCORE
    ultimate_fallback_score: float = DEFAULT_ULTIMATE_FALLBACK_SCORE
    data_dir: str = DEFAULT_DATA_DIR
    cache_dir: Optional[str] = None
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self) -> None:
        if self.default_limit <= 0:
            raise ValueError("default_limit must be positive")
        if self.neighbor_count <= 0:
            raise ValueError("neighbor_count must be positive")
        if self.cache_ttl_hours < 0:
            raise ValueError("cache_ttl_hours must not be negative")
        if self.hybrid_timeout_seconds <= 0:
            raise ValueError("hybrid_timeout_seconds must be positive")
        for name in ("collaborative_share", "item_based_share"):
            value = getattr(self, name)
            if not 0 <= value <= 1:
                raise ValueError(f"{name} must be between 0 and 1, got {value}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RecommenderConfig":
        """Build a config from ``SMARTSHOP_*`` environment variables.

        Each field maps to the upper-cased field name with the prefix, e.g.
        ``SMARTSHOP_CACHE_TTL_HOURS``. Unset variables keep their defaults.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            Config populated from the environment.

        Raises:
            ValueError: If a variable cannot be converted to its field type.
        """
        environ = os.environ if environ is None else environ
        overrides: Dict[str, Any] = {}

        for field in fields(cls):
            raw = environ.get(ENV_PREFIX + field.name.upper())
            if raw is None or raw == "":
                continue
            default = field.default
            try:
                if isinstance(default, bool):
                    overrides[field.name] = raw.lower() in ("1", "true", "yes")
                elif isinstance(default, int):
                    overrides[field.name] = int(raw)
                elif isinstance(default, float):
                    overrides[field.name] = float(raw)
                else:
                    overrides[field.name] = raw
            except ValueError as e:
                raise ValueError(
                    f"Invalid value for {ENV_PREFIX + field.name.upper()}: {raw!r}"
                ) from e

        return cls(**overrides)
