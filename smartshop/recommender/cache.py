"""Recommendation cache.

Stores the last generated recommendation list per user together with its
generation time. Exactly one record lives per user; ``put`` overwrites it.
"""

import hashlib
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import joblib

from smartshop.recommender.types import Candidate, RecommendationRecord

# Configure module logger
logger = logging.getLogger(__name__)

CACHE_FILE_SUFFIX = ".joblib"


class RecommendationCache(ABC):
    """Per-user recommendation record storage."""

    backend: str = "abstract"

    @abstractmethod
    def get(self, user_id: str) -> Optional[RecommendationRecord]:
        """Return the live record of a user, or None."""

    @abstractmethod
    def put(
        self,
        user_id: str,
        recommendations: List[Candidate],
        generated_at: Optional[datetime] = None,
    ) -> RecommendationRecord:
        """Replace the record of a user and return it."""


class InMemoryRecommendationCache(RecommendationCache):
    """Process-local cache, lost on restart."""

    backend = "memory"

    def __init__(self):
        self._records: Dict[str, RecommendationRecord] = {}
        self._lock = threading.Lock()

    def get(self, user_id: str) -> Optional[RecommendationRecord]:
        with self._lock:
            return self._records.get(str(user_id))

    def put(
        self,
        user_id: str,
        recommendations: List[Candidate],
        generated_at: Optional[datetime] = None,
    ) -> RecommendationRecord:
        record = RecommendationRecord(
            user_id=str(user_id),
            recommendations=list(recommendations),
            generated_at=generated_at or datetime.now(timezone.utc),
        )
        with self._lock:
            self._records[record.user_id] = record
        return record


class JoblibRecommendationCache(RecommendationCache):
    """Cache persisted as one joblib file per user.

    File names are derived from a hash of the user id so that arbitrary ids
    map to safe paths.
    """

    backend = "joblib"

    def __init__(self, cache_dir: str):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        logger.info(f"Using joblib recommendation cache in {self.cache_dir}")

    def _path_for(self, user_id: str) -> Path:
        digest = hashlib.sha1(str(user_id).encode("utf-8")).hexdigest()
        return self.cache_dir / f"{digest}{CACHE_FILE_SUFFIX}"

    def get(self, user_id: str) -> Optional[RecommendationRecord]:
        path = self._path_for(user_id)
        if not path.exists():
            return None
        try:
            record = joblib.load(path)
        except Exception as e:
            # An unreadable entry is treated as a miss and regenerated
            logger.warning(
                f"Discarding unreadable cache entry {path}: {e}",
                extra={"user_id": user_id, "error_type": type(e).__name__},
            )
            return None
        if not isinstance(record, RecommendationRecord) or record.user_id != str(user_id):
            logger.warning(f"Discarding mismatched cache entry {path}", extra={"user_id": user_id})
            return None
        return record

    def put(
        self,
        user_id: str,
        recommendations: List[Candidate],
        generated_at: Optional[datetime] = None,
    ) -> RecommendationRecord:
        record = RecommendationRecord(
            user_id=str(user_id),
            recommendations=list(recommendations),
            generated_at=generated_at or datetime.now(timezone.utc),
        )
        path = self._path_for(user_id)
        tmp_path = path.with_suffix(".tmp")
        with self._lock:
            joblib.dump(record, tmp_path)
            tmp_path.replace(path)
        logger.debug(f"Saved recommendations for user {user_id} to {path}")
        return record


def create_cache(cache_dir: Optional[str] = None) -> RecommendationCache:
    """Joblib-backed cache when a directory is given, in-memory otherwise."""
    if cache_dir:
        return JoblibRecommendationCache(cache_dir)
    return InMemoryRecommendationCache()
