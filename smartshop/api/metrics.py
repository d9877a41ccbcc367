"""Metrics service for tracking recommendation performance.

Singleton service to track generation calls, latency, cache efficiency and
which recommender paths produced the served candidates.
"""

import threading
from typing import Dict, Iterable


class MetricsService:
    """Singleton service for tracking recommendation metrics.

    Thread-safe counters and latency tracking for generation calls.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        """Create singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(MetricsService, cls).__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize metrics counters."""
        if self._initialized:
            return

        self._lock = threading.Lock()
        self._reset_counters()
        self._initialized = True

    def _reset_counters(self) -> None:
        self._generation_count = 0
        self._total_latency_ms = 0.0
        self._min_latency_ms = float('inf')
        self._max_latency_ms = 0.0
        self._cache_hits = 0
        self._cache_misses = 0
        self._failures = 0
        self._reasons: Dict[str, int] = {}

    def record_generation(self, latency_ms: float, reasons: Iterable[str] = ()) -> None:
        """Record a recommendation generation with its latency.

        Args:
            latency_ms: Latency in milliseconds
            reasons: Reason tags of the candidates that were produced
        """
        with self._lock:
            self._generation_count += 1
            self._total_latency_ms += latency_ms

            if latency_ms < self._min_latency_ms:
                self._min_latency_ms = latency_ms

            if latency_ms > self._max_latency_ms:
                self._max_latency_ms = latency_ms

            for reason in reasons:
                self._reasons[reason] = self._reasons.get(reason, 0) + 1

    def record_cache_hit(self) -> None:
        with self._lock:
            self._cache_hits += 1

    def record_cache_miss(self) -> None:
        with self._lock:
            self._cache_misses += 1

    def record_failure(self) -> None:
        with self._lock:
            self._failures += 1

    def get_metrics(self) -> Dict:
        """Get current metrics.

        Returns:
            Dictionary with metrics including:
            - generation_count: Total number of generation calls
            - average_latency_ms: Average latency in milliseconds
            - min_latency_ms: Minimum latency observed
            - max_latency_ms: Maximum latency observed
            - cache_hits / cache_misses: Cache lookups by outcome
            - failures: Generations that ended in total failure
            - reasons: Served candidates per reason tag
        """
        with self._lock:
            avg_latency = (
                self._total_latency_ms / self._generation_count
                if self._generation_count > 0
                else 0.0
            )

            return {
                "generation_count": self._generation_count,
                "average_latency_ms": round(avg_latency, 2),
                "min_latency_ms": round(self._min_latency_ms, 2) if self._min_latency_ms != float('inf') else 0.0,
                "max_latency_ms": round(self._max_latency_ms, 2),
                "cache_hits": self._cache_hits,
                "cache_misses": self._cache_misses,
                "failures": self._failures,
                "reasons": dict(self._reasons),
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._reset_counters()


# Global singleton instance
metrics_service = MetricsService()
