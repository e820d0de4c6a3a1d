from __future__ import annotations

import threading
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Deque, Dict


@dataclass
class RequestStats:
    latencies_ms: Deque[float]
    errors: int
    total: int


class MetricsRegistry:
    """In-memory metrics registry.

    - Per-path rolling latency window for p95 calculation
    - Error counters per path
    - Review outcome counters (passes / lapses, per quality)
    """

    def __init__(self, window_size: int = 200) -> None:
        self._window_size = window_size
        self._lock = threading.Lock()
        self._per_path: Dict[str, RequestStats] = defaultdict(
            lambda: RequestStats(latencies_ms=deque(maxlen=self._window_size), errors=0, total=0)
        )
        self._reviews_by_quality: Dict[int, int] = defaultdict(int)
        self._passes = 0
        self._lapses = 0

    def record(self, path: str, latency_ms: float, *, is_error: bool = False) -> None:
        with self._lock:
            stats = self._per_path[path]
            stats.latencies_ms.append(latency_ms)
            stats.total += 1
            if is_error:
                stats.errors += 1

    def record_review(self, quality: int, *, lapse: bool) -> None:
        with self._lock:
            self._reviews_by_quality[quality] += 1
            if lapse:
                self._lapses += 1
            else:
                self._passes += 1

    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            paths: Dict[str, Dict[str, float | int]] = {}
            for path, stats in self._per_path.items():
                p95 = calculate_p95(list(stats.latencies_ms)) if stats.latencies_ms else 0.0
                paths[path] = {
                    "p95_ms": round(p95, 2),
                    "count": stats.total,
                    "errors": stats.errors,
                }
            return {
                "paths": paths,
                "reviews": {
                    "passes": self._passes,
                    "lapses": self._lapses,
                    "by_quality": {str(q): n for q, n in sorted(self._reviews_by_quality.items())},
                },
            }

    def reset(self) -> None:
        with self._lock:
            self._per_path.clear()
            self._reviews_by_quality.clear()
            self._passes = 0
            self._lapses = 0


def calculate_p95(values: list[float]) -> float:
    if not values:
        return 0.0
    sorted_vals = sorted(values)
    k = int(0.95 * (len(sorted_vals) - 1))
    return sorted_vals[k]


registry = MetricsRegistry()
