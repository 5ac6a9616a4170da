"""Request and review metrics for SnapVocab.

Collected in-process by the FastAPI middleware and the review endpoints,
exposed in Prometheus text format at /api/metrics.
"""

import re
from collections import defaultdict
from threading import Lock


# Card and session ids are UUIDs; collapse them so paths stay low-cardinality
_UUID_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
)


def normalize_path(path: str) -> str:
    return _UUID_PATTERN.sub(":id", path)


class MetricsCollector:
    """Thread-safe counters for HTTP traffic and review decisions."""

    def __init__(self):
        self.request_count: dict[str, int] = defaultdict(int)
        self.error_count: dict[str, int] = defaultdict(int)
        self.latency_sum: dict[str, float] = defaultdict(float)
        self.review_decisions: dict[str, int] = defaultdict(int)
        self.active_requests: int = 0
        self._lock = Lock()

    def record_request(self, method: str, path: str, status: int, duration: float):
        with self._lock:
            key = f"{method}:{path}"
            self.request_count[key] += 1
            self.latency_sum[key] += duration
            if status >= 400:
                self.error_count[f"{key}:{status}"] += 1

    def record_review(self, decision: str):
        """Count a review decision: remember, reset or defer."""
        with self._lock:
            self.review_decisions[decision] += 1

    def increment_active(self):
        with self._lock:
            self.active_requests += 1

    def decrement_active(self):
        with self._lock:
            self.active_requests -= 1

    def reset(self):
        with self._lock:
            self.request_count.clear()
            self.error_count.clear()
            self.latency_sum.clear()
            self.review_decisions.clear()
            self.active_requests = 0

    def to_prometheus(self, open_sessions: int = 0) -> str:
        """Export metrics in Prometheus text format."""
        lines = []

        with self._lock:
            lines.append("# HELP snapvocab_requests_total Total HTTP requests")
            lines.append("# TYPE snapvocab_requests_total counter")
            for key, count in sorted(self.request_count.items()):
                method, path = key.split(":", 1)
                lines.append(
                    f'snapvocab_requests_total{{method="{method}",path="{path}"}} {count}'
                )

            lines.append("")
            lines.append("# HELP snapvocab_request_duration_avg_seconds Average request latency")
            lines.append("# TYPE snapvocab_request_duration_avg_seconds gauge")
            for key, total in sorted(self.latency_sum.items()):
                method, path = key.split(":", 1)
                avg = total / max(self.request_count[key], 1)
                lines.append(
                    f'snapvocab_request_duration_avg_seconds{{method="{method}",path="{path}"}} {avg:.4f}'
                )

            lines.append("")
            lines.append("# HELP snapvocab_errors_total Total HTTP errors (4xx/5xx)")
            lines.append("# TYPE snapvocab_errors_total counter")
            for key, count in sorted(self.error_count.items()):
                lines.append(f'snapvocab_errors_total{{endpoint="{key}"}} {count}')

            lines.append("")
            lines.append("# HELP snapvocab_review_decisions_total Review decisions by type")
            lines.append("# TYPE snapvocab_review_decisions_total counter")
            for decision, count in sorted(self.review_decisions.items()):
                lines.append(
                    f'snapvocab_review_decisions_total{{decision="{decision}"}} {count}'
                )

            lines.append("")
            lines.append("# HELP snapvocab_active_requests Current active requests")
            lines.append("# TYPE snapvocab_active_requests gauge")
            lines.append(f"snapvocab_active_requests {self.active_requests}")

        lines.append("")
        lines.append("# HELP snapvocab_review_sessions_open Open review sessions")
        lines.append("# TYPE snapvocab_review_sessions_open gauge")
        lines.append(f"snapvocab_review_sessions_open {open_sessions}")

        return "\n".join(lines) + "\n"


# Global metrics instance
metrics = MetricsCollector()
