from .aggregator import (
    LATENCY_BUCKETS, LatencyBucket, ToolStats, RunAnalytics,
    aggregate_run, duration_seconds
)

__all__ = [
    "LATENCY_BUCKETS", "LatencyBucket", "ToolStats", "RunAnalytics",
    "aggregate_run", "duration_seconds"
]
