"""
Ingestion and retrieval flows

ingest:   payload -> validate -> normalize -> store (atomic)
retrieve: store -> run graph -> analytics
"""

from datetime import datetime
from typing import Any, Optional, Tuple

from .analytics.aggregator import RunAnalytics, aggregate_run
from .storage.store import TraceStore
from .trace.normalizer import normalize_submission
from .trace.schemas import Run
from .trace.validator import validate_payload


def build_run(payload: Any, now: Optional[datetime] = None) -> Run:
    """Validate a submitted payload and turn it into a run graph. Raises ValidationError."""
    return normalize_submission(validate_payload(payload, now=now))


def ingest_trace(store: TraceStore, payload: Any, now: Optional[datetime] = None) -> Run:
    run = build_run(payload, now=now)
    store.create_run(run)
    return run


async def ingest_trace_async(store: TraceStore, payload: Any, now: Optional[datetime] = None) -> Run:
    run = build_run(payload, now=now)
    await store.create_run_async(run)
    return run


def load_run_analytics(store: TraceStore, run_id: str) -> Tuple[Run, RunAnalytics]:
    run = store.get_run(run_id)
    return run, aggregate_run(run)


async def load_run_analytics_async(store: TraceStore, run_id: str) -> Tuple[Run, RunAnalytics]:
    run = await store.get_run_async(run_id)
    return run, aggregate_run(run)
