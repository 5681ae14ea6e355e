"""
Runscope - Agent Run Trace Service

Records runs from agent frameworks (chains, graphs, crews) with their steps and
tool calls, and derives timing and success-rate analytics from them.
"""

from .errors import RunscopeError, ValidationError, NotFoundError, StorageError, FieldError
from .pipeline import build_run, ingest_trace, load_run_analytics

__version__ = "1.0.0"

__all__ = [
    "RunscopeError", "ValidationError", "NotFoundError", "StorageError", "FieldError",
    "build_run", "ingest_trace", "load_run_analytics",
    "__version__"
]
