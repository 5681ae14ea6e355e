from .store import RunQuery, TraceStore, SQLTraceStore, create_store

__all__ = ["RunQuery", "TraceStore", "SQLTraceStore", "create_store"]
