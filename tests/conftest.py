"""
Shared fixtures for runscope tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable

import pytest
from fastapi.testclient import TestClient

from runscope.api.service import create_app
from runscope.config import ServiceConfig
from runscope.storage.store import SQLTraceStore

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'runscope.db'}"


@pytest.fixture
def store(database_url):
    """A fresh, initialized SQLite trace store."""
    store = SQLTraceStore(database_url)
    store.initialize()
    yield store
    store.close()


@pytest.fixture
def client(database_url):
    """TestClient over an app backed by its own SQLite file."""
    config = ServiceConfig(database_url=database_url)
    app = create_app(store=SQLTraceStore(database_url), config=config)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def at() -> Callable[[float], str]:
    """ISO timestamp `seconds` after a fixed reference time."""

    def _at(seconds: float) -> str:
        return (T0 + timedelta(seconds=seconds)).isoformat()

    return _at


@pytest.fixture
def full_payload(at):
    """A trace exercising every field at every level."""
    return {
        "name": "Checkout investigation",
        "framework": "LANGCHAIN",
        "status": "SUCCESS",
        "startedAt": at(0),
        "endedAt": at(90),
        "metadata": {"ticket_id": "TCK-123", "nested": {"values": [1, 2.5, None, True]}},
        "tags": ["prod", "checkout"],
        "steps": [
            {
                "index": 1,
                "name": "Call payments API",
                "kind": "TOOL",
                "status": "SUCCESS",
                "startedAt": at(10),
                "endedAt": at(40),
                "toolCalls": [
                    {
                        "name": "payments.lookup",
                        "input": {"order": "ord_123"},
                        "output": {"status": "declined", "reason": "3DS_REQUIRED"},
                        "status": "SUCCESS",
                        "startedAt": at(10),
                        "endedAt": at(12)
                    },
                    {
                        "name": "payments.retry",
                        "input": ["ord_123", 3],
                        "error": "timeout after 30s",
                        "status": "FAILED",
                        "startedAt": at(12),
                        "endedAt": at(40)
                    }
                ]
            },
            {
                "index": 0,
                "name": "Understand issue",
                "kind": "THOUGHT",
                "input": {"customer": "alice", "message": "payment failed"},
                "output": "plain string output",
                "status": "SUCCESS",
                "startedAt": at(0),
                "endedAt": at(10)
            }
        ]
    }
