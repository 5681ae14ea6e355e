"""
Sample run traces for demos and seeding
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional


def _iso(value: datetime) -> str:
    return value.isoformat()


def billing_support_trace() -> Dict[str, Any]:
    """LangChain customer-support run without timestamps (the server fills startedAt)"""
    return {
        "name": "Sample: Help a customer with a billing error",
        "framework": "LANGCHAIN",
        "status": "SUCCESS",
        "tags": ["sample", "support", "billing"],
        "metadata": {"user": "demo-user", "channel": "chat"},
        "steps": [
            {
                "index": 0,
                "name": "Understand the problem",
                "kind": "THOUGHT",
                "input": {"customer_message": "My invoice is double-charged."},
                "output": {"plan": "Check invoice, fetch billing record, draft reply."},
                "status": "SUCCESS"
            },
            {
                "index": 1,
                "name": "Fetch billing record",
                "kind": "TOOL",
                "status": "SUCCESS",
                "toolCalls": [
                    {
                        "name": "billing.lookup",
                        "input": {"invoice_id": "INV-1001"},
                        "output": {"amount": 120, "currency": "USD", "status": "paid"},
                        "status": "SUCCESS"
                    },
                    {
                        "name": "billing.check_duplicates",
                        "input": {"invoice_id": "INV-1001"},
                        "output": {"duplicates": ["INV-1001-dup"]},
                        "status": "SUCCESS"
                    }
                ]
            },
            {
                "index": 2,
                "name": "Prepare response",
                "kind": "OBSERVATION",
                "status": "SUCCESS",
                "output": {
                    "reply": (
                        "We found a duplicate charge on INV-1001. We have voided the duplicate "
                        "and initiated a refund. You will see the correction in 3-5 business days."
                    )
                }
            }
        ]
    }


def support_bot_trace(now: Optional[datetime] = None) -> Dict[str, Any]:
    """LangGraph troubleshooting run with full timestamps, so every duration is defined"""
    now = now or datetime.now(timezone.utc)

    def ago(minutes: float) -> str:
        return _iso(now - timedelta(minutes=minutes))

    return {
        "name": "Support bot troubleshooting",
        "framework": "LANGGRAPH",
        "status": "SUCCESS",
        "startedAt": ago(5),
        "endedAt": ago(3.5),
        "metadata": {"user": "demo-user", "sessionId": "demo-session-1"},
        "tags": ["demo", "support"],
        "steps": [
            {
                "index": 0,
                "name": "Collect context",
                "kind": "THOUGHT",
                "input": {"user_message": "My deployment is failing with 502"},
                "output": {"summary": "Need system status and last deployment logs."},
                "status": "SUCCESS",
                "startedAt": ago(5),
                "endedAt": ago(4.8)
            },
            {
                "index": 1,
                "name": "Check status page",
                "kind": "TOOL",
                "status": "SUCCESS",
                "startedAt": ago(4.8),
                "endedAt": ago(4.5),
                "toolCalls": [
                    {
                        "name": "status_api.get",
                        "input": {"service": "api"},
                        "output": {"status": "operational"},
                        "status": "SUCCESS",
                        "startedAt": ago(4.8),
                        "endedAt": ago(4.7)
                    },
                    {
                        "name": "logs.fetch",
                        "input": {"tail": 50, "service": "api"},
                        "output": {"errors": ["upstream 502 from edge"], "rate": 0.12},
                        "status": "SUCCESS",
                        "startedAt": ago(4.7),
                        "endedAt": ago(4.5)
                    }
                ]
            },
            {
                "index": 2,
                "name": "Draft response",
                "kind": "OBSERVATION",
                "status": "SUCCESS",
                "startedAt": ago(4.5),
                "endedAt": ago(3.5),
                "output": {
                    "reply": (
                        "We saw 502s from the edge. System is operational; re-deployed API "
                        "to clean bad pods. Please retry now."
                    )
                }
            }
        ]
    }


SAMPLE_TRACES = {
    "billing": billing_support_trace,
    "support-bot": support_bot_trace,
}
