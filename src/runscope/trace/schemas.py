"""
Agent Run Trace Schemas
Canonical shape of a submitted run trace: Run -> [Step -> [ToolCall]], Run -> [Tag]
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class Framework(str, Enum):
    """Agent framework that produced the run"""
    LANGCHAIN = "LANGCHAIN"
    LANGGRAPH = "LANGGRAPH"
    CREWAI = "CREWAI"
    OTHER = "OTHER"


class RunStatus(str, Enum):
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class StepStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class StepKind(str, Enum):
    """What a step represents in the agent loop"""
    THOUGHT = "THOUGHT"
    ACTION = "ACTION"
    TOOL = "TOOL"
    OBSERVATION = "OBSERVATION"


class ToolCallStatus(str, Enum):
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


DEFAULT_FRAMEWORK = Framework.OTHER
DEFAULT_RUN_STATUS = RunStatus.RUNNING
DEFAULT_STEP_STATUS = StepStatus.PENDING
DEFAULT_TOOL_CALL_STATUS = ToolCallStatus.RUNNING


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# ── Validated submission ────────────────────────────────────────

@dataclass
class ToolCallSubmission:
    name: str
    status: ToolCallStatus
    started_at: datetime
    ended_at: Optional[datetime] = None
    input: Any = None
    output: Any = None
    error: Optional[str] = None


@dataclass
class StepSubmission:
    index: int
    status: StepStatus
    started_at: datetime
    ended_at: Optional[datetime] = None
    name: Optional[str] = None
    kind: Optional[StepKind] = None
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    tool_calls: List[ToolCallSubmission] = field(default_factory=list)


@dataclass
class RunSubmission:
    """A fully-typed, defaulted run trace, ready for normalization"""
    framework: Framework
    status: RunStatus
    started_at: datetime
    ended_at: Optional[datetime] = None
    name: Optional[str] = None
    metadata: Any = None
    tags: List[str] = field(default_factory=list)
    steps: List[StepSubmission] = field(default_factory=list)


# ── Entity graph ────────────────────────────────────────────────

@dataclass
class Tag:
    """Shared label, unique by name across all runs. id is None until the store resolves it."""
    name: str
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class ToolCall:
    id: str
    step_id: str
    name: str
    status: ToolCallStatus
    started_at: Optional[datetime]
    ended_at: Optional[datetime] = None
    input: Any = None
    output: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "stepId": self.step_id,
            "name": self.name,
            "input": self.input,
            "output": self.output,
            "error": self.error,
            "status": self.status.value,
            "startedAt": _isoformat(self.started_at),
            "endedAt": _isoformat(self.ended_at)
        }


@dataclass
class Step:
    id: str
    run_id: str
    index: int
    status: StepStatus
    started_at: Optional[datetime]
    ended_at: Optional[datetime] = None
    name: Optional[str] = None
    kind: Optional[StepKind] = None
    input: Any = None
    output: Any = None
    error: Optional[str] = None
    tool_calls: List[ToolCall] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "runId": self.run_id,
            "index": self.index,
            "name": self.name,
            "kind": self.kind.value if self.kind else None,
            "input": self.input,
            "output": self.output,
            "error": self.error,
            "status": self.status.value,
            "startedAt": _isoformat(self.started_at),
            "endedAt": _isoformat(self.ended_at),
            "toolCalls": [t.to_dict() for t in self.tool_calls]
        }


@dataclass
class Run:
    """
    One recorded execution of an agent or workflow.
    Owns its steps and its tag associations; tags themselves are shared.
    """
    id: str
    framework: Framework
    status: RunStatus
    started_at: Optional[datetime]
    ended_at: Optional[datetime] = None
    name: Optional[str] = None
    metadata: Any = None
    tags: List[Tag] = field(default_factory=list)
    steps: List[Step] = field(default_factory=list)

    @property
    def tool_calls(self) -> List[ToolCall]:
        return [t for step in self.steps for t in step.tool_calls]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "framework": self.framework.value,
            "status": self.status.value,
            "startedAt": _isoformat(self.started_at),
            "endedAt": _isoformat(self.ended_at),
            "metadata": self.metadata,
            "tags": [t.to_dict() for t in self.tags],
            "steps": [s.to_dict() for s in self.steps]
        }


@dataclass
class RunSummary:
    """Listing row: a run without its steps"""
    id: str
    framework: Framework
    status: RunStatus
    started_at: Optional[datetime]
    ended_at: Optional[datetime] = None
    name: Optional[str] = None
    tags: List[Tag] = field(default_factory=list)
    step_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "framework": self.framework.value,
            "status": self.status.value,
            "startedAt": _isoformat(self.started_at),
            "endedAt": _isoformat(self.ended_at),
            "tags": [t.to_dict() for t in self.tags],
            "stepCount": self.step_count
        }


# JSON Schema for inbound run traces
_TIMESTAMP = {"type": ["string", "number"]}

TOOL_CALL_SCHEMA = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string"},
        "input": {},
        "output": {},
        "error": {"type": "string"},
        "status": {"enum": [s.value for s in ToolCallStatus]},
        "startedAt": _TIMESTAMP,
        "endedAt": _TIMESTAMP
    }
}

STEP_SCHEMA = {
    "type": "object",
    "required": ["index"],
    "properties": {
        "index": {"type": "integer", "minimum": 0},
        "name": {"type": "string"},
        "kind": {"enum": [k.value for k in StepKind]},
        "input": {},
        "output": {},
        "error": {"type": "string"},
        "status": {"enum": [s.value for s in StepStatus]},
        "startedAt": _TIMESTAMP,
        "endedAt": _TIMESTAMP,
        "toolCalls": {"type": "array", "items": TOOL_CALL_SCHEMA}
    }
}

RUN_PAYLOAD_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Agent Run Trace",
    "description": "One execution of an agent framework with its steps and tool calls",
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "framework": {"enum": [f.value for f in Framework]},
        "status": {"enum": [s.value for s in RunStatus]},
        "startedAt": _TIMESTAMP,
        "endedAt": _TIMESTAMP,
        "metadata": {},
        "tags": {"type": "array", "items": {"type": "string"}},
        "steps": {"type": "array", "items": STEP_SCHEMA}
    }
}
