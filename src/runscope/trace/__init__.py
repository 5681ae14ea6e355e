"""
Run trace schema, payload validation and hierarchy normalization
"""

from .schemas import (
    Framework, RunStatus, StepStatus, StepKind, ToolCallStatus,
    RunSubmission, StepSubmission, ToolCallSubmission,
    Run, Step, ToolCall, Tag, RunSummary,
    RUN_PAYLOAD_SCHEMA
)
from .validator import validate_payload, parse_timestamp
from .normalizer import normalize_submission, generate_id

__all__ = [
    # Schemas
    "Framework", "RunStatus", "StepStatus", "StepKind", "ToolCallStatus",
    "RunSubmission", "StepSubmission", "ToolCallSubmission",
    "Run", "Step", "ToolCall", "Tag", "RunSummary",
    "RUN_PAYLOAD_SCHEMA",

    # Validation
    "validate_payload", "parse_timestamp",

    # Normalization
    "normalize_submission", "generate_id"
]
