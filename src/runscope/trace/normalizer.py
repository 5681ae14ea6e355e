"""
Run Trace Hierarchy Normalizer
Builds the Run -> [Step -> [ToolCall]] entity graph from a validated submission.
"""

from typing import List
from uuid import uuid4

from .schemas import (
    RunSubmission, StepSubmission, ToolCallSubmission,
    Run, Step, ToolCall, Tag
)


def generate_id() -> str:
    return uuid4().hex


def unique_tag_names(names: List[str]) -> List[str]:
    """Drop repeated tag names, keeping first occurrence order"""
    return list(dict.fromkeys(names))


def _tool_call(submission: ToolCallSubmission, step_id: str) -> ToolCall:
    return ToolCall(
        id=generate_id(),
        step_id=step_id,
        name=submission.name,
        status=submission.status,
        started_at=submission.started_at,
        ended_at=submission.ended_at,
        input=submission.input,
        output=submission.output,
        error=submission.error
    )


def _step(submission: StepSubmission, run_id: str) -> Step:
    step_id = generate_id()
    return Step(
        id=step_id,
        run_id=run_id,
        index=submission.index,
        status=submission.status,
        started_at=submission.started_at,
        ended_at=submission.ended_at,
        name=submission.name,
        kind=submission.kind,
        input=submission.input,
        output=submission.output,
        error=submission.error,
        tool_calls=[_tool_call(t, step_id) for t in submission.tool_calls]
    )


def normalize_submission(submission: RunSubmission) -> Run:
    """
    Produce the entity graph for one ingestion.

    Steps keep the submitted order and index values; tool calls keep array order.
    Tags carry no id yet: the store resolves each name to an existing or new tag.
    """
    run_id = generate_id()
    return Run(
        id=run_id,
        framework=submission.framework,
        status=submission.status,
        started_at=submission.started_at,
        ended_at=submission.ended_at,
        name=submission.name,
        metadata=submission.metadata,
        tags=[Tag(name=name) for name in unique_tag_names(submission.tags)],
        steps=[_step(s, run_id) for s in submission.steps]
    )
