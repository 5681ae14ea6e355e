"""
Run Trace Payload Validator
Turns an untrusted, decoded JSON value into a typed RunSubmission or rejects it whole.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from jsonschema import Draft7Validator

from ..errors import FieldError, ValidationError
from .schemas import (
    RUN_PAYLOAD_SCHEMA, DEFAULT_FRAMEWORK, DEFAULT_RUN_STATUS,
    DEFAULT_STEP_STATUS, DEFAULT_TOOL_CALL_STATUS,
    Framework, RunStatus, StepStatus, StepKind, ToolCallStatus,
    RunSubmission, StepSubmission, ToolCallSubmission
)

logger = logging.getLogger(__name__)

_schema_validator = Draft7Validator(RUN_PAYLOAD_SCHEMA)


def format_path(parts: Iterable[Any]) -> str:
    """Render a jsonschema path deque as steps[1].toolCalls[0].status"""
    path = ""
    for part in parts:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path


def _format_schema_error(err) -> FieldError:
    parts = list(err.absolute_path)

    if err.validator == "required":
        missing = [k for k in err.validator_value if k not in err.instance]
        parts.append(missing[0] if missing else "")
        return FieldError(path=format_path(parts), message="required field missing")

    if err.validator == "enum":
        allowed = ", ".join(err.validator_value)
        return FieldError(
            path=format_path(parts),
            message=f"invalid enum value {err.instance!r}, expected one of {allowed}"
        )

    if parts and parts[-1] == "index":
        return FieldError(path=format_path(parts), message="must be a non-negative integer")

    return FieldError(path=format_path(parts), message=err.message)


def parse_timestamp(value: Any) -> datetime:
    """
    Coerce an ISO-8601 string or an epoch number (milliseconds) to an aware UTC datetime.
    Naive strings are read as UTC. Raises ValueError when the value is not a timestamp.
    """
    if isinstance(value, bool):
        raise ValueError(f"{value!r} is not a timestamp")

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise ValueError(f"{value!r} is out of range for a timestamp") from e

    if isinstance(value, str):
        text = value.strip()
        if text[-1:] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise ValueError(f"{value!r} is not an ISO-8601 timestamp") from e
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        # Offsets near year 1 or 9999 can push the UTC value out of range
        try:
            return parsed.astimezone(timezone.utc)
        except OverflowError as e:
            raise ValueError(f"{value!r} is out of range for a timestamp") from e

    raise ValueError(f"{value!r} is not a timestamp")


class _SubmissionBuilder:
    """Applies defaults and timestamp coercion to a structurally valid payload"""

    def __init__(self, now: datetime):
        self.now = now
        self.errors: List[FieldError] = []

    def _timestamp(self, data: Dict[str, Any], key: str, path: str) -> Optional[datetime]:
        if key not in data:
            return None
        try:
            return parse_timestamp(data[key])
        except ValueError as e:
            self.errors.append(FieldError(path=f"{path}{key}", message=str(e)))
            return None

    def tool_call(self, data: Dict[str, Any], path: str) -> ToolCallSubmission:
        started_at = self._timestamp(data, "startedAt", path)
        return ToolCallSubmission(
            name=data["name"],
            status=ToolCallStatus(data.get("status", DEFAULT_TOOL_CALL_STATUS.value)),
            started_at=started_at or self.now,
            ended_at=self._timestamp(data, "endedAt", path),
            input=data.get("input"),
            output=data.get("output"),
            error=data.get("error")
        )

    def step(self, data: Dict[str, Any], path: str) -> StepSubmission:
        started_at = self._timestamp(data, "startedAt", path)
        kind = data.get("kind")
        return StepSubmission(
            index=int(data["index"]),
            status=StepStatus(data.get("status", DEFAULT_STEP_STATUS.value)),
            started_at=started_at or self.now,
            ended_at=self._timestamp(data, "endedAt", path),
            name=data.get("name"),
            kind=StepKind(kind) if kind is not None else None,
            input=data.get("input"),
            output=data.get("output"),
            error=data.get("error"),
            tool_calls=[
                self.tool_call(t, f"{path}toolCalls[{i}].")
                for i, t in enumerate(data.get("toolCalls", []))
            ]
        )

    def run(self, data: Dict[str, Any]) -> RunSubmission:
        started_at = self._timestamp(data, "startedAt", "")
        return RunSubmission(
            framework=Framework(data.get("framework", DEFAULT_FRAMEWORK.value)),
            status=RunStatus(data.get("status", DEFAULT_RUN_STATUS.value)),
            started_at=started_at or self.now,
            ended_at=self._timestamp(data, "endedAt", ""),
            name=data.get("name"),
            metadata=data.get("metadata"),
            tags=list(data.get("tags", [])),
            steps=[
                self.step(s, f"steps[{i}].")
                for i, s in enumerate(data.get("steps", []))
            ]
        )


def validate_payload(payload: Any, now: Optional[datetime] = None) -> RunSubmission:
    """
    Validate and default a submitted run trace.

    Every omitted startedAt is set to `now` (the validation time by default).
    Raises ValidationError listing every violation; nothing is accepted partially.
    """
    schema_errors = sorted(_schema_validator.iter_errors(payload), key=lambda e: list(e.absolute_path))
    if schema_errors:
        errors = [_format_schema_error(e) for e in schema_errors]
        logger.info(f"Rejected trace payload with {len(errors)} schema error(s)")
        raise ValidationError(errors)

    builder = _SubmissionBuilder(now or datetime.now(timezone.utc))
    submission = builder.run(payload)
    if builder.errors:
        logger.info(f"Rejected trace payload with {len(builder.errors)} timestamp error(s)")
        raise ValidationError(builder.errors)

    return submission
