"""
Run Analytics Aggregator
Derives durations, tool-call success rates, a latency histogram and a per-tool
breakdown from one stored run. Pure: the same run always yields the same result.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..trace.schemas import Run, Step, ToolCall, ToolCallStatus


# (label, lower bound exclusive, upper bound inclusive)
LATENCY_BUCKETS = [
    ("<1s", 0.0, 1.0),
    ("1-3s", 1.0, 3.0),
    ("3-10s", 3.0, 10.0),
    ("10s+", 10.0, math.inf),
]


def duration_seconds(started_at: Optional[datetime], ended_at: Optional[datetime]) -> Optional[int]:
    """Whole seconds between start and end (truncated toward zero), or None unless both are known"""
    if started_at is None or ended_at is None:
        return None
    return int((ended_at - started_at).total_seconds())


def _round_half_up(value: float, digits: int = 0) -> float:
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


@dataclass
class LatencyBucket:
    label: str
    lower: float
    upper: float
    count: int = 0

    def contains(self, seconds: float) -> bool:
        return self.lower < seconds <= self.upper

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "min": self.lower,
            "max": None if math.isinf(self.upper) else self.upper,
            "count": self.count
        }


@dataclass
class ToolStats:
    """Aggregated calls of one tool name across a run"""
    name: str
    count: int = 0
    success: int = 0
    failed: int = 0
    total_duration: int = 0
    samples: int = 0

    def add(self, call: ToolCall, duration: Optional[int]):
        self.count += 1
        if call.status == ToolCallStatus.SUCCESS:
            self.success += 1
        elif call.status == ToolCallStatus.FAILED:
            self.failed += 1
        # Undated calls stay out of the average's denominator
        if duration is not None:
            self.total_duration += duration
            self.samples += 1

    @property
    def avg_duration(self) -> Optional[float]:
        if self.samples == 0:
            return None
        return _round_half_up(self.total_duration / self.samples, 1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "count": self.count,
            "success": self.success,
            "failed": self.failed,
            "avgDurationSeconds": self.avg_duration
        }


@dataclass
class RunAnalytics:
    """Read-only analytics summary for one run"""
    run_id: str
    run_duration: Optional[int] = None
    step_durations: Dict[str, Optional[int]] = field(default_factory=dict)
    tool_durations: Dict[str, Optional[int]] = field(default_factory=dict)
    total_tool_calls: int = 0
    tool_successes: int = 0
    tool_failures: int = 0
    latency_histogram: List[LatencyBucket] = field(default_factory=list)
    tool_stats: Dict[str, ToolStats] = field(default_factory=dict)

    @property
    def success_rate(self) -> Optional[int]:
        """Percent of tool calls that succeeded; None when there were no calls"""
        if self.total_tool_calls == 0:
            return None
        return int(_round_half_up(self.tool_successes / self.total_tool_calls * 100))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runId": self.run_id,
            "runDurationSeconds": self.run_duration,
            "stepDurations": self.step_durations,
            "toolDurations": self.tool_durations,
            "toolCalls": {
                "total": self.total_tool_calls,
                "success": self.tool_successes,
                "failed": self.tool_failures,
                "successRate": self.success_rate
            },
            "latencyHistogram": [b.to_dict() for b in self.latency_histogram],
            "toolStats": [s.to_dict() for s in self.tool_stats.values()]
        }


def ordered_steps(run: Run) -> List[Step]:
    """Steps ascending by index; equal indexes keep their stored order"""
    return sorted(run.steps, key=lambda s: s.index)


def aggregate_run(run: Run) -> RunAnalytics:
    """Compute the analytics summary of a run with its steps and tool calls"""
    analytics = RunAnalytics(
        run_id=run.id,
        run_duration=duration_seconds(run.started_at, run.ended_at),
        latency_histogram=[LatencyBucket(label, lower, upper) for label, lower, upper in LATENCY_BUCKETS]
    )

    for step in ordered_steps(run):
        analytics.step_durations[step.id] = duration_seconds(step.started_at, step.ended_at)

        for call in step.tool_calls:
            duration = duration_seconds(call.started_at, call.ended_at)
            analytics.tool_durations[call.id] = duration

            analytics.total_tool_calls += 1
            if call.status == ToolCallStatus.SUCCESS:
                analytics.tool_successes += 1
            elif call.status == ToolCallStatus.FAILED:
                analytics.tool_failures += 1

            if duration is not None:
                for bucket in analytics.latency_histogram:
                    if bucket.contains(duration):
                        bucket.count += 1
                        break

            stats = analytics.tool_stats.get(call.name)
            if stats is None:
                stats = analytics.tool_stats[call.name] = ToolStats(name=call.name)
            stats.add(call, duration)

    return analytics
