"""
rcoil Trace Models - Pydantic models for recorded coil runs.

Each trace is a JSONL file where each line is a TraceEvent.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================

class EventKind(str, Enum):
    """Kind of trace event."""
    LIFECYCLE = "lifecycle"  # run_start, run_end, abort
    GROUP = "group"
    REQUEST = "request"


class EventName(str, Enum):
    """Specific event names within each kind."""
    RUN_START = "run_start"
    RUN_END = "run_end"
    ABORT = "abort"

    GROUP_START = "group_start"
    GROUP_END = "group_end"

    REQUEST_START = "request_start"
    REQUEST_END = "request_end"


# =============================================================================
# EVENT DATA MODELS (payload for each event type)
# =============================================================================

class RunStartData(BaseModel):
    """Data for run_start event."""
    plan: Optional[str] = None
    group_count: int
    groups: List[str] = Field(default_factory=list)


class RunEndData(BaseModel):
    """Data for run_end event."""
    status: str  # "completed" | "aborted" | "error"
    duration_ms: float
    completed_groups: int = 0
    error: Optional[str] = None


class GroupEventData(BaseModel):
    """Data for group_start / group_end events."""
    group_id: str
    requests: List[str] = Field(default_factory=list)
    children: List[str] = Field(default_factory=list)
    duration_ms: Optional[float] = None


class RequestStartData(BaseModel):
    """Data for request_start event."""
    group_id: str
    request: str
    kind: str
    url: Optional[str] = None
    method: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)


class RequestEndData(BaseModel):
    """Data for request_end event."""
    group_id: str
    request: str
    kind: str
    is_canceled: bool = False
    status_code: Optional[int] = None
    error: Optional[str] = None
    duration_ms: Optional[float] = None


EventData = Union[
    RunStartData, RunEndData,
    GroupEventData,
    RequestStartData, RequestEndData,
    Dict[str, Any],  # Fallback for custom events
]


# =============================================================================
# TRACE EVENT (Envelope)
# =============================================================================

class TraceEvent(BaseModel):
    """
    Canonical trace event envelope.

    Every event in a trace file follows this structure.
    """
    v: str = "0.1"
    ts: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    run_id: str
    span_id: str = Field(default_factory=lambda: generate_span_id())
    kind: EventKind
    name: EventName
    data: EventData = Field(default_factory=dict)

    model_config = ConfigDict(use_enum_values=True)

    def to_jsonl(self) -> str:
        """Serialize to JSONL-compatible string."""
        return self.model_dump_json()

    @classmethod
    def from_jsonl(cls, line: str) -> "TraceEvent":
        """Deserialize from JSONL line."""
        return cls.model_validate_json(line)


# =============================================================================
# TRACE RUN (Collection of events)
# =============================================================================

class TraceRun(BaseModel):
    """A complete recorded run, loaded back from a trace file."""
    run_id: str
    events: List[TraceEvent] = Field(default_factory=list)

    @property
    def start_event(self) -> Optional[TraceEvent]:
        for e in self.events:
            if e.name == EventName.RUN_START:
                return e
        return None

    @property
    def end_event(self) -> Optional[TraceEvent]:
        for e in self.events:
            if e.name == EventName.RUN_END:
                return e
        return None

    def filter_by_name(self, name: EventName) -> List[TraceEvent]:
        """Filter events by name."""
        return [e for e in self.events if e.name == name]

    @classmethod
    def from_jsonl_file(cls, path: str) -> "TraceRun":
        """Load trace from JSONL file."""
        events = []
        run_id = None

        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                event = TraceEvent.from_jsonl(line)
                events.append(event)
                if run_id is None:
                    run_id = event.run_id

        return cls(run_id=run_id or generate_run_id(), events=events)


def generate_run_id() -> str:
    """Generate a unique run ID."""
    return f"run_{uuid4().hex[:12]}"


def generate_span_id() -> str:
    """Generate a unique span ID."""
    return f"sp_{uuid4().hex[:12]}"
