"""
rcoil Trace System

Records the events of a coil run as JSONL.

Usage:
    from rcoil_core.trace import record_run, TraceRun

    result = await record_run(director, "traces/run.jsonl")
    run = TraceRun.from_jsonl_file(result["trace_path"])
"""
from .models import (
    EventKind,
    EventName,
    GroupEventData,
    RequestEndData,
    RequestStartData,
    RunEndData,
    RunStartData,
    TraceEvent,
    TraceRun,
    generate_run_id,
    generate_span_id,
)
from .writer import TraceWriter
from .recorder import RunRecorder, record_run, redact_headers

__all__ = [
    "EventKind",
    "EventName",
    "GroupEventData",
    "RequestEndData",
    "RequestStartData",
    "RunEndData",
    "RunStartData",
    "TraceEvent",
    "TraceRun",
    "generate_run_id",
    "generate_span_id",
    "TraceWriter",
    "RunRecorder",
    "record_run",
    "redact_headers",
]
