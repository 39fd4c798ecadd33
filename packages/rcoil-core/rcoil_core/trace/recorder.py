"""
rcoil Run Recorder - write a director's events to a JSONL trace.

Usage:
    director = ExecutionDirector(coil)
    result = await record_run(director, "traces/run.jsonl", plan="plan.yaml")
    print(result["status"], result["trace_path"])
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

from ..orchestrator.context import ExecutionContext
from ..orchestrator.director import CoilEvent, ExecutionDirector
from ..orchestrator.tree import RequestGroup
from ..request import Request
from .models import (
    EventKind,
    EventName,
    GroupEventData,
    RequestEndData,
    RequestStartData,
    RunEndData,
    RunStartData,
    TraceEvent,
    generate_run_id,
)
from .writer import TraceWriter

logger = logging.getLogger(__name__)

# Header names whose values never reach a trace file (case-insensitive)
SENSITIVE_HEADERS = frozenset([
    "authorization", "proxy-authorization",
    "cookie", "set-cookie",
    "x-api-key", "api-key", "x-auth-token",
])


def redact_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Replace sensitive header values with ``[REDACTED]``."""
    return {
        name: "[REDACTED]" if name.lower() in SENSITIVE_HEADERS else value
        for name, value in (headers or {}).items()
    }


class RunRecorder:
    """
    Subscribes to an ExecutionDirector and writes one TraceEvent per event.

    ``start_run`` and ``end_run`` bracket the director's own events with
    run_start / run_end lifecycle events.
    """

    def __init__(self, writer: TraceWriter, run_id: Optional[str] = None):
        self.writer = writer
        self.run_id = run_id or generate_run_id()
        self._run_start_time: Optional[float] = None
        self._director: Optional[ExecutionDirector] = None

    def attach(self, director: ExecutionDirector) -> "RunRecorder":
        """Register handlers for every director event."""
        self._director = director
        director.on(CoilEvent.GROUP_START, self._on_group_start)
        director.on(CoilEvent.GROUP_END, self._on_group_end)
        director.on(CoilEvent.REQUEST_START, self._on_request_start)
        director.on(CoilEvent.REQUEST_END, self._on_request_end)
        director.on(CoilEvent.ABORT, self._on_abort)
        return self

    def detach(self) -> None:
        director = self._director
        if director is None:
            return
        director.off(CoilEvent.GROUP_START, self._on_group_start)
        director.off(CoilEvent.GROUP_END, self._on_group_end)
        director.off(CoilEvent.REQUEST_START, self._on_request_start)
        director.off(CoilEvent.REQUEST_END, self._on_request_end)
        director.off(CoilEvent.ABORT, self._on_abort)
        self._director = None

    # =========================================================================
    # RUN LIFECYCLE
    # =========================================================================

    def start_run(self, group_count: int, groups: Optional[list] = None, plan: Optional[str] = None) -> str:
        self._run_start_time = time.time()
        self._write(EventKind.LIFECYCLE, EventName.RUN_START, RunStartData(
            plan=plan,
            group_count=group_count,
            groups=groups or [],
        ))
        logger.debug(f"Started trace run {self.run_id}")
        return self.run_id

    def end_run(self, status: str, completed_groups: int = 0, error: Optional[str] = None) -> float:
        start = self._run_start_time or time.time()
        duration_ms = (time.time() - start) * 1000
        self._write(EventKind.LIFECYCLE, EventName.RUN_END, RunEndData(
            status=status,
            duration_ms=duration_ms,
            completed_groups=completed_groups,
            error=error,
        ))
        return duration_ms

    # =========================================================================
    # DIRECTOR EVENTS
    # =========================================================================

    def _on_group_start(self, group: RequestGroup, context: ExecutionContext) -> None:
        self._write(EventKind.GROUP, EventName.GROUP_START, _group_data(group))

    def _on_group_end(self, group: RequestGroup, context: ExecutionContext) -> None:
        data = _group_data(group)
        data.duration_ms = group.duration_ms
        self._write(EventKind.GROUP, EventName.GROUP_END, data)

    def _on_request_start(self, group_id: str, request: Request, context: ExecutionContext) -> None:
        sent = context.request_data(group_id, request.name)
        self._write(EventKind.REQUEST, EventName.REQUEST_START, RequestStartData(
            group_id=group_id,
            request=request.name,
            kind=request.kind.value,
            url=sent.url if sent is not None else request.get_url(),
            method=sent.method if sent is not None else None,
            headers=redact_headers(sent.headers if sent is not None else None),
        ))

    def _on_request_end(self, group_id: str, request: Request, context: ExecutionContext) -> None:
        response = context.response_data(group_id, request.name)
        sent = context.request_data(group_id, request.name)
        duration_ms = None
        if response is not None and sent is not None:
            duration_ms = (response.end_time - sent.start_time) * 1000
        self._write(EventKind.REQUEST, EventName.REQUEST_END, RequestEndData(
            group_id=group_id,
            request=request.name,
            kind=request.kind.value,
            is_canceled=response.is_canceled if response is not None else False,
            status_code=response.status_code if response is not None else None,
            error=response.error if response is not None else None,
            duration_ms=duration_ms,
        ))

    def _on_abort(self, context: ExecutionContext) -> None:
        data = context.get_data()
        self._write(EventKind.LIFECYCLE, EventName.ABORT, {
            "settled_groups": sorted(data["responses"]),
        })

    def _write(self, kind: EventKind, name: EventName, data: Any) -> None:
        self.writer.write(TraceEvent(run_id=self.run_id, kind=kind, name=name, data=data))


def _group_data(group: RequestGroup) -> GroupEventData:
    return GroupEventData(
        group_id=group.id,
        requests=[r.name for r in group.requests],
        children=[c.id for c in group.children],
    )


async def record_run(
    director: ExecutionDirector,
    output_path: str | Path,
    plan: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Run a director to the end while recording a trace.

    Returns:
        Dict with run_id, status, duration_ms, context, error and trace_path
    """
    status = "completed"
    error_msg = None

    with TraceWriter(output_path) as writer:
        recorder = RunRecorder(writer).attach(director)
        recorder.start_run(
            group_count=director.coil.request_groups_count(),
            groups=[g.id for g in director.coil.iter_groups()],
            plan=plan,
        )
        try:
            await director.run()
            if director.aborted:
                status = "aborted"
        except Exception as e:
            status = "error"
            error_msg = f"{type(e).__name__}: {e}"
            logger.error(f"Coil run failed: {error_msg}")
        finally:
            recorder.detach()

        duration_ms = recorder.end_run(
            status=status,
            completed_groups=sum(1 for g in director.coil.iter_groups() if g.end_time is not None),
            error=error_msg,
        )

    return {
        "run_id": recorder.run_id,
        "status": status,
        "duration_ms": duration_ms,
        "context": director.context,
        "error": error_msg,
        "trace_path": str(writer.path),
    }


__all__ = ["RunRecorder", "record_run", "redact_headers", "SENSITIVE_HEADERS"]
