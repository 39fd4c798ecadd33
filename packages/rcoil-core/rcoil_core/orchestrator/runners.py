"""
Group and request runners.

A GroupRunner executes every request of one group concurrently and reports
back once all of them have settled. A RequestRunner drives one request
through input generation, dispatch (or cancellation) and completion. Both
report progress to a RunnerListener, normally the ExecutionDirector.
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol

from ..request import CANCEL, HttpTarget, InvocationTarget, Request, RequestKind
from ..transport.base import HttpTransport, Invoker, OutgoingRequest
from .context import ExecutionContext
from .records import RequestRecord, ResponseRecord
from .tree import RequestGroup

logger = logging.getLogger(__name__)


class RequestState(str, Enum):
    """Lifecycle of a single request."""
    PENDING = "pending"
    INPUT_READY = "input_ready"
    DISPATCHED = "dispatched"
    CANCELED = "canceled"
    COMPLETED = "completed"


class GroupState(str, Enum):
    """Lifecycle of a request group."""
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"


class RunnerListener(Protocol):
    """Receives lifecycle notifications from runners."""

    def group_started(self, group: RequestGroup) -> None:
        ...

    def group_done(self, group: RequestGroup) -> None:
        ...

    def request_started(self, group: RequestGroup, request: Request, record: RequestRecord) -> None:
        ...

    def request_done(self, group: RequestGroup, request: Request, record: ResponseRecord) -> None:
        ...

    def request_canceled(self, group: RequestGroup, request: Request, record: ResponseRecord) -> None:
        ...


class RequestRunner:
    """
    Run one request: generate input, dispatch or cancel, record the result.

    Failures of the input callback or the transport are captured in the
    ResponseRecord; ``run`` itself does not raise for them.
    """

    def __init__(
        self,
        group: RequestGroup,
        request: Request,
        context: ExecutionContext,
        listener: RunnerListener,
        http_transport: HttpTransport,
        invoker: Invoker,
        default_headers: Optional[Dict[str, str]] = None,
    ):
        self.group = group
        self.request = request
        self.context = context
        self.listener = listener
        self.http_transport = http_transport
        self.invoker = invoker
        self.default_headers = default_headers or {}
        self.state = RequestState.PENDING

    async def run(self) -> ResponseRecord:
        if self.state != RequestState.PENDING:
            raise RuntimeError(f"Request '{self.request.name}' has already been run")

        target = self.request.target
        outgoing = OutgoingRequest(target, self.default_headers) if isinstance(target, HttpTarget) else None

        try:
            body = await self._generate_input(outgoing)
        except Exception as e:
            logger.error(
                f"Input callback for request '{self.request.name}' in group "
                f"'{self.group.id}' failed: {type(e).__name__}: {e}"
            )
            record = ResponseRecord(
                kind=self.request.kind,
                end_time=time.time(),
                error=f"Input callback failed: {type(e).__name__}: {e}",
            )
            self.state = RequestState.COMPLETED
            self.listener.request_done(self.group, self.request, record)
            return record

        self.state = RequestState.INPUT_READY

        if body is CANCEL:
            self.state = RequestState.CANCELED
            record = ResponseRecord(kind=self.request.kind, end_time=time.time(), is_canceled=True)
            self.state = RequestState.COMPLETED
            self.listener.request_canceled(self.group, self.request, record)
            return record

        self.state = RequestState.DISPATCHED
        self.listener.request_started(self.group, self.request, self._request_record(body, outgoing))

        try:
            record = await self._dispatch(target, outgoing, body)
        except Exception as e:
            logger.error(
                f"Transport failed for request '{self.request.name}' in group "
                f"'{self.group.id}': {type(e).__name__}: {e}"
            )
            record = ResponseRecord(
                kind=self.request.kind,
                end_time=time.time(),
                method=outgoing.method if outgoing is not None else None,
                error=f"{type(e).__name__}: {e}",
            )

        self.state = RequestState.COMPLETED
        self.listener.request_done(self.group, self.request, record)
        return record

    async def _generate_input(self, outgoing: Optional[OutgoingRequest]) -> Any:
        func = self.request.input_func
        if func is None:
            return None
        if self.request.kind == RequestKind.HTTP:
            result = func(self.context, outgoing)
        else:
            result = func(self.context)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _request_record(self, body: Any, outgoing: Optional[OutgoingRequest]) -> RequestRecord:
        record = RequestRecord(request=self.request, body=body, start_time=time.time())
        if outgoing is not None:
            record.headers = outgoing.headers
            record.url = outgoing.url
            record.method = outgoing.method
        return record

    async def _dispatch(self, target: Any, outgoing: Optional[OutgoingRequest], body: Any) -> ResponseRecord:
        if isinstance(target, HttpTarget):
            response = await self.http_transport.send(outgoing, body)
            return ResponseRecord(
                kind=RequestKind.HTTP,
                end_time=time.time(),
                body=response.body,
                headers=dict(response.headers),
                status_code=response.status_code,
                status_message=response.status_message,
                http_version=response.http_version,
                method=response.method,
                error=response.error,
            )
        if isinstance(target, InvocationTarget):
            result = await self.invoker.invoke(target, body)
            return ResponseRecord(
                kind=RequestKind.INVOCATION,
                end_time=time.time(),
                body=result.result,
                error=result.error,
            )
        raise TypeError(f"Unsupported request target: {target!r}")


class GroupRunner:
    """Run every request of a group concurrently, then signal completion."""

    def __init__(
        self,
        group: RequestGroup,
        listener: RunnerListener,
        make_request_runner: Callable[[RequestGroup, Request], RequestRunner],
    ):
        self.group = group
        self.listener = listener
        self.make_request_runner = make_request_runner
        self.state = GroupState.IDLE

    async def run(self) -> None:
        if self.state != GroupState.IDLE:
            raise RuntimeError(f"Request group '{self.group.id}' has already been run")

        self.state = GroupState.RUNNING
        self.listener.group_started(self.group)

        runners = [self.make_request_runner(self.group, r) for r in self.group.requests]
        results = await asyncio.gather(*(r.run() for r in runners), return_exceptions=True)
        for runner, result in zip(runners, results):
            if isinstance(result, BaseException):
                logger.error(
                    f"Request '{runner.request.name}' in group '{self.group.id}' "
                    f"ended abnormally: {type(result).__name__}: {result}"
                )

        self.state = GroupState.DONE
        self.listener.group_done(self.group)


__all__ = [
    "RequestState",
    "GroupState",
    "RunnerListener",
    "RequestRunner",
    "GroupRunner",
]
