"""
Execution director - runs a coil tree.

The director launches a GroupRunner for every root group, and for the
children of a group once that group is done. It keeps the execution context
up to date and publishes five events:

    group_start(group, context)
    group_end(group, context)
    request_start(group_id, request, context)
    request_end(group_id, request, context)
    abort(context)

Usage:
    director = ExecutionDirector(coil, debug=True)
    director.on("group_start", lambda group, context: print(group.id))
    context = await director.run()
    print(context.response_data("users", "list").body)
"""
from __future__ import annotations

import asyncio
import inspect
import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Union

from ..request import Request
from ..transport.base import HttpTransport, Invoker, TransportConfig
from ..transport.http import AiohttpTransport
from ..transport.invoker import LocalInvoker
from .context import ExecutionContext
from .records import RequestRecord, ResponseRecord
from .runners import GroupRunner, RequestRunner
from .tree import Coil, RequestGroup

CompletionCallback = Callable[[ExecutionContext], Any]
EventHandler = Callable[..., Any]


class CoilEvent(str, Enum):
    """Events published by the director."""
    GROUP_START = "group_start"
    GROUP_END = "group_end"
    REQUEST_START = "request_start"
    REQUEST_END = "request_end"
    ABORT = "abort"


class ExecutionDirector:
    """
    Execute a Coil.

    Sibling groups and the requests of a group run concurrently; a group's
    children start only after all of its requests settled. ``abort`` stops
    the descent into further groups and reports through the ``abort`` event
    once every running request has drained.
    """

    def __init__(
        self,
        coil: Coil,
        debug: bool = False,
        logger: Optional[Any] = None,
        transport_config: Optional[TransportConfig] = None,
        http_transport: Optional[HttpTransport] = None,
        invoker: Optional[Invoker] = None,
    ):
        """
        Initialize director.

        Args:
            coil: The built request tree
            debug: Log per-request execution times
            logger: Object exposing info/debug/warning/error (default: module logger)
            transport_config: Settings for the default transports
            http_transport: HTTP collaborator (default: AiohttpTransport)
            invoker: Function invocation collaborator (default: LocalInvoker)
        """
        self.coil = coil
        self.debug = debug
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.transport_config = transport_config or TransportConfig()
        self.http_transport = http_transport or AiohttpTransport(self.transport_config)
        self.invoker = invoker or LocalInvoker()

        self.context = ExecutionContext()

        self._handlers: Dict[CoilEvent, List[EventHandler]] = {event: [] for event in CoilEvent}
        self._tasks: Set[asyncio.Future] = set()
        self._total_groups = 0
        self._completed_groups = 0
        self._pending_groups = 0
        self._aborted = False
        self._abort_emitted = False
        self._completed = False
        self._running = False
        self._on_complete: Optional[CompletionCallback] = None
        self._finished: Optional[asyncio.Event] = None
        self._error: Optional[BaseException] = None

    # =========================================================================
    # EVENTS
    # =========================================================================

    def on(self, event: Union[CoilEvent, str], handler: Optional[EventHandler] = None):
        """
        Subscribe to an event. Usable as a decorator when ``handler`` is omitted.

        Handlers may be plain functions or coroutine functions.
        """
        key = _event_key(event)
        if handler is None:
            def decorator(func: EventHandler) -> EventHandler:
                self._handlers[key].append(func)
                return func
            return decorator
        self._handlers[key].append(handler)
        return handler

    def off(self, event: Union[CoilEvent, str], handler: EventHandler) -> None:
        """Remove a handler registered with ``on``."""
        handlers = self._handlers[_event_key(event)]
        if handler in handlers:
            handlers.remove(handler)

    def _emit(self, event: CoilEvent, *args: Any) -> None:
        for handler in list(self._handlers[event]):
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    self._track(asyncio.ensure_future(result))
            except Exception as e:
                self.logger.error(f"Handler for '{event.value}' failed: {type(e).__name__}: {e}")

    # =========================================================================
    # RUN LIFECYCLE
    # =========================================================================

    def start(self, on_complete: Optional[CompletionCallback] = None) -> ExecutionContext:
        """
        Begin executing the coil on the running event loop.

        Returns the execution context immediately; it keeps being updated while
        the run progresses. ``on_complete(context)`` is called once, after every
        group has finished, unless the run is aborted.

        Raises:
            RuntimeError: if no event loop is running or a run is in progress
        """
        loop = asyncio.get_running_loop()
        if self._running:
            raise RuntimeError("This director is already running a coil")

        self.context = ExecutionContext()
        self._total_groups = self.coil.request_groups_count()
        self._completed_groups = 0
        self._pending_groups = 0
        self._aborted = False
        self._abort_emitted = False
        self._completed = False
        self._error = None
        self._on_complete = on_complete
        self._finished = asyncio.Event()
        self._running = True

        self.logger.info(f"Starting coil with {self._total_groups} request groups")

        if self._total_groups == 0:
            loop.call_soon(self._complete)
            return self.context

        for group in self.coil.groups:
            self._launch(group)

        return self.context

    async def join(self) -> ExecutionContext:
        """
        Wait until the current run completes or is aborted.

        Raises:
            RuntimeError: if ``start`` was never called
        """
        if self._finished is None:
            raise RuntimeError("The director has not been started")
        await self._finished.wait()
        if self._error is not None:
            raise self._error
        return self.context

    async def run(self, on_complete: Optional[CompletionCallback] = None) -> ExecutionContext:
        """Start the coil and wait for it to finish."""
        self.start(on_complete)
        return await self.join()

    def abort(self) -> None:
        """
        Stop descending into further groups.

        Running requests are not interrupted. Once they have drained the
        ``abort`` event fires instead of any further ``group_end`` or the
        completion callback.
        """
        self._aborted = True
        self.logger.warning("Abort requested, waiting for active requests to complete")

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def finished(self) -> bool:
        return self._finished is not None and self._finished.is_set()

    def _launch(self, group: RequestGroup) -> None:
        # Counted from scheduling, not from group_started, so a launched
        # group that has not run yet still holds back the abort drain.
        self._pending_groups += 1
        runner = GroupRunner(group, self, self._make_request_runner)
        self._track(asyncio.ensure_future(runner.run()), fatal=True)

    def _make_request_runner(self, group: RequestGroup, request: Request) -> RequestRunner:
        return RequestRunner(
            group,
            request,
            self.context,
            self,
            self.http_transport,
            self.invoker,
            self.transport_config.default_headers,
        )

    def _track(self, task: asyncio.Future, fatal: bool = False) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._group_task_done if fatal else self._callback_task_done)

    def _group_task_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"Request group task failed: {type(error).__name__}: {error}")
            if self._error is None:
                self._error = error
            self._finish()

    def _callback_task_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"Async handler failed: {type(error).__name__}: {error}")

    def _complete(self) -> None:
        if self._completed:
            return
        self._completed = True
        self.logger.info("Coil execution completed")
        if self._on_complete is not None:
            try:
                result = self._on_complete(self.context)
                if inspect.isawaitable(result):
                    self._track(asyncio.ensure_future(result))
            except Exception as e:
                self.logger.error(f"Completion callback failed: {type(e).__name__}: {e}")
        self._finish()

    def _finish(self) -> None:
        self._running = False
        if self._finished is not None:
            self._finished.set()

    # =========================================================================
    # RUNNER NOTIFICATIONS
    # =========================================================================

    def group_started(self, group: RequestGroup) -> None:
        group.start_time = time.time()
        group.end_time = None
        self.context.register_active_group(group)
        self._emit(CoilEvent.GROUP_START, group, self.context)
        self.logger.info(f"Request group {group.id} started")

    def group_done(self, group: RequestGroup) -> None:
        group.end_time = time.time()
        self.context.unregister_active_group(group)
        self._completed_groups += 1
        self._pending_groups -= 1

        if self._aborted:
            self._check_abort_drained()
            return

        self._emit(CoilEvent.GROUP_END, group, self.context)
        self.logger.info(f"Request group {group.id} finished in: {group.duration_ms:.1f}ms")

        # A group_end handler may have called abort()
        if self._aborted:
            self._check_abort_drained()
            return

        for child in group.children:
            self._launch(child)

        if group.is_leaf and self._completed_groups == self._total_groups:
            self._complete()

    def _check_abort_drained(self) -> None:
        if self._abort_emitted:
            return
        if self._pending_groups or self.context.get_active_requests():
            return
        self._abort_emitted = True
        self.logger.warning(
            f"Coil execution aborted after {self._completed_groups} of {self._total_groups} request groups"
        )
        self._emit(CoilEvent.ABORT, self.context)
        self._finish()

    def request_started(self, group: RequestGroup, request: Request, record: RequestRecord) -> None:
        self.context.register_active_request(group.id, request)
        self.context.set_request_data(group.id, request.name, record)
        self._emit(CoilEvent.REQUEST_START, group.id, request, self.context)
        self.logger.info(f"Request {request.name} started")

    def request_done(self, group: RequestGroup, request: Request, record: ResponseRecord) -> None:
        self.context.unregister_active_request(group.id, request)
        self.context.set_response_data(group.id, request.name, record)
        self.logger.info(f"Request {request.name} finished")
        self._emit(CoilEvent.REQUEST_END, group.id, request, self.context)

        if self.debug:
            sent = self.context.request_data(group.id, request.name)
            if sent is not None:
                exec_time = (record.end_time - sent.start_time) * 1000
                self.logger.debug(f"Request {request.name} executed in: {exec_time:.1f}ms")

    def request_canceled(self, group: RequestGroup, request: Request, record: ResponseRecord) -> None:
        self.context.unregister_active_request(group.id, request)
        self.context.set_response_data(group.id, request.name, record)
        self.logger.info(f"Request {request.name} canceled")
        self._emit(CoilEvent.REQUEST_END, group.id, request, self.context)


def _event_key(event: Union[CoilEvent, str]) -> CoilEvent:
    try:
        return CoilEvent(event)
    except ValueError:
        names = ", ".join(e.value for e in CoilEvent)
        raise ValueError(f"Unknown event '{event}'. Expected one of: {names}") from None


async def run_coil(
    coil: Coil,
    on_complete: Optional[CompletionCallback] = None,
    **options: Any,
) -> ExecutionContext:
    """
    Convenience function to run a coil to completion.

    Args:
        coil: The built request tree
        on_complete: Optional completion callback
        **options: ExecutionDirector keyword arguments

    Returns:
        The final execution context
    """
    director = ExecutionDirector(coil, **options)
    return await director.run(on_complete)


__all__ = [
    "CoilEvent",
    "CompletionCallback",
    "EventHandler",
    "ExecutionDirector",
    "run_coil",
]
