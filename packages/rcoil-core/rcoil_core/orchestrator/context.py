"""
Execution context - state shared by every runner during a coil run.

Holds the active groups and requests plus every request and response record,
organized by group id and request name. Each of the four collections has its
own reader-writer lock, so a write to one never waits on a read of another.

Usage inside an input callback:
    def build_body(context, outgoing):
        users = context.response_data("users", "list")
        return {"id": json.loads(users.body)[0]["id"]}
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from ..request import Request
from .records import RequestRecord, ResponseRecord
from .tree import RequestGroup


class ReadWriteLock:
    """
    Many concurrent readers or a single writer.

    Waiting writers block new readers so writes cannot starve.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class ExecutionContext:
    """
    Concurrency-safe store for one coil run.

    The context is handed to every event handler and input callback, and is
    returned by ``ExecutionDirector.start``.
    """

    def __init__(self) -> None:
        self._groups_lock = ReadWriteLock()
        self._requests_lock = ReadWriteLock()
        self._request_data_lock = ReadWriteLock()
        self._response_data_lock = ReadWriteLock()

        self._active_groups: List[RequestGroup] = []
        self._active_requests: List[Tuple[str, Request]] = []
        self._requests: Dict[str, Dict[str, RequestRecord]] = {}
        self._responses: Dict[str, Dict[str, ResponseRecord]] = {}

    # =========================================================================
    # ACTIVE GROUPS
    # =========================================================================

    def register_active_group(self, group: RequestGroup) -> None:
        with self._groups_lock.write():
            self._active_groups.append(group)

    def unregister_active_group(self, group: RequestGroup) -> None:
        with self._groups_lock.write():
            self._active_groups = [g for g in self._active_groups if g.id != group.id]

    def get_active_group(self, group_id: str) -> Optional[RequestGroup]:
        with self._groups_lock.read():
            for group in self._active_groups:
                if group.id == group_id:
                    return group
        return None

    def get_active_groups(self) -> Tuple[RequestGroup, ...]:
        """Snapshot of the groups currently executing."""
        with self._groups_lock.read():
            return tuple(self._active_groups)

    # =========================================================================
    # ACTIVE REQUESTS
    # =========================================================================

    def register_active_request(self, group_id: str, request: Request) -> None:
        with self._requests_lock.write():
            self._active_requests.append((group_id, request))

    def unregister_active_request(self, group_id: str, request: Request) -> None:
        with self._requests_lock.write():
            self._active_requests = [
                (gid, r) for gid, r in self._active_requests
                if not (gid == group_id and r.name == request.name)
            ]

    def get_active_request(self, name: str, group_id: Optional[str] = None) -> Optional[Request]:
        """First active request called ``name``, optionally within ``group_id``."""
        with self._requests_lock.read():
            for gid, request in self._active_requests:
                if request.name == name and (group_id is None or gid == group_id):
                    return request
        return None

    def get_active_requests(self) -> Tuple[Tuple[str, Request], ...]:
        """Snapshot of ``(group_id, request)`` pairs currently executing."""
        with self._requests_lock.read():
            return tuple(self._active_requests)

    # =========================================================================
    # RECORDS
    # =========================================================================

    def set_request_data(self, group_id: str, name: str, record: RequestRecord) -> None:
        with self._request_data_lock.write():
            self._requests.setdefault(group_id, {})[name] = record

    def request_data(self, group_id: str, name: str) -> Optional[RequestRecord]:
        """Record of what was sent for a request, None if it was not dispatched (yet)."""
        with self._request_data_lock.read():
            return self._requests.get(group_id, {}).get(name)

    def set_response_data(self, group_id: str, name: str, record: ResponseRecord) -> None:
        with self._response_data_lock.write():
            self._responses.setdefault(group_id, {})[name] = record

    def response_data(self, group_id: str, name: str) -> Optional[ResponseRecord]:
        """Record of a completed (or canceled) request, None until it settles."""
        with self._response_data_lock.read():
            return self._responses.get(group_id, {}).get(name)

    def get_data(self) -> Dict[str, Dict[str, Dict[str, object]]]:
        """
        Snapshot of every record in the run.

        Returns:
            ``{"requests": {group_id: {name: RequestRecord}},
            "responses": {group_id: {name: ResponseRecord}}}``
        """
        with self._request_data_lock.read():
            requests = {gid: dict(by_name) for gid, by_name in self._requests.items()}
        with self._response_data_lock.read():
            responses = {gid: dict(by_name) for gid, by_name in self._responses.items()}
        return {"requests": requests, "responses": responses}

    def to_dict(self) -> Dict[str, Dict[str, Dict[str, dict]]]:
        """JSON-friendly form of ``get_data``."""
        data = self.get_data()
        return {
            section: {
                gid: {name: record.to_dict() for name, record in by_name.items()}
                for gid, by_name in groups.items()
            }
            for section, groups in data.items()
        }


__all__ = ["ReadWriteLock", "ExecutionContext"]
