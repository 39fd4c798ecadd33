"""Request and response records stored in the execution context."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..request import Request, RequestKind


@dataclass
class RequestRecord:
    """
    What was sent, written at dispatch time.

    ``headers``, ``url`` and ``method`` are only set for HTTP requests and
    reflect the outgoing request after the input callback ran.
    """
    request: Request
    body: Any = None
    start_time: float = 0.0
    headers: Optional[Dict[str, str]] = None
    url: Optional[str] = None
    method: Optional[str] = None

    @property
    def kind(self) -> RequestKind:
        return self.request.kind

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "request": self.request.to_dict(),
            "body": self.body,
            "start_time": self.start_time,
        }
        if self.kind == RequestKind.HTTP:
            data.update(headers=self.headers, url=self.url, method=self.method)
        return data


@dataclass
class ResponseRecord:
    """
    What came back, written at completion time.

    HTTP responses fill the header/status fields. ``error`` holds an
    invocation error, or the reason an HTTP exchange could not complete.
    Canceled requests only carry ``end_time`` and ``is_canceled``.
    """
    kind: RequestKind
    end_time: float = 0.0
    body: Any = None
    is_canceled: bool = False
    headers: Dict[str, str] = field(default_factory=dict)
    status_code: Optional[int] = None
    status_message: Optional[str] = None
    http_version: Optional[str] = None
    method: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        if self.is_canceled or self.error is not None:
            return False
        if self.kind == RequestKind.HTTP:
            return self.status_code is not None and 200 <= self.status_code < 300
        return True

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "end_time": self.end_time,
            "body": self.body,
            "is_canceled": self.is_canceled,
            "error": self.error,
        }
        if self.kind == RequestKind.HTTP:
            data.update(
                headers=self.headers,
                status_code=self.status_code,
                status_message=self.status_message,
                http_version=self.http_version,
                method=self.method,
            )
        return data


__all__ = ["RequestRecord", "ResponseRecord"]
