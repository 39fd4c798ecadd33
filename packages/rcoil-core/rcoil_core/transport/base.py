"""
Transport contracts.

The orchestrator never talks to the network itself. HTTP requests go through
an ``HttpTransport`` and function invocations through an ``Invoker``; both
resolve exactly once with a result object and report failures as data.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from ..request import HttpTarget, InvocationTarget


@dataclass
class TransportConfig:
    """
    Settings shared by the default transports.

    Attributes:
        timeout: Total timeout per HTTP exchange in seconds (None = no limit)
        default_headers: Headers pre-populated on every outgoing HTTP request
        verify_ssl: Whether HTTPS certificates are verified
    """
    timeout: Optional[float] = 30.0
    default_headers: Dict[str, str] = field(default_factory=dict)
    verify_ssl: bool = True

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TransportConfig":
        data = data or {}
        timeout = data.get("timeout", 30.0)
        return cls(
            timeout=float(timeout) if timeout is not None else None,
            default_headers={str(k): str(v) for k, v in (data.get("default_headers") or {}).items()},
            verify_ssl=bool(data.get("verify_ssl", True)),
        )


class OutgoingRequest:
    """
    Mutable handle on an HTTP request before it is sent.

    Input callbacks receive it to add headers or adjust the method/url.
    Header names are matched case-insensitively.
    """

    def __init__(self, target: HttpTarget, headers: Optional[Dict[str, str]] = None):
        self.target = target
        self.method = target.method
        self.url = target.url
        self._headers: Dict[str, str] = {}
        for name, value in (headers or {}).items():
            self.set_header(name, value)

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    def set_header(self, name: str, value: Any) -> None:
        self.remove_header(name)
        self._headers[name] = str(value)

    def get_header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self._headers.items():
            if key.lower() == lowered:
                return value
        return None

    def remove_header(self, name: str) -> None:
        lowered = name.lower()
        for key in [k for k in self._headers if k.lower() == lowered]:
            del self._headers[key]

    def __repr__(self) -> str:
        return f"OutgoingRequest({self.method} {self.url})"


@dataclass
class HttpResponse:
    """Result of an HTTP exchange. ``error`` is set when no response arrived."""
    method: str
    headers: Dict[str, str] = field(default_factory=dict)
    status_code: Optional[int] = None
    status_message: Optional[str] = None
    http_version: Optional[str] = None
    body: Any = None
    error: Optional[str] = None


@dataclass
class InvocationResult:
    """Result of a function invocation: either ``result`` or ``error``."""
    result: Any = None
    error: Optional[str] = None


@runtime_checkable
class HttpTransport(Protocol):
    """Sends an outgoing HTTP request with the generated body."""

    async def send(self, outgoing: OutgoingRequest, body: Any) -> HttpResponse:
        ...


@runtime_checkable
class Invoker(Protocol):
    """Invokes a function target with the generated body."""

    async def invoke(self, target: InvocationTarget, body: Any) -> InvocationResult:
        ...


__all__ = [
    "TransportConfig",
    "OutgoingRequest",
    "HttpResponse",
    "InvocationResult",
    "HttpTransport",
    "Invoker",
]
