"""
rcoil transports - collaborators that perform the actual calls.
"""
from .base import (
    HttpResponse,
    HttpTransport,
    InvocationResult,
    Invoker,
    OutgoingRequest,
    TransportConfig,
)
from .http import AiohttpTransport
from .invoker import LocalInvoker

__all__ = [
    "HttpResponse",
    "HttpTransport",
    "InvocationResult",
    "Invoker",
    "OutgoingRequest",
    "TransportConfig",
    "AiohttpTransport",
    "LocalInvoker",
]
