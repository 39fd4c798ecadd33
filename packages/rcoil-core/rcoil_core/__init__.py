"""
rcoil Core Library.

Runs trees of remote calls:
- Coil builder for request group trees
- ExecutionDirector for concurrent, dependency-ordered execution
- ExecutionContext shared by every request of a run
- Transports for HTTP (aiohttp) and local function invocation
- Trace recording of runs as JSONL
"""

__version__ = "0.1.0"

from . import request
from .errors import ConfigurationError, RcoilError
from .request import CANCEL, Request
from .orchestrator import (
    Coil,
    CoilEvent,
    ExecutionContext,
    ExecutionDirector,
    RequestGroup,
    RequestRecord,
    ResponseRecord,
    load_coil,
    run_coil,
)
from .transport import AiohttpTransport, LocalInvoker, OutgoingRequest, TransportConfig

__all__ = [
    "__version__",
    "request",
    "ConfigurationError",
    "RcoilError",
    "CANCEL",
    "Request",
    "Coil",
    "CoilEvent",
    "ExecutionContext",
    "ExecutionDirector",
    "RequestGroup",
    "RequestRecord",
    "ResponseRecord",
    "load_coil",
    "run_coil",
    "AiohttpTransport",
    "LocalInvoker",
    "OutgoingRequest",
    "TransportConfig",
]
