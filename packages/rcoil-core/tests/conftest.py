"""Shared fakes for orchestrator tests."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import pytest

from rcoil_core.transport import HttpResponse, LocalInvoker, OutgoingRequest


@dataclass
class SentRequest:
    method: str
    url: str
    headers: Dict[str, str]
    body: Any


@dataclass
class FakeHttpTransport:
    """
    In-memory HTTP collaborator.

    ``responses`` maps a url to ``(status_code, body)``; ``delays`` maps a url
    to seconds to sleep before answering; urls in ``failures`` raise.
    """
    responses: Dict[str, Tuple[int, Any]] = field(default_factory=dict)
    delays: Dict[str, float] = field(default_factory=dict)
    failures: Dict[str, Exception] = field(default_factory=dict)
    calls: List[SentRequest] = field(default_factory=list)

    async def send(self, outgoing: OutgoingRequest, body: Any) -> HttpResponse:
        self.calls.append(SentRequest(outgoing.method, outgoing.url, outgoing.headers, body))
        delay = self.delays.get(outgoing.url, 0)
        if delay:
            await asyncio.sleep(delay)
        if outgoing.url in self.failures:
            raise self.failures[outgoing.url]
        status, payload = self.responses.get(outgoing.url, (200, "{}"))
        return HttpResponse(
            method=outgoing.method,
            headers={"Content-Type": "application/json"},
            status_code=status,
            status_message="OK" if status < 400 else "Error",
            http_version="1.1",
            body=payload,
        )

    def urls(self) -> List[str]:
        return [c.url for c in self.calls]


class RecordingLogger:
    """Logger capability that keeps every message by level."""

    def __init__(self):
        self.messages: Dict[str, List[str]] = {"info": [], "debug": [], "warning": [], "error": []}

    def info(self, message):
        self.messages["info"].append(message)

    def debug(self, message):
        self.messages["debug"].append(message)

    def warning(self, message):
        self.messages["warning"].append(message)

    def error(self, message):
        self.messages["error"].append(message)


@pytest.fixture(autouse=True)
def reset_rcoil_logger():
    """Undo configure_logging so caplog keeps seeing rcoil records."""
    yield
    logger = logging.getLogger("rcoil_core")
    for handler in logger.handlers[:]:
        if getattr(handler, "_rcoil_console", False):
            logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def fake_http():
    return FakeHttpTransport()


@pytest.fixture
def invoker():
    return LocalInvoker()


@pytest.fixture
def recording_logger():
    return RecordingLogger()
