"""
aiohttp transport - the default HTTP collaborator.

Non-2xx statuses are returned as data. Connection failures and timeouts are
returned as an ``HttpResponse`` with ``error`` set instead of being raised.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from .base import HttpResponse, OutgoingRequest, TransportConfig

logger = logging.getLogger(__name__)


class AiohttpTransport:
    """
    Send HTTP requests with aiohttp.

    A session passed in is reused and left open; otherwise a short-lived
    session is opened per request.
    """

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.config = config or TransportConfig()
        self._session = session

    def _request_kwargs(self, outgoing: OutgoingRequest, body: Any) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "headers": outgoing.headers,
            "timeout": aiohttp.ClientTimeout(total=self.config.timeout),
        }
        if not self.config.verify_ssl:
            kwargs["ssl"] = False

        if body is not None:
            if isinstance(body, (dict, list)):
                kwargs["json"] = body
            else:
                kwargs["data"] = body
        return kwargs

    async def send(self, outgoing: OutgoingRequest, body: Any) -> HttpResponse:
        """Perform the exchange and project the response."""
        kwargs = self._request_kwargs(outgoing, body)
        try:
            if self._session is not None:
                return await self._send(self._session, outgoing, kwargs)
            async with aiohttp.ClientSession() as session:
                return await self._send(session, outgoing, kwargs)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"{outgoing.method} {outgoing.url} failed: {type(e).__name__}: {e}")
            return HttpResponse(
                method=outgoing.method,
                error=f"{type(e).__name__}: {e}" if str(e) else type(e).__name__,
            )

    async def _send(
        self,
        session: aiohttp.ClientSession,
        outgoing: OutgoingRequest,
        kwargs: Dict[str, Any],
    ) -> HttpResponse:
        async with session.request(outgoing.method, outgoing.url, **kwargs) as response:
            raw = await response.read()
            text = raw.decode(response.charset or "utf-8", errors="replace")
            return HttpResponse(
                method=outgoing.method,
                headers=dict(response.headers),
                status_code=response.status,
                status_message=response.reason,
                http_version=f"{response.version.major}.{response.version.minor}",
                body=text,
            )


__all__ = ["AiohttpTransport"]
