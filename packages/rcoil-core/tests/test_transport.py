"""Tests for the aiohttp transport and the local invoker."""
import asyncio

import pytest
from aiohttp import test_utils, web

from rcoil_core import request as R
from rcoil_core.orchestrator.director import run_coil
from rcoil_core.orchestrator.tree import Coil
from rcoil_core.request import InvocationTarget
from rcoil_core.transport import AiohttpTransport, LocalInvoker, OutgoingRequest, TransportConfig


async def echo(request: web.Request) -> web.Response:
    body = await request.text()
    return web.json_response({
        "method": request.method,
        "custom": request.headers.get("X-Custom"),
        "content_type": request.headers.get("Content-Type"),
        "body": body,
    })


async def missing(request: web.Request) -> web.Response:
    return web.Response(status=404, text="nope")


async def slow(request: web.Request) -> web.Response:
    await asyncio.sleep(0.5)
    return web.Response(text="late")


def make_app() -> web.Application:
    app = web.Application()
    app.router.add_route("*", "/echo", echo)
    app.router.add_get("/missing", missing)
    app.router.add_get("/slow", slow)
    return app


def outgoing_for(verb, url, headers=None):
    return OutgoingRequest(R.http("test", verb, url).target, headers)


# ---------------------------------------------------------------------------
# Outgoing request handle
# ---------------------------------------------------------------------------

class TestOutgoingRequest:
    def test_headers_are_case_insensitive(self):
        outgoing = outgoing_for("GET", "http://api.com/test", {"Accept": "text/plain"})
        outgoing.set_header("accept", "application/json")
        assert outgoing.headers == {"accept": "application/json"}
        assert outgoing.get_header("ACCEPT") == "application/json"

        outgoing.remove_header("Accept")
        assert outgoing.get_header("accept") is None

    def test_headers_property_is_a_copy(self):
        outgoing = outgoing_for("GET", "http://api.com/test")
        outgoing.headers["X-Custom"] = "lost"
        assert outgoing.get_header("X-Custom") is None

    def test_transport_config_from_dict(self):
        config = TransportConfig.from_dict({
            "timeout": "5",
            "default_headers": {"User-Agent": "rcoil", "X-Retry": 1},
            "verify_ssl": False,
        })
        assert config.timeout == 5.0
        assert config.default_headers == {"User-Agent": "rcoil", "X-Retry": "1"}
        assert config.verify_ssl is False
        assert TransportConfig.from_dict(None) == TransportConfig()


# ---------------------------------------------------------------------------
# aiohttp transport against a local server
# ---------------------------------------------------------------------------

class TestAiohttpTransport:
    @pytest.mark.asyncio
    async def test_json_body_and_headers(self):
        async with test_utils.TestServer(make_app()) as server:
            url = str(server.make_url("/echo"))
            outgoing = outgoing_for("POST", url)
            outgoing.set_header("X-Custom", "custom")

            response = await AiohttpTransport().send(outgoing, {"id": 1})

        assert response.error is None
        assert response.status_code == 200
        assert response.status_message == "OK"
        assert response.http_version == "1.1"
        assert response.method == "POST"
        assert '"custom": "custom"' in response.body
        assert '"content_type": "application/json"' in response.body
        assert '{\\"id\\": 1}' in response.body

    @pytest.mark.asyncio
    async def test_text_body(self):
        async with test_utils.TestServer(make_app()) as server:
            response = await AiohttpTransport().send(
                outgoing_for("PUT", str(server.make_url("/echo"))), "plain text",
            )
        assert '"body": "plain text"' in response.body
        assert '"method": "PUT"' in response.body

    @pytest.mark.asyncio
    async def test_non_2xx_is_data(self):
        async with test_utils.TestServer(make_app()) as server:
            response = await AiohttpTransport().send(
                outgoing_for("GET", str(server.make_url("/missing"))), None,
            )
        assert response.status_code == 404
        assert response.body == "nope"
        assert response.error is None

    @pytest.mark.asyncio
    async def test_timeout_is_captured(self):
        transport = AiohttpTransport(TransportConfig(timeout=0.05))
        async with test_utils.TestServer(make_app()) as server:
            response = await transport.send(outgoing_for("GET", str(server.make_url("/slow"))), None)
        assert response.status_code is None
        assert "Timeout" in response.error

    @pytest.mark.asyncio
    async def test_connection_error_is_captured(self):
        server = test_utils.TestServer(make_app())
        await server.start_server()
        url = str(server.make_url("/echo"))
        await server.close()

        response = await AiohttpTransport().send(outgoing_for("GET", url), None)

        assert response.status_code is None
        assert response.error

    @pytest.mark.asyncio
    async def test_director_with_real_server(self):
        async with test_utils.TestServer(make_app()) as server:
            url = str(server.make_url("/echo"))

            def build(context, outgoing):
                outgoing.set_header("X-Custom", "from-callback")
                return {"hello": "world"}

            coil = Coil().start_group("g").add_request(R.post("echo", url).on_input(build))
            context = await run_coil(coil)

        response = context.response_data("g", "echo")
        assert response.ok
        assert '"custom": "from-callback"' in response.body
        assert response.headers["Content-Type"].startswith("application/json")


# ---------------------------------------------------------------------------
# Local invoker
# ---------------------------------------------------------------------------

def double(body):
    return body * 2


class TestLocalInvoker:
    @pytest.mark.asyncio
    async def test_registered_qualifiers(self):
        invoker = (
            LocalInvoker()
            .register("calc", lambda body: "latest")
            .register("calc", lambda body: "dev", qualifier="dev")
        )
        latest = await invoker.invoke(InvocationTarget("calc"), None)
        dev = await invoker.invoke(InvocationTarget("calc", "dev"), None)
        assert latest.result == "latest"
        assert dev.result == "dev"

    @pytest.mark.asyncio
    async def test_dotted_path_fallback(self):
        result = await LocalInvoker().invoke(InvocationTarget(f"{__name__}.double"), 21)
        assert result.result == 42
        assert result.error is None

    @pytest.mark.asyncio
    async def test_qualified_target_requires_registration(self):
        result = await LocalInvoker().invoke(InvocationTarget(f"{__name__}.double", "dev"), 21)
        assert result.result is None
        assert "Function not found" in result.error

    @pytest.mark.asyncio
    async def test_unknown_path(self):
        result = await LocalInvoker().invoke(InvocationTarget("no_such_module.fn"), None)
        assert "LookupError" in result.error

    @pytest.mark.asyncio
    async def test_async_function_is_awaited(self):
        async def fetch(body):
            await asyncio.sleep(0)
            return {"got": body}

        invoker = LocalInvoker({"fetch": fetch})
        result = await invoker.invoke(InvocationTarget("fetch"), "x")
        assert result.result == {"got": "x"}

    @pytest.mark.asyncio
    async def test_function_error_is_captured(self):
        def broken(body):
            raise KeyError("missing")

        result = await LocalInvoker({"broken": broken}).invoke(InvocationTarget("broken"), None)
        assert result.error == "KeyError: 'missing'"
