"""
Request descriptors for a coil.

A request is either an HTTP call or a function invocation. Both carry a name
that identifies them within their group and an optional input callback that
generates the request body from the execution context at run time.

Usage:
    from rcoil_core import request as R

    users = R.get("users", "http://localhost:3000/users")
    create = R.post("create", "http://localhost:3000/users").on_input(build_user)
    resize = R.invocation("resize", "images.resize", "dev")
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Union
from urllib.parse import urlparse

from .errors import ConfigurationError

DEFAULT_QUALIFIER = "$LATEST"

_REQUIRED_HTTP_FIELDS = ("host", "path", "protocol", "method")


class HttpVerb(str, Enum):
    """HTTP methods supported by the verb factories."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    HEAD = "HEAD"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"


class RequestKind(str, Enum):
    """Kind of backend a request targets."""
    HTTP = "http"
    INVOCATION = "invocation"


class _Cancel:
    """Sentinel returned by an input callback to skip sending the request."""

    def __repr__(self) -> str:
        return "CANCEL"

    def __bool__(self) -> bool:
        return False


CANCEL = _Cancel()


@dataclass(frozen=True)
class HttpTarget:
    """Where an HTTP request is sent. ``protocol`` keeps its colon (``http:``)."""
    host: str
    path: str
    protocol: str
    method: str
    port: Optional[int] = None

    @property
    def url(self) -> str:
        host = f"[{self.host}]" if ":" in self.host and not self.host.startswith("[") else self.host
        netloc = host if self.port is None else f"{host}:{self.port}"
        return f"{self.protocol}//{netloc}{self.path}"

    def to_dict(self) -> dict:
        return {
            "host": self.host,
            "path": self.path,
            "port": self.port,
            "protocol": self.protocol,
            "method": self.method,
        }


@dataclass(frozen=True)
class InvocationTarget:
    """A function invocation target and the version/alias to call."""
    function: str
    qualifier: str = DEFAULT_QUALIFIER

    @property
    def url(self) -> str:
        return f"{self.function}:{self.qualifier}"

    def to_dict(self) -> dict:
        return {"function": self.function, "qualifier": self.qualifier}


Target = Union[HttpTarget, InvocationTarget]
InputFunc = Callable[..., Any]


class Request:
    """
    A single call in a request group.

    Requests are immutable once built except for the input callback, which is
    attached once through ``on_input``.
    """

    def __init__(self, name: str, target: Target):
        if not isinstance(target, (HttpTarget, InvocationTarget)):
            raise ConfigurationError(f"Invalid request target for '{name}': {target!r}")
        self._name = name
        self._target = target
        self._input_func: Optional[InputFunc] = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def target(self) -> Target:
        return self._target

    @property
    def kind(self) -> RequestKind:
        if isinstance(self._target, HttpTarget):
            return RequestKind.HTTP
        return RequestKind.INVOCATION

    @property
    def input_func(self) -> Optional[InputFunc]:
        return self._input_func

    def on_input(self, func: InputFunc) -> "Request":
        """
        Attach the input callback and return the request for chaining.

        HTTP callbacks are called as ``func(context, outgoing_request)`` and may
        mutate the outgoing request (e.g. add headers). Invocation callbacks are
        called as ``func(context)``. The return value is the request body;
        returning ``CANCEL`` skips the request. Coroutine functions are awaited.
        """
        if self._input_func is not None:
            raise ConfigurationError(f"Input callback already set for request '{self._name}'")
        if not callable(func):
            raise ConfigurationError(f"Input callback for '{self._name}' is not callable")
        self._input_func = func
        return self

    def get_url(self) -> str:
        """Printable location of the target."""
        return self._target.url

    def to_dict(self) -> dict:
        return {
            "name": self._name,
            "kind": self.kind.value,
            "target": self._target.to_dict(),
        }

    def __repr__(self) -> str:
        return f"Request(name={self._name!r}, kind={self.kind.value}, url={self.get_url()!r})"


# ---------------------------------------------------------------------------
# Target parsing
# ---------------------------------------------------------------------------

def parse_http_target(verb: Union[HttpVerb, str], url_or_config: Union[str, Mapping[str, Any]]) -> HttpTarget:
    """
    Build an HttpTarget from a url string or a config mapping.

    A mapping must supply host, path, protocol and method; its method wins
    over ``verb``. A string must be an absolute url with scheme and host.
    """
    if isinstance(url_or_config, Mapping):
        missing = [f for f in _REQUIRED_HTTP_FIELDS if f not in url_or_config]
        if missing:
            raise ConfigurationError(
                f"Invalid request configuration. Missing parameters: {', '.join(missing)}"
            )
        port = url_or_config.get("port")
        try:
            port = int(port) if port not in (None, "") else None
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid request port: {port!r}") from e
        return HttpTarget(
            host=str(url_or_config["host"]),
            path=str(url_or_config["path"]),
            protocol=_normalize_protocol(str(url_or_config["protocol"])),
            method=str(url_or_config["method"]).upper(),
            port=port,
        )

    if not isinstance(url_or_config, str):
        raise ConfigurationError(f"Invalid request url: {url_or_config!r}")

    url = url_or_config
    if not url or any(ch.isspace() for ch in url):
        raise ConfigurationError(f"Invalid request url: {url}")

    parsed = urlparse(url)
    if not parsed.scheme or not parsed.hostname:
        raise ConfigurationError(f"Invalid request url: {url}")
    try:
        port = parsed.port
    except ValueError as e:
        raise ConfigurationError(f"Invalid request url: {url} ({e})") from e

    path = parsed.path or "/"
    if parsed.query:
        path += f"?{parsed.query}"
    if parsed.fragment:
        path += f"#{parsed.fragment}"

    method = verb.value if isinstance(verb, HttpVerb) else str(verb).upper()
    return HttpTarget(
        host=parsed.hostname,
        path=path,
        protocol=f"{parsed.scheme}:",
        method=method,
        port=port,
    )


def _normalize_protocol(protocol: str) -> str:
    return protocol if protocol.endswith(":") else f"{protocol}:"


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def http(name: str, verb: Union[HttpVerb, str], url_or_config: Union[str, Mapping[str, Any]]) -> Request:
    """Create an HTTP request for any verb."""
    return Request(name, parse_http_target(verb, url_or_config))


def get(name: str, url_or_config: Union[str, Mapping[str, Any]]) -> Request:
    return http(name, HttpVerb.GET, url_or_config)


def post(name: str, url_or_config: Union[str, Mapping[str, Any]]) -> Request:
    return http(name, HttpVerb.POST, url_or_config)


def put(name: str, url_or_config: Union[str, Mapping[str, Any]]) -> Request:
    return http(name, HttpVerb.PUT, url_or_config)


def patch(name: str, url_or_config: Union[str, Mapping[str, Any]]) -> Request:
    return http(name, HttpVerb.PATCH, url_or_config)


def head(name: str, url_or_config: Union[str, Mapping[str, Any]]) -> Request:
    return http(name, HttpVerb.HEAD, url_or_config)


def delete(name: str, url_or_config: Union[str, Mapping[str, Any]]) -> Request:
    return http(name, HttpVerb.DELETE, url_or_config)


def options(name: str, url_or_config: Union[str, Mapping[str, Any]]) -> Request:
    return http(name, HttpVerb.OPTIONS, url_or_config)


def invocation(name: str, function: str, qualifier: Optional[str] = None) -> Request:
    """Create a function invocation request. Empty qualifiers become ``$LATEST``."""
    if not function:
        raise ConfigurationError(f"Invocation request '{name}' needs a function identifier")
    return Request(name, InvocationTarget(function=function, qualifier=qualifier or DEFAULT_QUALIFIER))


__all__ = [
    "CANCEL",
    "DEFAULT_QUALIFIER",
    "HttpVerb",
    "RequestKind",
    "HttpTarget",
    "InvocationTarget",
    "Target",
    "InputFunc",
    "Request",
    "parse_http_target",
    "http",
    "get",
    "post",
    "put",
    "patch",
    "head",
    "delete",
    "options",
    "invocation",
]
