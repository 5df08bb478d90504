"""Helpers for testing JSON-RPC clients and servers: canned messages and a canned HTTP server."""

from __future__ import annotations

import asyncio
import http.client
import json
import threading
import urllib.parse
from dataclasses import dataclass
from datetime import timedelta
from email.message import Message
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from rpcmesh.errors import TransportError
from rpcmesh.params import validate_id

PARSE_ERROR = "Parse error"
INTERNAL_ERROR = "Internal error"
INVALID_PARAMS = "Invalid params"
INVALID_REQUEST = "Invalid request"
METHOD_NOT_FOUND = "Method not found"

SUBSCRIPTION_ID = "D3wwzU6vvoUUYehv4qoFzq42DZnLoAETeFzeyk8swH4o"
"""The subscription ID used by the canned subscription messages."""

DEFAULT_TIMEOUT_SECONDS = 60.0
"""A future still pending after this long is almost certainly stuck."""


def _addr_text(addr: Any) -> str:
    if isinstance(addr, str):
        return addr
    host, port = addr[0], addr[1]
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def _json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, sort_keys=True)


def _id(id: Any) -> str:
    return _json(validate_id(id))


def to_ws_uri_string(addr: Any) -> str:
    """Turn a ``(host, port)`` address into a WebSocket URI."""
    return f"ws://{_addr_text(addr)}"


def to_http_uri(addr: Any) -> str:
    """Turn a ``(host, port)`` address into an HTTP URI with path ``/``."""
    return f"http://{_addr_text(addr)}/"


def ok_response(result: Any, id: Any) -> str:
    return f'{{"jsonrpc":"2.0","result":{_json(result)},"id":{_id(id)}}}'


def _error_response(code: int, message: str, id: Any) -> str:
    return (
        f'{{"jsonrpc":"2.0","error":{{"code":{code},"message":"{message}"}},'
        f'"id":{_id(id)}}}'
    )


def method_not_found(id: Any) -> str:
    return _error_response(-32601, "Method not found", id)


def parse_error(id: Any) -> str:
    return _error_response(-32700, "Parse error", id)


def oversized_request() -> str:
    return '{"jsonrpc":"2.0","error":{"code":-32701,"message":"Request is too big"},"id":null}'


def invalid_request(id: Any) -> str:
    return _error_response(-32600, "Invalid request", id)


def invalid_params(id: Any) -> str:
    return _error_response(-32602, "Invalid params", id)


def call_execution_failed(msg: str, id: Any) -> str:
    """Error response for a failed call; ``msg`` is inserted as is."""
    return _error_response(-32000, msg, id)


def internal_error(id: Any) -> str:
    return _error_response(-32603, "Internal error", id)


def server_error(id: Any) -> str:
    return _error_response(-32000, "Server error", id)


def server_subscription_id_response(id: Any) -> str:
    """Response to a subscribe call carrying the fixed subscription ID.

    Only one subscription can be told apart, since the ID never changes.
    """
    return f'{{"jsonrpc":"2.0","result":"{SUBSCRIPTION_ID}","id":{_id(id)}}}'


def server_subscription_response(result: Any) -> str:
    """Notification on the fixed subscription carrying ``result``."""
    return (
        f'{{"jsonrpc":"2.0","method":"bar","params":{{"subscription":"{SUBSCRIPTION_ID}",'
        f'"result":{_json(result)}}}}}'
    )


def server_notification(method: str, params: Any) -> str:
    """A notification sent by the server."""
    return f'{{"jsonrpc":"2.0","method":"{method}", "params":{_json(params)} }}'


@dataclass
class HttpResponse:
    """Status, headers and body text of an HTTP response."""

    status: int
    header: Message
    body: str


def _post(body: Any, uri: str) -> HttpResponse:
    parts = urllib.parse.urlsplit(uri)
    if parts.scheme != "http" or not parts.hostname:
        raise TransportError(f"unsupported URI: {uri!r}")
    payload = body.encode("utf-8") if isinstance(body, str) else bytes(body)
    path = parts.path or "/"
    if parts.query:
        path = f"{path}?{parts.query}"
    try:
        conn = http.client.HTTPConnection(
            parts.hostname, parts.port or 80, timeout=DEFAULT_TIMEOUT_SECONDS
        )
    except ValueError as exc:
        raise TransportError(exc) from exc
    try:
        conn.request("POST", path, body=payload, headers={"Content-Type": "application/json"})
        response = conn.getresponse()
        data = response.read()
        return HttpResponse(response.status, response.headers, data.decode("utf-8"))
    except (OSError, http.client.HTTPException, UnicodeError) as exc:
        if isinstance(exc, UnicodeDecodeError):
            raise
        raise TransportError(exc) from exc
    finally:
        conn.close()


async def http_request(body: Any, uri: str) -> HttpResponse:
    """POST ``body`` as JSON to ``uri``; raise TransportError if the exchange fails."""
    return await asyncio.to_thread(_post, body, uri)


class _HardcodedHandler(BaseHTTPRequestHandler):
    def _reply(self) -> None:
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = 0
        if length > 0:
            self.rfile.read(length)
        body = self.server.hardcoded_response  # type: ignore[attr-defined]
        self.send_response(200)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = _reply

    def log_message(self, format: str, *args: Any) -> None:
        pass


class _HardcodedServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], response: str) -> None:
        self.hardcoded_response = response.encode("utf-8")
        super().__init__(address, _HardcodedHandler)


class HardcodedHttpServer:
    """HTTP server on localhost that answers every request with the same body."""

    def __init__(self, response: str) -> None:
        self._server = _HardcodedServer(("127.0.0.1", 0), response)
        self.local_addr: tuple[str, int] = tuple(self._server.server_address[:2])  # type: ignore[assignment]
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        self._closed = False

    def __repr__(self) -> str:
        return f"HardcodedHttpServer(local_addr={self.local_addr!r}, closed={self._closed})"

    def close(self) -> None:
        """Stop serving and release the socket; further calls do nothing."""
        if self._closed:
            return
        self._closed = True
        self._server.shutdown()
        self._server.server_close()
        self._thread.join()

    def __enter__(self) -> HardcodedHttpServer:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


async def http_server_with_hardcoded_response(response: str) -> HardcodedHttpServer:
    """Start an HTTP server answering every request with ``response``."""
    return HardcodedHttpServer(response)


async def with_timeout(awaitable: Any, timeout: float | timedelta) -> Any:
    """Await ``awaitable``; raise asyncio.TimeoutError if it takes longer than ``timeout``."""
    seconds = timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)
    return await asyncio.wait_for(awaitable, seconds)


async def with_default_timeout(awaitable: Any) -> Any:
    """Await ``awaitable`` with the default timeout."""
    return await with_timeout(awaitable, DEFAULT_TIMEOUT_SECONDS)