"""Helpers a server uses to send JSON-RPC responses and errors to a client."""

from __future__ import annotations

import json
import logging
import threading
from collections import deque
from collections.abc import Iterable, Iterator
from typing import Any

from rpcmesh.codes import (
    CALL_EXECUTION_FAILED_CODE,
    UNKNOWN_ERROR_CODE,
    ErrorCode,
    ErrorObject,
)
from rpcmesh.errors import (
    CallFailed,
    CustomCallError,
    InternalChannelError,
    InvalidParams,
    ParseError,
)
from rpcmesh.messages import Response, RpcError, parse_invalid_request_id

logger = logging.getLogger(__name__)


class MethodSink:
    """Unbounded, thread-safe channel carrying serialized responses back to a client."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._items: deque[str] = deque()
        self._closed = False

    def __repr__(self) -> str:
        return f"MethodSink(pending={len(self._items)}, closed={self._closed})"

    def send(self, message: str) -> None:
        """Queue a message; raise InternalChannelError if the channel is closed."""
        with self._cond:
            if self._closed:
                raise InternalChannelError("send failed because the channel is closed")
            self._items.append(message)
            self._cond.notify_all()

    def close(self) -> None:
        """Close the channel; messages already queued can still be read."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def is_closed(self) -> bool:
        """Return True once the channel has been closed."""
        with self._cond:
            return self._closed

    def get(self, timeout: float | None = None) -> str | None:
        """Wait for the next message; return ``None`` once closed and drained.

        Raises TimeoutError if nothing arrives within ``timeout`` seconds.
        """
        with self._cond:
            ready = self._cond.wait_for(lambda: self._items or self._closed, timeout)
            if self._items:
                return self._items.popleft()
            if not ready:
                raise TimeoutError("no message received in time")
            return None

    def get_nowait(self) -> str | None:
        """Return the next queued message, or ``None`` if there is none."""
        with self._cond:
            return self._items.popleft() if self._items else None

    def __iter__(self) -> Iterator[str]:
        while (message := self.get()) is not None:
            yield message


def _deliver(sink: MethodSink, message: str, what: str) -> None:
    try:
        sink.send(message)
    except InternalChannelError as exc:
        logger.error("Could not send %s to the client: %s", what, exc)


def send_response(id: Any, sink: MethodSink, result: Any) -> None:
    """Send a successful response; an unserializable result becomes an internal error."""
    try:
        message = Response(result, id).to_json()
    except ParseError as exc:
        logger.error("Error serializing response: %s", exc)
        send_error(id, sink, ErrorObject.from_code(ErrorCode.INTERNAL_ERROR))
        return
    _deliver(sink, message, "response")


def send_error(id: Any, sink: MethodSink, error: ErrorObject) -> None:
    """Send a failed response carrying ``error``."""
    try:
        message = RpcError(error, id).to_json()
    except ParseError as exc:
        logger.error("Error serializing error message: %s", exc)
        return
    _deliver(sink, message, "error response")


def _raw_data(raw: Any) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return raw


def send_call_error(id: Any, sink: MethodSink, err: BaseException) -> None:
    """Send an exception raised by a method as a JSON-RPC error."""
    data = None
    if isinstance(err, InvalidParams):
        code, message = ErrorCode.INVALID_PARAMS, err.detail
    elif isinstance(err, CallFailed):
        code, message = ErrorCode.from_code(CALL_EXECUTION_FAILED_CODE), err.detail
    elif isinstance(err, CustomCallError):
        code, message, data = ErrorCode.from_code(err.code), err.message, _raw_data(err.data)
    else:
        code, message = ErrorCode.from_code(UNKNOWN_ERROR_CODE), str(err)
    send_error(id, sink, ErrorObject(code, message, data))


def prepare_error(data: Any) -> tuple[Any, ErrorCode]:
    """Return the request ID and error code for a request that could not be handled.

    Input with a readable ``id`` is an invalid request; anything else is a parse error.
    """
    try:
        return parse_invalid_request_id(data), ErrorCode.INVALID_REQUEST
    except ParseError:
        return None, ErrorCode.PARSE_ERROR


def collect_batch_response(responses: Iterable[str]) -> str:
    """Join every response of a batch into one JSON array.

    ``responses`` may be a MethodSink, read until it is closed.
    """
    buf = "[" + "".join(f"{response}," for response in responses)
    return buf[:-1] + "]"