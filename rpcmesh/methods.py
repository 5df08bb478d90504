"""Collections of callable JSON-RPC methods and helpers to run them without a server."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, replace
from typing import Any

from rpcmesh.codes import ErrorCode, ErrorObject
from rpcmesh.errors import (
    InternalChannelError,
    MaxResourcesReached,
    MethodAlreadyRegistered,
    ParseError,
    ResourceNameNotFoundForMethod,
    RpcException,
    UninitializedMethod,
)
from rpcmesh.messages import Notification, Request, Response, SubscriptionPayload
from rpcmesh.params import Params
from rpcmesh.resources import RESOURCE_COUNT, ResourceGuard, Resources
from rpcmesh.rpc_params import to_rpc_params
from rpcmesh.server_helpers import MethodSink, send_error

logger = logging.getLogger(__name__)

_U16_MAX = 0xFFFF
_U64_MAX = 2**64 - 1
DEFAULT_TIMEOUT = 60.0
"""Seconds a test subscription waits for a message before giving up."""


@dataclass(frozen=True)
class MethodCallback:
    """An RPC endpoint plus the resource units it claims while running.

    A synchronous callback is called as ``callback(id, params, sink, conn_id)``.
    An asynchronous one is called as ``callback(id, params, sink, claimed)`` and
    returns an awaitable; it is responsible for releasing ``claimed``.
    ``requested`` lists ``(label, units)`` pairs until resources are
    initialized, after which ``units`` holds one entry per resource kind.
    """

    callback: Callable[..., Any]
    is_async: bool = False
    requested: tuple[tuple[str, int], ...] = ()
    units: tuple[int, ...] | None = None

    @property
    def initialized(self) -> bool:
        """True once the resource table of this method has been set up."""
        return self.units is not None

    def claim(self, name: str, resources: Resources) -> ResourceGuard:
        """Claim the resources this method needs; raise if they are unavailable."""
        if self.units is None:
            raise UninitializedMethod(name)
        return resources.claim(self.units)

    def execute(
        self,
        sink: MethodSink,
        request: Request,
        conn_id: int,
        claimed: ResourceGuard | None = None,
    ) -> Awaitable[None] | None:
        """Run the method, writing its response to ``sink``.

        Synchronous methods run at once and ``None`` is returned; asynchronous
        methods return an awaitable that does the work.
        """
        params = Params(request.params)
        if not self.is_async:
            logger.debug(
                "Executing sync callback, params=%r, id=%r, conn_id=%r",
                params,
                request.id,
                conn_id,
            )
            try:
                self.callback(request.id, params, sink, conn_id)
            finally:
                if claimed is not None:
                    claimed.release()
            return None
        logger.debug(
            "Executing async callback, params=%r, id=%r, conn_id=%r",
            params,
            request.id,
            conn_id,
        )
        return self.callback(request.id, params, sink, claimed)


class MethodResourcesBuilder:
    """Declares how many units of named resources a freshly registered method uses."""

    def __init__(self, methods: Methods, name: str) -> None:
        self._methods = methods
        self._name = name

    def __repr__(self) -> str:
        return f"MethodResourcesBuilder(method={self._name!r})"

    def resource(self, label: str, units: int) -> MethodResourcesBuilder:
        """Add a resource requirement; raise MaxResourcesReached past the limit."""
        if isinstance(units, bool) or not isinstance(units, int):
            raise TypeError("units must be an integer")
        if not 0 <= units <= _U16_MAX:
            raise ValueError(f"units must be between 0 and {_U16_MAX}")
        callback = self._methods._callbacks[self._name]
        if len(callback.requested) >= RESOURCE_COUNT:
            raise MaxResourcesReached()
        self._methods._callbacks[self._name] = replace(
            callback, requested=callback.requested + ((label, units),), units=None
        )
        return self


class Methods:
    """A named collection of synchronous and asynchronous method callbacks."""

    def __init__(self) -> None:
        self._callbacks: dict[str, MethodCallback] = {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(methods={sorted(self._callbacks)!r})"

    def __contains__(self, name: object) -> bool:
        return name in self._callbacks

    def __len__(self) -> int:
        return len(self._callbacks)

    def _verify_method_name(self, name: str) -> None:
        if name in self._callbacks:
            raise MethodAlreadyRegistered(name)

    def _insert(self, name: str, callback: MethodCallback) -> None:
        self._callbacks[name] = callback

    def _verify_and_insert(self, name: str, callback: MethodCallback) -> MethodResourcesBuilder:
        self._verify_method_name(name)
        self._callbacks[name] = callback
        return MethodResourcesBuilder(self, name)

    def initialize_resources(self, resources: Resources) -> Methods:
        """Resolve each method's resource labels against ``resources``.

        Methods already initialized are left alone. A resource with capacity 0
        is unlimited, so methods claim 0 units of it. Returns ``self``.
        """
        updated: dict[str, MethodCallback] = {}
        for name, callback in self._callbacks.items():
            if callback.initialized:
                continue
            table = list(resources.defaults)
            for label, units in callback.requested:
                try:
                    idx = resources.labels.index(label)
                except ValueError:
                    raise ResourceNameNotFoundForMethod(label, name) from None
                table[idx] = 0 if resources.capacities[idx] == 0 else units
            updated[name] = replace(callback, units=tuple(table))
        self._callbacks.update(updated)
        return self

    def merge(self, other: Methods) -> None:
        """Add every method of ``other``; raise MethodAlreadyRegistered on a clash."""
        if not isinstance(other, Methods):
            raise TypeError("can only merge another Methods collection")
        for name in other._callbacks:
            self._verify_method_name(name)
        self._callbacks.update(other._callbacks)

    def method(self, method_name: str) -> MethodCallback | None:
        """Return the callback registered under ``method_name``, if any."""
        return self._callbacks.get(method_name)

    def execute(
        self, sink: MethodSink, request: Request, conn_id: int
    ) -> Awaitable[None] | None:
        """Run the requested method, or answer "Method not found"."""
        logger.debug("Executing request: %r", request)
        callback = self._callbacks.get(request.method)
        if callback is None:
            send_error(request.id, sink, ErrorObject.from_code(ErrorCode.METHOD_NOT_FOUND))
            return None
        return callback.execute(sink, request, conn_id, None)

    def execute_with_resources(
        self, sink: MethodSink, request: Request, conn_id: int, resources: Resources
    ) -> Awaitable[None] | None:
        """Run the requested method if its resources can be claimed.

        When they cannot, the client is told the server is busy.
        """
        logger.debug("Executing request with resources: %r", request)
        callback = self._callbacks.get(request.method)
        if callback is None:
            send_error(request.id, sink, ErrorObject.from_code(ErrorCode.METHOD_NOT_FOUND))
            return None
        try:
            guard = callback.claim(request.method, resources)
        except RpcException as exc:
            logger.error("Failed to lock resources: %s", exc)
            send_error(request.id, sink, ErrorObject.from_code(ErrorCode.SERVER_IS_BUSY))
            return None
        return callback.execute(sink, request, conn_id, guard)

    async def call(self, method: str, params: str | None = None) -> str | None:
        """Call ``method`` with raw JSON ``params`` and return the response text."""
        request = Request(0, method, params)
        sink = MethodSink()
        pending = self.execute(sink, request, 0)
        if pending is not None:
            await pending
        return sink.get_nowait()

    async def call_with(self, method: str, params: list[Any] | tuple[Any, ...]) -> str | None:
        """Call ``method`` with positional ``params``; unserializable params are dropped."""
        try:
            raw = to_rpc_params(params)
        except ParseError:
            raw = None
        return await self.call(method, raw)

    async def test_subscription(
        self, method: str, params: list[Any] | tuple[Any, ...]
    ) -> TestSubscription:
        """Subscribe through ``method`` and return a handle to read notifications from."""
        raw = to_rpc_params(params)
        logger.debug("Calling subscription method %r with params %s", method, raw)
        request = Request(0, method, raw)
        sink = MethodSink()
        pending = self.execute(sink, request, 0)
        if pending is not None:
            await pending
        response = sink.get_nowait()
        if response is None:
            raise RuntimeError("Could not establish subscription.")
        try:
            sub_id = Response.from_json(response).result
        except ParseError as exc:
            raise ValueError(f"Could not deserialize subscription response {response!r}") from exc
        if isinstance(sub_id, bool) or not isinstance(sub_id, int) or not 0 <= sub_id <= _U64_MAX:
            raise ValueError(f"Could not deserialize subscription response {response!r}")
        return TestSubscription(sink, sub_id)

    def method_names(self) -> Iterator[str]:
        """Iterate over the names of all registered methods."""
        return iter(list(self._callbacks))


class TestSubscription:
    """A subscription set up without a server, for use in tests."""

    __test__ = False

    def __init__(self, sink: MethodSink, sub_id: int, timeout: float | None = DEFAULT_TIMEOUT) -> None:
        self._sink = sink
        self._sub_id = sub_id
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"TestSubscription(subscription_id={self._sub_id})"

    def close(self) -> None:
        """Close the channel; further sends from the server side fail."""
        self._sink.close()

    def subscription_id(self) -> int:
        """Return the subscription ID the server assigned."""
        return self._sub_id

    async def next(self) -> tuple[Any, int | str]:
        """Wait for the next notification and return its result and subscription ID."""
        raw = await asyncio.to_thread(self._sink.get, self.timeout)
        if raw is None:
            raise InternalChannelError("subscription channel closed")
        notification = Notification.from_json(raw)
        payload = SubscriptionPayload.from_dict(notification.params)
        return payload.result, payload.subscription

    def __enter__(self) -> TestSubscription:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()