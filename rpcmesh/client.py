"""Client-side subscriptions, front-to-back messages and request ID bookkeeping."""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from typing import Any

from rpcmesh.errors import (
    MaxSlotsExceeded,
    ParseError,
    SubscriptionClosed,
    SubscriptionClosedError,
)
from rpcmesh.params import validate_subscription_id

_U64_MODULUS = 2**64


@dataclass(frozen=True)
class SubscriptionKind:
    """What a subscription listens to: a server subscription ID or a method name.

    Exactly one of the two fields is set.
    """

    subscription_id: int | str | None = None
    method: str | None = None

    def __post_init__(self) -> None:
        if (self.subscription_id is None) == (self.method is None):
            raise ValueError("exactly one of subscription_id and method must be given")
        if self.subscription_id is not None:
            validate_subscription_id(self.subscription_id)


@dataclass
class BatchMessage:
    """A serialized batch request and the future its results are delivered to."""

    raw: str
    ids: list[int]
    send_back: Any


@dataclass
class RequestMessage:
    """A serialized request; ``send_back`` receives the result when set."""

    raw: str
    id: int
    send_back: Any = None


@dataclass
class SubscriptionMessage:
    """A serialized subscribe request with the data needed to unsubscribe later."""

    raw: str
    subscribe_id: int
    unsubscribe_id: int
    unsubscribe_method: str
    send_back: Any


@dataclass
class RegisterNotificationMessage:
    """Ask the background task to route notifications of ``method`` to a new channel."""

    method: str
    send_back: Any


@dataclass(frozen=True)
class NotificationMessage:
    """A serialized notification to send to the server."""

    raw: str


@dataclass(frozen=True)
class UnregisterNotificationMessage:
    """Stop routing notifications of ``method``."""

    method: str


@dataclass(frozen=True)
class SubscriptionClosedMessage:
    """The subscription with this ID was closed on the client side."""

    subscription_id: int | str


def _closed_error(value: Any) -> SubscriptionClosedError | None:
    if isinstance(value, dict) and "subscription_closed" in value and "id" in value:
        try:
            return SubscriptionClosedError.from_dict(value)
        except ParseError:
            return None
    return None


class Subscription:
    """An active subscription on the client.

    ``to_back`` is a queue-like object with ``put_nowait`` used to tell the
    background task the subscription is gone; ``notifications`` is an async
    iterable of decoded JSON values.
    """

    def __init__(self, to_back: Any, notifications: Any, kind: SubscriptionKind) -> None:
        self._to_back = to_back
        self._notifications = notifications.__aiter__()
        self.kind = kind
        self._closed = False

    def __repr__(self) -> str:
        return f"Subscription(kind={self.kind!r}, closed={self._closed})"

    async def _receive(self) -> tuple[bool, Any]:
        try:
            value = await self._notifications.__anext__()
        except StopAsyncIteration:
            return False, None
        error = _closed_error(value)
        if error is not None:
            raise SubscriptionClosed(error)
        return True, value

    async def next(self) -> Any:
        """Return the next notification, or ``None`` once the stream has ended.

        Raises SubscriptionClosed when the server reports the subscription closed.
        """
        _, value = await self._receive()
        return value

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Any:
        found, value = await self._receive()
        if not found:
            raise StopAsyncIteration
        return value

    def close(self) -> None:
        """Tell the background task this subscription is no longer wanted.

        The message is dropped if the background queue is full; calling again does nothing.
        """
        if self._closed:
            return
        self._closed = True
        if self.kind.method is not None:
            message: Any = UnregisterNotificationMessage(self.kind.method)
        else:
            message = SubscriptionClosedMessage(self.kind.subscription_id)
        try:
            self._to_back.put_nowait(message)
        except asyncio.QueueFull:
            pass

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.close()


class RequestIdGuard:
    """Hands out request IDs while bounding the number of pending requests."""

    def __init__(self, limit: int) -> None:
        if limit < 0:
            raise ValueError("limit must not be negative")
        self._lock = threading.Lock()
        self._pending = 0
        self._limit = limit
        self._next_id = 0

    @property
    def max_concurrent_requests(self) -> int:
        return self._limit

    @property
    def current_pending(self) -> int:
        with self._lock:
            return self._pending

    def _take_ids(self, count: int) -> list[int]:
        with self._lock:
            if self._pending >= self._limit:
                raise MaxSlotsExceeded()
            self._pending += 1
            ids = [(self._next_id + offset) % _U64_MODULUS for offset in range(count)]
            self._next_id = (self._next_id + count) % _U64_MODULUS
            return ids

    def next_request_id(self) -> int:
        """Take a slot and return the next ID; raise MaxSlotsExceeded at the limit."""
        return self._take_ids(1)[0]

    def next_request_ids(self, count: int) -> list[int]:
        """Take one slot and return ``count`` consecutive IDs."""
        if count < 0:
            raise ValueError("count must not be negative")
        return self._take_ids(count)

    def reclaim_request_id(self) -> None:
        """Release one pending slot, saturating at zero."""
        with self._lock:
            if self._pending > 0:
                self._pending -= 1