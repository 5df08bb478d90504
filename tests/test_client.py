import asyncio

import pytest

from rpcmesh.client import (
    RequestIdGuard,
    RequestMessage,
    Subscription,
    SubscriptionClosedMessage,
    SubscriptionKind,
    UnregisterNotificationMessage,
)
from rpcmesh.errors import MaxSlotsExceeded, SubscriptionClosed


async def _feed(*items):
    for item in items:
        yield item


def test_request_ids_start_at_zero_and_increase():
    guard = RequestIdGuard(10)
    first = guard.next_request_id()
    second = guard.next_request_id()
    assert first == 0
    assert second == first + 1
    assert guard.current_pending == 2


def test_limit_is_enforced_and_reclaim_frees_a_slot():
    guard = RequestIdGuard(2)
    guard.next_request_id()
    last = guard.next_request_id()
    with pytest.raises(MaxSlotsExceeded):
        guard.next_request_id()
    guard.reclaim_request_id()
    assert guard.next_request_id() == last + 1


def test_batch_ids_take_one_slot():
    guard = RequestIdGuard(1)
    ids = guard.next_request_ids(3)
    assert len(ids) == 3
    assert ids == list(range(ids[0], ids[0] + 3))
    assert guard.current_pending == 1
    with pytest.raises(MaxSlotsExceeded):
        guard.next_request_id()


def test_reclaim_saturates_at_zero():
    guard = RequestIdGuard(1)
    guard.reclaim_request_id()
    guard.reclaim_request_id()
    assert guard.current_pending == 0
    guard.next_request_id()
    with pytest.raises(MaxSlotsExceeded):
        guard.next_request_id()


def test_zero_limit_rejects_everything():
    guard = RequestIdGuard(0)
    with pytest.raises(MaxSlotsExceeded):
        guard.next_request_ids(2)


def test_negative_arguments_rejected():
    with pytest.raises(ValueError):
        RequestIdGuard(-1)
    with pytest.raises(ValueError):
        RequestIdGuard(1).next_request_ids(-1)


def test_subscription_kind_needs_exactly_one_field():
    with pytest.raises(ValueError):
        SubscriptionKind()
    with pytest.raises(ValueError):
        SubscriptionKind(subscription_id=1, method="foo")
    assert SubscriptionKind(method="foo").subscription_id is None


def test_request_message_defaults_to_no_send_back():
    message = RequestMessage('{"id":0}', 0)
    assert message.send_back is None


@pytest.mark.asyncio
async def test_next_returns_values_then_none():
    sub = Subscription(asyncio.Queue(), _feed("hello", 1337), SubscriptionKind(subscription_id=1))
    assert await sub.next() == "hello"
    assert await sub.next() == 1337
    assert await sub.next() is None


@pytest.mark.asyncio
async def test_async_iteration_keeps_null_notifications():
    sub = Subscription(asyncio.Queue(), _feed(1, None, 2), SubscriptionKind(subscription_id=1))
    assert [item async for item in sub] == [1, None, 2]


@pytest.mark.asyncio
async def test_closed_notification_raises():
    payload = {"subscription_closed": "Closed by the server", "id": 5}
    sub = Subscription(asyncio.Queue(), _feed(payload), SubscriptionKind(subscription_id=5))
    with pytest.raises(SubscriptionClosed) as info:
        await sub.next()
    assert info.value.error.close_reason == "Closed by the server"
    assert info.value.error.subscription_id == 5


@pytest.mark.asyncio
async def test_close_sends_subscription_closed():
    to_back = asyncio.Queue()
    sub = Subscription(to_back, _feed(), SubscriptionKind(subscription_id=7))
    sub.close()
    assert to_back.get_nowait() == SubscriptionClosedMessage(7)


@pytest.mark.asyncio
async def test_close_method_kind_unregisters():
    to_back = asyncio.Queue()
    sub = Subscription(to_back, _feed(), SubscriptionKind(method="foo"))
    sub.close()
    sub.close()
    assert to_back.get_nowait() == UnregisterNotificationMessage("foo")
    assert to_back.empty()


@pytest.mark.asyncio
async def test_close_with_full_queue_drops_message():
    to_back = asyncio.Queue(maxsize=1)
    to_back.put_nowait("busy")
    sub = Subscription(to_back, _feed(), SubscriptionKind(subscription_id=3))
    sub.close()
    assert to_back.qsize() == 1
    assert to_back.get_nowait() == "busy"


@pytest.mark.asyncio
async def test_async_context_manager_closes():
    to_back = asyncio.Queue()
    async with Subscription(to_back, _feed("x"), SubscriptionKind(subscription_id="abc")) as sub:
        assert await sub.next() == "x"
    assert to_back.get_nowait() == SubscriptionClosedMessage("abc")