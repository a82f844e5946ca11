"""Room subscription state machine tests.

Learn: The fake socket plays the server. `auto_connect=False` keeps the
transport from firing its connect event, which is how we test teardown
of a room whose join handshake never completed.
"""

import pytest
from structlog.testing import capture_logs

from fake_socket import FakeSocketFactory
from vitrine.realtime.room import ROOMS, RoomState, RoomSubscription

URL = "http://socket.test"


def _room(factory, resource_id="ORD-1", name="order"):
    received = []
    room = RoomSubscription(name, resource_id, URL, received.append, client_factory=factory)
    return room, received


@pytest.mark.asyncio
async def test_open_without_resource_id_is_noop():
    factory = FakeSocketFactory()
    room, _ = _room(factory, resource_id=None)

    await room.open()

    assert factory.sockets == []
    assert room.state == RoomState.DISCONNECTED


@pytest.mark.asyncio
async def test_connect_joins_room_over_websocket():
    factory = FakeSocketFactory()
    room, _ = _room(factory)

    await room.open()

    sock = factory.last
    assert sock.url == URL
    assert sock.transports == ["websocket"]
    assert sock.emitted == [("join_order", "ORD-1")]
    assert room.state == RoomState.SUBSCRIBED


@pytest.mark.asyncio
async def test_reconnect_rejoins():
    factory = FakeSocketFactory()
    room, _ = _room(factory)
    await room.open()

    await factory.last.trigger("disconnect", "transport close")
    assert room.state == RoomState.CONNECTING
    await factory.last.trigger("connect")

    assert factory.last.emitted == [("join_order", "ORD-1"), ("join_order", "ORD-1")]
    assert room.state == RoomState.SUBSCRIBED


@pytest.mark.asyncio
async def test_connect_failure_stays_disconnected():
    factory = FakeSocketFactory(fail=True)
    room, _ = _room(factory)

    with capture_logs() as logs:
        await room.open()

    assert room.state == RoomState.DISCONNECTED
    assert any(log["event"] == "room.connect_failed" for log in logs)


@pytest.mark.asyncio
async def test_reopen_after_failed_connect_drops_old_client():
    factory = FakeSocketFactory(fail=True)
    room, received = _room(factory)
    await room.open()

    factory.fail = False
    await room.open()

    stale, fresh = factory.sockets
    assert stale.disconnect_calls == 1
    assert stale.handlers["/"] == {}
    assert room.state == RoomState.SUBSCRIBED
    assert fresh.emitted == [("join_order", "ORD-1")]

    await stale.push("order:payment_update", {"orderId": "ORD-1", "paymentStatus": "paid"})
    assert received == []


@pytest.mark.asyncio
async def test_update_for_joined_resource_is_delivered():
    factory = FakeSocketFactory()
    room, received = _room(factory)
    await room.open()

    await factory.last.push("order:payment_update", {"orderId": "ORD-1", "paymentStatus": "paid"})

    assert [e.payment_status for e in received] == ["paid"]


@pytest.mark.asyncio
async def test_update_for_other_resource_is_dropped():
    factory = FakeSocketFactory()
    room, received = _room(factory)
    await room.open()

    await factory.last.push("order_payment_update", {"orderId": "ORD-2", "status": "shipped"})

    assert received == []


@pytest.mark.asyncio
async def test_invalid_payload_is_logged_and_dropped():
    factory = FakeSocketFactory()
    room, received = _room(factory)
    await room.open()

    with capture_logs() as logs:
        await factory.last.push("order_payment_update", {"paymentStatus": "paid"})

    assert received == []
    assert [log["event"] for log in logs] == ["room.event_invalid"]


@pytest.mark.asyncio
async def test_close_leaves_detaches_and_disconnects():
    factory = FakeSocketFactory()
    room, received = _room(factory)
    await room.open()
    sock = factory.last

    await room.close()

    assert sock.emitted[-1] == ("leave_order", "ORD-1")
    assert sock.disconnect_calls == 1
    assert sock.handlers["/"] == {}
    assert room.state == RoomState.CLOSED


@pytest.mark.asyncio
async def test_close_is_idempotent():
    factory = FakeSocketFactory()
    room, _ = _room(factory)
    await room.open()
    sock = factory.last

    await room.close()
    await room.close()

    assert sock.disconnect_calls == 1
    assert sock.attempted.count(("leave_order", "ORD-1")) == 1


@pytest.mark.asyncio
async def test_close_before_join_still_attempts_leave_and_disconnects():
    factory = FakeSocketFactory(auto_connect=False)
    room, _ = _room(factory)
    await room.open()
    sock = factory.last
    await sock.disconnect()
    sock.disconnect_calls = 0
    assert room.state == RoomState.CONNECTING

    await room.close()

    assert sock.attempted == [("leave_order", "ORD-1")]
    assert sock.emitted == []
    assert sock.disconnect_calls == 1
    assert room.state == RoomState.CLOSED


@pytest.mark.asyncio
async def test_close_after_failed_connect_never_raises():
    factory = FakeSocketFactory(fail=True)
    room, _ = _room(factory)
    await room.open()

    await room.close()

    assert factory.last.attempted == [("leave_order", "ORD-1")]
    assert room.state == RoomState.CLOSED


@pytest.mark.asyncio
async def test_close_never_opened():
    factory = FakeSocketFactory()
    room, _ = _room(factory)

    await room.close()

    assert factory.sockets == []
    assert room.state == RoomState.CLOSED


@pytest.mark.asyncio
async def test_events_after_close_are_ignored():
    factory = FakeSocketFactory()
    room, received = _room(factory)
    await room.open()
    handler = factory.last.handlers["/"]["order_payment_update"]

    await room.close()
    await handler({"orderId": "ORD-1", "status": "shipped"})

    assert received == []


@pytest.mark.asyncio
async def test_retarget_leaves_old_and_joins_new():
    factory = FakeSocketFactory()
    room, _ = _room(factory)
    await room.open()
    first = factory.last

    await room.retarget("ORD-2")

    assert first.emitted[-1] == ("leave_order", "ORD-1")
    assert factory.last is not first
    assert factory.last.emitted == [("join_order", "ORD-2")]
    assert room.resource_id == "ORD-2"
    assert room.state == RoomState.SUBSCRIBED


@pytest.mark.asyncio
async def test_retarget_same_id_is_noop():
    factory = FakeSocketFactory()
    room, _ = _room(factory)
    await room.open()

    await room.retarget("ORD-1")

    assert len(factory.sockets) == 1


@pytest.mark.asyncio
async def test_context_manager_and_room_specs():
    factory = FakeSocketFactory()
    async with RoomSubscription("return", "RET-1", URL, lambda e: None, client_factory=factory) as room:
        assert factory.last.emitted == [("join_return", "RET-1")]
        assert set(factory.last.handlers["/"]) == {"connect", "disconnect", "return_update"}

    assert room.state == RoomState.CLOSED
    assert factory.last.emitted[-1] == ("leave_return", "RET-1")
    assert ROOMS["analytics"].join_event == "join_analytics"
    assert ROOMS["product"].events == ("review:new",)
