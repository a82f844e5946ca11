"""Orders slice tests — caching, invalidation, notifications.

Learn: These run the real slice against the in-memory backend. The
backend's hit counter is how we prove a call did (or didn't) go to the
network.
"""

import asyncio

import httpx
import pytest
from httpx import ASGITransport
from pydantic import ValidationError

from fake_socket import FakeSocketFactory
from vitrine.cache.query_cache import CacheStatus
from vitrine.cache.tags import Tag
from vitrine.client import StorefrontClient


@pytest.mark.asyncio
async def test_get_orders_serializes_status_filter(shop, backend):
    result = await shop.orders.get_orders({"status": "pending"})

    assert result.ok
    assert backend.last_request("GET", "/admin/orders")["query"] == {"status": "pending"}
    assert {o["_id"] for o in result.data["data"]} == {"ORD-1", "ORD-3"}


@pytest.mark.asyncio
async def test_invalid_status_fails_before_any_request(shop, backend):
    with pytest.raises(ValidationError):
        await shop.orders.get_orders({"status": "lost"})
    assert backend.requests == []


@pytest.mark.asyncio
async def test_cached_query_is_not_refetched(shop, backend):
    await shop.orders.get_order("ORD-1")
    async with await shop.orders.get_order.subscribe("ORD-1"):
        await shop.orders.get_order("ORD-1")

    assert backend.count("GET", "/admin/orders/ORD-1") == 1


@pytest.mark.asyncio
async def test_force_refetches(shop, backend):
    await shop.orders.get_order("ORD-1")
    await shop.orders.get_order("ORD-1", force=True)
    assert backend.count("GET", "/admin/orders/ORD-1") == 2


@pytest.mark.asyncio
async def test_concurrent_queries_share_one_request(shop, backend):
    first, second = await asyncio.gather(
        shop.orders.get_order("ORD-2"),
        shop.orders.get_order("ORD-2"),
    )
    assert first.data == second.data
    assert backend.count("GET", "/admin/orders/ORD-2") == 1


@pytest.mark.asyncio
async def test_update_status_notifies_and_refetches_subscribed_order(shop, backend, modals):
    sub = await shop.orders.get_order.subscribe("ORD-1")
    assert sub.data["data"]["status"] == "pending"

    result = await shop.orders.update_order_status({"id": "ORD-1", "status": "shipped"})

    assert result.ok
    assert [(m.type, m.message) for m in modals] == [("success", "Order status updated")]
    assert backend.count("GET", "/admin/orders/ORD-1") == 2
    assert sub.data["data"]["status"] == "shipped"
    assert sub.entry.tags == [Tag("Order", "ORD-1")]
    sub.unsubscribe()


async def _until(predicate, turns=1000):
    for _ in range(turns):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never reached")


@pytest.mark.asyncio
async def test_mutation_during_first_fetch_refetches_subscribed_order(shop, backend, modals):
    # The first GET reads the order, then stays open until the status change lands
    gate = asyncio.Event()
    backend.hold = gate
    subscribing = asyncio.ensure_future(shop.orders.get_order.subscribe("ORD-1"))
    await _until(lambda: backend.count("GET", "/admin/orders/ORD-1") == 1)

    updating = asyncio.ensure_future(
        shop.orders.update_order_status({"id": "ORD-1", "status": "shipped"})
    )
    await _until(lambda: len(modals) == 1)
    gate.set()

    sub = await subscribing
    result = await updating

    assert result.ok
    assert backend.count("GET", "/admin/orders/ORD-1") == 2
    assert sub.data["data"]["status"] == "shipped"
    sub.unsubscribe()


@pytest.mark.asyncio
async def test_status_body_excludes_id_and_uses_camel_case(shop, backend):
    await shop.orders.update_order_status(
        {"id": "ORD-2", "status": "delivered", "trackingNumber": "TRK-9"}
    )
    assert backend.orders["ORD-2"]["status"] == "delivered"
    assert backend.orders["ORD-2"]["trackingNumber"] == "TRK-9"


@pytest.mark.asyncio
async def test_invalidation_evicts_unsubscribed_entries(shop, backend):
    await shop.orders.get_orders({})
    await shop.orders.get_order_stats()
    assert shop.orders.get_orders.select({}) is not None

    await shop.orders.cancel_order("ORD-3")

    assert shop.orders.get_orders.select({}) is None
    assert shop.orders.get_order_stats.select() is None
    assert backend.count("GET", "/admin/orders") == 1


@pytest.mark.asyncio
async def test_invalidation_leaves_other_orders_alone(shop, backend):
    other = await shop.orders.get_order.subscribe("ORD-2")

    await shop.orders.cancel_order("ORD-3")

    assert backend.count("GET", "/admin/orders/ORD-2") == 1
    assert other.status == CacheStatus.FULFILLED
    other.unsubscribe()


@pytest.mark.asyncio
async def test_rejected_mutation_still_invalidates(shop, backend, modals):
    backend.orders["ORD-2"]["status"] = "delivered"
    sub = await shop.orders.get_order.subscribe("ORD-2")

    result = await shop.orders.cancel_order("ORD-2")

    assert result.error.status == 400
    assert modals[-1].type == "error"
    assert modals[-1].message == "Delivered orders cannot be cancelled"
    assert backend.count("GET", "/admin/orders/ORD-2") == 2
    sub.unsubscribe()


class _DropWrites(httpx.AsyncBaseTransport):
    """Passes reads through to the backend; every write fails to connect."""

    def __init__(self, inner: httpx.AsyncBaseTransport):
        self.inner = inner

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if request.method != "GET":
            raise httpx.ConnectError("connection refused", request=request)
        return await self.inner.handle_async_request(request)


@pytest.mark.asyncio
async def test_unreachable_mutation_does_not_invalidate(config, backend, session):
    client = StorefrontClient(
        config,
        session=session,
        transport=_DropWrites(ASGITransport(app=backend.app)),
        socket_factory=FakeSocketFactory(),
    )
    try:
        sub = await client.orders.get_order.subscribe("ORD-1")

        result = await client.orders.update_order_status({"id": "ORD-1", "status": "shipped"})

        assert result.error.status == "FETCH_ERROR"
        assert backend.count("GET", "/admin/orders/ORD-1") == 1
        assert sub.status == CacheStatus.FULFILLED
        sub.unsubscribe()
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_missing_order_is_rejected_entry(shop, modals):
    result = await shop.orders.get_order("NOPE")

    assert result.error.status == 404
    assert modals[-1].message == "Order not found"


@pytest.mark.asyncio
async def test_refund_posts_amount(shop, backend, modals):
    result = await shop.orders.refund_order({"id": "ORD-2", "amount": 10, "reason": "late"})

    assert result.ok
    assert backend.orders["ORD-2"]["payment"]["status"] == "refunded"
    assert modals[-1].message == "Refunded 10.0"


@pytest.mark.asyncio
async def test_subscription_change_listener(shop):
    sub = await shop.orders.get_order.subscribe("ORD-1")
    seen = []
    remove = sub.on_change(lambda entry: seen.append(entry.data["data"]["status"]))

    await shop.orders.update_order_status({"id": "ORD-1", "status": "processing"})
    remove()
    await shop.orders.update_order_status({"id": "ORD-1", "status": "shipped"})

    assert seen == ["processing"]
    sub.unsubscribe()
    sub.unsubscribe()
    assert sub.entry.subscribers == 0


@pytest.mark.asyncio
async def test_update_query_data_patches_without_request(shop, backend):
    await shop.orders.get_order("ORD-1")

    patch = shop.orders.get_order.update_query_data(
        "ORD-1", lambda draft: draft["data"].update(status="processing")
    )

    assert patch.applied
    assert shop.orders.get_order.select("ORD-1").data["data"]["status"] == "processing"
    assert backend.count("GET", "/admin/orders/ORD-1") == 1
