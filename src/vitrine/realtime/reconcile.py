"""Reconciliation — folding pushed events into the query cache.

Learn: There are two ways to apply an update, and each resource type
uses exactly one of them:

    patch    the event carries the changed fields, so the cached
             documents are edited in place (no request). Orders, returns.
    refetch  the event is only a signal, so the affected queries are
             fetched again. Analytics, product reviews.

Patching goes through update_query_data(), so subscribers get the same
change notification a refetch would give them. Events are idempotent:
applying the same one twice leaves the cache as after the first.
"""

from functools import partial
from typing import TYPE_CHECKING, Any, Callable, Iterator, Literal, Optional

import structlog

from vitrine.cache.query_cache import PatchResult
from vitrine.cache.tags import Tag
from vitrine.realtime.events import (
    OrderPaymentUpdate,
    RealtimeEvent,
    ReturnUpdate,
    ReviewCreated,
)

if TYPE_CHECKING:
    from vitrine.api.analytics import AnalyticsApi
    from vitrine.api.base import ApiSlice
    from vitrine.api.catalog import ReviewsApi
    from vitrine.api.orders import OrdersApi
    from vitrine.api.returns import ReturnsApi

logger = structlog.get_logger()

Strategy = Literal["patch", "refetch"]

STRATEGIES: dict[str, Strategy] = {
    "order": "patch",
    "return": "patch",
    "analytics": "refetch",
    "product": "refetch",
}

ID_KEYS = ("_id", "id")
CONTAINER_KEYS = ("data", "orders", "returns", "results")


# ─── Locating documents inside cached payloads ───────────


def iter_documents(data: Any) -> Iterator[dict]:
    """Every dict that could be a resource document in a cached payload.

    Handles the shapes the backend uses: a bare document, an envelope
    ({"data": {...}}), and lists under data/orders/returns/results.
    """
    if isinstance(data, list):
        for item in data:
            if isinstance(item, dict):
                yield item
    elif isinstance(data, dict):
        yield data
        for key in CONTAINER_KEYS:
            if key in data:
                yield from iter_documents(data[key])


def find_documents(data: Any, resource_id: str) -> list[dict]:
    return [
        doc for doc in iter_documents(data)
        if any(str(doc.get(key)) == resource_id for key in ID_KEYS if doc.get(key) is not None)
    ]


def _patch_documents(resource_id: str, apply: Callable[[dict], None], draft: Any) -> None:
    for doc in find_documents(draft, resource_id):
        apply(doc)


def _patch_slice(
    api: "ApiSlice",
    detail_endpoint: str,
    list_endpoints: tuple[str, ...],
    resource_id: str,
    apply: Callable[[dict], None],
) -> list[PatchResult]:
    recipe = partial(_patch_documents, resource_id, apply)
    results = [api.update_query_data(detail_endpoint, resource_id, recipe)]
    for endpoint in list_endpoints:
        for entry in api.cache.entries_for(endpoint):
            if find_documents(entry.data, resource_id):
                results.append(api.cache.patch(entry.key, recipe))
    return [r for r in results if r.applied]


# ─── Orders (patch) ──────────────────────────────────────


def apply_order_update(orders: "OrdersApi", event: OrderPaymentUpdate) -> list[PatchResult]:
    """Patch status/payment status into the cached order and every list page."""

    def apply(doc: dict) -> None:
        if event.status is not None:
            doc["status"] = event.status
        if event.payment_status is not None:
            payment = doc.get("payment")
            if not isinstance(payment, dict):
                payment = {}
            doc["payment"] = {**payment, "status": event.payment_status}
            if "paymentStatus" in doc:
                doc["paymentStatus"] = event.payment_status

    patched = _patch_slice(orders, "get_order", ("get_orders",), event.order_id, apply)
    logger.info("reconcile.order_patched", order_id=event.order_id, entries=len(patched))
    return patched


# ─── Returns (patch) ─────────────────────────────────────


def apply_return_update(returns: "ReturnsApi", event: ReturnUpdate) -> list[PatchResult]:
    def apply(doc: dict) -> None:
        if event.status is not None:
            doc["status"] = event.status

    patched = _patch_slice(returns, "get_return_by_id", ("get_my_returns",), event.return_id, apply)
    logger.info("reconcile.return_patched", return_id=event.return_id, entries=len(patched))
    return patched


# ─── Analytics (refetch) ─────────────────────────────────


async def refetch_analytics(analytics: "AnalyticsApi", endpoint: str = "get_analytics_dashboard") -> int:
    """Refetch each subscribed dashboard query once. Returns the count."""
    subscribed = [e for e in analytics.cache.entries_for(endpoint) if e.subscribers > 0]
    for entry in subscribed:
        await analytics.run_query(endpoint, entry.arg, force=True)
    logger.info("reconcile.analytics_refetched", refetches=len(subscribed))
    return len(subscribed)


# ─── Reviews (refetch via invalidation) ──────────────────


async def refetch_reviews(reviews: "ReviewsApi", event: ReviewCreated) -> int:
    return await reviews.invalidate_tags([Tag("Reviews", event.product_id)])


# ─── Wiring ──────────────────────────────────────────────


class Reconciler:
    """Routes validated room events to the right cache update.

    on_update, if given, is called after each event has been applied;
    the CLI's watch commands print from it.
    """

    def __init__(
        self,
        *,
        orders: Optional["OrdersApi"] = None,
        returns: Optional["ReturnsApi"] = None,
        analytics: Optional["AnalyticsApi"] = None,
        reviews: Optional["ReviewsApi"] = None,
        on_update: Optional[Callable[[RealtimeEvent], None]] = None,
    ):
        self.orders = orders
        self.returns = returns
        self.analytics = analytics
        self.reviews = reviews
        self.on_update = on_update

    async def __call__(self, event: RealtimeEvent) -> None:
        if isinstance(event, OrderPaymentUpdate) and self.orders is not None:
            apply_order_update(self.orders, event)
        elif isinstance(event, ReturnUpdate) and self.returns is not None:
            apply_return_update(self.returns, event)
        elif isinstance(event, ReviewCreated) and self.reviews is not None:
            await refetch_reviews(self.reviews, event)
        elif event.event == "analytics_update" and self.analytics is not None:
            await refetch_analytics(self.analytics)
        else:
            logger.debug("reconcile.unhandled", event_name=event.event)
            return

        if self.on_update is not None:
            self.on_update(event)
