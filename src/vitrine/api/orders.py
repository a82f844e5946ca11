"""Admin orders — listing, stats, detail and status changes.

Learn: Every mutation here invalidates three tags: the order itself
(Order:<id>), every order list (Orders) and the stats panel (OrderStats).
A subscribed order-detail view therefore refetches after a status change,
while idle cached pages are simply dropped.
"""

from vitrine.api.base import ApiSlice, mutation, query
from vitrine.cache.tags import Tag
from vitrine.http.base_query import FetchArgs
from vitrine.schemas.orders import OrderQueryParams, RefundOrder, UpdateOrderStatus


def _order_changed(result, error, arg):
    order_id = arg if isinstance(arg, str) else arg.id
    return [Tag("Order", order_id), "Orders", "OrderStats"]


class OrdersApi(ApiSlice):
    reducer_path = "ordersApi"
    base_path = "/admin"
    tag_types = ("Orders", "Order", "OrderStats")

    @query(provides_tags=["Orders"], arg_model=OrderQueryParams)
    def get_orders(self, params: OrderQueryParams) -> FetchArgs:
        """Paginated, server-filtered order list."""
        return FetchArgs("orders", params=params.params())

    @query(provides_tags=["OrderStats"])
    def get_order_stats(self) -> FetchArgs:
        return FetchArgs("orders/stats")

    @query(provides_tags=lambda result, error, id: [Tag("Order", id)])
    def get_order(self, id: str) -> FetchArgs:
        return FetchArgs(f"orders/{id}")

    @mutation(invalidates_tags=_order_changed, arg_model=UpdateOrderStatus)
    def update_order_status(self, req: UpdateOrderStatus) -> FetchArgs:
        return FetchArgs(f"orders/{req.id}/status", method="PATCH", body=req.body("id"))

    @mutation(invalidates_tags=_order_changed)
    def cancel_order(self, id: str) -> FetchArgs:
        return FetchArgs(f"orders/{id}/cancel", method="PATCH")

    @mutation(invalidates_tags=_order_changed, arg_model=RefundOrder)
    def refund_order(self, req: RefundOrder) -> FetchArgs:
        return FetchArgs(f"orders/{req.id}/refund", method="POST", body=req.body("id"))
