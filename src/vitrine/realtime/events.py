"""Realtime event names and payload models.

Learn: Centralizing room and event names as constants prevents typos and
makes it easy to discover everything the socket server can say to us.

Payloads arrive as untyped JSON. parse_event() injects the event name
into the payload and validates it against a discriminated union, so the
rest of the client only ever sees typed models. Anything that fails
validation raises EventValidationError; rooms log and drop those.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

# ─── Rooms (client → server) ─────────────────────────────

JOIN_ORDER = "join_order"
LEAVE_ORDER = "leave_order"
JOIN_ANALYTICS = "join_analytics"
LEAVE_ANALYTICS = "leave_analytics"
JOIN_PRODUCT = "join_product"
LEAVE_PRODUCT = "leave_product"
JOIN_RETURN = "join_return"
LEAVE_RETURN = "leave_return"

# ─── Updates (server → client) ───────────────────────────

ORDER_PAYMENT_UPDATE = "order_payment_update"
# Newer servers namespace the same event with a colon
ORDER_PAYMENT_UPDATE_NS = "order:payment_update"
ANALYTICS_UPDATE = "analytics_update"
REVIEW_NEW = "review:new"
RETURN_UPDATE = "return_update"


class EventValidationError(Exception):
    """Raised when a pushed payload is unknown or malformed."""


# ─── Payload models ──────────────────────────────────────


class RealtimeEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    event: str

    @property
    def resource_id(self) -> Optional[str]:
        """Id of the resource this event is about, if it names one."""
        return None


class OrderPaymentUpdate(RealtimeEvent):
    event: Literal["order_payment_update", "order:payment_update"]
    order_id: str = Field(..., alias="orderId", min_length=1)
    status: Optional[str] = None
    payment_status: Optional[str] = Field(None, alias="paymentStatus")

    @property
    def resource_id(self) -> str:
        return self.order_id


class AnalyticsUpdate(RealtimeEvent):
    """A signal that dashboard numbers moved. The payload is advisory."""

    event: Literal["analytics_update"]


class ReviewCreated(RealtimeEvent):
    event: Literal["review:new"]
    product_id: str = Field(..., alias="productId", min_length=1)
    rating: Optional[float] = None
    comment: Optional[str] = None

    @property
    def resource_id(self) -> str:
        return self.product_id


class ReturnUpdate(RealtimeEvent):
    event: Literal["return_update"]
    return_id: str = Field(..., alias="returnId", min_length=1)
    status: Optional[str] = None

    @property
    def resource_id(self) -> str:
        return self.return_id


AnyEvent = Annotated[
    Union[OrderPaymentUpdate, AnalyticsUpdate, ReviewCreated, ReturnUpdate],
    Field(discriminator="event"),
]

_adapter = TypeAdapter(AnyEvent)

EVENT_NAMES = frozenset({
    ORDER_PAYMENT_UPDATE,
    ORDER_PAYMENT_UPDATE_NS,
    ANALYTICS_UPDATE,
    REVIEW_NEW,
    RETURN_UPDATE,
})


def parse_event(name: str, payload: Any) -> RealtimeEvent:
    """Validate a raw socket payload into its typed event model."""
    if name not in EVENT_NAMES:
        raise EventValidationError(f"Unknown event '{name}'")
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise EventValidationError(
            f"Event '{name}' payload must be an object, got {type(payload).__name__}"
        )
    try:
        return _adapter.validate_python({**payload, "event": name})
    except ValidationError as e:
        raise EventValidationError(f"Invalid '{name}' payload: {e}") from e
