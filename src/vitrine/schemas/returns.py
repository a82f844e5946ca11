"""Return (RMA) payloads."""

from typing import Optional

from pydantic import Field

from vitrine.schemas.common import ApiModel

RETURN_STATUS = r"^(requested|approved|in_transit|received|refunded|rejected)$"


class ReturnItem(ApiModel):
    order_item_id: str = Field(..., alias="orderItemId")
    product_id: Optional[str] = Field(None, alias="productId")
    name: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    quantity: int = Field(..., ge=1)
    reason: Optional[str] = None


class ReturnCreate(ApiModel):
    order_id: str = Field(..., min_length=1, alias="orderId")
    items: Optional[list[ReturnItem]] = None
    reason: Optional[str] = None
    comments: Optional[str] = None


class UpdateReturnStatus(ApiModel):
    id: str = Field(..., min_length=1)
    status: Optional[str] = Field(None, pattern=RETURN_STATUS)
    refund_amount: Optional[float] = Field(None, ge=0, alias="refundAmount")
    carrier: Optional[str] = None
    tracking_number: Optional[str] = Field(None, alias="trackingNumber")
