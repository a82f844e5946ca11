"""Order query params and mutation payloads."""

from typing import Optional

from pydantic import Field

from vitrine.schemas.common import ApiModel

ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")
ORDER_STATUS = "^(" + "|".join(ORDER_STATUSES) + ")$"
PAYMENT_STATUS = r"^(pending|paid|failed|refunded)$"


class OrderQueryParams(ApiModel):
    page: Optional[int] = Field(None, ge=1)
    limit: Optional[int] = Field(None, ge=1)
    search: Optional[str] = None
    status: Optional[str] = Field(None, pattern=ORDER_STATUS)
    start_date: Optional[str] = Field(None, alias="startDate")
    end_date: Optional[str] = Field(None, alias="endDate")


class UpdateOrderStatus(ApiModel):
    id: str = Field(..., min_length=1)
    status: str = Field(..., pattern=ORDER_STATUS)
    tracking_number: Optional[str] = Field(None, alias="trackingNumber")
    notes: Optional[str] = None


class RefundOrder(ApiModel):
    id: str = Field(..., min_length=1)
    amount: Optional[float] = Field(None, gt=0)
    reason: Optional[str] = None
