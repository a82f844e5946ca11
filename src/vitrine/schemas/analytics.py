"""Analytics date-range params."""

from typing import Optional

from pydantic import Field

from vitrine.schemas.common import ApiModel

PERIOD = r"^(day|week|month|year|daily|weekly|monthly|hourly)$"


class DateRangeParams(ApiModel):
    start_date: Optional[str] = Field(None, alias="startDate")
    end_date: Optional[str] = Field(None, alias="endDate")
    period: Optional[str] = Field(None, pattern=PERIOD)
