from pydantic import BaseModel
from typing import List
from datetime import date


class PeriodResponse(BaseModel):
    month_key: str
    start_date: date
    end_date: date
    display_label: str
    view_mode: str
    anchor_date: date
    locale: str

    class Config:
        from_attributes = True


class AvailableMonthsResponse(BaseModel):
    now: date
    months: List[PeriodResponse]
