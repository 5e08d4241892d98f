from fastapi import APIRouter, Query
from typing import Optional
from travel_ledger.schemas.period import PeriodResponse, AvailableMonthsResponse
from travel_ledger.services.period_resolver import PeriodResolver, PeriodWindow, ViewMode

router = APIRouter(prefix="/api/periods", tags=["periods"])


def period_response(window: PeriodWindow) -> PeriodResponse:
    return PeriodResponse(
        month_key=window.month_key,
        start_date=window.start_date,
        end_date=window.end_date,
        display_label=window.display_label,
        view_mode=window.view_mode.value,
        anchor_date=window.anchor_date,
        locale=window.locale,
    )


@router.get("", response_model=PeriodResponse)
def resolve_period(
    date: str = Query(..., description="ISO date or datetime"),
    view: ViewMode = Query(ViewMode.MONTH, description="day, week, month or year"),
    locale: Optional[str] = None,
):
    """Resolve a point in time into its calendar window"""
    resolver = PeriodResolver(locale=locale)
    return period_response(resolver.resolve(date, view))


@router.get("/available", response_model=AvailableMonthsResponse)
def list_available_months(
    now: Optional[str] = None,
    count: Optional[int] = Query(None, ge=0, le=120),
    locale: Optional[str] = None,
):
    """Quick-pick list of recent months, most recent first"""
    resolver = PeriodResolver(locale=locale, now=now, months=count)
    return AvailableMonthsResponse(
        now=resolver.now,
        months=[period_response(window) for window in resolver.available_windows()],
    )


@router.get("/{month_key}", response_model=PeriodResponse)
def get_month(month_key: str, locale: Optional[str] = None):
    """Window for a YYYY-MM month key"""
    resolver = PeriodResolver(locale=locale)
    return period_response(resolver.resolve_month_key(month_key))


@router.get("/{month_key}/previous", response_model=PeriodResponse)
def get_previous_month(month_key: str, locale: Optional[str] = None):
    resolver = PeriodResolver(locale=locale)
    current = resolver.resolve_month_key(month_key)
    return period_response(resolver.resolve(resolver.go_to_previous_month(current.anchor_date)))


@router.get("/{month_key}/next", response_model=PeriodResponse)
def get_next_month(month_key: str, locale: Optional[str] = None):
    resolver = PeriodResolver(locale=locale)
    current = resolver.resolve_month_key(month_key)
    return period_response(resolver.resolve(resolver.go_to_next_month(current.anchor_date)))
