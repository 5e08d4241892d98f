"""
Period Resolver - turns a point in time into a canonical accounting window.

Every consumer (month picker, ledger queries, export log) receives the same
``PeriodWindow`` value object instead of sharing a "current month" global.
All functions are pure: the output depends only on the arguments.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Optional, Tuple, Union

from babel.core import UnknownLocaleError
from babel.dates import format_date
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from travel_ledger.config import settings
from travel_ledger.errors import InvalidInputError

PointInTime = Union[date, datetime, str]

MONTH_KEY_FORMAT = "%Y-%m"


class ViewMode(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


@dataclass(frozen=True)
class PeriodWindow:
    """Inclusive calendar window around ``anchor_date``"""
    month_key: str
    start_date: date
    end_date: date
    display_label: str
    view_mode: ViewMode
    anchor_date: date
    locale: str

    def contains(self, value: date) -> bool:
        return self.start_date <= value <= self.end_date

    @property
    def is_month(self) -> bool:
        return self.view_mode == ViewMode.MONTH


def coerce_point_in_time(value: PointInTime) -> date:
    """
    Normalize caller input to a calendar date.

    Accepts ``date``, ``datetime`` and ISO-8601 strings ("2024-03-15",
    "2024-03-15T10:00:00"). Anything else fails with INVALID_INPUT.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        cleaned = value.strip()
        if not cleaned:
            raise InvalidInputError("Empty date")
        try:
            return date_parser.isoparse(cleaned).date()
        except (ValueError, OverflowError) as e:
            raise InvalidInputError(f"Unparseable date {value!r}: {e}")
    raise InvalidInputError(f"Unsupported date value of type {type(value).__name__}")


def parse_month_key(month_key: str) -> date:
    """Parse a ``YYYY-MM`` identifier to the first day of that month."""
    if not isinstance(month_key, str):
        raise InvalidInputError(f"Month key must be a string, got {type(month_key).__name__}")
    cleaned = month_key.strip()
    if len(cleaned) != 7 or cleaned[4] != "-":
        raise InvalidInputError(f"Malformed month key {month_key!r}, expected YYYY-MM")
    try:
        return datetime.strptime(cleaned, MONTH_KEY_FORMAT).date()
    except ValueError:
        raise InvalidInputError(f"Malformed month key {month_key!r}, expected YYYY-MM")


def month_key_for(value: date) -> str:
    return value.strftime(MONTH_KEY_FORMAT)


def _month_bounds(anchor: date) -> Tuple[date, date]:
    start = anchor.replace(day=1)
    end = start + relativedelta(day=31)
    return start, end


def _bounds(anchor: date, view_mode: ViewMode) -> Tuple[date, date]:
    if view_mode == ViewMode.DAY:
        return anchor, anchor
    if view_mode == ViewMode.WEEK:
        # ISO weeks start on Monday
        start = anchor - timedelta(days=anchor.weekday())
        return start, start + timedelta(days=6)
    if view_mode == ViewMode.MONTH:
        return _month_bounds(anchor)
    if view_mode == ViewMode.YEAR:
        return date(anchor.year, 1, 1), date(anchor.year, 12, 31)
    raise InvalidInputError(f"Unknown view mode {view_mode!r}")


def _format(value: date, pattern: str, locale: str) -> str:
    try:
        return format_date(value, pattern, locale=locale)
    except (UnknownLocaleError, ValueError) as e:
        raise InvalidInputError(f"Unknown locale {locale!r}: {e}")


def _label(anchor: date, start: date, end: date, view_mode: ViewMode, locale: str) -> str:
    if view_mode == ViewMode.DAY:
        return _format(anchor, "d MMMM yyyy", locale)
    if view_mode == ViewMode.WEEK:
        return f"{_format(start, 'd MMM', locale)} - {_format(end, 'd MMM yyyy', locale)}"
    if view_mode == ViewMode.MONTH:
        return _format(anchor, settings.period_label_pattern, locale)
    if view_mode == ViewMode.YEAR:
        return str(anchor.year)
    raise InvalidInputError(f"Unknown view mode {view_mode!r}")


def _coerce_view_mode(view_mode: Union[ViewMode, str]) -> ViewMode:
    try:
        return ViewMode(view_mode)
    except ValueError:
        raise InvalidInputError(f"Unknown view mode {view_mode!r}")


def resolve_period(
    value: PointInTime,
    locale: Optional[str] = None,
    view_mode: Union[ViewMode, str] = ViewMode.MONTH,
) -> PeriodWindow:
    """
    Resolve a point in time into its window.

    Args:
        value: date, datetime or ISO string
        locale: display locale (defaults to ``settings.default_locale``)
        view_mode: day, week, month or year

    Returns:
        PeriodWindow whose ``month_key`` is always the anchor's YYYY-MM
    """
    anchor = coerce_point_in_time(value)
    mode = _coerce_view_mode(view_mode)
    resolved_locale = locale or settings.default_locale
    try:
        start, end = _bounds(anchor, mode)
    except OverflowError:
        raise InvalidInputError(f"{anchor} has no complete {mode.value} window in the calendar range")
    return PeriodWindow(
        month_key=month_key_for(anchor),
        start_date=start,
        end_date=end,
        display_label=_label(anchor, start, end, mode, resolved_locale),
        view_mode=mode,
        anchor_date=anchor,
        locale=resolved_locale,
    )


def resolve_month_key(month_key: str, locale: Optional[str] = None) -> PeriodWindow:
    return resolve_period(parse_month_key(month_key), locale=locale)


def shift(value: PointInTime, steps: int, view_mode: Union[ViewMode, str] = ViewMode.MONTH) -> date:
    """
    Move ``value`` by ``steps`` units of ``view_mode``.

    Month and year shifts keep the day of month where valid and clamp to the
    target month's last day otherwise (Jan 31 + 1 month -> Feb 28/29).
    """
    anchor = coerce_point_in_time(value)
    mode = _coerce_view_mode(view_mode)
    try:
        if mode == ViewMode.DAY:
            return anchor + timedelta(days=steps)
        if mode == ViewMode.WEEK:
            return anchor + timedelta(weeks=steps)
        if mode == ViewMode.MONTH:
            return anchor + relativedelta(months=steps)
        if mode == ViewMode.YEAR:
            return anchor + relativedelta(years=steps)
    except (ValueError, OverflowError) as e:
        raise InvalidInputError(f"Cannot shift {anchor} by {steps} {mode.value}(s): {e}")
    raise InvalidInputError(f"Unknown view mode {view_mode!r}")


def go_to_previous_month(value: PointInTime) -> date:
    return shift(value, -1, ViewMode.MONTH)


def go_to_next_month(value: PointInTime) -> date:
    return shift(value, 1, ViewMode.MONTH)


def available_months(now: PointInTime, count: Optional[int] = None) -> List[date]:
    """
    The ``count`` most recent months ending at ``now``, most recent first.

    Each entry is ``now`` shifted back by i months, usable as resolver input.
    """
    anchor = coerce_point_in_time(now)
    if count is None:
        count = settings.quick_pick_months
    if count < 0:
        raise InvalidInputError(f"Month count must be >= 0, got {count}")
    try:
        return [anchor - relativedelta(months=i) for i in range(count)]
    except ValueError as e:
        raise InvalidInputError(f"{count} months back from {anchor} leaves the calendar range: {e}")


class PeriodResolver:
    """
    Locale-bound resolver with a quick-pick list fixed at construction.

    ``available_months`` is computed once against ``now`` and is not refreshed
    by navigation calls.
    """

    def __init__(self, locale: Optional[str] = None, now: Optional[PointInTime] = None, months: Optional[int] = None):
        self.locale = locale or settings.default_locale
        # Validate the locale up front so a bad value fails at construction
        _format(date(2000, 1, 1), "yyyy", self.locale)
        self.now = coerce_point_in_time(now) if now is not None else date.today()
        self.available_months: Tuple[date, ...] = tuple(available_months(self.now, months))

    def resolve(self, value: PointInTime, view_mode: Union[ViewMode, str] = ViewMode.MONTH) -> PeriodWindow:
        return resolve_period(value, locale=self.locale, view_mode=view_mode)

    def resolve_month_key(self, month_key: str) -> PeriodWindow:
        return resolve_month_key(month_key, locale=self.locale)

    def go_to_previous(self, value: PointInTime, view_mode: Union[ViewMode, str] = ViewMode.MONTH) -> date:
        return shift(value, -1, view_mode)

    def go_to_next(self, value: PointInTime, view_mode: Union[ViewMode, str] = ViewMode.MONTH) -> date:
        return shift(value, 1, view_mode)

    def go_to_previous_month(self, value: PointInTime) -> date:
        return go_to_previous_month(value)

    def go_to_next_month(self, value: PointInTime) -> date:
        return go_to_next_month(value)

    def available_windows(self) -> List[PeriodWindow]:
        return [self.resolve(month) for month in self.available_months]
