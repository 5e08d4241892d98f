from datetime import date, datetime, timedelta

import pytest

from travel_ledger.errors import ErrorKind, InvalidInputError
from travel_ledger.services.period_resolver import (
    PeriodResolver,
    ViewMode,
    available_months,
    go_to_next_month,
    go_to_previous_month,
    parse_month_key,
    resolve_month_key,
    resolve_period,
    shift,
)


def test_resolves_march_2024_in_greek():
    window = resolve_period(date(2024, 3, 15), locale="el")
    assert window.month_key == "2024-03"
    assert window.start_date == date(2024, 3, 1)
    assert window.end_date == date(2024, 3, 31)
    assert window.display_label == "Μάρτιος 2024"
    assert window.locale == "el"


def test_locale_is_configurable():
    assert resolve_period(date(2024, 3, 15), locale="en").display_label == "March 2024"


def test_february_bounds_follow_leap_years():
    assert resolve_period(date(2024, 2, 10)).end_date == date(2024, 2, 29)
    assert resolve_period(date(2023, 2, 10)).end_date == date(2023, 2, 28)
    assert resolve_period(date(2100, 2, 10)).end_date == date(2100, 2, 28)


def test_window_always_contains_its_date():
    day = date(2023, 1, 1)
    while day < date(2025, 1, 1):
        window = resolve_period(day)
        assert window.start_date <= day <= window.end_date
        assert window.contains(day)
        day += timedelta(days=1)


def test_accepts_datetimes_and_iso_strings():
    assert resolve_period(datetime(2024, 12, 31, 23, 59)).month_key == "2024-12"
    assert resolve_period("2024-03-15").month_key == "2024-03"
    assert resolve_period("2024-03-15T10:30:00").month_key == "2024-03"


@pytest.mark.parametrize("bad", ["", "not-a-date", "2024-13-01", 20240315, None])
def test_unparseable_input_is_invalid_input(bad):
    with pytest.raises(InvalidInputError) as excinfo:
        resolve_period(bad)
    assert excinfo.value.kind == ErrorKind.INVALID_INPUT


def test_unknown_locale_is_invalid_input():
    with pytest.raises(InvalidInputError):
        resolve_period(date(2024, 3, 15), locale="xx_NOPE")
    with pytest.raises(InvalidInputError):
        PeriodResolver(locale="xx_NOPE")


def test_next_month_clamps_to_last_day():
    assert go_to_next_month(date(2024, 1, 31)) == date(2024, 2, 29)
    assert go_to_next_month(date(2023, 1, 31)) == date(2023, 2, 28)
    assert go_to_previous_month(date(2024, 3, 31)) == date(2024, 2, 29)
    assert go_to_next_month(date(2024, 12, 15)) == date(2025, 1, 15)


def test_previous_then_next_keeps_month_key():
    for day in (date(2024, 3, 15), date(2024, 1, 1), date(2023, 12, 28), date(2024, 7, 30)):
        back_and_forth = go_to_next_month(go_to_previous_month(day))
        assert resolve_period(back_and_forth).month_key == resolve_period(day).month_key


def test_available_months_descending_from_now():
    months = available_months(date(2024, 3, 15), 12)
    keys = [resolve_period(m).month_key for m in months]

    assert len(keys) == 12
    assert len(set(keys)) == 12
    assert keys[0] == "2024-03"
    assert keys[-1] == "2023-04"
    assert keys == sorted(keys, reverse=True)
    assert resolve_period(months[0]) == resolve_period(date(2024, 3, 15))


def test_resolver_quick_picks_are_fixed_at_construction():
    resolver = PeriodResolver(locale="en", now=date(2024, 3, 15))
    before = resolver.available_months
    resolver.go_to_next_month(date(2024, 3, 15))
    resolver.go_to_previous_month(date(2024, 3, 15))

    assert resolver.available_months == before
    assert len(resolver.available_months) == 12
    assert resolver.available_windows()[0].display_label == "March 2024"


def test_month_key_parsing():
    assert parse_month_key("2024-03") == date(2024, 3, 1)
    assert resolve_month_key("2024-02").end_date == date(2024, 2, 29)
    for bad in ("2024-3", "2024/03", "March", "2024-00"):
        with pytest.raises(InvalidInputError):
            parse_month_key(bad)


def test_other_view_modes():
    anchor = date(2024, 3, 13)  # Wednesday
    week = resolve_period(anchor, locale="en", view_mode=ViewMode.WEEK)
    assert week.start_date == date(2024, 3, 11)
    assert week.end_date == date(2024, 3, 17)
    assert week.month_key == "2024-03"

    day = resolve_period(anchor, view_mode="day")
    assert day.start_date == day.end_date == anchor
    assert not day.is_month

    year = resolve_period(anchor, view_mode=ViewMode.YEAR)
    assert (year.start_date, year.end_date) == (date(2024, 1, 1), date(2024, 12, 31))
    assert year.display_label == "2024"

    with pytest.raises(InvalidInputError):
        resolve_period(anchor, view_mode="fortnight")


def test_shift_by_view_mode():
    assert shift(date(2024, 3, 13), 1, ViewMode.WEEK) == date(2024, 3, 20)
    assert shift(date(2024, 2, 29), 1, ViewMode.YEAR) == date(2025, 2, 28)
    assert shift(date(2024, 3, 1), -1, ViewMode.DAY) == date(2024, 2, 29)


def test_last_representable_month_resolves():
    window = resolve_period(date(9999, 12, 15), locale="en")
    assert (window.start_date, window.end_date) == (date(9999, 12, 1), date(9999, 12, 31))
    assert window.month_key == "9999-12"
    assert resolve_period(date(1, 1, 1)).start_date == date(1, 1, 1)


@pytest.mark.parametrize("call", [
    lambda: go_to_next_month(date(9999, 12, 15)),
    lambda: go_to_previous_month(date(1, 1, 20)),
    lambda: shift(date(9999, 12, 31), 1, ViewMode.DAY),
    lambda: available_months(date(1, 3, 15), 12),
    lambda: resolve_period(date(9999, 12, 31), view_mode=ViewMode.WEEK),
])
def test_calendar_edges_fail_as_invalid_input(call):
    with pytest.raises(InvalidInputError) as excinfo:
        call()
    assert excinfo.value.kind == ErrorKind.INVALID_INPUT
