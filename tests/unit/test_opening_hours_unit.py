from app.core.opening_hours_utils import (
    check_opening_hours_fit,
    closing_minutes,
    is_open,
    parse_time_to_minutes,
    periods_from_weekday_text,
    weekday_for_trip_day,
)
from app.core.schemas import OperatingHours, OperatingPeriod, Weekday


def _hours(*periods: OperatingPeriod) -> OperatingHours:
    return OperatingHours(periods=list(periods))


def test_unknown_hours_are_always_open():
    assert is_open(None, Weekday.MONDAY, 3 * 60)
    assert is_open(OperatingHours(), Weekday.SUNDAY, 23 * 60 + 59)


def test_regular_period_bounds():
    hours = _hours(OperatingPeriod(day="monday", open="09:00", close="17:00"))
    assert is_open(hours, Weekday.MONDAY, 9 * 60)
    assert is_open(hours, Weekday.MONDAY, 16 * 60 + 59)
    assert not is_open(hours, Weekday.MONDAY, 17 * 60)
    assert not is_open(hours, Weekday.MONDAY, 8 * 60 + 59)


def test_day_without_period_is_closed():
    hours = _hours(OperatingPeriod(day="monday", open="09:00", close="17:00"))
    assert not is_open(hours, Weekday.TUESDAY, 12 * 60)


def test_overnight_period_on_opening_day():
    hours = _hours(OperatingPeriod(day="friday", open="22:00", close="02:00", is_overnight=True))
    assert is_open(hours, Weekday.FRIDAY, 23 * 60 + 30)
    # 01:30 expressed past midnight of the opening day
    assert is_open(hours, Weekday.FRIDAY, 24 * 60 + 90)
    assert not is_open(hours, Weekday.FRIDAY, 24 * 60 + 3 * 60)
    assert not is_open(hours, Weekday.FRIDAY, 21 * 60)


def test_overnight_period_is_not_consulted_for_next_day():
    hours = _hours(OperatingPeriod(day="friday", open="22:00", close="02:00", is_overnight=True))
    assert not is_open(hours, Weekday.SATURDAY, 90)


def test_malformed_times_count_as_open():
    hours = _hours(OperatingPeriod(day="monday", open="late", close="17:00"))
    assert is_open(hours, Weekday.MONDAY, 3 * 60)


def test_parse_time_to_minutes_formats():
    assert parse_time_to_minutes("07:30") == 450
    assert parse_time_to_minutes("7:30 PM") == 19 * 60 + 30
    assert parse_time_to_minutes("12:00 AM") == 0
    assert parse_time_to_minutes("25:00") is None
    assert parse_time_to_minutes("noon") is None
    assert parse_time_to_minutes(None) is None


def test_weekday_for_trip_day():
    # 2024-01-01 was a Monday
    assert weekday_for_trip_day("2024-01-01", 0) is Weekday.MONDAY
    assert weekday_for_trip_day("2024-01-01", 6) is Weekday.SUNDAY
    assert weekday_for_trip_day("2024-02-28", 1) is Weekday.THURSDAY
    assert weekday_for_trip_day("2023-12-31", 1) is Weekday.MONDAY
    assert weekday_for_trip_day("2024-13-01", 0) is None
    assert weekday_for_trip_day("not-a-date", 0) is None
    assert weekday_for_trip_day("2024-01-01", -1) is None
    assert weekday_for_trip_day(None, 0) is None


def test_closing_minutes_pushes_overnight_past_midnight():
    hours = _hours(OperatingPeriod(day="friday", open="18:00", close="01:00", is_overnight=True))
    assert closing_minutes(hours, Weekday.FRIDAY) == 25 * 60
    assert closing_minutes(hours, Weekday.MONDAY) is None


def test_check_opening_hours_fit():
    hours = _hours(OperatingPeriod(day="monday", open="17:00", close="23:00"))
    fits, _ = check_opening_hours_fit(hours, "morning", Weekday.MONDAY)
    assert not fits
    fits, _ = check_opening_hours_fit(hours, "evening", Weekday.MONDAY)
    assert fits
    fits, reason = check_opening_hours_fit(None, "morning")
    assert fits
    assert "No opening hours" in reason


def test_periods_from_weekday_text():
    hours = periods_from_weekday_text(
        [
            "Monday: 9:00 AM – 5:00 PM",
            "Tuesday: Closed",
            "Wednesday: Open 24 hours",
            "Friday: 6:00 PM – 2:00 AM",
            "Someday: 9:00 AM – 5:00 PM",
        ]
    )
    by_day = {p.day: p for p in hours.periods}
    assert set(by_day) == {Weekday.MONDAY, Weekday.WEDNESDAY, Weekday.FRIDAY}
    assert (by_day[Weekday.MONDAY].open, by_day[Weekday.MONDAY].close) == ("09:00", "17:00")
    assert by_day[Weekday.WEDNESDAY].close == "23:59"
    assert by_day[Weekday.FRIDAY].is_overnight
    assert is_open(hours, Weekday.FRIDAY, 25 * 60)
