"""
Utilities for parsing and evaluating venue opening hours.
"""

import logging
import re
from datetime import date, timedelta

from app.core.schemas import OperatingHours, OperatingPeriod, Weekday

logger = logging.getLogger(__name__)

MINUTES_IN_DAY = 24 * 60

# date.weekday(): Monday == 0
WEEKDAYS = list(Weekday)

# Minute windows for each time-of-day bucket
TIME_SLOT_RANGES = {
    "morning": (9 * 60, 12 * 60),
    "afternoon": (12 * 60, 17 * 60),
    "evening": (17 * 60, 21 * 60),
}

_AM_PM_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})\s*(AM|PM|am|pm)$")
_HOUR_MIN_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def convert_to_24h(hour: int, minute: int, meridiem: str) -> str:
    """
    Convert 12-hour time to 24-hour format string.

    Args:
        hour: Hour (1-12)
        minute: Minute (0-59)
        meridiem: "AM" or "PM"

    Returns:
        Time string in HH:MM format (24-hour)
    """
    meridiem = meridiem.upper()

    if meridiem == "AM":
        if hour == 12:
            hour = 0
    else:  # PM
        if hour != 12:
            hour += 12

    return f"{hour:02d}:{minute:02d}"


def parse_time_to_minutes(time_str: str | None) -> int | None:
    """
    Convert time string to minutes since midnight.

    Args:
        time_str: Time in "HH:MM" (24-hour) or "H:MM AM/PM" format

    Returns:
        Minutes since midnight (0-1439), or None if the string can't be parsed
    """
    if not time_str:
        return None

    time_str = time_str.strip()

    match = _AM_PM_PATTERN.match(time_str)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2))
        if hour < 1 or hour > 12 or minute > 59:
            logger.debug(f"[TimeParse] Out of range 12-hour time '{time_str}'")
            return None
        converted = convert_to_24h(hour, minute, match.group(3))
        return int(converted[:2]) * 60 + int(converted[3:])

    match = _HOUR_MIN_PATTERN.match(time_str)
    if match:
        hour = int(match.group(1))
        minute = int(match.group(2))
        if hour > 23 or minute > 59:
            logger.debug(f"[TimeParse] Out of range 24-hour time '{time_str}'")
            return None
        return hour * 60 + minute

    logger.debug(f"[TimeParse] Could not parse time string '{time_str}'")
    return None


def period_for_weekday(
    hours: OperatingHours | None, weekday: Weekday | None
) -> OperatingPeriod | None:
    """Return the operating period for a weekday, if the schedule has one."""
    if hours is None or weekday is None:
        return None
    for period in hours.periods:
        if period.day == weekday:
            return period
    return None


def is_open(hours: OperatingHours | None, weekday: Weekday, clock_minutes: int) -> bool:
    """
    Check if a venue is open at a given time on a given weekday.

    Unknown hours (no schedule, or an empty period list) and malformed
    HH:MM strings count as open. A weekday with no period counts as closed.

    Overnight periods are only evaluated against the opening day: a query at
    01:30 on the opening weekday falls inside [open, close + 24h), but the
    same instant looked up under the following weekday does not consult the
    previous day's period.

    Args:
        hours: Venue schedule, or None when unknown
        weekday: Day whose period is checked
        clock_minutes: Minutes since midnight of that day. Values past 1439
            address the hours after midnight on the opening day, so 1530 is
            01:30 the next morning for an overnight period.
    """
    if hours is None or not hours.periods:
        return True

    period = period_for_weekday(hours, weekday)
    if period is None:
        return False

    open_minutes = parse_time_to_minutes(period.open)
    close_minutes = parse_time_to_minutes(period.close)
    if open_minutes is None or close_minutes is None:
        logger.debug(
            f"[OpeningHours] Malformed period {period.open}-{period.close} on {weekday.value}, "
            "assuming open"
        )
        return True

    if period.is_overnight:
        close_minutes += MINUTES_IN_DAY

    return open_minutes <= clock_minutes < close_minutes


def weekday_for_trip_day(start_date: str | None, day_offset: int) -> Weekday | None:
    """
    Resolve the weekday of a trip day.

    Args:
        start_date: Trip start date as YYYY-MM-DD
        day_offset: Zero-based day index within the trip

    Returns:
        The weekday, or None when the date is malformed (callers must then
        skip availability checks rather than guess a day)
    """
    if not start_date or day_offset < 0:
        return None

    parts = start_date.strip().split("-")
    if len(parts) != 3:
        return None

    try:
        start = date(int(parts[0]), int(parts[1]), int(parts[2]))
        target = start + timedelta(days=day_offset)
    except (ValueError, OverflowError):
        logger.debug(f"[OpeningHours] Invalid trip start date '{start_date}'")
        return None

    return WEEKDAYS[target.weekday()]


def weekday_for_date(value: date) -> Weekday:
    return WEEKDAYS[value.weekday()]


def opening_minutes(hours: OperatingHours | None, weekday: Weekday | None) -> int | None:
    period = period_for_weekday(hours, weekday)
    return parse_time_to_minutes(period.open) if period else None


def closing_minutes(hours: OperatingHours | None, weekday: Weekday | None) -> int | None:
    """Closing time on a weekday; overnight closes are pushed past midnight."""
    period = period_for_weekday(hours, weekday)
    if period is None:
        return None
    close = parse_time_to_minutes(period.close)
    if close is not None and period.is_overnight:
        close += MINUTES_IN_DAY
    return close


def check_opening_hours_fit(
    hours: OperatingHours | None,
    time_slot: str,
    weekday: Weekday | None = None,
    min_visit_minutes: int = 30,
) -> tuple[bool, str]:
    """
    Check if a venue is open long enough during a time slot.

    Args:
        hours: Venue schedule
        time_slot: "morning", "afternoon" or "evening"
        weekday: Day to check; when None every period is considered
        min_visit_minutes: Minimum overlap between slot and opening period

    Returns:
        Tuple of (fits: bool, reason: str)
    """
    if hours is None or not hours.periods:
        return True, "No opening hours data available"

    slot_range = TIME_SLOT_RANGES.get(time_slot)
    if slot_range is None:
        return True, f"Unknown time slot '{time_slot}'"

    slot_start, slot_end = slot_range

    for period in hours.periods:
        if weekday is not None and period.day != weekday:
            continue

        open_minutes = parse_time_to_minutes(period.open)
        close_minutes = parse_time_to_minutes(period.close)
        if open_minutes is None or close_minutes is None:
            return True, "Malformed opening hours, assuming open"

        if period.is_overnight:
            close_minutes += MINUTES_IN_DAY

        overlap = max(0, min(slot_end, close_minutes) - max(slot_start, open_minutes))
        if overlap >= min_visit_minutes:
            return True, (
                f"Open during {time_slot} ({period.open}-{period.close}, {overlap}min available)"
            )

    return False, f"Insufficient opening hours during {time_slot} (need {min_visit_minutes}min)"


def periods_from_weekday_text(weekday_text: list[str]) -> OperatingHours:
    """
    Parse Google Places opening hours weekday_text into operating periods.

    Args:
        weekday_text: List of strings like ["Monday: 9:00 AM – 5:00 PM", "Tuesday: Closed"]

    Returns:
        OperatingHours with one period per open weekday. Closed days get no
        period; a closing time earlier than the opening time marks the
        period as overnight.
    """
    periods: list[OperatingPeriod] = []
    seen: set[Weekday] = set()

    for entry in weekday_text:
        if ":" not in entry:
            continue

        day, hours_str = entry.split(":", 1)
        try:
            weekday = Weekday(day.strip().lower())
        except ValueError:
            continue
        if weekday in seen:
            continue
        hours_str = hours_str.strip()

        if "closed" in hours_str.lower():
            continue

        if "24 hours" in hours_str:
            periods.append(OperatingPeriod(day=weekday, open="00:00", close="23:59"))
            seen.add(weekday)
            continue

        # Google uses various separators: –, -, to, etc.
        matches = re.findall(r"(\d{1,2}):(\d{2})\s*(AM|PM|am|pm)", hours_str)
        if len(matches) < 2:
            logger.debug(f"[OpeningHours] Could not parse hours '{entry}'")
            continue

        open_match = matches[0]
        close_match = matches[-1]
        open_24 = convert_to_24h(int(open_match[0]), int(open_match[1]), open_match[2])
        close_24 = convert_to_24h(int(close_match[0]), int(close_match[1]), close_match[2])

        periods.append(
            OperatingPeriod(
                day=weekday,
                open=open_24,
                close=close_24,
                is_overnight=close_24 < open_24,
            )
        )
        seen.add(weekday)

    return OperatingHours(periods=periods)
