"""Date helpers for stays, validity windows and leg sequencing."""

from collections.abc import Iterator
from datetime import date, timedelta


def days_between(start: date, end: date) -> int:
    """Signed number of days from start to end."""
    return (end - start).days


def nights_between(check_in: date, check_out: date) -> int:
    """Number of nights in a stay (0 or negative for invalid sequences)."""
    return days_between(check_in, check_out)


def iter_stay_nights(check_in: date, check_out: date) -> Iterator[date]:
    """Yield each night of [check_in, check_out)."""
    current = check_in
    while current < check_out:
        yield current
        current += timedelta(days=1)


def is_within(day: date, start: date | None, end: date | None) -> bool:
    """Inclusive range check; a missing bound is open."""
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def overlaps_stay(start: date, end: date, check_in: date, check_out: date) -> bool:
    """Check whether an inclusive [start, end] window touches any night of the stay."""
    return start < check_out and end >= check_in


def leg_gap_days(previous_check_out: date, next_check_in: date) -> int:
    """Days between consecutive legs (negative means overlap)."""
    return days_between(previous_check_out, next_check_in)
