"""
Fetch window around the selected calendar day.

The window starts weeks_back whole weeks before the week containing the
selected day and ends at the last instant of the week weeks_forward weeks
after it. With the defaults that is five calendar weeks: enough to paint the
indicator dots of neighbouring weeks without refetching on every swipe.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

# end-of-day uses millisecond precision: 23:59:59.999
END_OF_DAY_PRECISION = timedelta(milliseconds=1)


@dataclass(frozen=True)
class FetchWindow:
    start: datetime
    end: datetime

    def __contains__(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def start_of_day(day: date, zone: tzinfo) -> datetime:
    return datetime.combine(day, time.min, tzinfo=zone)


def end_of_day(day: date, zone: tzinfo) -> datetime:
    return start_of_day(day + timedelta(days=1), zone) - END_OF_DAY_PRECISION


def day_bounds(day: date | datetime, zone: tzinfo) -> tuple[datetime, datetime]:
    day = _as_date(day)
    return start_of_day(day, zone), end_of_day(day, zone)


def start_of_week(day: date | datetime, week_start: int = 0) -> date:
    """First day of the calendar week containing day (week_start: Monday=0 .. Sunday=6)."""
    day = _as_date(day)
    return day - timedelta(days=(day.weekday() - week_start) % 7)


def compute_window(
    selected: date | datetime,
    zone: tzinfo,
    week_start: int = 0,
    weeks_back: int = 2,
    weeks_forward: int = 2,
) -> FetchWindow:
    """Pure: selected day -> FetchWindow in zone."""
    week = start_of_week(selected, week_start)
    first_day = week - timedelta(weeks=weeks_back)
    last_day = week + timedelta(weeks=weeks_forward) + timedelta(days=6)
    return FetchWindow(
        start=start_of_day(first_day, zone),
        end=end_of_day(last_day, zone),
    )
