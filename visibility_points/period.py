"""Resolution of from/to inputs into whole UTC days"""
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from visibility_points.exceptions import InvalidDateRangeError

PAST_DAY = 'past-day'
PAST_WEEK = 'past-week'
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

@dataclass
class Period:
    """A UTC range with millisecond and subgraph (second) boundaries"""
    from_date: datetime
    from_timestamp: int        # milliseconds
    from_graph_timestamp: int  # seconds, rounded up
    from_date_utc: str         # YYYY-MM-DD
    to_date: datetime
    to_timestamp: int
    to_graph_timestamp: int    # seconds, rounded down
    to_date_utc: str

    @classmethod
    def between(cls, from_date: datetime, to_date: datetime) -> 'Period':
        from_timestamp = _to_millis(from_date)
        to_timestamp = _to_millis(to_date)
        return cls(
            from_date=from_date,
            from_timestamp=from_timestamp,
            from_graph_timestamp=math.ceil(from_timestamp / 1000),
            from_date_utc=from_date.date().isoformat(),
            to_date=to_date,
            to_timestamp=to_timestamp,
            to_graph_timestamp=math.floor(to_timestamp / 1000),
            to_date_utc=to_date.date().isoformat()
        )

@dataclass
class ResolvedPeriod(Period):
    """Full requested range plus each calendar day inside it"""
    days: List[Period] = field(default_factory=list)


def _to_millis(value: datetime) -> int:
    return (value - EPOCH) // timedelta(milliseconds=1)


def _start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def _end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=59, microsecond=999000)


def _parse_date(value: str) -> datetime:
    """Parse an ISO date or datetime, naive values are taken as UTC"""
    try:
        parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
    except (AttributeError, ValueError) as e:
        raise InvalidDateRangeError(f"Invalid date: {value}") from e

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def get_period(
        from_: Optional[str] = None,
        to: Optional[str] = None,
        mode: str = PAST_WEEK,
        now: Optional[datetime] = None
) -> ResolvedPeriod:
    """
    Resolve optional from/to dates into a normalized UTC range of whole days.

    Without both dates, `past-day` gives yesterday and `past-week` gives the
    previous Monday to Sunday week.

    Raises:
        InvalidDateRangeError: If a date cannot be parsed or from is after to
    """
    if not from_ or not to:
        now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)

        if mode == PAST_DAY:
            from_date = _start_of_day(now - timedelta(days=1))
            to_date = _end_of_day(from_date)
        elif mode == PAST_WEEK:
            # Monday of the week before the current one
            from_date = _start_of_day(now - timedelta(days=now.weekday() + 7))
            to_date = _end_of_day(from_date + timedelta(days=6))
        else:
            raise ValueError(f"Unsupported period mode: {mode}")
    else:
        from_date = _start_of_day(_parse_date(from_))
        to_date = _end_of_day(_parse_date(to))

    resolved = ResolvedPeriod(**vars(Period.between(from_date, to_date)))

    if resolved.from_date_utc > resolved.to_date_utc:
        raise InvalidDateRangeError("Invalid date range: 'from' must be before 'to'")

    current = from_date
    while current <= to_date:
        resolved.days.append(Period.between(current, _end_of_day(current)))
        current = _start_of_day(current + timedelta(days=1))

    return resolved
