"""
Business-hours clock.

Measures how much of a wall-clock interval falls inside configured office
hours. Local calendar days and office windows are derived through zoneinfo;
all subtraction happens on UTC instants, so DST transitions shorten or
lengthen a window exactly as the timezone database says.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Iterator, Optional, Tuple

from chat_sla.core import InvalidIntervalError
from chat_sla.sla.domain.durations import DurationCalculator
from chat_sla.sla.domain.entities import Message
from chat_sla.sla.domain.value_objects import HolidayConfig, OfficeHoursConfig

_ONE_DAY = timedelta(days=1)
_ONE_SECOND = timedelta(seconds=1)


def _require_aware(start: datetime, end: datetime) -> None:
    if start.tzinfo is None or end.tzinfo is None:
        raise InvalidIntervalError(start, end, "instants must be timezone-aware")


class BusinessHoursClock:
    """
    Converts wall-clock intervals into seconds inside office hours.

    Stateless apart from its (immutable) configuration; one instance can be
    shared across threads and tasks.
    """

    def __init__(
        self,
        office_hours: OfficeHoursConfig,
        holidays: Optional[HolidayConfig] = None
    ):
        self.office_hours = office_hours
        self.holidays = holidays or HolidayConfig()
        self._zone = office_hours.zone

    # ==================== Calendar ====================

    def is_working_day(self, day: date) -> bool:
        """Working weekday that is not an excluded holiday."""
        if not self.office_hours.is_working_weekday(day):
            return False
        return not self.holidays.excludes(day)

    def office_window(self, day: date) -> Tuple[datetime, datetime]:
        """[open, close) of the given local date, as UTC instants."""
        opens = datetime.combine(day, self.office_hours.start_time, tzinfo=self._zone)
        closes = datetime.combine(day, self.office_hours.end_time, tzinfo=self._zone)
        return opens.astimezone(timezone.utc), closes.astimezone(timezone.utc)

    def _local_days(self, start: datetime, end: datetime) -> Iterator[date]:
        day = start.astimezone(self._zone).date()
        last = end.astimezone(self._zone).date()
        while day <= last:
            yield day
            day += _ONE_DAY

    # ==================== Core integration ====================

    def elapsed_business_seconds(self, start: datetime, end: datetime) -> int:
        """
        Seconds of [start, end] that fall inside office hours.

        Walks each local calendar date from start's date through end's date,
        intersecting that day's office window with the interval.

        Raises:
            InvalidIntervalError: start is after end, or an instant is naive
        """
        _require_aware(start, end)
        start_utc = start.astimezone(timezone.utc)
        end_utc = end.astimezone(timezone.utc)

        if start_utc > end_utc:
            raise InvalidIntervalError(start, end)
        if start_utc == end_utc:
            return 0

        total = 0
        for day in self._local_days(start_utc, end_utc):
            if not self.is_working_day(day):
                continue

            window_open, window_close = self.office_window(day)
            overlap_start = max(start_utc, window_open)
            overlap_end = min(end_utc, window_close)

            if overlap_start < overlap_end:
                total += (overlap_end - overlap_start) // _ONE_SECOND

        return total

    # ==================== Point queries ====================

    def is_within_office_hours(self, instant: datetime) -> bool:
        """True when instant is on a working day inside [open, close)."""
        _require_aware(instant, instant)
        day = instant.astimezone(self._zone).date()
        if not self.is_working_day(day):
            return False

        window_open, window_close = self.office_window(day)
        return window_open <= instant.astimezone(timezone.utc) < window_close

    def next_business_hour_start(self, instant: datetime, max_days: int = 366) -> datetime:
        """
        The instant itself when already inside office hours, otherwise the
        next window opening (UTC).

        max_days bounds the search for calendars made entirely of holidays.
        """
        if self.is_within_office_hours(instant):
            return instant

        instant_utc = instant.astimezone(timezone.utc)
        day = instant_utc.astimezone(self._zone).date()
        for _ in range(max_days + 1):
            if self.is_working_day(day):
                window_open, _close = self.office_window(day)
                if window_open >= instant_utc:
                    return window_open
            day += _ONE_DAY

        raise InvalidIntervalError(
            instant, instant, f"no office hours within {max_days} days"
        )

    # ==================== Metric wrappers ====================

    def pickup_time(self, opened_at: datetime, assigned_at: Optional[datetime]) -> Optional[int]:
        if assigned_at is None:
            return None
        return self.elapsed_business_seconds(opened_at, assigned_at)

    def first_response_time(
        self,
        opened_at: datetime,
        first_agent_message_at: Optional[datetime]
    ) -> Optional[int]:
        if first_agent_message_at is None:
            return None
        return self.elapsed_business_seconds(opened_at, first_agent_message_at)

    def avg_response_time(self, messages: Iterable[Message]) -> Optional[float]:
        """Same pairing rules as the wall-clock average, each segment measured in business hours."""
        intervals = DurationCalculator.response_intervals(messages)
        if not intervals:
            return None

        total = sum(self.elapsed_business_seconds(asked, reply) for asked, reply in intervals)
        return total / len(intervals)

    def resolution_time(self, opened_at: datetime, closed_at: Optional[datetime]) -> Optional[int]:
        if closed_at is None:
            return None
        return self.elapsed_business_seconds(opened_at, closed_at)
