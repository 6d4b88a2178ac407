"""
Wall-clock duration calculations.

Pure functions: no I/O, no state, safe to call concurrently.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from chat_sla.sla.domain.entities import Message
from chat_sla.sla.domain.value_objects import ComplianceState

_ONE_SECOND = timedelta(seconds=1)


def _instant(value: datetime) -> datetime:
    # Aware values sharing a tzinfo subtract as wall times; UTC makes them real instants
    return value.astimezone(timezone.utc) if value.tzinfo is not None else value


class DurationCalculator:
    """
    Elapsed wall-clock seconds per SLA metric.

    Whole-second metrics are floored; the average response time keeps its
    fractional part.

    A reversed interval (e.g. closed before opened) is not rejected here: it
    yields a negative duration, which compares as within target. The
    business-hours clock raises InvalidIntervalError for the same interval,
    so a malformed chat fails as a whole once business hours are computed.
    """

    @staticmethod
    def elapsed_seconds(start: datetime, end: datetime) -> int:
        """Floor of (end - start) in seconds; negative when end precedes start."""
        return (_instant(end) - _instant(start)) // _ONE_SECOND

    @staticmethod
    def pickup_time(opened_at: datetime, assigned_at: Optional[datetime]) -> Optional[int]:
        """Seconds from chat opened to first agent assignment, None if never assigned."""
        if assigned_at is None:
            return None
        return DurationCalculator.elapsed_seconds(opened_at, assigned_at)

    @staticmethod
    def first_response_time(
        opened_at: datetime,
        first_agent_message_at: Optional[datetime]
    ) -> Optional[int]:
        """Seconds from chat opened to the first agent-authored message."""
        if first_agent_message_at is None:
            return None
        return DurationCalculator.elapsed_seconds(opened_at, first_agent_message_at)

    @staticmethod
    def response_intervals(messages: Iterable[Message]) -> List[tuple]:
        """
        (customer_message_at, agent_reply_at) pairs used by the average.

        Only the latest unanswered customer message counts; an agent message
        with no pending customer message (a follow-up) is ignored.
        """
        intervals = []
        pending: Optional[datetime] = None

        for message in messages:
            if message.is_customer:
                pending = message.created_at
            elif message.is_agent and pending is not None:
                intervals.append((pending, message.created_at))
                pending = None

        return intervals

    @staticmethod
    def avg_response_time(messages: Iterable[Message]) -> Optional[float]:
        """Mean customer-to-agent reply time in seconds, None if nothing was answered."""
        intervals = DurationCalculator.response_intervals(messages)
        if not intervals:
            return None

        total = sum((_instant(reply) - _instant(asked)).total_seconds() for asked, reply in intervals)
        return total / len(intervals)

    @staticmethod
    def resolution_time(opened_at: datetime, closed_at: Optional[datetime]) -> Optional[int]:
        """Seconds from chat opened to chat closed, None while open."""
        if closed_at is None:
            return None
        return DurationCalculator.elapsed_seconds(opened_at, closed_at)

    @staticmethod
    def compliance(actual: Optional[float], target: float) -> ComplianceState:
        """Inclusive comparison: meeting the target exactly is compliant."""
        if actual is None:
            return ComplianceState.INDETERMINATE
        return ComplianceState.from_bool(actual <= target)
