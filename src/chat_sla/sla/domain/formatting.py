"""Human-readable rendering of SLA durations and compliance rates."""

from typing import Optional

_MINUTE = 60
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR


def format_duration(seconds: Optional[float]) -> str:
    """
    Compact duration: "45s", "2m 5s", "2h 30m", "1d 3h".

    Only the two most significant units are shown and a zero second unit is
    dropped ("2m", "2h", "1d"). None renders as "N/A".
    """
    if seconds is None:
        return "N/A"

    total = int(seconds)
    if total < _MINUTE:
        return f"{total}s"

    if total < _HOUR:
        minutes, secs = divmod(total, _MINUTE)
        return f"{minutes}m {secs}s" if secs else f"{minutes}m"

    if total < _DAY:
        hours, rest = divmod(total, _HOUR)
        minutes = rest // _MINUTE
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"

    days, rest = divmod(total, _DAY)
    hours = rest // _HOUR
    return f"{days}d {hours}h" if hours else f"{days}d"


def format_compliance_percentage(compliant: int, total: int) -> str:
    if total == 0:
        return "0%"
    return f"{compliant * 100 / total:.1f}%"


def meets_compliance_target(compliant: int, total: int, target: float) -> bool:
    """Whether the compliant share reaches target percent; an empty population never does."""
    if total == 0:
        return False
    return compliant * 100 / total >= target
