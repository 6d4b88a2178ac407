"""
SLA Module
==========

Bounded context for chat service-level measurement.

Responsibilities:
- Measure pickup, first response, average response and resolution times
- Integrate elapsed time over office hours (timezone, weekends, holidays)
- Judge compliance per metric and overall under the enabled-metrics policy
- Recalculate stored metrics in bulk after a configuration change
"""

__version__ = "1.0.0"
