"""
SLA Metrics Engine
==================

Combines the duration calculator, the business-hours clock and the
compliance evaluator into one computation per chat.

Both entry points are pure: they read the chat and configuration, never
mutate them, and return a fresh SLAMetrics value.
"""

from typing import Optional

from chat_sla.sla.domain.business_hours import BusinessHoursClock
from chat_sla.sla.domain.compliance import ComplianceEvaluator
from chat_sla.sla.domain.durations import DurationCalculator
from chat_sla.sla.domain.entities import Chat, MetricDurations, SLAMetrics
from chat_sla.sla.domain.value_objects import (
    EnabledMetrics,
    HolidayConfig,
    OfficeHoursConfig,
    SLAConfig,
)


class SLAMetricsEngine:
    """Per-chat SLA computation for the wall clock and, optionally, business hours."""

    @staticmethod
    def wall_clock_durations(chat: Chat) -> MetricDurations:
        messages = chat.sorted_messages()
        return MetricDurations(
            pickup=DurationCalculator.pickup_time(chat.opened_at, chat.assigned_at),
            first_response=DurationCalculator.first_response_time(
                chat.opened_at, chat.first_agent_message_at()
            ),
            avg_response=DurationCalculator.avg_response_time(messages),
            resolution=DurationCalculator.resolution_time(chat.opened_at, chat.closed_at),
        )

    @staticmethod
    def business_hours_durations(chat: Chat, clock: BusinessHoursClock) -> MetricDurations:
        messages = chat.sorted_messages()
        return MetricDurations(
            pickup=clock.pickup_time(chat.opened_at, chat.assigned_at),
            first_response=clock.first_response_time(
                chat.opened_at, chat.first_agent_message_at()
            ),
            avg_response=clock.avg_response_time(messages),
            resolution=clock.resolution_time(chat.opened_at, chat.closed_at),
        )

    @staticmethod
    def calculate_all_sla_metrics(
        chat: Chat,
        config: SLAConfig,
        enabled_metrics: Optional[EnabledMetrics] = None
    ) -> SLAMetrics:
        """
        Wall-clock metrics only; the business-hours block stays unset.

        Args:
            chat: Chat with its message history
            config: SLA targets and overrides
            enabled_metrics: Overall-compliance policy, defaults to pickup + first response

        Returns:
            SLAMetrics with business_hours_computed=False
        """
        enabled = enabled_metrics or EnabledMetrics()
        thresholds = ComplianceEvaluator.resolve_thresholds(config, chat.provider, chat.priority)

        durations = SLAMetricsEngine.wall_clock_durations(chat)
        compliance = ComplianceEvaluator.evaluate(durations, thresholds)

        return SLAMetrics(
            time_to_pickup=durations.pickup,
            first_response_time=durations.first_response,
            avg_response_time=durations.avg_response,
            resolution_time=durations.resolution,
            pickup_sla=compliance.pickup,
            first_response_sla=compliance.first_response,
            avg_response_sla=compliance.avg_response,
            resolution_sla=compliance.resolution,
            overall_sla=ComplianceEvaluator.overall(compliance, enabled),
        )

    @staticmethod
    def calculate_all_sla_metrics_with_business_hours(
        chat: Chat,
        config: SLAConfig,
        office_hours: OfficeHoursConfig,
        enabled_metrics: Optional[EnabledMetrics] = None,
        holidays: Optional[HolidayConfig] = None
    ) -> SLAMetrics:
        """
        Wall-clock and business-hours metrics in one result.

        The same interval endpoints feed both clocks, and both are judged
        against the same resolved thresholds.

        Raises:
            InvalidIntervalError: an interval ends before it starts (e.g. a
                chat closed before it was opened)
        """
        enabled = enabled_metrics or EnabledMetrics()
        thresholds = ComplianceEvaluator.resolve_thresholds(config, chat.provider, chat.priority)
        clock = BusinessHoursClock(office_hours, holidays)

        wall = SLAMetricsEngine.wall_clock_durations(chat)
        wall_compliance = ComplianceEvaluator.evaluate(wall, thresholds)

        bh = SLAMetricsEngine.business_hours_durations(chat, clock)
        bh_compliance = ComplianceEvaluator.evaluate(bh, thresholds)

        return SLAMetrics(
            time_to_pickup=wall.pickup,
            first_response_time=wall.first_response,
            avg_response_time=wall.avg_response,
            resolution_time=wall.resolution,
            pickup_sla=wall_compliance.pickup,
            first_response_sla=wall_compliance.first_response,
            avg_response_sla=wall_compliance.avg_response,
            resolution_sla=wall_compliance.resolution,
            overall_sla=ComplianceEvaluator.overall(wall_compliance, enabled),
            time_to_pickup_bh=bh.pickup,
            first_response_time_bh=bh.first_response,
            avg_response_time_bh=bh.avg_response,
            resolution_time_bh=bh.resolution,
            pickup_sla_bh=bh_compliance.pickup,
            first_response_sla_bh=bh_compliance.first_response,
            avg_response_sla_bh=bh_compliance.avg_response,
            resolution_sla_bh=bh_compliance.resolution,
            overall_sla_bh=ComplianceEvaluator.overall(bh_compliance, enabled),
            business_hours_computed=True,
        )


calculate_all_sla_metrics = SLAMetricsEngine.calculate_all_sla_metrics
calculate_all_sla_metrics_with_business_hours = (
    SLAMetricsEngine.calculate_all_sla_metrics_with_business_hours
)
