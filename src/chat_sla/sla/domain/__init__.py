"""
SLA Domain Layer
================

Pure SLA engine for support chats.

Contains:
- Entities: Chat, Message and the derived SLAMetrics
- Value Objects: SLA targets, office hours, holidays, enabled-metrics policy
- Domain Services: DurationCalculator, BusinessHoursClock,
  ComplianceEvaluator, SLAMetricsEngine

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from chat_sla.sla.domain.value_objects import (
    ComplianceState,
    EnabledMetrics,
    Holiday,
    HolidayConfig,
    PRESET_HOLIDAYS,
    PresetHolidays,
    MetricThresholdOverride,
    OfficeHoursConfig,
    SLA_METRIC_ORDER,
    SLAConfig,
    SLAConfigSnapshot,
    SLAThresholds,
)
from chat_sla.sla.domain.entities import (
    Chat,
    Message,
    MetricCompliance,
    MetricDurations,
    SLAMetrics,
)
from chat_sla.sla.domain.durations import DurationCalculator
from chat_sla.sla.domain.business_hours import BusinessHoursClock
from chat_sla.sla.domain.compliance import ComplianceEvaluator
from chat_sla.sla.domain.engine import (
    SLAMetricsEngine,
    calculate_all_sla_metrics,
    calculate_all_sla_metrics_with_business_hours,
)
from chat_sla.sla.domain.formatting import (
    format_compliance_percentage,
    format_duration,
    meets_compliance_target,
)

__all__ = [
    # Entities
    "Chat",
    "Message",
    "MetricCompliance",
    "MetricDurations",
    "SLAMetrics",
    # Value Objects
    "ComplianceState",
    "EnabledMetrics",
    "Holiday",
    "HolidayConfig",
    "PRESET_HOLIDAYS",
    "PresetHolidays",
    "MetricThresholdOverride",
    "OfficeHoursConfig",
    "SLA_METRIC_ORDER",
    "SLAConfig",
    "SLAConfigSnapshot",
    "SLAThresholds",
    # Domain Services
    "DurationCalculator",
    "BusinessHoursClock",
    "ComplianceEvaluator",
    "SLAMetricsEngine",
    "calculate_all_sla_metrics",
    "calculate_all_sla_metrics_with_business_hours",
    # Formatting
    "format_duration",
    "format_compliance_percentage",
    "meets_compliance_target",
]
