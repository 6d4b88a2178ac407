"""
SLA Event Logger
================

Category-tagged SLA events (calculations, breaches, configuration changes,
business-hours integrations, recalculation runs) emitted as structured
records through the standard logging pipeline.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from chat_sla.config import CalculationType
from chat_sla.shared.infrastructure.logging import get_logger
from chat_sla.sla.application import ISLAEventLogger, RecalculationResult
from chat_sla.sla.domain import OfficeHoursConfig, SLAMetrics


class SLALogCategory(str):
    """Categories attached to every SLA event."""
    CALCULATION = "calculation"
    BREACH = "breach"
    CONFIG_CHANGE = "config_change"
    BUSINESS_HOURS = "business_hours"
    RECALCULATION = "recalculation"


SLA_LOG_SOURCE = "sla-engine"


def _wall_clock_summary(metrics: SLAMetrics) -> Dict[str, Any]:
    return {
        "time_to_pickup": metrics.time_to_pickup,
        "first_response_time": metrics.first_response_time,
        "avg_response_time": metrics.avg_response_time,
        "resolution_time": metrics.resolution_time,
        "overall_sla": metrics.overall_sla.as_bool(),
        "overall_sla_bh": (
            metrics.overall_sla_bh.as_bool() if metrics.business_hours_computed else None
        ),
    }


class SLALogger(ISLAEventLogger):
    """
    Structured SLA event logger.

    Every record carries source and category fields so SLA events can be
    filtered out of the general application log stream.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or get_logger("chat_sla.sla.events")

    def _emit(self, level: int, category: str, message: str, **context: Any) -> None:
        self._logger.log(
            level,
            message,
            extra={"source": SLA_LOG_SOURCE, "category": category, **context}
        )

    def log_calculation(
        self,
        chat_id: str,
        metrics: SLAMetrics,
        calculation_type: str = CalculationType.UPDATE
    ) -> None:
        self._emit(
            logging.INFO,
            SLALogCategory.CALCULATION,
            f"SLA calculation {calculation_type} for chat {chat_id}",
            chat_id=chat_id,
            calculation_type=calculation_type,
            metrics=_wall_clock_summary(metrics),
        )

    def log_breach(
        self,
        chat_id: str,
        breached_metrics: List[str],
        metrics: SLAMetrics,
        business_hours: bool = False
    ) -> None:
        clock = "business hours" if business_hours else "wall clock"
        self._emit(
            logging.WARNING,
            SLALogCategory.BREACH,
            f"SLA breach detected for chat {chat_id} ({clock}): {', '.join(breached_metrics)}",
            chat_id=chat_id,
            breached_metrics=list(breached_metrics),
            business_hours=business_hours,
            metrics=_wall_clock_summary(metrics),
        )

    def log_config_change(
        self,
        changed_settings: List[str],
        old_values: Dict[str, Any],
        new_values: Dict[str, Any],
        user_id: Optional[str] = None
    ) -> None:
        self._emit(
            logging.INFO,
            SLALogCategory.CONFIG_CHANGE,
            f"SLA configuration changed: {', '.join(changed_settings)}",
            changed_settings=list(changed_settings),
            old_values=old_values,
            new_values=new_values,
            user_id=user_id,
        )

    def log_business_hours_calculation(
        self,
        chat_id: str,
        start: datetime,
        end: datetime,
        business_hours_seconds: int,
        wall_clock_seconds: int,
        office_hours: OfficeHoursConfig
    ) -> None:
        self._emit(
            logging.DEBUG,
            SLALogCategory.BUSINESS_HOURS,
            f"Business hours calculation for chat {chat_id}",
            chat_id=chat_id,
            start_time=start.isoformat(),
            end_time=end.isoformat(),
            business_hours_seconds=business_hours_seconds,
            wall_clock_seconds=wall_clock_seconds,
            office_hours=office_hours.model_dump(mode="json"),
        )

    def log_recalculation(self, run_id: str, result: RecalculationResult) -> None:
        level = logging.WARNING if (result.failed or result.aborted) else logging.INFO
        self._emit(
            level,
            SLALogCategory.RECALCULATION,
            result.summary(),
            run_id=run_id,
            processed=result.processed,
            failed=result.failed,
            total=result.total,
            batches=result.batches,
            duration_ms=result.duration_ms,
            aborted=result.aborted,
            cancelled=result.cancelled,
        )
