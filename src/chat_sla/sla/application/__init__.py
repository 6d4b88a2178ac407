"""
SLA Application Layer
======================

Application layer for the SLA engine.

Contains:
- Services: single-chat calculation and the batch recalculation driver
- DTOs: recalculation request/result models

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from chat_sla.sla.application.dto import (
    RecalculationFilter,
    RecalculationRequest,
    RecalculationError,
    RecalculationResult,
    default_date_range,
    estimate_chat_count,
    estimate_processing_ms,
    format_elapsed,
)
from chat_sla.sla.application.services import (
    SLAMetricsService,
    RecalculationDriver,
    IChatRepository,
    ISLAConfigProvider,
    ISLAEventLogger,
)

__all__ = [
    # DTOs
    "RecalculationFilter",
    "RecalculationRequest",
    "RecalculationError",
    "RecalculationResult",
    "default_date_range",
    "estimate_chat_count",
    "estimate_processing_ms",
    "format_elapsed",
    # Services
    "SLAMetricsService",
    "RecalculationDriver",
    # Interfaces
    "IChatRepository",
    "ISLAConfigProvider",
    "ISLAEventLogger",
]
