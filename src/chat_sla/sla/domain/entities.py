"""
SLA Domain Entities
====================

Pure Python domain entities for SLA measurement.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import List, Optional

from chat_sla.config import MessageRole, VALID_MESSAGE_ROLES
from chat_sla.sla.domain.value_objects import ComplianceState, SLA_METRIC_ORDER


@dataclass(frozen=True)
class Message:
    """A single chat message; only its author role and timestamp matter for SLAs."""

    role: str
    created_at: datetime

    def __post_init__(self):
        if self.role not in VALID_MESSAGE_ROLES:
            raise ValueError(f"Unknown message role: {self.role}")

    @property
    def is_customer(self) -> bool:
        return self.role == MessageRole.CUSTOMER

    @property
    def is_agent(self) -> bool:
        return self.role == MessageRole.AGENT


@dataclass
class Chat:
    """
    Chat entity as seen by the SLA engine.

    opened_at is required. The remaining instants stay None until the
    corresponding event has happened. Messages are expected in ascending
    created_at order; the engine re-sorts them before measuring.
    """

    id: str
    opened_at: datetime
    first_agent_assigned_at: Optional[datetime] = None
    picked_up_at: Optional[datetime] = None
    response_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    provider: Optional[str] = None
    priority: Optional[str] = None
    messages: List[Message] = field(default_factory=list)

    @property
    def assigned_at(self) -> Optional[datetime]:
        """First agent assignment, falling back to the pick-up timestamp."""
        if self.first_agent_assigned_at is not None:
            return self.first_agent_assigned_at
        return self.picked_up_at

    @property
    def is_closed(self) -> bool:
        return self.closed_at is not None

    def sorted_messages(self) -> List[Message]:
        """Messages in ascending created_at order (stable for equal timestamps)."""
        return sorted(self.messages, key=lambda message: message.created_at)

    def first_agent_message_at(self) -> Optional[datetime]:
        """First agent-authored message, or response_at when no agent message is loaded."""
        for message in self.sorted_messages():
            if message.is_agent:
                return message.created_at
        return self.response_at


@dataclass(frozen=True)
class MetricDurations:
    """Elapsed seconds per metric; None when the metric cannot be measured yet."""

    pickup: Optional[float] = None
    first_response: Optional[float] = None
    avg_response: Optional[float] = None
    resolution: Optional[float] = None


@dataclass(frozen=True)
class MetricCompliance:
    """Per-metric compliance for one clock (wall clock or business hours)."""

    pickup: ComplianceState = ComplianceState.INDETERMINATE
    first_response: ComplianceState = ComplianceState.INDETERMINATE
    avg_response: ComplianceState = ComplianceState.INDETERMINATE
    resolution: ComplianceState = ComplianceState.INDETERMINATE

    def for_metric(self, metric: str) -> ComplianceState:
        return getattr(self, metric)

    def breached(self) -> List[str]:
        return [
            metric for metric in SLA_METRIC_ORDER
            if self.for_metric(metric) is ComplianceState.BREACHED
        ]


@dataclass(frozen=True)
class SLAMetrics:
    """
    SLA metrics for a chat.

    Derived value: recomputed on demand and never mutated. The business-hours
    block is only meaningful when business_hours_computed is True.
    """

    # Wall clock durations (seconds)
    time_to_pickup: Optional[int] = None
    first_response_time: Optional[int] = None
    avg_response_time: Optional[float] = None
    resolution_time: Optional[int] = None

    # Wall clock compliance
    pickup_sla: ComplianceState = ComplianceState.INDETERMINATE
    first_response_sla: ComplianceState = ComplianceState.INDETERMINATE
    avg_response_sla: ComplianceState = ComplianceState.INDETERMINATE
    resolution_sla: ComplianceState = ComplianceState.INDETERMINATE
    overall_sla: ComplianceState = ComplianceState.INDETERMINATE

    # Business hours durations (seconds)
    time_to_pickup_bh: Optional[int] = None
    first_response_time_bh: Optional[int] = None
    avg_response_time_bh: Optional[float] = None
    resolution_time_bh: Optional[int] = None

    # Business hours compliance
    pickup_sla_bh: ComplianceState = ComplianceState.INDETERMINATE
    first_response_sla_bh: ComplianceState = ComplianceState.INDETERMINATE
    avg_response_sla_bh: ComplianceState = ComplianceState.INDETERMINATE
    resolution_sla_bh: ComplianceState = ComplianceState.INDETERMINATE
    overall_sla_bh: ComplianceState = ComplianceState.INDETERMINATE

    business_hours_computed: bool = False

    def compliance(self, business_hours: bool = False) -> MetricCompliance:
        if business_hours:
            return MetricCompliance(
                pickup=self.pickup_sla_bh,
                first_response=self.first_response_sla_bh,
                avg_response=self.avg_response_sla_bh,
                resolution=self.resolution_sla_bh,
            )
        return MetricCompliance(
            pickup=self.pickup_sla,
            first_response=self.first_response_sla,
            avg_response=self.avg_response_sla,
            resolution=self.resolution_sla,
        )

    def breached_metrics(self, business_hours: bool = False) -> List[str]:
        """Metric names whose flag is BREACHED on the requested clock."""
        return self.compliance(business_hours).breached()

    def to_dict(self) -> dict:
        """
        Persistence field map: durations as numbers, flags as nullable booleans.

        Business-hours fields are omitted when they were not computed so a
        wall-clock-only update never blanks previously stored BH values.
        """
        result = {}
        for f in fields(self):
            if f.name == "business_hours_computed":
                continue
            if f.name.endswith("_bh") and not self.business_hours_computed:
                continue
            value = getattr(self, f.name)
            if isinstance(value, ComplianceState):
                value = value.as_bool()
            result[f.name] = value
        return result
