"""
Compliance evaluation: threshold resolution, per-metric flags and the
overall aggregate under the enabled-metrics policy.
"""

from typing import Optional

from chat_sla.sla.domain.durations import DurationCalculator
from chat_sla.sla.domain.entities import MetricCompliance, MetricDurations
from chat_sla.sla.domain.value_objects import (
    ComplianceState,
    EnabledMetrics,
    SLAConfig,
    SLAThresholds,
)


def _override_key(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    key = value.strip().lower()
    return key or None


class ComplianceEvaluator:
    """Stateless; every method is a pure function of its arguments."""

    @staticmethod
    def resolve_thresholds(
        config: SLAConfig,
        provider: Optional[str] = None,
        priority: Optional[str] = None
    ) -> SLAThresholds:
        """
        Effective targets for one chat.

        Layers, lowest first: configured defaults, the channel override for
        the chat's provider, the priority override for its priority. A field
        set by a later layer replaces the earlier value, so when both
        overrides define the same metric the priority override wins.
        """
        thresholds = config.default_thresholds

        channel_key = _override_key(provider)
        if channel_key is not None:
            thresholds = thresholds.apply(config.channel_overrides.get(channel_key))

        priority_key = _override_key(priority)
        if priority_key is not None:
            thresholds = thresholds.apply(config.priority_overrides.get(priority_key))

        return thresholds

    @staticmethod
    def evaluate(durations: MetricDurations, thresholds: SLAThresholds) -> MetricCompliance:
        return MetricCompliance(
            pickup=DurationCalculator.compliance(durations.pickup, thresholds.pickup),
            first_response=DurationCalculator.compliance(
                durations.first_response, thresholds.first_response
            ),
            avg_response=DurationCalculator.compliance(
                durations.avg_response, thresholds.avg_response
            ),
            resolution=DurationCalculator.compliance(durations.resolution, thresholds.resolution),
        )

    @staticmethod
    def overall(compliance: MetricCompliance, enabled: EnabledMetrics) -> ComplianceState:
        """
        Aggregate over enabled metrics only.

        INDETERMINATE when nothing is enabled or any enabled metric is
        indeterminate; otherwise COMPLIANT only if every enabled metric is.
        """
        included = enabled.included()
        if not included:
            return ComplianceState.INDETERMINATE

        states = [compliance.for_metric(metric) for metric in included]
        if ComplianceState.INDETERMINATE in states:
            return ComplianceState.INDETERMINATE

        return ComplianceState.from_bool(
            all(state is ComplianceState.COMPLIANT for state in states)
        )
