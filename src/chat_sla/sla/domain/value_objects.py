"""
SLA Value Objects
==================

Immutable value objects for the SLA domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared between concurrent calculations.
"""

import re
from dataclasses import dataclass
from datetime import date, time
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from chat_sla.config import SLAMetricName


_HH_MM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class ComplianceState(str, Enum):
    """
    Tri-state outcome of comparing a duration against its target.

    INDETERMINATE means the duration could not be measured yet
    (e.g. the chat has not been picked up or closed).
    """
    COMPLIANT = "compliant"
    BREACHED = "breached"
    INDETERMINATE = "indeterminate"

    @classmethod
    def from_bool(cls, value: Optional[bool]) -> "ComplianceState":
        if value is None:
            return cls.INDETERMINATE
        return cls.COMPLIANT if value else cls.BREACHED

    def as_bool(self) -> Optional[bool]:
        """Nullable-boolean form used by the persistence layer."""
        if self is ComplianceState.INDETERMINATE:
            return None
        return self is ComplianceState.COMPLIANT


class MetricThresholdOverride(BaseModel):
    """Partial threshold override (seconds); unset fields fall through to the next layer."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    pickup: Optional[int] = Field(default=None, gt=0)
    first_response: Optional[int] = Field(default=None, gt=0)
    avg_response: Optional[int] = Field(default=None, gt=0)
    resolution: Optional[int] = Field(default=None, gt=0)


@dataclass(frozen=True)
class SLAThresholds:
    """Effective per-metric targets, in seconds, for one chat."""
    pickup: int
    first_response: int
    avg_response: int
    resolution: int

    def apply(self, override: Optional[MetricThresholdOverride]) -> "SLAThresholds":
        """Return a copy with every field the override sets replaced."""
        if override is None:
            return self
        return SLAThresholds(
            pickup=override.pickup if override.pickup is not None else self.pickup,
            first_response=(
                override.first_response if override.first_response is not None
                else self.first_response
            ),
            avg_response=(
                override.avg_response if override.avg_response is not None
                else self.avg_response
            ),
            resolution=override.resolution if override.resolution is not None else self.resolution,
        )


class SLAConfig(BaseModel):
    """
    SLA targets.

    All targets are in seconds except compliance_target, which is the
    percentage of chats expected to meet their SLA.

    Override maps are keyed by lower-cased channel (provider) or priority name.
    """
    model_config = ConfigDict(frozen=True)

    pickup_target: int = Field(default=120, ge=0, description="Pickup target (seconds)")
    first_response_target: int = Field(default=300, ge=0, description="First response target (seconds)")
    avg_response_target: int = Field(default=300, ge=0, description="Average response target (seconds)")
    resolution_target: int = Field(default=7200, ge=0, description="Resolution target (seconds)")
    compliance_target: float = Field(default=95, ge=0, le=100, description="Compliance target (percent)")

    channel_overrides: Dict[str, MetricThresholdOverride] = Field(default_factory=dict)
    priority_overrides: Dict[str, MetricThresholdOverride] = Field(default_factory=dict)

    @field_validator("channel_overrides", "priority_overrides")
    @classmethod
    def normalize_override_keys(
        cls, v: Dict[str, MetricThresholdOverride]
    ) -> Dict[str, MetricThresholdOverride]:
        """Override lookups are case-insensitive."""
        return {key.strip().lower(): value for key, value in v.items()}

    @property
    def default_thresholds(self) -> SLAThresholds:
        return SLAThresholds(
            pickup=self.pickup_target,
            first_response=self.first_response_target,
            avg_response=self.avg_response_target,
            resolution=self.resolution_target,
        )


class EnabledMetrics(BaseModel):
    """Which metrics count toward overall compliance."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    pickup: bool = True
    first_response: bool = Field(default=True, alias="firstResponse")
    avg_response: bool = Field(default=False, alias="avgResponse")
    resolution: bool = False

    def included(self) -> List[str]:
        """Names of the enabled metrics, in canonical order."""
        return [metric for metric in SLA_METRIC_ORDER if getattr(self, metric)]


SLA_METRIC_ORDER = (
    SLAMetricName.PICKUP,
    SLAMetricName.FIRST_RESPONSE,
    SLAMetricName.AVG_RESPONSE,
    SLAMetricName.RESOLUTION,
)


class OfficeHoursConfig(BaseModel):
    """
    Weekly office-hours window in a single IANA timezone.

    working_days uses ISO weekdays: 1 = Monday ... 7 = Sunday.
    The window is [start, end) on each working day; end is at most 23:59,
    so a 00:00-23:59 all-week setup is one minute per day short of true 24/7.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    start: str = "09:00"
    end: str = "17:00"
    working_days: FrozenSet[int] = Field(
        default=frozenset({1, 2, 3, 4, 5}), alias="workingDays"
    )
    timezone: str = "America/New_York"

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, v: str) -> str:
        if not _HH_MM.match(v):
            raise ValueError(f"'{v}' is not a valid HH:mm time")
        return v

    @field_validator("working_days")
    @classmethod
    def validate_working_days(cls, v: FrozenSet[int]) -> FrozenSet[int]:
        if not v:
            raise ValueError("at least one working day is required")
        invalid = sorted(day for day in v if day < 1 or day > 7)
        if invalid:
            raise ValueError(f"working days must be between 1 (Mon) and 7 (Sun), got {invalid}")
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown timezone '{v}'") from e
        return v

    @model_validator(mode="after")
    def validate_window(self) -> "OfficeHoursConfig":
        if self.end <= self.start:
            raise ValueError("office hours end must be after start")
        return self

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def start_time(self) -> time:
        return time.fromisoformat(self.start)

    @property
    def end_time(self) -> time:
        return time.fromisoformat(self.end)

    def is_working_weekday(self, day: date) -> bool:
        return day.isoweekday() in self.working_days


class Holiday(BaseModel):
    """A non-working calendar day; recurring holidays repeat every year on the same month/day."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    holiday_date: date = Field(alias="date")
    name: str = Field(min_length=1)
    recurring: bool = False

    def matches(self, day: date) -> bool:
        if self.recurring:
            return (self.holiday_date.month, self.holiday_date.day) == (day.month, day.day)
        return self.holiday_date == day


# Country calendars for presetHolidays; countries without an entry contribute nothing
PRESET_HOLIDAYS: Dict[str, Tuple[Holiday, ...]] = {
    "US": (
        Holiday(date=date(2025, 1, 1), name="New Year's Day", recurring=True),
        Holiday(date=date(2025, 1, 20), name="Martin Luther King Jr. Day"),
        Holiday(date=date(2025, 2, 17), name="Presidents' Day"),
        Holiday(date=date(2025, 5, 26), name="Memorial Day"),
        Holiday(date=date(2025, 7, 4), name="Independence Day", recurring=True),
        Holiday(date=date(2025, 9, 1), name="Labor Day"),
        Holiday(date=date(2025, 10, 13), name="Columbus Day"),
        Holiday(date=date(2025, 11, 11), name="Veterans Day", recurring=True),
        Holiday(date=date(2025, 11, 27), name="Thanksgiving Day"),
        Holiday(date=date(2025, 12, 25), name="Christmas Day", recurring=True),
    ),
}


class PresetHolidays(BaseModel):
    """Built-in national calendar switched on alongside the custom holidays."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    enabled: bool = False
    country_code: str = Field(default="US", alias="countryCode")
    include_regional: bool = Field(default=False, alias="includeRegional")

    def calendar(self) -> Tuple[Holiday, ...]:
        if not self.enabled:
            return ()
        return PRESET_HOLIDAYS.get(self.country_code.upper(), ())


class HolidayConfig(BaseModel):
    """
    Holiday calendar applied on top of office hours.

    Accepts the stored settings document as is:
    {enabled, customHolidays: [...], presetHolidays: {enabled, countryCode}, excludeFromSLA}.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    enabled: bool = False
    holidays: List[Holiday] = Field(default_factory=list, alias="customHolidays")
    preset_holidays: PresetHolidays = Field(default_factory=PresetHolidays, alias="presetHolidays")
    exclude_from_sla: bool = Field(default=True, alias="excludeFromSLA")

    def is_holiday(self, day: date) -> bool:
        if not self.enabled:
            return False
        if any(holiday.matches(day) for holiday in self.holidays):
            return True
        return any(holiday.matches(day) for holiday in self.preset_holidays.calendar())

    def excludes(self, day: date) -> bool:
        """Whether business-hours SLA clocks stop on this local date."""
        return self.exclude_from_sla and self.is_holiday(day)


@dataclass(frozen=True)
class SLAConfigSnapshot:
    """
    All configuration a recalculation needs, resolved once per run so every
    chat in the run is measured against the same settings.
    """
    sla: SLAConfig
    office_hours: OfficeHoursConfig
    enabled_metrics: EnabledMetrics
    holidays: HolidayConfig

    @classmethod
    def defaults(cls) -> "SLAConfigSnapshot":
        return cls(
            sla=SLAConfig(),
            office_hours=OfficeHoursConfig(),
            enabled_metrics=EnabledMetrics(),
            holidays=HolidayConfig(),
        )
