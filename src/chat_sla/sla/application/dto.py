"""
SLA Application DTOs
=====================

Data Transfer Objects for the recalculation use case.

These Pydantic models validate what a trigger surface (API, CLI, job runner)
hands to the recalculation driver and carry the result back.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from chat_sla.config import MAX_BATCH_SIZE, MIN_BATCH_SIZE, settings
from chat_sla.sla.domain import EnabledMetrics


AVERAGE_CHATS_PER_DAY = 50
MS_PER_CHAT = 50


# ========== Filter ==========

@dataclass(frozen=True)
class RecalculationFilter:
    """
    Which chats a run covers.

    A chat id selects exactly that chat; otherwise chats opened within
    [start_date, end_date] are selected.
    """
    chat_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


# ========== Request DTOs ==========

class RecalculationRequest(BaseModel):
    """Validated recalculation trigger."""
    chat_id: Optional[str] = Field(None, min_length=1, description="Recalculate a single chat")
    start_date: Optional[datetime] = Field(None, description="Range start (chat opened at)")
    end_date: Optional[datetime] = Field(None, description="Range end (chat opened at)")
    batch_size: int = Field(
        default_factory=lambda: settings.recalculation_batch_size,
        ge=MIN_BATCH_SIZE,
        le=MAX_BATCH_SIZE,
        description="Chats per batch"
    )

    @field_validator("start_date", "end_date")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Naive timestamps are taken as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def validate_range(self) -> "RecalculationRequest":
        if self.start_date is None and self.end_date is None:
            if self.chat_id is None:
                self.start_date, self.end_date = default_date_range()
            return self

        if self.start_date is None or self.end_date is None:
            raise ValueError("Both start and end dates are required")

        if self.start_date >= self.end_date:
            raise ValueError("Start date must be before end date")

        max_days = settings.recalculation_max_range_days
        if self.end_date - self.start_date > timedelta(days=max_days):
            raise ValueError(f"Date range cannot exceed {max_days} days")

        if self.end_date > datetime.now(timezone.utc):
            raise ValueError("End date cannot be in the future")

        return self

    def to_filter(self) -> RecalculationFilter:
        return RecalculationFilter(
            chat_id=self.chat_id,
            start_date=self.start_date,
            end_date=self.end_date,
        )


def default_date_range(now: Optional[datetime] = None) -> tuple:
    """(start, end) covering the configured look-back window up to now."""
    end = now or datetime.now(timezone.utc)
    return end - timedelta(days=settings.recalculation_lookback_days), end


# ========== Response DTOs ==========

class RecalculationError(BaseModel):
    """Per-chat failure recorded during a run."""
    chat_id: str
    message: str


class RecalculationResult(BaseModel):
    """
    Outcome of one recalculation run.

    processed + failed equals total for a run that finished; an aborted or
    cancelled run carries the partial counts reached so far.
    """
    processed: int = 0
    failed: int = 0
    total: int = 0
    batches: int = 0
    errors: List[RecalculationError] = Field(default_factory=list)
    duration_ms: int = 0
    enabled_metrics: Optional[EnabledMetrics] = None
    aborted: bool = False
    abort_reason: Optional[str] = None
    cancelled: bool = False

    @property
    def attempted(self) -> int:
        return self.processed + self.failed

    @property
    def progress_percent(self) -> float:
        if self.total == 0:
            return 100.0
        return self.attempted / self.total * 100

    @property
    def succeeded(self) -> bool:
        return self.failed == 0 and not self.aborted and not self.cancelled

    def summary(self) -> str:
        """One-line, human-readable description of the run."""
        elapsed = format_elapsed(self.duration_ms)
        chats = _plural(self.processed, "chat")

        if self.failed == 0:
            line = f"Successfully recalculated {chats} in {elapsed}"
        else:
            line = f"Processed {chats} with {_plural(self.failed, 'failure')} in {elapsed}"

        if self.aborted:
            line += f" (aborted: {self.abort_reason})"
        elif self.cancelled:
            line += " (cancelled)"
        return line


# ========== Helpers ==========

def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def format_elapsed(ms: int) -> str:
    """Run duration: "850ms", "12s", "3m", "3m 5s"."""
    if ms < 1000:
        return f"{ms}ms"

    seconds = ms // 1000
    if seconds < 60:
        return f"{seconds}s"

    minutes, remaining = divmod(seconds, 60)
    if remaining == 0:
        return f"{minutes}m"
    return f"{minutes}m {remaining}s"


def estimate_chat_count(start_date: datetime, end_date: datetime) -> int:
    """Rough size of a date-range run, assuming a fixed daily chat volume."""
    days = math.ceil((end_date - start_date) / timedelta(days=1))
    return max(1, round(days * AVERAGE_CHATS_PER_DAY))


def estimate_processing_ms(chat_count: int) -> int:
    return chat_count * MS_PER_CHAT
