"""
SLA Application Services
=========================

Collaborator interfaces (chat store, config provider, event logger) and the
two services built on them:

- SLAMetricsService: measure one chat on demand
- RecalculationDriver: re-measure every chat in a range, batch by batch
"""

import asyncio
import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import AsyncIterator, Callable, List, Optional
from uuid import uuid4

from chat_sla.config import MAX_BATCH_SIZE, MIN_BATCH_SIZE, CalculationType, settings
from chat_sla.core import (
    RecalculationAbortedException,
    ResourceNotFoundException,
    ValidationException,
)
from chat_sla.shared.infrastructure.logging import get_context_logger, get_logger, log_latency
from chat_sla.sla.application.dto import (
    RecalculationError,
    RecalculationFilter,
    RecalculationRequest,
    RecalculationResult,
)
from chat_sla.sla.domain import Chat, OfficeHoursConfig, SLAConfigSnapshot, SLAMetrics, SLAMetricsEngine

logger = get_logger(__name__)


# ========== Collaborator Interfaces ==========

class IChatRepository(ABC):
    """Interface for chat data access."""

    @abstractmethod
    async def count(self, chat_filter: RecalculationFilter) -> int:
        """Number of chats matching the filter."""

    @abstractmethod
    async def fetch_batch(
        self,
        chat_filter: RecalculationFilter,
        after_id: Optional[str],
        limit: int
    ) -> List[Chat]:
        """
        Up to limit chats with id > after_id, ascending by id, messages loaded
        in ascending created_at order.
        """

    @abstractmethod
    async def get_by_id(self, chat_id: str) -> Optional[Chat]:
        """Single chat with its messages."""

    @abstractmethod
    async def save_metrics(self, chat_id: str, metrics: SLAMetrics) -> None:
        """Overwrite the stored SLA columns of one chat."""


class ISLAConfigProvider(ABC):
    """Interface for SLA configuration access."""

    @abstractmethod
    async def load_snapshot(self) -> SLAConfigSnapshot:
        """Resolve SLA targets, office hours, enabled metrics and holidays."""


class ISLAEventLogger(ABC):
    """Sink for structured SLA events; SLALogger is the production implementation."""

    @abstractmethod
    def log_calculation(
        self,
        chat_id: str,
        metrics: SLAMetrics,
        calculation_type: str = CalculationType.UPDATE
    ) -> None:
        """Record a completed calculation; calculation_type says what triggered it."""

    @abstractmethod
    def log_breach(
        self,
        chat_id: str,
        breached_metrics: List[str],
        metrics: SLAMetrics,
        business_hours: bool = False
    ) -> None:
        """Record the metrics a chat breached on one clock."""

    @abstractmethod
    def log_business_hours_calculation(
        self,
        chat_id: str,
        start: datetime,
        end: datetime,
        business_hours_seconds: int,
        wall_clock_seconds: int,
        office_hours: OfficeHoursConfig
    ) -> None:
        """Record how much of an interval fell inside office hours."""

    @abstractmethod
    def log_recalculation(self, run_id: str, result: RecalculationResult) -> None:
        """Record the outcome of a bulk run."""


# ========== Application Services ==========

class SLAMetricsService:
    """
    On-demand SLA computation for a single chat.

    Used when a chat changes state; bulk re-derivation goes through
    RecalculationDriver.
    """

    def __init__(
        self,
        chat_repository: IChatRepository,
        config_provider: ISLAConfigProvider,
        sla_logger: Optional[ISLAEventLogger] = None
    ):
        self._chat_repo = chat_repository
        self._config_provider = config_provider
        self._sla_logger = sla_logger

    @staticmethod
    def compute(chat: Chat, snapshot: SLAConfigSnapshot) -> SLAMetrics:
        """Wall-clock and business-hours metrics for one chat under one snapshot."""
        return SLAMetricsEngine.calculate_all_sla_metrics_with_business_hours(
            chat,
            snapshot.sla,
            snapshot.office_hours,
            snapshot.enabled_metrics,
            snapshot.holidays,
        )

    async def calculate_for_chat(self, chat_id: str, persist: bool = True) -> SLAMetrics:
        """
        Calculate (and by default store) SLA metrics for one chat.

        Raises:
            ResourceNotFoundException: no chat with this id
        """
        chat = await self._chat_repo.get_by_id(chat_id)
        if chat is None:
            raise ResourceNotFoundException("Chat", chat_id)

        snapshot = await self._config_provider.load_snapshot()
        metrics = self.compute(chat, snapshot)

        if persist:
            await self._chat_repo.save_metrics(chat.id, metrics)

        if self._sla_logger is not None:
            self._sla_logger.log_calculation(chat.id, metrics)
            if chat.is_closed:
                self._sla_logger.log_business_hours_calculation(
                    chat.id,
                    chat.opened_at,
                    chat.closed_at,
                    metrics.resolution_time_bh,
                    metrics.resolution_time,
                    snapshot.office_hours,
                )
            for business_hours in (False, True):
                breached = metrics.breached_metrics(business_hours)
                if breached:
                    self._sla_logger.log_breach(chat.id, breached, metrics, business_hours)

        return metrics


class RecalculationDriver:
    """
    Re-derives and persists SLA metrics for historical chats.

    Memory stays bounded by the batch size: chats are pulled one keyset page
    at a time. Pages are processed strictly in order; chats inside a page are
    computed and saved concurrently under a semaphore.

    The configuration snapshot is loaded once per run so every chat in the
    run is measured against the same settings.
    """

    def __init__(
        self,
        chat_repository: IChatRepository,
        config_provider: ISLAConfigProvider,
        max_concurrency: Optional[int] = None,
        sla_logger: Optional[ISLAEventLogger] = None
    ):
        self._chat_repo = chat_repository
        self._config_provider = config_provider
        self._max_concurrency = max_concurrency or settings.recalculation_max_concurrency
        self._sla_logger = sla_logger

    @staticmethod
    def validate_batch_size(batch_size: int) -> int:
        if not MIN_BATCH_SIZE <= batch_size <= MAX_BATCH_SIZE:
            raise ValidationException(
                f"batch_size must be between {MIN_BATCH_SIZE} and {MAX_BATCH_SIZE}",
                {"batch_size": batch_size}
            )
        return batch_size

    async def iter_batches(
        self,
        chat_filter: RecalculationFilter,
        batch_size: int
    ) -> AsyncIterator[List[Chat]]:
        """
        Lazily yield keyset pages of chats.

        Stops after an empty page or a page shorter than batch_size.

        Raises:
            RecalculationAbortedException: a page could not be fetched
        """
        after_id: Optional[str] = None
        while True:
            try:
                batch = await self._chat_repo.fetch_batch(chat_filter, after_id, batch_size)
            except Exception as e:
                raise RecalculationAbortedException(
                    "fetch_batch", f"Failed to fetch batch after {after_id!r}: {e}",
                    {"after_id": after_id}
                ) from e

            if not batch:
                return

            yield batch

            if len(batch) < batch_size:
                return
            after_id = batch[-1].id

    async def recalculate(
        self,
        request: RecalculationRequest,
        should_cancel: Optional[Callable[[], bool]] = None
    ) -> RecalculationResult:
        """
        Recalculate SLA metrics for every chat the request selects.

        Per-chat failures are recorded in the result and never stop the run.
        Failing to load configuration, count chats or fetch a page ends the
        run early with aborted=True and the counts reached so far.

        Args:
            request: Validated recalculation request
            should_cancel: Checked between batches; returning True stops the
                run with cancelled=True

        Returns:
            RecalculationResult

        Raises:
            ValidationException: batch_size outside [1, 2000]
        """
        batch_size = self.validate_batch_size(request.batch_size)
        chat_filter = request.to_filter()
        run_id = str(uuid4())
        run_logger = get_context_logger(__name__, run_id)

        result = RecalculationResult()
        started = time.perf_counter()

        run_logger.info(
            "Starting SLA recalculation",
            extra={
                "chat_id": chat_filter.chat_id,
                "start_date": chat_filter.start_date.isoformat() if chat_filter.start_date else None,
                "end_date": chat_filter.end_date.isoformat() if chat_filter.end_date else None,
                "batch_size": batch_size,
            }
        )

        try:
            snapshot = await self._load_snapshot()
            result.enabled_metrics = snapshot.enabled_metrics
            result.total = await self._count(chat_filter)

            run_logger.info(f"Found {result.total} chats to recalculate", extra={"total": result.total})

            semaphore = asyncio.Semaphore(min(self._max_concurrency, batch_size))

            async for batch in self.iter_batches(chat_filter, batch_size):
                result.batches += 1
                with log_latency(run_logger, "process_batch", batch=result.batches):
                    await self._process_batch(batch, snapshot, semaphore, result)

                run_logger.info(
                    f"Batch {result.batches} complete: {result.progress_percent:.1f}%",
                    extra={
                        "batch": result.batches,
                        "batch_len": len(batch),
                        "processed": result.processed,
                        "failed": result.failed,
                        "total": result.total,
                        "progress_percent": round(result.progress_percent, 2),
                    }
                )

                if result.attempted < result.total and should_cancel is not None and should_cancel():
                    result.cancelled = True
                    run_logger.warning("SLA recalculation cancelled between batches")
                    break

        except RecalculationAbortedException as e:
            result.aborted = True
            result.abort_reason = e.message
            run_logger.error(
                e.message,
                extra={"stage": e.stage, **e.details}
            )

        result.duration_ms = int((time.perf_counter() - started) * 1000)

        log = run_logger.warning if (result.failed or result.aborted) else run_logger.info
        log(
            result.summary(),
            extra={
                "processed": result.processed,
                "failed": result.failed,
                "total": result.total,
                "batches": result.batches,
                "duration_ms": result.duration_ms,
            }
        )
        if self._sla_logger is not None:
            self._sla_logger.log_recalculation(run_id, result)

        return result

    async def _load_snapshot(self) -> SLAConfigSnapshot:
        try:
            return await self._config_provider.load_snapshot()
        except Exception as e:
            raise RecalculationAbortedException("load_config", f"Failed to load SLA configuration: {e}") from e

    async def _count(self, chat_filter: RecalculationFilter) -> int:
        try:
            return await self._chat_repo.count(chat_filter)
        except Exception as e:
            raise RecalculationAbortedException("count", f"Failed to count chats: {e}") from e

    async def _process_batch(
        self,
        batch: List[Chat],
        snapshot: SLAConfigSnapshot,
        semaphore: asyncio.Semaphore,
        result: RecalculationResult
    ) -> None:
        outcomes = await asyncio.gather(
            *(self._process_chat(chat, snapshot, semaphore) for chat in batch)
        )

        for chat, error in zip(batch, outcomes):
            if error is None:
                result.processed += 1
            else:
                result.failed += 1
                result.errors.append(RecalculationError(chat_id=chat.id, message=error))

    async def _process_chat(
        self,
        chat: Chat,
        snapshot: SLAConfigSnapshot,
        semaphore: asyncio.Semaphore
    ) -> Optional[str]:
        """Compute and save one chat; returns the error message on failure."""
        async with semaphore:
            try:
                metrics = SLAMetricsService.compute(chat, snapshot)
                await self._chat_repo.save_metrics(chat.id, metrics)
            except Exception as e:
                logger.warning(
                    f"Failed to recalculate chat {chat.id}: {e}",
                    extra={"chat_id": chat.id, "error_type": type(e).__name__}
                )
                return str(e) or type(e).__name__

        if self._sla_logger is not None:
            self._sla_logger.log_calculation(chat.id, metrics, CalculationType.CONFIG_CHANGE)
        return None
