"""
Recalculation driver tests.

Run against an in-memory repository: paging, the processed + failed = total
invariant, failure isolation, aborts, cancellation and bounded fan-out.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from chat_sla.config import CalculationType
from chat_sla.core import ResourceNotFoundException, ValidationException
from chat_sla.sla.application import (
    ISLAEventLogger,
    RecalculationDriver,
    RecalculationRequest,
    SLAMetricsService,
)
from chat_sla.sla.domain import ComplianceState, SLAConfigSnapshot

from support import FakeChatRepository, StaticConfigProvider, ny, utc


def range_request(batch_size: int) -> RecalculationRequest:
    return RecalculationRequest(start_date=utc(2024, 1, 1), end_date=utc(2024, 3, 1), batch_size=batch_size)


class TestPaging:
    @pytest.mark.asyncio
    async def test_every_chat_is_processed_once(self, chats, config_provider):
        repo = FakeChatRepository(chats)
        driver = RecalculationDriver(repo, config_provider)

        result = await driver.recalculate(range_request(batch_size=3))

        assert result.total == 7
        assert result.processed == 7
        assert result.failed == 0
        assert result.processed + result.failed == result.total
        assert result.batches == 3
        assert set(repo.saved) == {chat.id for chat in chats}
        assert not result.aborted

    @pytest.mark.asyncio
    async def test_requests_never_exceed_batch_size(self, chats, config_provider):
        repo = FakeChatRepository(chats)

        await RecalculationDriver(repo, config_provider).recalculate(range_request(batch_size=2))

        assert repo.requested_limits
        assert all(limit == 2 for limit in repo.requested_limits)

    @pytest.mark.asyncio
    async def test_exact_multiple_ends_on_empty_page(self, make_chat, config_provider):
        repo = FakeChatRepository([make_chat(f"chat-{i:03d}") for i in range(6)])

        result = await RecalculationDriver(repo, config_provider).recalculate(range_request(batch_size=3))

        assert result.batches == 2
        assert repo.fetch_calls == 3
        assert result.processed == 6

    @pytest.mark.asyncio
    async def test_iter_batches_is_keyset_ordered(self, chats, config_provider):
        driver = RecalculationDriver(FakeChatRepository(chats), config_provider)
        pages = [
            [chat.id for chat in batch]
            async for batch in driver.iter_batches(range_request(batch_size=3).to_filter(), 3)
        ]

        assert pages == [
            ["chat-001", "chat-002", "chat-003"],
            ["chat-004", "chat-005", "chat-006"],
            ["chat-007"],
        ]

    @pytest.mark.asyncio
    async def test_single_chat(self, chats, config_provider):
        repo = FakeChatRepository(chats)

        result = await RecalculationDriver(repo, config_provider).recalculate(
            RecalculationRequest(chat_id="chat-004")
        )

        assert result.total == 1
        assert result.processed == 1
        assert list(repo.saved) == ["chat-004"]

    @pytest.mark.asyncio
    async def test_empty_dataset(self, config_provider):
        result = await RecalculationDriver(FakeChatRepository([]), config_provider).recalculate(range_request(10))

        assert (result.total, result.processed, result.batches) == (0, 0, 0)
        assert result.progress_percent == 100.0


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_failed_save_is_recorded(self, chats, config_provider):
        repo = FakeChatRepository(chats, fail_save_ids={"chat-002"})

        result = await RecalculationDriver(repo, config_provider).recalculate(range_request(batch_size=3))

        assert result.processed == 6
        assert result.failed == 1
        assert result.processed + result.failed == result.total
        assert [error.chat_id for error in result.errors] == ["chat-002"]
        assert "write conflict" in result.errors[0].message
        assert "chat-003" in repo.saved

    @pytest.mark.asyncio
    async def test_malformed_chat_does_not_stop_later_batches(self, chats, make_chat, config_provider):
        broken = make_chat(
            "chat-000",
            opened_at=ny(2024, 2, 5, 11, 0),
            closed_at=ny(2024, 2, 5, 10, 0),
        )
        repo = FakeChatRepository(chats + [broken])

        result = await RecalculationDriver(repo, config_provider).recalculate(range_request(batch_size=3))

        assert result.total == 8
        assert result.failed == 1
        assert result.errors[0].chat_id == "chat-000"
        assert result.processed == 7


class TestAborts:
    @pytest.mark.asyncio
    async def test_fetch_failure_returns_partial_counts(self, chats, config_provider):
        repo = FakeChatRepository(chats, fail_fetch_on_call=2)

        result = await RecalculationDriver(repo, config_provider).recalculate(range_request(batch_size=3))

        assert result.aborted is True
        assert "fetch_batch" in result.abort_reason
        assert result.processed == 3
        assert result.batches == 1
        assert result.total == 7

    @pytest.mark.asyncio
    async def test_count_failure(self, chats, config_provider):
        repo = FakeChatRepository(chats, fail_count=True)

        result = await RecalculationDriver(repo, config_provider).recalculate(range_request(batch_size=3))

        assert result.aborted is True
        assert result.processed == 0
        assert repo.fetch_calls == 0

    @pytest.mark.asyncio
    async def test_config_failure(self, chats):
        provider = AsyncMock()
        provider.load_snapshot.side_effect = RuntimeError("settings table missing")

        result = await RecalculationDriver(FakeChatRepository(chats), provider).recalculate(range_request(3))

        assert result.aborted is True
        assert "settings table missing" in result.abort_reason

    @pytest.mark.asyncio
    async def test_out_of_range_batch_size(self, chats, config_provider):
        request = RecalculationRequest.model_construct(chat_id=None, start_date=None, end_date=None, batch_size=2001)

        with pytest.raises(ValidationException):
            await RecalculationDriver(FakeChatRepository(chats), config_provider).recalculate(request)


class TestRunBehaviour:
    @pytest.mark.asyncio
    async def test_cancel_between_batches(self, chats, config_provider):
        repo = FakeChatRepository(chats)

        result = await RecalculationDriver(repo, config_provider).recalculate(
            range_request(batch_size=3), should_cancel=lambda: True
        )

        assert result.cancelled is True
        assert result.batches == 1
        assert result.processed == 3

    @pytest.mark.asyncio
    async def test_config_is_loaded_once(self, chats, config_provider):
        await RecalculationDriver(FakeChatRepository(chats), config_provider).recalculate(range_request(2))
        assert config_provider.calls == 1

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self, chats, config_provider):
        repo = FakeChatRepository(chats, save_delay=0.01)

        await RecalculationDriver(repo, config_provider, max_concurrency=2).recalculate(range_request(batch_size=5))

        assert 1 < repo.max_in_flight <= 2

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, chats, config_provider):
        repo = FakeChatRepository(chats)
        driver = RecalculationDriver(repo, config_provider)

        await driver.recalculate(range_request(batch_size=4))
        first = dict(repo.saved)
        await driver.recalculate(range_request(batch_size=4))

        assert repo.saved == first

    @pytest.mark.asyncio
    async def test_run_outcome_is_reported(self, chats, config_provider):
        sla_logger = MagicMock(spec=ISLAEventLogger)

        result = await RecalculationDriver(
            FakeChatRepository(chats), config_provider, sla_logger=sla_logger
        ).recalculate(range_request(batch_size=3))

        sla_logger.log_recalculation.assert_called_once()
        assert sla_logger.log_recalculation.call_args.args[1] is result
        assert result.enabled_metrics == SLAConfigSnapshot.defaults().enabled_metrics

    @pytest.mark.asyncio
    async def test_each_saved_chat_is_logged_as_config_change(self, chats, config_provider):
        sla_logger = MagicMock(spec=ISLAEventLogger)
        repo = FakeChatRepository(chats, fail_save_ids={"chat-002"})

        await RecalculationDriver(repo, config_provider, sla_logger=sla_logger).recalculate(
            range_request(batch_size=3)
        )

        logged = {call.args[0]: call.args for call in sla_logger.log_calculation.call_args_list}
        assert sorted(logged) == sorted(repo.saved)
        assert len(logged) == 6
        assert all(args[2] == CalculationType.CONFIG_CHANGE for args in logged.values())
        assert logged["chat-001"][1] == repo.saved["chat-001"]


class TestSLAMetricsService:
    @pytest.mark.asyncio
    async def test_calculates_and_persists(self, chats, config_provider):
        repo = FakeChatRepository(chats)
        service = SLAMetricsService(repo, config_provider)

        metrics = await service.calculate_for_chat("chat-001")

        assert repo.saved["chat-001"] == metrics
        assert metrics.overall_sla is ComplianceState.COMPLIANT
        assert metrics.business_hours_computed

    @pytest.mark.asyncio
    async def test_breaches_are_logged(self, make_chat, config_provider):
        slow = make_chat("chat-slow", first_agent_assigned_at=utc(2024, 2, 5, 15, 10, 0))
        sla_logger = MagicMock(spec=ISLAEventLogger)
        service = SLAMetricsService(FakeChatRepository([slow]), config_provider, sla_logger)

        await service.calculate_for_chat("chat-slow", persist=False)

        sla_logger.log_calculation.assert_called_once()
        assert sla_logger.log_breach.call_count == 2
        sla_logger.log_business_hours_calculation.assert_called_once()
        bh_args = sla_logger.log_business_hours_calculation.call_args.args
        assert bh_args[0] == "chat-slow"
        assert (bh_args[3], bh_args[4]) == (3600, 3600)
        assert sla_logger.log_breach.call_args_list[0].args[1] == ["pickup"]

    @pytest.mark.asyncio
    async def test_open_chat_has_no_business_hours_event(self, make_chat, config_provider):
        open_chat = make_chat("chat-open", closed_at=None)
        sla_logger = MagicMock(spec=ISLAEventLogger)

        await SLAMetricsService(FakeChatRepository([open_chat]), config_provider, sla_logger).calculate_for_chat(
            "chat-open", persist=False
        )

        sla_logger.log_business_hours_calculation.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_chat(self, config_provider):
        service = SLAMetricsService(FakeChatRepository([]), config_provider)

        with pytest.raises(ResourceNotFoundException):
            await service.calculate_for_chat("missing")
