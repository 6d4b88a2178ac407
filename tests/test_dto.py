"""Recalculation request validation, result rendering and estimates."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from chat_sla.sla.application import (
    RecalculationRequest,
    RecalculationResult,
    estimate_chat_count,
    estimate_processing_ms,
    format_elapsed,
)

from support import utc


class TestRecalculationRequest:
    def test_defaults_to_recent_window(self):
        request = RecalculationRequest()

        assert request.batch_size == 500
        assert request.end_date - request.start_date == timedelta(days=30)
        assert request.end_date <= datetime.now(timezone.utc)

    def test_single_chat_needs_no_dates(self):
        request = RecalculationRequest(chat_id="chat-001")
        assert request.start_date is None
        assert request.to_filter().chat_id == "chat-001"

    def test_explicit_range(self):
        request = RecalculationRequest(start_date=utc(2024, 1, 1), end_date=utc(2024, 2, 1), batch_size=100)
        chat_filter = request.to_filter()

        assert chat_filter.start_date == utc(2024, 1, 1)
        assert chat_filter.end_date == utc(2024, 2, 1)
        assert chat_filter.chat_id is None

    def test_naive_dates_are_utc(self):
        request = RecalculationRequest(start_date=datetime(2024, 1, 1), end_date=datetime(2024, 2, 1))
        assert request.start_date.tzinfo is timezone.utc

    def test_full_year_is_allowed(self):
        RecalculationRequest(start_date=utc(2023, 1, 1), end_date=utc(2024, 1, 1))

    @pytest.mark.parametrize(
        "start, end",
        [
            (utc(2024, 2, 1), utc(2024, 1, 1)),
            (utc(2024, 1, 1), utc(2024, 1, 1)),
            (utc(2023, 1, 1), utc(2024, 1, 2)),
        ],
    )
    def test_rejects_bad_ranges(self, start, end):
        with pytest.raises(ValidationError):
            RecalculationRequest(start_date=start, end_date=end)

    def test_rejects_future_end(self):
        now = datetime.now(timezone.utc)
        with pytest.raises(ValidationError):
            RecalculationRequest(start_date=now - timedelta(days=1), end_date=now + timedelta(days=1))

    def test_requires_both_dates(self):
        with pytest.raises(ValidationError):
            RecalculationRequest(start_date=utc(2024, 1, 1))

    @pytest.mark.parametrize("batch_size", [0, 2001])
    def test_batch_size_bounds(self, batch_size):
        with pytest.raises(ValidationError):
            RecalculationRequest(chat_id="chat-001", batch_size=batch_size)


class TestRecalculationResult:
    def test_success_summary(self):
        result = RecalculationResult(processed=1, total=1, duration_ms=850)
        assert result.summary() == "Successfully recalculated 1 chat in 850ms"
        assert result.succeeded

    def test_failure_summary(self):
        result = RecalculationResult(processed=10, failed=2, total=12, duration_ms=65000)
        assert result.summary() == "Processed 10 chats with 2 failures in 1m 5s"
        assert not result.succeeded

    def test_aborted_summary(self):
        result = RecalculationResult(processed=3, total=9, aborted=True, abort_reason="db down", duration_ms=2000)
        assert result.summary() == "Successfully recalculated 3 chats in 2s (aborted: db down)"

    def test_progress(self):
        assert RecalculationResult().progress_percent == 100.0
        assert RecalculationResult(processed=4, failed=1, total=10).progress_percent == 50.0


@pytest.mark.parametrize(
    "ms, expected",
    [(0, "0ms"), (999, "999ms"), (1000, "1s"), (59999, "59s"), (60000, "1m"), (125000, "2m 5s")],
)
def test_format_elapsed(ms, expected):
    assert format_elapsed(ms) == expected


class TestEstimates:
    def test_chat_count(self):
        assert estimate_chat_count(utc(2024, 1, 1), utc(2024, 1, 2)) == 50
        assert estimate_chat_count(utc(2024, 1, 1), utc(2024, 1, 31)) == 1500
        assert estimate_chat_count(utc(2024, 1, 1), utc(2024, 1, 2, 12)) == 100

    def test_chat_count_has_a_floor(self):
        assert estimate_chat_count(utc(2024, 1, 1), utc(2024, 1, 1)) == 1

    def test_processing_time(self):
        assert estimate_processing_ms(100) == 5000
