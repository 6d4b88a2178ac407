"""Structured SLA event records."""

import logging

from chat_sla.config import CalculationType
from chat_sla.sla.application import RecalculationResult
from chat_sla.sla.domain import OfficeHoursConfig, SLAConfig, SLAMetricsEngine
from chat_sla.sla.infrastructure import SLALogCategory, SLALogger

from support import utc

LOGGER_NAME = "chat_sla.sla.events"


def _metrics(make_chat):
    return SLAMetricsEngine.calculate_all_sla_metrics(make_chat("chat-001"), SLAConfig())


def test_calculation_record(make_chat, caplog):
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        SLALogger().log_calculation("chat-001", _metrics(make_chat))

    record = caplog.records[-1]
    assert record.category == SLALogCategory.CALCULATION
    assert record.source == "sla-engine"
    assert record.chat_id == "chat-001"
    assert record.metrics["time_to_pickup"] == 60
    assert record.metrics["overall_sla_bh"] is None


def test_breach_is_a_warning(make_chat, caplog):
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        SLALogger().log_breach("chat-001", ["pickup", "resolution"], _metrics(make_chat), business_hours=True)

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.category == SLALogCategory.BREACH
    assert record.breached_metrics == ["pickup", "resolution"]
    assert "business hours" in record.getMessage()


def test_recalculation_level_follows_outcome(caplog):
    sla_logger = SLALogger()
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        sla_logger.log_recalculation("run-1", RecalculationResult(processed=2, total=2))
        sla_logger.log_recalculation("run-2", RecalculationResult(processed=1, failed=1, total=2))

    clean, failing = caplog.records[-2:]
    assert clean.levelno == logging.INFO
    assert failing.levelno == logging.WARNING
    assert failing.run_id == "run-2"
    assert failing.category == SLALogCategory.RECALCULATION


def test_config_change_record(caplog):
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        SLALogger().log_config_change(["sla.pickup_target"], {"sla.pickup_target": 120}, {"sla.pickup_target": 90})

    record = caplog.records[-1]
    assert record.category == SLALogCategory.CONFIG_CHANGE
    assert record.new_values == {"sla.pickup_target": 90}


def test_business_hours_record(caplog):
    with caplog.at_level(logging.DEBUG, logger=LOGGER_NAME):
        SLALogger().log_business_hours_calculation(
            "chat-001",
            utc(2024, 2, 5, 21, 0),
            utc(2024, 2, 6, 15, 0),
            3600,
            64800,
            OfficeHoursConfig(),
        )

    record = caplog.records[-1]
    assert record.levelno == logging.DEBUG
    assert record.category == SLALogCategory.BUSINESS_HOURS
    assert record.business_hours_seconds == 3600
    assert record.office_hours["timezone"] == "America/New_York"


def test_calculation_type_is_recorded(make_chat, caplog):
    with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
        SLALogger().log_calculation("chat-001", _metrics(make_chat), CalculationType.CONFIG_CHANGE)

    record = caplog.records[-1]
    assert record.calculation_type == "config_change"
    assert record.getMessage() == "SLA calculation config_change for chat chat-001"
