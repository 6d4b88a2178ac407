"""Duration and compliance-rate rendering."""

import pytest

from chat_sla.sla.domain import format_compliance_percentage, format_duration, meets_compliance_target


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (None, "N/A"),
        (0, "0s"),
        (45, "45s"),
        (90, "1m 30s"),
        (125, "2m 5s"),
        (120, "2m"),
        (157.5, "2m 37s"),
        (3900, "1h 5m"),
        (7200, "2h"),
        (9030, "2h 30m"),
        (86400, "1d"),
        (90000, "1d 1h"),
        (97200, "1d 3h"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


class TestComplianceRate:
    def test_empty_population(self):
        assert format_compliance_percentage(0, 0) == "0%"
        assert meets_compliance_target(0, 0, 95) is False

    def test_percentage_has_one_decimal(self):
        assert format_compliance_percentage(19, 20) == "95.0%"
        assert format_compliance_percentage(1, 3) == "33.3%"

    def test_target_is_inclusive(self):
        assert meets_compliance_target(19, 20, 95) is True
        assert meets_compliance_target(18, 20, 95) is False
