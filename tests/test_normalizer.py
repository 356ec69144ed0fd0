"""
Unit Tests for the Input Normalizer

Tests verify grouping of installments into releases and date projection.
"""

from datetime import date
from decimal import Decimal

import pytest

from startprev.calculators.normalizer import PaymentCalendar, ReleaseNormalizer
from startprev.exceptions import MissingScheduleError
from startprev.models import Installment


def _installment(competence, net, payment_date=None, kind="ordinary", status="pending", gross=None):
    return Installment(
        competence=competence,
        net_amount=Decimal(str(net)),
        gross_amount=Decimal(str(gross if gross is not None else net)),
        payment_date=date.fromisoformat(payment_date) if payment_date else None,
        kind=kind,
        status=status,
    )


class TestReleaseGrouping:
    """Test grouping of same-date installments."""

    @pytest.fixture
    def normalizer(self):
        return ReleaseNormalizer()

    def test_thirteenth_salary_adds_to_monthly(self, normalizer):
        """Monthly 1500 + 13th salary 750 on the same day → one release of 2250."""
        releases = normalizer.normalize([
            _installment("11/2025", 1500, "2025-12-22", gross=1650),
            _installment("11/2025", 750, "2025-12-22", kind="thirteenth", gross=800),
        ])

        assert len(releases) == 1
        assert releases[0].total_net == Decimal("2250")
        assert releases[0].total_gross == Decimal("2450")
        assert len(releases[0].installments) == 2

    def test_no_tolerance_window(self, normalizer):
        """Dates one day apart stay separate releases."""
        releases = normalizer.normalize([
            _installment("01/2025", 1000, "2025-02-25"),
            _installment("01/2025", 200, "2025-02-26"),
        ])

        assert [r.total_net for r in releases] == [Decimal("1000"), Decimal("200")]

    def test_ordered_ascending_by_date(self, normalizer):
        releases = normalizer.normalize([
            _installment("03/2025", 3, "2025-04-24"),
            _installment("01/2025", 1, "2025-02-25"),
            _installment("02/2025", 2, "2025-03-25"),
        ])

        assert [r.date for r in releases] == [date(2025, 2, 25), date(2025, 3, 25), date(2025, 4, 24)]

    def test_release_paid_only_when_all_members_paid(self, normalizer):
        releases = normalizer.normalize([
            _installment("01/2025", 1000, "2025-02-25", status="paid"),
            _installment("01/2025", 100, "2025-02-25", status="pending"),
            _installment("02/2025", 1000, "2025-03-25", status="paid"),
        ])

        assert [r.status for r in releases] == ["pending", "paid"]

    def test_empty_input(self, normalizer):
        assert normalizer.normalize([]) == []


class TestPaymentDateProjection:
    """Test projection of missing payment dates through the calendar."""

    @pytest.fixture
    def normalizer(self):
        return ReleaseNormalizer()

    @pytest.fixture
    def calendar(self):
        return PaymentCalendar({
            "2025-02": date(2025, 2, 25),
            "2025-03": date(2025, 3, 25),
            "2026-01": date(2026, 1, 26),
        })

    def test_competence_paid_next_month(self, normalizer, calendar):
        """Competence 01/2025 is disbursed in February 2025."""
        releases = normalizer.normalize([_installment("01/2025", 1000)], calendar)

        assert releases[0].date == date(2025, 2, 25)

    def test_december_rolls_into_next_year(self, normalizer, calendar):
        releases = normalizer.normalize([_installment("12/2025", 1000)], calendar)

        assert releases[0].date == date(2026, 1, 26)

    def test_iso_competence_label(self, normalizer, calendar):
        releases = normalizer.normalize([_installment("2025-02", 1000)], calendar)

        assert releases[0].date == date(2025, 3, 25)

    def test_projected_and_explicit_dates_group(self, normalizer, calendar):
        releases = normalizer.normalize([
            _installment("01/2025", 1000),
            _installment("01/2025", 500, "2025-02-25", kind="thirteenth"),
        ], calendar)

        assert len(releases) == 1
        assert releases[0].total_net == Decimal("1500")

    def test_missing_calendar_entry(self, normalizer, calendar):
        with pytest.raises(MissingScheduleError, match="2025-07"):
            normalizer.normalize([_installment("06/2025", 1000)], calendar)

    def test_no_calendar_supplied(self, normalizer):
        with pytest.raises(MissingScheduleError):
            normalizer.normalize([_installment("01/2025", 1000)])

    def test_disbursement_month(self):
        assert PaymentCalendar.disbursement_month(2025, 1) == "2025-02"
        assert PaymentCalendar.disbursement_month(2025, 12) == "2026-01"
