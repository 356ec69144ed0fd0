"""
Unit Tests for the Ledger Assembler and Fee Account Calculator
"""

from datetime import date
from decimal import Decimal

import pytest

from startprev.calculators.allocation import AllocationEngine
from startprev.calculators.fee_account import FeeAccountCalculator
from startprev.calculators.ledger import LedgerAssembler, quantize_money
from startprev.models import DistributionRow, FeeAccount, FeeTerms, Release


def _release(day: str, amount, status: str = "pending", gross=None) -> Release:
    return Release(
        date=date.fromisoformat(day),
        total_net=Decimal(str(amount)),
        status=status,
        total_gross=Decimal(str(gross if gross is not None else amount)),
    )


class TestQuantizeMoney:
    """Test banker's rounding at the output step."""

    def test_half_rounds_to_even(self):
        assert quantize_money(Decimal("0.005")) == Decimal("0.00")
        assert quantize_money(Decimal("0.015")) == Decimal("0.02")
        assert quantize_money(Decimal("2.675")) == Decimal("2.68")

    def test_regular_rounding(self):
        assert quantize_money(Decimal("4.004")) == Decimal("4.00")
        assert quantize_money(Decimal("3.5035")) == Decimal("3.50")


class TestLedgerAssembly:
    """Test conversion of engine rows into ledger entries and totals."""

    @pytest.fixture
    def assembler(self):
        return LedgerAssembler()

    def test_three_release_ledger(self, assembler):
        releases = [
            _release("2025-02-25", 1000, gross=1100),
            _release("2025-03-25", 1000, gross=1100),
            _release("2025-04-24", 1000, gross=1100),
        ]
        account = FeeAccount(total_fee_owed=Decimal("900"))
        rows, _ = AllocationEngine().allocate(releases, account.remaining_balance)

        ledger = assembler.assemble(rows, account)

        assert [e.fee_charged for e in ledger.entries] == [Decimal("400.00"), Decimal("350.00"), Decimal("150.00")]
        assert [e.client_net for e in ledger.entries] == [Decimal("600.00"), Decimal("650.00"), Decimal("850.00")]
        assert [e.balance_after for e in ledger.entries] == [Decimal("500.00"), Decimal("150.00"), Decimal("0.00")]
        assert [e.effective_rate for e in ledger.entries] == [Decimal("0.4"), Decimal("0.35"), Decimal("0.15")]

        totals = ledger.totals
        assert totals.total_gross == Decimal("3300.00")
        assert totals.total_client_net == Decimal("2100.00")
        assert totals.total_fee_owed == Decimal("900.00")
        assert totals.total_fee_collected == Decimal("900.00")
        assert totals.total_before_balance == Decimal("900.00")
        assert totals.total_after_balance == Decimal("0.00")
        assert totals.remaining_balance == Decimal("0.00")

    def test_rounded_rows_still_balance(self, assembler):
        """Half-cent charges: per-row fees follow the rounded running total."""
        releases = [_release(f"2025-0{m}-25", 1) for m in (2, 3, 4)]
        rows = [
            DistributionRow(release=r, charged_amount=Decimal("0.005"), effective_rate=Decimal("0.005"),
                            balance_after=Decimal("0"))
            for r in releases
        ]
        account = FeeAccount(total_fee_owed=Decimal("0.015"))

        ledger = assembler.assemble(rows, account)
        fees = [e.fee_charged for e in ledger.entries]

        assert fees == [Decimal("0.00"), Decimal("0.01"), Decimal("0.01")]
        assert sum(fees) == ledger.totals.total_fee_collected
        assert ledger.totals.total_before_balance == ledger.totals.total_fee_collected + ledger.totals.total_after_balance

    def test_conservation_with_fractional_charges(self, assembler):
        releases = [_release(f"2025-0{m}-25", 10.01) for m in (2, 3, 4)]
        account = FeeAccount(total_fee_owed=Decimal("9.99"))
        rows, _ = AllocationEngine().allocate(releases, account.remaining_balance)

        ledger = assembler.assemble(rows, account)
        fees = [e.fee_charged for e in ledger.entries]

        assert fees == [Decimal("4.00"), Decimal("3.51"), Decimal("2.48")]
        assert sum(fees) == Decimal("9.99")
        assert ledger.totals.total_after_balance == Decimal("0.00")

    def test_rounding_never_charges_above_release(self, assembler):
        """350.245 rounds down to even, then the running total 450.255 rounds up."""
        releases = [_release("2025-02-25", "1000.70"), _release("2025-03-25", "100.01")]
        rows = [
            DistributionRow(release=releases[0], charged_amount=Decimal("350.245"),
                            effective_rate=Decimal("0.35"), balance_after=Decimal("649.755")),
            DistributionRow(release=releases[1], charged_amount=Decimal("100.01"),
                            effective_rate=Decimal("1"), balance_after=Decimal("549.745")),
        ]
        account = FeeAccount(total_fee_owed=Decimal("1000"))

        ledger = assembler.assemble(rows, account)

        assert [e.fee_charged for e in ledger.entries] == [Decimal("350.24"), Decimal("100.01")]
        for entry in ledger.entries:
            assert Decimal("0") <= entry.fee_charged <= entry.installment_amount
            assert entry.client_net >= 0
            assert entry.effective_rate <= 1
        assert ledger.totals.total_fee_collected == Decimal("450.25")
        assert ledger.totals.total_after_balance == Decimal("549.75")
        assert ledger.totals.total_before_balance == ledger.totals.total_fee_collected + ledger.totals.total_after_balance

    def test_capped_cent_moves_to_next_charged_release(self, assembler):
        releases = [_release("2025-02-25", "1000.70"), _release("2025-03-25", "100.01"),
                    _release("2025-04-24", "500")]
        rows = [
            DistributionRow(release=releases[0], charged_amount=Decimal("350.245"),
                            effective_rate=Decimal("0.35"), balance_after=Decimal("649.755")),
            DistributionRow(release=releases[1], charged_amount=Decimal("100.01"),
                            effective_rate=Decimal("1"), balance_after=Decimal("549.745")),
            DistributionRow(release=releases[2], charged_amount=Decimal("200"),
                            effective_rate=Decimal("0.4"), balance_after=Decimal("349.745")),
        ]

        ledger = assembler.assemble(rows, FeeAccount(total_fee_owed=Decimal("1000")))

        assert [e.fee_charged for e in ledger.entries] == [Decimal("350.24"), Decimal("100.01"), Decimal("200.01")]
        assert ledger.totals.total_fee_collected == Decimal("650.26")

    def test_pass_through_row_takes_no_pending_cent(self, assembler):
        releases = [_release("2025-02-25", "1000.70"), _release("2025-03-25", "100.01"),
                    _release("2025-04-24", "500", status="paid")]
        rows = [
            DistributionRow(release=releases[0], charged_amount=Decimal("350.245"),
                            effective_rate=Decimal("0.35"), balance_after=Decimal("649.755")),
            DistributionRow(release=releases[1], charged_amount=Decimal("100.01"),
                            effective_rate=Decimal("1"), balance_after=Decimal("549.745")),
            DistributionRow(release=releases[2], charged_amount=Decimal("0"), effective_rate=Decimal("0"),
                            balance_after=Decimal("549.745"), charged=False),
        ]

        ledger = assembler.assemble(rows, FeeAccount(total_fee_owed=Decimal("1000")))

        assert ledger.entries[2].fee_charged == Decimal("0")
        assert ledger.entries[2].balance_after == Decimal("549.75")

    def test_zero_amount_entry_has_zero_rate(self, assembler):
        row = DistributionRow(release=_release("2025-02-25", 0), charged_amount=Decimal("0"),
                              effective_rate=Decimal("0"), balance_after=Decimal("0"))
        ledger = assembler.assemble([row], FeeAccount(total_fee_owed=Decimal("0")))

        assert ledger.entries[0].effective_rate == Decimal("0")

    def test_no_rows(self, assembler):
        ledger = assembler.assemble([], FeeAccount(total_fee_owed=Decimal("500"), already_paid=Decimal("100")))

        assert ledger.entries == []
        assert ledger.totals.total_before_balance == Decimal("400.00")
        assert ledger.totals.total_after_balance == Decimal("400.00")
        assert ledger.totals.already_paid == Decimal("100.00")


class TestFeeAccount:
    """Test sizing of the fee owed and the remaining balance."""

    @pytest.fixture
    def calculator(self):
        return FeeAccountCalculator()

    @pytest.fixture
    def releases(self):
        return [_release("2025-02-25", 1000), _release("2025-03-25", 2000, status="paid")]

    def test_percentage_of_total_net(self, calculator, releases):
        """30% of 3000 total net (paid and pending) = 900."""
        account = calculator.build(releases, FeeTerms(fee_rate=Decimal("0.30")))

        assert account.total_fee_owed == Decimal("900.00")
        assert account.remaining_balance == Decimal("900.00")

    def test_fixed_figure_overrides_percentage(self, calculator, releases):
        account = calculator.build(releases, FeeTerms(fixed_fee_owed=Decimal("1500"), already_paid=Decimal("400")))

        assert account.total_fee_owed == Decimal("1500")
        assert account.remaining_balance == Decimal("1100")

    def test_remaining_balance_clamped_to_zero(self, calculator, releases):
        account = calculator.build(releases, FeeTerms(fixed_fee_owed=Decimal("500"), already_paid=Decimal("800")))

        assert account.remaining_balance == Decimal("0")
