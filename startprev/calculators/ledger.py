"""
Ledger Assembler

Turns engine rows into the persisted ledger shape. This is the only place
money is rounded.
"""

from decimal import ROUND_HALF_EVEN, Decimal

from ..models import DistributionRow, FeeAccount, Ledger, LedgerEntry, LedgerTotals

CENT = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")
ZERO = Decimal("0")


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places using banker's rounding."""
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


def quantize_rate(value: Decimal) -> Decimal:
    return value.quantize(RATE_PLACES, rounding=ROUND_HALF_EVEN)


class LedgerAssembler:
    """Builds ledger entries and aggregate totals from distribution rows."""

    def assemble(self, rows: list[DistributionRow], fee_account: FeeAccount) -> Ledger:
        """
        Round the engine output to cents.

        Each row's fee is the step between consecutive rounded cumulative
        charges, so the rounded fees always add up to the rounded total and
        balance_before == fees collected + balance_after to the cent.

        A fee never exceeds its rounded release amount. A cent the rounding
        would push past the release is left for the next charged row, or in
        the remaining balance when no row follows.
        """
        balance_before = quantize_money(fee_account.remaining_balance)

        entries = []
        cumulative = ZERO
        collected = ZERO
        total_gross = ZERO

        for row in rows:
            cumulative += row.charged_amount
            amount = quantize_money(row.release.total_net)

            fee = ZERO
            if row.charged_amount:
                fee = min(quantize_money(cumulative) - collected, amount)
                collected += fee

            total_gross += quantize_money(row.release.total_gross)

            entries.append(
                LedgerEntry(
                    release_date=row.release.date,
                    installment_amount=amount,
                    client_net=amount - fee,
                    fee_charged=fee,
                    effective_rate=quantize_rate(fee / amount) if amount else ZERO,
                    balance_after=balance_before - collected,
                    status=row.release.status,
                )
            )

        totals = LedgerTotals(
            total_gross=total_gross,
            total_client_net=sum((e.client_net for e in entries), ZERO),
            total_fee_owed=quantize_money(fee_account.total_fee_owed),
            already_paid=quantize_money(fee_account.already_paid),
            total_fee_collected=collected,
            total_before_balance=balance_before,
            total_after_balance=balance_before - collected,
        )
        return Ledger(entries=entries, totals=totals)
