"""
Output Builder

Constructs the final API response from processing context.
"""

from decimal import Decimal

from .models import AllocationResult, LedgerEntry, LedgerTotals, ProcessingContext


def to_money(value: Decimal) -> float:
    """Convert Decimal to float with 2 decimal places."""
    return round(float(value), 2)


def _fmt(value) -> str:
    """Format a number as Brazilian currency for descriptions (R$ 1.234,56)."""
    text = f"{value:,.2f}"
    return "R$ " + text.replace(",", "_").replace(".", ",").replace("_", ".")


class OutputBuilder:
    """Builds the final output response."""

    def build(self, ctx: ProcessingContext, warnings: list[str] | None = None) -> AllocationResult:
        """Construct the complete allocation result from processing context."""
        return AllocationResult(
            client_name=ctx.input.client_name,
            policy=ctx.policy.to_dict(),
            ledger={
                "rows": [self._build_row(entry) for entry in ctx.ledger.entries],
                "totals": self._build_totals(ctx.ledger.totals),
                "calculations": self._build_calculations(ctx),
            },
            warnings=list(warnings or []),
        )

    def _build_row(self, entry: LedgerEntry) -> dict:
        """Persisted shape of one distribution row."""
        return {
            "release_date": entry.release_date.isoformat(),
            "installment_amount": to_money(entry.installment_amount),
            "client_net": to_money(entry.client_net),
            "fee_charged": to_money(entry.fee_charged),
            "effective_rate": float(entry.effective_rate),
            "balance_after": to_money(entry.balance_after),
            "status": entry.status,
        }

    def _build_totals(self, totals: LedgerTotals) -> dict:
        return {
            "total_gross": to_money(totals.total_gross),
            "total_client_net": to_money(totals.total_client_net),
            "total_fee_owed": to_money(totals.total_fee_owed),
            "already_paid": to_money(totals.already_paid),
            "total_fee_collected": to_money(totals.total_fee_collected),
            "total_before_balance": to_money(totals.total_before_balance),
            "total_after_balance": to_money(totals.total_after_balance),
            "remaining_balance": to_money(totals.remaining_balance),
        }

    def _build_calculations(self, ctx: ProcessingContext) -> dict:
        """Human-readable explanation of the key figures."""
        terms = ctx.input.fee_terms
        policy = ctx.policy
        totals = ctx.ledger.totals
        charged = [row for row in ctx.rows if row.charged]

        if terms.fixed_fee_owed is not None:
            owed_desc = f"Fixed fee figure supplied by the office: {_fmt(totals.total_fee_owed)}"
        else:
            net = sum((r.total_net for r in ctx.releases), Decimal("0"))
            owed_desc = f"{float(terms.fee_rate) * 100:.2f}% × total net benefit ({_fmt(net)}) = {_fmt(totals.total_fee_owed)}"

        if policy.rate_policy == "size":
            rate_desc = (
                f"{float(policy.large_release_rate) * 100:.0f}% on releases of {_fmt(policy.size_threshold)} or more, "
                f"{float(policy.small_release_rate) * 100:.0f}% below"
            )
        else:
            rate_desc = " / ".join(f"{float(r) * 100:.0f}%" for r in policy.position_rates) + " by release order"

        return {
            "total_fee_owed": {
                "value": to_money(totals.total_fee_owed),
                "description": owed_desc,
            },
            "remaining_before": {
                "value": to_money(totals.total_before_balance),
                "description": f"total_fee_owed ({_fmt(totals.total_fee_owed)}) - already_paid ({_fmt(totals.already_paid)}), never below zero",
            },
            "fee_collected": {
                "value": to_money(totals.total_fee_collected),
                "description": f"Collected across {len(charged)} release(s) in {policy.mode} mode using {rate_desc}",
            },
            "remaining_after": {
                "value": to_money(totals.total_after_balance),
                "description": (
                    "Balance fully cleared by the final release"
                    if totals.total_after_balance == 0
                    else f"Balance the releases could not cover, carried to the next cycle: {_fmt(totals.total_after_balance)}"
                ),
            },
        }
