"""
Fee Account Calculator

Sizes the contractual fee and the balance still to be collected.
"""

from decimal import Decimal

from ..models import FeeAccount, FeeTerms, Release


class FeeAccountCalculator:
    """Builds the FeeAccount for one allocation run."""

    def build(self, releases: list[Release], terms: FeeTerms) -> FeeAccount:
        """
        Priority order:
        1. Fixed fee figure supplied by the caller
        2. fee_rate × total net benefit across all releases
        """
        if terms.fixed_fee_owed is not None:
            total_owed = terms.fixed_fee_owed
        else:
            total_net = sum((r.total_net for r in releases), Decimal("0"))
            total_owed = total_net * terms.fee_rate

        return FeeAccount(total_fee_owed=total_owed, already_paid=terms.already_paid)
