"""
Allocation Engine

Decides how much fee is collected from each release. Pure and synchronous:
exact Decimal arithmetic, no rounding, no I/O.
"""

import logging
from decimal import Decimal

from ..exceptions import InvalidInputError, OverAllocationError
from ..models import AllocationPolicy, DistributionRow, Release

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class AllocationEngine:
    """Distributes the remaining fee balance across payment releases."""

    def allocate(
        self,
        releases: list[Release],
        remaining_balance: Decimal,
        policy: AllocationPolicy | None = None,
    ) -> tuple[list[DistributionRow], Decimal]:
        """
        Allocate the balance and return (rows, final_remaining).

        One row per release, in date order. Releases outside the charged set
        (paid ones, unless policy.first_run) pass through with a zero charge.

        Order of rules:
        1. Lump-sum test (mode 'lump_sum' only)
        2. Tiered escalation with ceiling, client floor and final-release override
        """
        policy = policy or AllocationPolicy()
        self._check_input(releases, remaining_balance)

        ordered = sorted(releases, key=lambda r: r.date)
        targets = [i for i, r in enumerate(ordered) if policy.first_run or not r.is_paid]

        charges = None
        if policy.mode == "lump_sum":
            charges = self._apply_lump_sum(ordered, targets, remaining_balance, policy)
        if charges is None:
            charges = self._apply_tiered(ordered, targets, remaining_balance, policy)

        rows = self._build_rows(ordered, targets, charges, remaining_balance)
        final_remaining = rows[-1].balance_after if rows else remaining_balance

        self._verify(rows, remaining_balance, final_remaining)
        return rows, final_remaining

    @staticmethod
    def base_rate(position: int, amount: Decimal, policy: AllocationPolicy) -> Decimal:
        """
        Base rate for a release.

        'position': 1st → 40%, 2nd → 35%, 3rd onwards → 30% (last rate repeats).
        'size':     amount >= 1600 → 40%, otherwise 35%.
        """
        if policy.rate_policy == "size":
            if amount >= policy.size_threshold:
                return policy.large_release_rate
            return policy.small_release_rate

        rates = policy.position_rates
        return rates[min(position, len(rates)) - 1]

    def _check_input(self, releases: list[Release], remaining_balance: Decimal) -> None:
        if remaining_balance < 0:
            raise InvalidInputError(f"remaining_balance cannot be negative, got: {remaining_balance}")
        for release in releases:
            if release.total_net < 0:
                raise InvalidInputError(f"Release {release.date} has a negative amount: {release.total_net}")

    def _apply_lump_sum(
        self,
        ordered: list[Release],
        targets: list[int],
        balance: Decimal,
        policy: AllocationPolicy,
    ) -> dict[int, Decimal] | None:
        """
        Charge the whole balance against the largest release when the client
        still keeps at least half of it. Returns None to fall through.
        """
        if not targets or balance <= 0:
            return None

        # Earliest release wins a tie on amount
        largest = max(targets, key=lambda i: (ordered[i].total_net, -i))
        amount = ordered[largest].total_net
        if amount <= 0:
            return None

        # (amount - balance) / amount >= share, kept in multiplicative form
        if amount - balance < policy.lump_sum_client_share * amount:
            return None

        return {largest: balance}

    def _apply_tiered(
        self,
        ordered: list[Release],
        targets: list[int],
        balance: Decimal,
        policy: AllocationPolicy,
    ) -> dict[int, Decimal]:
        """Walk charged releases chronologically, escalating then capping the rate."""
        charges = {}
        if not targets:
            return charges

        last = targets[-1]
        floor_share = Decimal("1") - policy.client_floor

        for position, index in enumerate(targets, start=1):
            amount = ordered[index].total_net

            if index == last:
                # Final release zeroes the balance, bounded by what it pays out
                charge = min(balance, amount)
                if balance > amount:
                    logger.warning(
                        "Balance %s exceeds final release %s (%s); carrying %s over",
                        balance, ordered[index].date, amount, balance - amount,
                    )
            else:
                candidate = amount * self.base_rate(position, amount, policy)
                # Ceiling: never more than the balance
                charge = min(candidate, balance)
                # Floor: client keeps at least client_floor of a non-final release
                charge = min(charge, amount * floor_share)

            charges[index] = charge
            balance = max(ZERO, balance - charge)

        return charges

    def _build_rows(
        self,
        ordered: list[Release],
        targets: list[int],
        charges: dict[int, Decimal],
        balance: Decimal,
    ) -> list[DistributionRow]:
        positions = {index: position for position, index in enumerate(targets, start=1)}
        rows = []

        for index, release in enumerate(ordered):
            charge = charges.get(index, ZERO)
            balance = max(ZERO, balance - charge)
            amount = release.total_net
            rows.append(
                DistributionRow(
                    release=release,
                    charged_amount=charge,
                    effective_rate=charge / amount if amount else ZERO,
                    balance_after=balance,
                    charged=index in positions,
                    position=positions.get(index),
                )
            )
        return rows

    def _verify(self, rows: list[DistributionRow], initial: Decimal, final: Decimal) -> None:
        """Fail fast on anything the rules make impossible."""
        for row in rows:
            if row.charged_amount < 0 or row.balance_after < 0:
                raise OverAllocationError(f"Negative figure on release {row.release.date}: {row}")
            if row.charged_amount > row.release.total_net:
                raise OverAllocationError(
                    f"Charged {row.charged_amount} on release {row.release.date} "
                    f"paying only {row.release.total_net}"
                )

        total_charged = sum((row.charged_amount for row in rows), ZERO)
        if total_charged + final != initial:
            raise OverAllocationError(
                f"Conservation broken: charged {total_charged} + remaining {final} != initial {initial}"
            )
