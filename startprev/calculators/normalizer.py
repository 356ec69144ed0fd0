"""
Input Normalizer

Collapses installment lines into releases, one per payment date.
"""

from collections import OrderedDict
from datetime import date
from decimal import Decimal

from ..exceptions import MissingScheduleError
from ..models import Installment, Release


class PaymentCalendar:
    """
    INSS disbursement table for a fiscal year.

    Keys are disbursement months ("YYYY-MM"), values the date on which that
    month's benefit is paid. Competence X is disbursed in month X + 1.
    """

    def __init__(self, entries: dict[str, date] | None = None):
        self._entries = dict(entries or {})

    def __contains__(self, month: str) -> bool:
        return month in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def disbursement_month(year: int, month: int) -> str:
        """Month label in which competence (year, month) is paid."""
        if month == 12:
            return f"{year + 1:04d}-01"
        return f"{year:04d}-{month + 1:02d}"

    def project(self, installment: Installment) -> date:
        """Projected payment date for an installment without one."""
        year, month = installment.competence_month
        target = self.disbursement_month(year, month)
        if target not in self._entries:
            raise MissingScheduleError(
                f"No payment calendar entry for {target} "
                f"(competence {installment.competence} has no payment_date)"
            )
        return self._entries[target]


class ReleaseNormalizer:
    """Groups installments into releases by exact payment date."""

    def normalize(self, installments: list[Installment], calendar: PaymentCalendar | None = None) -> list[Release]:
        """
        Build the release list.

        - Same-date installments are summed (a 13th-salary bonus adds to the
          monthly amount, it never replaces it).
        - A release is paid only when every member installment is paid.
        - Result is ordered ascending by date.
        """
        groups: "OrderedDict[date, list[Installment]]" = OrderedDict()

        for installment in installments:
            when = installment.payment_date
            if when is None:
                if calendar is None:
                    raise MissingScheduleError(
                        f"Installment {installment.competence} has no payment_date and no calendar was supplied"
                    )
                when = calendar.project(installment)
            groups.setdefault(when, []).append(installment)

        releases = []
        for when in sorted(groups):
            members = groups[when]
            releases.append(
                Release(
                    date=when,
                    total_net=sum((m.net_amount for m in members), Decimal("0")),
                    total_gross=sum((m.gross_amount for m in members), Decimal("0")),
                    status="paid" if all(m.is_paid for m in members) else "pending",
                    installments=tuple(members),
                )
            )
        return releases
