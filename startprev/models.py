"""
Domain Models for the Start Prev Allocation Engine

These dataclasses provide type-safe representations of all business entities.
All monetary values use Decimal for precision.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from .exceptions import ValidationError

INSTALLMENT_KINDS = ("ordinary", "thirteenth", "other")
STATUSES = ("paid", "pending")
ALLOCATION_MODES = ("tiered", "lump_sum")
RATE_POLICIES = ("position", "size")

DEFAULT_FEE_RATE = Decimal("0.30")

# Labels the extraction service tends to emit for the 13th salary
_THIRTEENTH_ALIASES = {"thirteenth", "thirteenth-salary", "thirteenth_salary", "13", "13th", "decimo_terceiro"}


# =============================================================================
# PARSING HELPERS
# =============================================================================


def _require(data: dict, key: str):
    if key not in data or data[key] is None:
        raise ValidationError(f"{key} is required")
    return data[key]


def parse_money(value, field_name: str) -> Decimal:
    """Parse a monetary value, accepting Brazilian formatting ("R$ 1.234,56")."""
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number, got: {value!r}")
    text = str(value).strip().replace("R$", "").replace(" ", "")
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValidationError(f"{field_name} must be a number, got: {value!r}") from None
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be finite, got: {value!r}")
    return amount


def parse_rate(value, field_name: str) -> Decimal:
    rate = parse_money(value, field_name)
    if not (0 <= rate <= 1):
        raise ValidationError(f"{field_name} must be between 0 and 1, got: {rate}")
    return rate


def parse_date(value, field_name: str) -> date | None:
    """Accept ISO dates (2025-02-25) and Brazilian dates (25/02/2025)."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    for fmt in ("%Y-%m-%d", "%d/%m/%Y"):
        try:
            return datetime.strptime(str(value).strip(), fmt).date()
        except ValueError:
            continue
    raise ValidationError(f"{field_name} is not a valid date: {value!r}")


def parse_flag(value) -> bool:
    """Interpret the loose booleans legacy callers send ("sim", "true", 1)."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("true", "sim", "yes", "1")


def parse_month(label: str, field_name: str = "competence") -> tuple[int, int]:
    """Parse a month label (MM/YYYY or YYYY-MM) into (year, month)."""
    text = str(label).strip()
    try:
        if "/" in text:
            month_text, year_text = text.split("/")
        else:
            year_text, month_text = text.split("-")
        year, month = int(year_text), int(month_text)
    except ValueError:
        raise ValidationError(f"{field_name} must look like MM/YYYY or YYYY-MM, got: {label!r}") from None
    if not (1 <= month <= 12) or year < 1900:
        raise ValidationError(f"{field_name} is out of range: {label!r}")
    return year, month


def _normalize_kind(value) -> str:
    kind = str(value or "ordinary").strip().lower()
    if kind in _THIRTEENTH_ALIASES:
        return "thirteenth"
    return kind


# =============================================================================
# INPUT MODELS
# =============================================================================


@dataclass(frozen=True)
class Installment:
    """One INSS payment line item as read from the benefit statement."""

    competence: str
    net_amount: Decimal
    gross_amount: Decimal = Decimal("0")
    payment_date: date | None = None
    kind: str = "ordinary"
    status: str = "pending"

    @property
    def competence_month(self) -> tuple[int, int]:
        return parse_month(self.competence)

    @property
    def is_paid(self) -> bool:
        return self.status == "paid"

    @classmethod
    def from_dict(cls, data: dict) -> "Installment":
        net = parse_money(_require(data, "net_amount"), "net_amount")
        gross = data.get("gross_amount")
        return cls(
            competence=str(_require(data, "competence")),
            net_amount=net,
            gross_amount=parse_money(gross, "gross_amount") if gross is not None else net,
            payment_date=parse_date(data.get("payment_date"), "payment_date"),
            kind=_normalize_kind(data.get("kind")),
            status=str(data.get("status") or "pending").strip().lower(),
        )


@dataclass
class FeeTerms:
    """How the contractual fee is sized and what was already collected."""

    fee_rate: Decimal = DEFAULT_FEE_RATE
    fixed_fee_owed: Decimal | None = None
    already_paid: Decimal = Decimal("0")

    @classmethod
    def from_dict(cls, data: dict, default_fee_rate: Decimal = DEFAULT_FEE_RATE) -> "FeeTerms":
        fee_rate = data.get("fee_rate")
        fixed = data.get("fixed_fee_owed")
        return cls(
            fee_rate=parse_rate(fee_rate, "fee_rate") if fee_rate is not None else default_fee_rate,
            fixed_fee_owed=parse_money(fixed, "fixed_fee_owed") if fixed not in (None, "", 0) else None,
            already_paid=parse_money(data.get("already_paid") or 0, "already_paid"),
        )


@dataclass
class AllocationPolicy:
    """
    Selectable charging rules.

    mode:        'tiered' walks releases chronologically; 'lump_sum' first
                 tests whether the largest release can clear the balance.
    rate_policy: 'position' (40% / 35% / 30% by order) or 'size'
                 (40% at or above the threshold, 35% below).
    first_run:   charge paid releases too (first collection for a client).
    """

    mode: str = "tiered"
    rate_policy: str = "position"
    first_run: bool = False
    position_rates: tuple = (Decimal("0.40"), Decimal("0.35"), Decimal("0.30"))
    size_threshold: Decimal = Decimal("1600")
    large_release_rate: Decimal = Decimal("0.40")
    small_release_rate: Decimal = Decimal("0.35")
    client_floor: Decimal = Decimal("0.60")
    lump_sum_client_share: Decimal = Decimal("0.50")

    @classmethod
    def from_dict(cls, data: dict) -> "AllocationPolicy":
        policy = cls(
            mode=str(data.get("mode", "tiered")).strip().lower(),
            rate_policy=str(data.get("rate_policy", "position")).strip().lower(),
            first_run=parse_flag(data.get("first_run", False)),
        )
        if data.get("position_rates") is not None:
            policy.position_rates = tuple(
                parse_rate(r, "position_rates") for r in data["position_rates"]
            )
        if data.get("size_threshold") is not None:
            policy.size_threshold = parse_money(data["size_threshold"], "size_threshold")
        for name in ("large_release_rate", "small_release_rate", "client_floor", "lump_sum_client_share"):
            if data.get(name) is not None:
                setattr(policy, name, parse_rate(data[name], name))
        return policy

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "rate_policy": self.rate_policy,
            "first_run": self.first_run,
        }


@dataclass
class AllocationInput:
    """Complete input for one allocation run."""

    installments: list[Installment]
    fee_terms: FeeTerms = field(default_factory=FeeTerms)
    policy: AllocationPolicy = field(default_factory=AllocationPolicy)
    payment_calendar: dict[str, date] = field(default_factory=dict)
    client_name: str | None = None

    @classmethod
    def from_dict(cls, data: dict, default_fee_rate: Decimal = DEFAULT_FEE_RATE) -> "AllocationInput":
        raw_installments = _require(data, "installments")
        if not isinstance(raw_installments, list):
            raise ValidationError("installments must be a list")

        fee_data = dict(data.get("fee_terms") or {})
        policy_data = dict(data.get("policy") or {})

        # Field names of the original /api/startprev handler
        if "valorPrevistoAnterior" in data:
            fee_data.setdefault("fixed_fee_owed", data["valorPrevistoAnterior"])
        if "valorRecebidoAnterior" in data:
            fee_data.setdefault("already_paid", data["valorRecebidoAnterior"] or 0)
        if "primeiraParcela" in data:
            policy_data.setdefault("first_run", data["primeiraParcela"])

        calendar = {}
        for month, when in (data.get("payment_calendar") or {}).items():
            year, month_number = parse_month(month, "payment_calendar")
            calendar[f"{year:04d}-{month_number:02d}"] = parse_date(when, f"payment_calendar[{month}]")

        return cls(
            installments=[Installment.from_dict(item) for item in raw_installments],
            fee_terms=FeeTerms.from_dict(fee_data, default_fee_rate),
            policy=AllocationPolicy.from_dict(policy_data),
            payment_calendar=calendar,
            client_name=data.get("client_name"),
        )


# =============================================================================
# INTERMEDIATE MODELS
# =============================================================================


@dataclass(frozen=True)
class Release:
    """One or more same-date installments collapsed into a single payable event."""

    date: date
    total_net: Decimal
    status: str
    total_gross: Decimal = Decimal("0")
    installments: tuple = ()

    @property
    def is_paid(self) -> bool:
        return self.status == "paid"


@dataclass(frozen=True)
class FeeAccount:
    """Running fee relationship with one client."""

    total_fee_owed: Decimal
    already_paid: Decimal = Decimal("0")

    @property
    def remaining_balance(self) -> Decimal:
        return max(Decimal("0"), self.total_fee_owed - self.already_paid)


@dataclass(frozen=True)
class DistributionRow:
    """The engine's decision for one release. Amounts are exact (unrounded)."""

    release: Release
    charged_amount: Decimal
    effective_rate: Decimal
    balance_after: Decimal
    charged: bool = True
    position: int | None = None

    @property
    def client_net(self) -> Decimal:
        return self.release.total_net - self.charged_amount


# =============================================================================
# OUTPUT / RESULT MODELS
# =============================================================================


@dataclass(frozen=True)
class LedgerEntry:
    """Persisted shape of a distribution row, rounded to cents."""

    release_date: date
    installment_amount: Decimal
    client_net: Decimal
    fee_charged: Decimal
    effective_rate: Decimal
    balance_after: Decimal
    status: str


@dataclass(frozen=True)
class LedgerTotals:
    """Aggregate figures over all ledger entries."""

    total_gross: Decimal = Decimal("0")
    total_client_net: Decimal = Decimal("0")
    total_fee_owed: Decimal = Decimal("0")
    already_paid: Decimal = Decimal("0")
    total_fee_collected: Decimal = Decimal("0")
    total_before_balance: Decimal = Decimal("0")
    total_after_balance: Decimal = Decimal("0")

    @property
    def remaining_balance(self) -> Decimal:
        return self.total_after_balance


@dataclass
class Ledger:
    entries: list[LedgerEntry] = field(default_factory=list)
    totals: LedgerTotals = field(default_factory=LedgerTotals)


@dataclass
class ProcessingContext:
    """
    Holds all intermediate state during one allocation run.
    This is the "bag" that flows through the pipeline.
    """

    # Input (immutable during processing)
    input: AllocationInput

    # Step results (populated as we go)
    releases: list[Release] = field(default_factory=list)
    fee_account: FeeAccount | None = None
    rows: list[DistributionRow] = field(default_factory=list)
    final_remaining: Decimal = Decimal("0")
    ledger: Ledger = field(default_factory=Ledger)

    @property
    def policy(self) -> AllocationPolicy:
        return self.input.policy


@dataclass
class AllocationResult:
    """Final output of an allocation run."""

    client_name: str | None
    policy: dict
    ledger: dict
    warnings: list[str] = field(default_factory=list)
