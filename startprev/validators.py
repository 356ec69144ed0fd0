"""
Input Validation for the Start Prev Allocation Engine

Validates all input data before processing begins.
Raises ValidationError (or InvalidInputError for negative amounts) with
clear messages for any constraint violations.
"""

from .exceptions import InvalidInputError, ValidationError
from .models import (
    ALLOCATION_MODES,
    INSTALLMENT_KINDS,
    RATE_POLICIES,
    STATUSES,
    AllocationInput,
    AllocationPolicy,
    FeeTerms,
    Installment,
    parse_month,
)


class InputValidator:
    """Validates allocation input according to business rules."""

    def validate(self, input_data: AllocationInput) -> None:
        """
        Run all validations. Raises ValidationError if any check fails.
        """
        for index, installment in enumerate(input_data.installments):
            self._validate_installment(index, installment)
        self._validate_fee_terms(input_data.fee_terms)
        self._validate_policy(input_data.policy)

    def _validate_installment(self, index: int, installment: Installment) -> None:
        """Validate one installment line."""
        label = f"installments[{index}]"

        parse_month(installment.competence, f"{label}.competence")

        if installment.net_amount < 0:
            raise InvalidInputError(f"{label}.net_amount cannot be negative, got: {installment.net_amount}")

        if installment.gross_amount < 0:
            raise InvalidInputError(f"{label}.gross_amount cannot be negative, got: {installment.gross_amount}")

        if installment.kind not in INSTALLMENT_KINDS:
            raise ValidationError(
                f"Invalid {label}.kind: {installment.kind}. Must be one of {', '.join(INSTALLMENT_KINDS)}"
            )

        if installment.status not in STATUSES:
            raise ValidationError(f"Invalid {label}.status: {installment.status}. Must be 'paid' or 'pending'")

    def _validate_fee_terms(self, terms: FeeTerms) -> None:
        """Validate fee sizing."""
        if not (0 <= terms.fee_rate <= 1):
            raise ValidationError(f"fee_rate must be between 0 and 1, got: {terms.fee_rate}")

        if terms.fixed_fee_owed is not None and terms.fixed_fee_owed < 0:
            raise InvalidInputError(f"fixed_fee_owed cannot be negative, got: {terms.fixed_fee_owed}")

        if terms.already_paid < 0:
            raise InvalidInputError(f"already_paid cannot be negative, got: {terms.already_paid}")

    def _validate_policy(self, policy: AllocationPolicy) -> None:
        """Validate the selected charging rules."""
        if policy.mode not in ALLOCATION_MODES:
            raise ValidationError(f"Invalid mode: {policy.mode}. Must be 'tiered' or 'lump_sum'")

        if policy.rate_policy not in RATE_POLICIES:
            raise ValidationError(f"Invalid rate_policy: {policy.rate_policy}. Must be 'position' or 'size'")

        if not policy.position_rates:
            raise ValidationError("position_rates cannot be empty")

        for i, rate in enumerate(policy.position_rates):
            if not (0 <= rate <= 1):
                raise ValidationError(f"Position {i + 1} rate must be between 0 and 1, got: {rate}")

        if policy.size_threshold < 0:
            raise ValidationError(f"size_threshold cannot be negative, got: {policy.size_threshold}")
