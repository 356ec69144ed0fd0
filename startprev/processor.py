"""
Allocation Processor - Main Orchestrator

Coordinates the allocation pipeline through discrete, testable steps.
"""

import json
import logging
from decimal import Decimal
from typing import Any, Dict

from .calculators import (
    AllocationEngine,
    FeeAccountCalculator,
    LedgerAssembler,
    PaymentCalendar,
    ReleaseNormalizer,
)
from .exceptions import PersistenceError, ValidationError
from .models import DEFAULT_FEE_RATE, AllocationInput, AllocationResult, ProcessingContext
from .output import OutputBuilder
from .persistence import NullSnapshotStore, SQLAlchemySnapshotStore
from .validators import InputValidator

logger = logging.getLogger(__name__)


class AllocationProcessor:
    """
    Main orchestrator for fee allocation.

    Implements a clear pipeline pattern:
    1. Validate Input
    2. Build Context
    3. Normalize installments into releases
    4. Size the fee account
    5. Allocate the balance across releases
    6. Assemble the ledger
    7. Save snapshot (non-fatal)
    8. Build Output
    """

    def __init__(self, snapshot_store=None, extractor=None, default_fee_rate: Decimal = DEFAULT_FEE_RATE):
        # Initialize all calculators
        self.validator = InputValidator()
        self.normalizer = ReleaseNormalizer()
        self.fee_account_calculator = FeeAccountCalculator()
        self.engine = AllocationEngine()
        self.ledger_assembler = LedgerAssembler()
        self.output_builder = OutputBuilder()

        # External collaborators
        self.snapshot_store = snapshot_store or NullSnapshotStore()
        self.extractor = extractor
        self.default_fee_rate = default_fee_rate

    @classmethod
    def from_settings(cls, settings) -> "AllocationProcessor":
        """Wire collaborators from an explicit Settings object."""
        store = None
        if settings.database_url:
            store = SQLAlchemySnapshotStore.from_url(settings.database_url, create_tables=settings.create_tables)

        extractor = None
        if settings.openai_api_key:
            from .extraction import InstallmentExtractor

            extractor = InstallmentExtractor.from_settings(settings)

        return cls(snapshot_store=store, extractor=extractor, default_fee_rate=settings.default_fee_rate)

    def process(self, input_data: AllocationInput) -> AllocationResult:
        """
        Run an allocation through the complete pipeline and store a snapshot.

        Args:
            input_data: Parsed AllocationInput object

        Returns:
            AllocationResult with the distribution ledger. A snapshot that
            could not be stored shows up in its warnings.
        """
        ctx = self.run(input_data)
        warnings = self._save_snapshot(ctx)
        return self.output_builder.build(ctx, warnings)

    def run(self, input_data: AllocationInput) -> ProcessingContext:
        """Steps 1-6, returning the populated context."""
        # Step 1: Validate
        self.validator.validate(input_data)

        # Step 2: Build initial context
        ctx = ProcessingContext(input=input_data)

        # Step 3: Group installments into releases
        calendar = PaymentCalendar(input_data.payment_calendar) if input_data.payment_calendar else None
        ctx.releases = self.normalizer.normalize(input_data.installments, calendar)

        # Step 4: Fee owed and remaining balance
        ctx.fee_account = self.fee_account_calculator.build(ctx.releases, input_data.fee_terms)

        # Step 5: Allocate
        ctx.rows, ctx.final_remaining = self.engine.allocate(
            ctx.releases, ctx.fee_account.remaining_balance, input_data.policy
        )

        # Step 6: Round into the ledger
        ctx.ledger = self.ledger_assembler.assemble(ctx.rows, ctx.fee_account)
        return ctx

    def process_from_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Process an allocation from raw dictionary input.

        Convenience method for API usage. Accepts statement text in place of
        installments when an extractor is configured.
        """
        data = self._with_installments(data)
        input_data = AllocationInput.from_dict(data, self.default_fee_rate)
        return self._result_to_dict(self.process(input_data))

    def _save_snapshot(self, ctx: ProcessingContext) -> list[str]:
        """Step 7: Snapshot. Storage failures never abort the response."""
        try:
            self.snapshot_store.save(ctx, self._result_to_dict(self.output_builder.build(ctx)))
        except PersistenceError as e:
            logger.warning(f"Snapshot not saved (non-fatal): {e}")
            return ["Result computed but could not be saved"]
        return []

    def _with_installments(self, data: Dict[str, Any]) -> Dict[str, Any]:
        if data.get("installments") is not None:
            return data

        text = data.get("pdf_text") or data.get("pdfText")
        if not text:
            raise ValidationError("installments or pdf_text is required")
        if self.extractor is None:
            raise ValidationError("pdf_text was sent but no extraction service is configured")

        return {**data, "installments": self.extractor.extract(text)}

    def _result_to_dict(self, result: AllocationResult) -> Dict[str, Any]:
        """Convert AllocationResult to dictionary for API response."""
        return {
            "ok": True,
            "status": "success",
            "client_name": result.client_name,
            "policy": result.policy,
            "ledger": result.ledger,
            "warnings": result.warnings,
        }


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def allocate_from_dict(input_data: Dict[str, Any]) -> Dict[str, Any]:
    """Process an allocation from a Python dict and return a Python dict."""
    processor = AllocationProcessor()
    return processor.process_from_dict(input_data)


def allocate_from_json(json_input: str) -> str:
    """
    Process an allocation from JSON string input and return JSON string output.
    """
    try:
        input_data = json.loads(json_input)
        processor = AllocationProcessor()
        result = processor.process_from_dict(input_data)
        return json.dumps(result, indent=2)

    except ValueError as e:
        error_response = {"ok": False, "error": str(e), "status": "validation_failed"}
        return json.dumps(error_response, indent=2)

    except Exception as e:
        error_response = {"ok": False, "error": str(e), "status": "failed"}
        return json.dumps(error_response, indent=2)
