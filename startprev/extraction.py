"""
Installment extraction from benefit statement text

The language model only maps free text to structured installment
candidates. It never computes fees: all arithmetic stays in the engine.
"""

import json
import logging

from openai import OpenAI, OpenAIError

from .exceptions import ExtractionError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You read the text of an INSS benefit statement ("Histórico de Créditos").
Return ONLY a JSON object of the form {"installments": [...]}, one element per payment line:

{
  "competence": "MM/YYYY",
  "payment_date": "YYYY-MM-DD" or null when the statement does not show it,
  "gross_amount": number,
  "net_amount": number,
  "kind": "ordinary" | "thirteenth" | "other",
  "status": "paid" | "pending"
}

Rules:
1. Copy amounts exactly as printed, as plain numbers (no currency symbols).
2. A 13th-salary (abono anual) line is its own element with kind "thirteenth".
3. Lines already credited to the beneficiary are "paid"; future or scheduled lines are "pending".
4. Do not add, sum, estimate or compute anything."""

REQUIRED_FIELDS = ("competence", "net_amount")


class InstallmentExtractor:
    """Turns statement text into installment candidate dicts via an OpenAI model."""

    def __init__(self, client, model: str = "gpt-4o"):
        self.client = client
        self.model = model

    @classmethod
    def from_settings(cls, settings) -> "InstallmentExtractor":
        if not settings.openai_api_key:
            raise ExtractionError("OPENAI_API_KEY is not configured")
        return cls(OpenAI(api_key=settings.openai_api_key), model=settings.openai_model)

    def extract(self, document_text: str) -> list[dict]:
        """
        Ask the model for installment candidates.

        Raises ExtractionError on API failure, non-JSON output, or a reply
        without a usable installments list.
        """
        if not document_text or not document_text.strip():
            raise ExtractionError("Document text is empty")

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": document_text},
                ],
                response_format={"type": "json_object"},
                temperature=0,
            )
        except OpenAIError as e:
            raise ExtractionError(f"Extraction service failed: {e}") from e

        result_text = response.choices[0].message.content or ""
        try:
            data = json.loads(result_text)
        except json.JSONDecodeError as e:
            raise ExtractionError(f"Extraction service returned invalid JSON: {e}") from e

        installments = data.get("installments") if isinstance(data, dict) else None
        if not isinstance(installments, list):
            raise ExtractionError("Extraction result has no installments list")

        candidates = []
        for item in installments:
            if not isinstance(item, dict) or any(item.get(f) is None for f in REQUIRED_FIELDS):
                logger.warning(f"Discarding incomplete installment candidate: {item}")
                continue
            candidates.append(item)

        if not candidates:
            raise ExtractionError("No installments found in document")

        logger.info(f"Extracted {len(candidates)} installment candidates")
        return candidates
