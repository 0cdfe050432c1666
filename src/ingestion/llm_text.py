"""Reduce free-form LLM output to the CSV import format.

The text is untrusted: only lines that look like CSV rows survive, and the
result still goes through the normal CSV import validation.
"""

from __future__ import annotations

import logging

from src.ingestion.csv_import import MIN_FIELDS
from src.ledger.errors import InvalidData

logger = logging.getLogger(__name__)


def _strip_fences(text: str) -> str:
    """Keep the contents of the first ``` block if there is one."""
    if "```" not in text:
        return text
    parts = text.split("```")
    for part in parts[1::2]:
        part = part.strip()
        if part.lower().startswith("csv"):
            part = part[3:].strip()
        if part:
            return part
    return text.replace("```", "")


def extract_csv(text: str) -> str:
    """Return only the CSV-looking lines (>= 5 commas) of an LLM response."""
    if not text or not text.strip():
        raise InvalidData("No content received from AI")

    body = _strip_fences(text.strip())
    lines = [
        line.strip()
        for line in body.splitlines()
        if line.strip() and line.count(",") >= MIN_FIELDS - 1
    ]
    if not lines:
        logger.warning("No CSV rows in LLM response: %.100s...", text)
        raise InvalidData("AI did not generate valid CSV data")
    return "\n".join(lines)
