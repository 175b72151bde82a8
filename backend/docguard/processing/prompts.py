"""
Classification prompts for the document-type model.

All prompts used for LLM classification are centralised here so they can
be iterated on without touching classifier logic.
"""

from __future__ import annotations


# ═══════════════════════════════════════════════════════════
#  System Prompt
# ═══════════════════════════════════════════════════════════

SYSTEM_PROMPT = (
    "You are a document analysis expert. Extract structured data from "
    "identity and compliance documents. Return only valid JSON."
)


# ═══════════════════════════════════════════════════════════
#  Classification Prompt
# ═══════════════════════════════════════════════════════════

MAX_TEXT_CHARS = 2000

CLASSIFY_PROMPT = """
Analyze this document and extract the following information. Return ONLY valid JSON.

Document filename: {filename}
Document type: {mime_type}
{text_block}
Extract and return JSON with these fields:
{{
  "document_type": "passport|drivers_license|id_card|birth_certificate|visa|other",
  "issuing_country": "country code (e.g., USA, IND, GBR)",
  "document_number": "document number if visible",
  "expiry_date": "YYYY-MM-DD or null",
  "issue_date": "YYYY-MM-DD or null",
  "full_name_on_document": "full name as it appears on document",
  "dob_on_document": "YYYY-MM-DD or null"
}}

Return ONLY the JSON object, no other text.
""".strip()


def build_classify_prompt(filename: str, mime_type: str | None, extracted_text: str = "") -> str:
    """Fill the classification prompt; extracted text is truncated."""
    text_block = ""
    if extracted_text:
        text_block = f"Extracted text: {extracted_text[:MAX_TEXT_CHARS]}...\n"
    return CLASSIFY_PROMPT.format(
        filename=filename,
        mime_type=mime_type or "application/octet-stream",
        text_block=text_block,
    )
