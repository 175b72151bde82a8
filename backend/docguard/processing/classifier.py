"""
Document classifier — Gemini call plus a filename fallback.

Images go to the vision model with the raw bytes attached; everything
else goes to the cheaper text model with whatever text we could extract
(possibly none).  The model's JSON is validated at the boundary by
`ClassificationPayload`; malformed dates become None instead of failing
the whole document.

Confidence is a fixed heuristic:

    vision result with a type   0.90
    text result with a type     0.85
    result without a type       0.50
    filename fallback           0.60

Any model failure (API error, timeout, unparseable JSON) falls back to
filename keywords; classification never fails the pipeline.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from docguard.core.config import Settings
from docguard.core.constants import DocumentType
from docguard.core.logging import get_logger
from docguard.core.tracing import traceable_step
from docguard.pipeline.errors import ClassificationError, ConfigurationError
from docguard.processing.format_detector import is_image
from docguard.processing.prompts import SYSTEM_PROMPT, build_classify_prompt
from docguard.processing.text_extractor import extract_text

logger = get_logger(__name__)

VISION_CONFIDENCE = 0.9
TEXT_CONFIDENCE = 0.85
UNTYPED_CONFIDENCE = 0.5
FALLBACK_CONFIDENCE = 0.6

# Checked in order; first hit wins
_FILENAME_KEYWORDS: list[tuple[tuple[str, ...], DocumentType]] = [
    (("passport",), DocumentType.PASSPORT),
    (("driver", "license"), DocumentType.DRIVERS_LICENSE),
    (("id", "identification"), DocumentType.ID_CARD),
    (("birth", "certificate"), DocumentType.BIRTH_CERTIFICATE),
    (("visa",), DocumentType.VISA),
]


def infer_type_from_filename(filename: str) -> str:
    lower = (filename or "").lower()
    for keywords, doc_type in _FILENAME_KEYWORDS:
        if any(k in lower for k in keywords):
            return doc_type.value
    return DocumentType.OTHER.value


# ── Boundary model ───────────────────────────

class ClassificationPayload(BaseModel):
    """Shape of the model's JSON answer."""

    model_config = ConfigDict(extra="ignore")

    document_type: str | None = None
    issuing_country: str | None = None
    document_number: str | None = None
    expiry_date: date | None = None
    issue_date: date | None = None
    full_name_on_document: str | None = None
    dob_on_document: date | None = None

    @field_validator(
        "document_type", "issuing_country", "document_number", "full_name_on_document",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if value is None:
            return None
        text = str(value).strip()
        if not text or text.lower() in ("null", "none", "n/a", "unknown"):
            return None
        return text

    @field_validator("expiry_date", "issue_date", "dob_on_document", mode="before")
    @classmethod
    def _lenient_date(cls, value: Any) -> Any:
        if value is None or isinstance(value, date):
            return value
        text = str(value).strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None


@dataclass
class Classification:
    document_type: str | None
    document_type_confidence: float
    issuing_country: str | None = None
    document_number: str | None = None
    expiry_date: date | None = None
    issue_date: date | None = None
    full_name_on_document: str | None = None
    dob_on_document: date | None = None
    method: str = "fallback"   # vision | text | fallback
    model: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        def iso(d: date | None) -> str | None:
            return d.isoformat() if d else None

        return {
            "document_type": self.document_type,
            "document_type_confidence": self.document_type_confidence,
            "issuing_country": self.issuing_country,
            "document_number": self.document_number,
            "expiry_date": iso(self.expiry_date),
            "issue_date": iso(self.issue_date),
            "full_name_on_document": self.full_name_on_document,
            "dob_on_document": iso(self.dob_on_document),
            "method": self.method,
            "model": self.model,
            "error": self.error,
        }


def parse_model_response(text: str) -> ClassificationPayload:
    """Strip an optional ``` fence and validate the JSON object."""
    body = (text or "").strip()
    if body.startswith("```"):
        lines = body.split("\n")
        body = "\n".join(lines[1:-1]) if len(lines) > 2 else ""
    if not body:
        raise ClassificationError("Empty response from classification model")

    try:
        raw = json.loads(body)
    except json.JSONDecodeError as exc:
        raise ClassificationError(f"Classification JSON parse failed: {exc}") from exc
    if not isinstance(raw, dict):
        raise ClassificationError("Classification response is not a JSON object")

    try:
        return ClassificationPayload.model_validate(raw)
    except ValidationError as exc:
        raise ClassificationError(f"Classification payload invalid: {exc}") from exc


# ── Model client ─────────────────────────────

class GenerativeClient(Protocol):
    async def generate(
        self,
        *,
        model: str,
        prompt: str,
        max_output_tokens: int,
        data: bytes | None = None,
        mime_type: str | None = None,
    ) -> str: ...


class GeminiClient:
    """Thin async wrapper over google-genai returning the response text."""

    def __init__(self, api_key: str, *, temperature: float = 0.1) -> None:
        if not api_key:
            raise ConfigurationError("GOOGLE_API_KEY is not configured")
        self._client = genai.Client(api_key=api_key)
        self._temperature = temperature

    async def generate(
        self,
        *,
        model: str,
        prompt: str,
        max_output_tokens: int,
        data: bytes | None = None,
        mime_type: str | None = None,
    ) -> str:
        contents: list[Any] = []
        if data is not None:
            contents.append(types.Part.from_bytes(data=data, mime_type=mime_type))
        contents.append(prompt)

        response = await self._client.aio.models.generate_content(
            model=model,
            contents=contents,
            config=types.GenerateContentConfig(
                system_instruction=SYSTEM_PROMPT,
                temperature=self._temperature,
                max_output_tokens=max_output_tokens,
                response_mime_type="application/json",
            ),
        )
        return response.text or ""


# ── Classifier ───────────────────────────────

class Classifier:
    """Classify a document's type and identity fields."""

    def __init__(self, settings: Settings, client: GenerativeClient | None = None) -> None:
        self.settings = settings
        self.timeout = settings.CLASSIFY_TIMEOUT_SECONDS
        self._client = client or GeminiClient(
            settings.GOOGLE_API_KEY, temperature=settings.LLM_TEMPERATURE,
        )

    async def classify(self, data: bytes, filename: str, mime_type: str | None) -> Classification:
        vision = is_image(mime_type)
        model = self.settings.GEMINI_VISION_MODEL if vision else self.settings.GEMINI_TEXT_MODEL

        try:
            payload = await asyncio.wait_for(
                self._call_model(data, filename, mime_type, vision=vision, model=model),
                timeout=self.timeout,
            )
        except (ClassificationError, genai_errors.APIError, httpx.HTTPError) as exc:
            return self._fallback(filename, model, str(exc))
        except asyncio.TimeoutError:
            return self._fallback(filename, model, f"classification timed out after {self.timeout}s")

        if payload.document_type:
            confidence = VISION_CONFIDENCE if vision else TEXT_CONFIDENCE
        else:
            confidence = UNTYPED_CONFIDENCE

        result = Classification(
            document_type=payload.document_type.lower() if payload.document_type else None,
            document_type_confidence=confidence,
            issuing_country=payload.issuing_country,
            document_number=payload.document_number,
            expiry_date=payload.expiry_date,
            issue_date=payload.issue_date,
            full_name_on_document=payload.full_name_on_document,
            dob_on_document=payload.dob_on_document,
            method="vision" if vision else "text",
            model=model,
        )
        logger.info(
            "Document classified",
            document_type=result.document_type,
            confidence=confidence,
            method=result.method,
            model=model,
        )
        return result

    @traceable_step(name="classify_document", run_type="llm", tags=["classification", "gemini"])
    async def _call_model(
        self,
        data: bytes,
        filename: str,
        mime_type: str | None,
        *,
        vision: bool,
        model: str,
    ) -> ClassificationPayload:
        if vision:
            prompt = build_classify_prompt(filename, mime_type)
            logger.info("Calling vision model", model=model, size_bytes=len(data), mime_type=mime_type)
            text = await self._client.generate(
                model=model,
                prompt=prompt,
                max_output_tokens=self.settings.LLM_MAX_TOKENS_VISION,
                data=data,
                mime_type=mime_type,
            )
        else:
            # pypdf is synchronous: keep it off the event loop
            extracted = await asyncio.to_thread(extract_text, data, mime_type)
            prompt = build_classify_prompt(filename, mime_type, extracted)
            logger.info("Calling text model", model=model, text_chars=len(extracted))
            text = await self._client.generate(
                model=model,
                prompt=prompt,
                max_output_tokens=self.settings.LLM_MAX_TOKENS_TEXT,
            )
        return parse_model_response(text)

    @staticmethod
    def _fallback(filename: str, model: str, error: str) -> Classification:
        doc_type = infer_type_from_filename(filename)
        logger.warning(
            "Classification failed, using filename fallback",
            filename=filename,
            inferred_type=doc_type,
            model=model,
            error=error,
        )
        return Classification(
            document_type=doc_type,
            document_type_confidence=FALLBACK_CONFIDENCE,
            method="fallback",
            model=model,
            error=error,
        )
