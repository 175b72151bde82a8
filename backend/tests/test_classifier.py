"""Tests for model-response parsing and the classifier's fallback paths."""

import asyncio
import time
from datetime import date

import httpx
import pytest

from docguard.pipeline.errors import ClassificationError, ConfigurationError
from docguard.processing import classifier as classifier_module
from docguard.processing.classifier import (
    Classifier,
    GeminiClient,
    infer_type_from_filename,
    parse_model_response,
)
from docguard.processing.prompts import build_classify_prompt

from conftest import PNG_BYTES, FakeModelClient


class SlowModelClient:
    async def generate(self, **kwargs) -> str:
        await asyncio.sleep(5)
        return "{}"


class TestParseModelResponse:
    def test_fenced_json(self):
        payload = parse_model_response('```json\n{"document_type": "passport"}\n```')
        assert payload.document_type == "passport"

    def test_lenient_dates(self):
        payload = parse_model_response(
            '{"expiry_date": "2030-01-01T00:00:00Z", "issue_date": "sometime", "dob_on_document": null}'
        )
        assert payload.expiry_date == date(2030, 1, 1)
        assert payload.issue_date is None
        assert payload.dob_on_document is None

    def test_placeholder_strings_become_none(self):
        payload = parse_model_response('{"document_number": "N/A", "issuing_country": "  "}')
        assert payload.document_number is None
        assert payload.issuing_country is None

    @pytest.mark.parametrize("text", ["", "not json", "[1, 2]", "```\n```"])
    def test_garbage_raises(self, text):
        with pytest.raises(ClassificationError):
            parse_model_response(text)


class TestFilenameFallback:
    @pytest.mark.parametrize("filename,expected", [
        ("Jane_Passport_scan.pdf", "passport"),
        ("drivers-license-front.jpg", "drivers_license"),
        ("national_ID.png", "id_card"),
        ("birth_certificate.pdf", "birth_certificate"),
        ("travel_visa.png", "visa"),
        ("scan001.pdf", "other"),
    ])
    def test_infer(self, filename, expected):
        assert infer_type_from_filename(filename) == expected


class TestPrompt:
    def test_extracted_text_is_truncated(self):
        prompt = build_classify_prompt("a.pdf", "application/pdf", "x" * 5000)
        assert "x" * 2000 in prompt
        assert "x" * 2001 not in prompt


class TestClassifier:
    async def test_image_goes_to_vision_model(self, settings, model_client):
        classifier = Classifier(settings, client=model_client)
        result = await classifier.classify(PNG_BYTES, "passport.png", "image/png")

        assert result.method == "vision"
        assert result.model == settings.GEMINI_VISION_MODEL
        assert result.document_type == "passport"
        assert result.document_type_confidence == 0.9
        assert result.expiry_date == date(2030, 1, 1)
        assert result.full_name_on_document == "Jane Doe"
        assert model_client.calls[0]["data"] == PNG_BYTES

    async def test_pdf_goes_to_text_model(self, settings, monkeypatch):
        monkeypatch.setattr(classifier_module, "extract_text", lambda data, mime: "PASSPORT Jane Doe")
        client = FakeModelClient({"document_type": "Passport"})
        result = await Classifier(settings, client=client).classify(b"%PDF-1.4", "doc.pdf", "application/pdf")

        assert result.method == "text"
        assert result.model == settings.GEMINI_TEXT_MODEL
        assert result.document_type == "passport"
        assert result.document_type_confidence == 0.85
        assert client.calls[0]["data"] is None
        assert "PASSPORT Jane Doe" in client.calls[0]["prompt"]

    async def test_untyped_answer_has_low_confidence(self, settings):
        client = FakeModelClient({"issuing_country": "US"})
        result = await Classifier(settings, client=client).classify(PNG_BYTES, "x.png", "image/png")
        assert result.document_type is None
        assert result.document_type_confidence == 0.5

    async def test_api_failure_falls_back_to_filename(self, settings):
        client = FakeModelClient(error=httpx.ConnectError("connection refused"))
        result = await Classifier(settings, client=client).classify(PNG_BYTES, "my_passport.png", "image/png")

        assert result.method == "fallback"
        assert result.document_type == "passport"
        assert result.document_type_confidence == 0.6
        assert "connection refused" in result.error

    async def test_unparseable_answer_falls_back(self, settings):
        client = FakeModelClient(error=ClassificationError("bad json"))
        result = await Classifier(settings, client=client).classify(PNG_BYTES, "visa.png", "image/png")
        assert result.document_type == "visa"
        assert result.method == "fallback"

    async def test_timeout_falls_back(self, settings):
        fast = settings.model_copy(update={"CLASSIFY_TIMEOUT_SECONDS": 0.05})
        result = await Classifier(fast, client=SlowModelClient()).classify(PNG_BYTES, "id_card.png", "image/png")
        assert result.method == "fallback"
        assert result.document_type == "id_card"
        assert "timed out" in result.error

    async def test_slow_text_extraction_respects_deadline(self, settings, monkeypatch):
        def stuck_extract(data, mime):
            time.sleep(0.5)
            return "PASSPORT"

        monkeypatch.setattr(classifier_module, "extract_text", stuck_extract)
        fast = settings.model_copy(update={"CLASSIFY_TIMEOUT_SECONDS": 0.05})
        client = FakeModelClient({"document_type": "passport"})

        started = time.monotonic()
        result = await Classifier(fast, client=client).classify(b"%PDF-1.4", "passport.pdf", "application/pdf")
        elapsed = time.monotonic() - started

        assert result.method == "fallback"
        assert "timed out" in result.error
        assert elapsed < 0.4
        assert client.calls == []

    def test_missing_api_key_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError):
            GeminiClient("")
