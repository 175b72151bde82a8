"""
ClassifyDocumentStep — asks the model what kind of document this is.

The classifier enforces its own deadline and falls back to filename
keywords, so this step never fails on model trouble.
"""

from __future__ import annotations

from docguard.pipeline.context import StepResult, ValidationContext
from docguard.pipeline.step import PipelineStep
from docguard.processing.classifier import Classifier


class ClassifyDocumentStep(PipelineStep):
    """Classify type and extract identity fields."""

    name = "classify_document"
    description = "Classify document type and extract identity fields"
    timeout = None

    def __init__(self, classifier: Classifier) -> None:
        self.classifier = classifier

    async def execute(self, ctx: ValidationContext) -> StepResult:
        started_at = self._now()
        doc = ctx.document

        classification = await self.classifier.classify(
            ctx.file_bytes, doc.original_filename, doc.mime_type,
        )
        ctx.classification = classification
        if classification.error:
            ctx.add_error(f"classification fallback: {classification.error}")

        return self._success(started_at, metadata={
            "document_type": classification.document_type,
            "confidence": classification.document_type_confidence,
            "method": classification.method,
            "model": classification.model,
        })
