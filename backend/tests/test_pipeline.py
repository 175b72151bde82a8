"""End-to-end pipeline runs against SQLite with fake storage and model."""

import uuid

import httpx
import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from docguard.core.constants import PipelineStatus
from docguard.db.models import Document, DocumentValidation, StorageConfig, ValidationExecution
from docguard.pipeline.errors import DocumentNotFoundError, FetchError, PersistenceError, StepExecutionError
from docguard.repositories import executions as executions_repo

from conftest import seed_document

COMPARED_COLUMNS = [
    "document_type", "document_type_confidence", "issuing_country", "document_number",
    "matched_employee_id", "name_match_score", "dob_match", "owner_match_confidence",
    "expiry_date", "issue_date", "expiry_status", "days_until_expiry",
    "authenticity_score", "image_quality_score", "is_duplicate", "duplicate_of_document_id",
    "matches_request_type", "request_compliance_score",
    "overall_status", "can_auto_approve", "requires_admin_review", "review_priority",
    "metadata_",
]


async def run(pipeline, session_factory, document_id, **kwargs):
    async with session_factory() as db:
        return await pipeline.run(db, document_id, **kwargs)


async def validations_for(session_factory, document_id) -> list[DocumentValidation]:
    async with session_factory() as db:
        result = await db.execute(
            select(DocumentValidation).where(DocumentValidation.document_id == document_id)
        )
        return list(result.scalars().all())


async def load_document(session_factory, document_id) -> Document:
    async with session_factory() as db:
        return await db.get(Document, document_id)


class TestValidationPipeline:
    async def test_clean_document_is_verified(self, pipeline, session_factory, seeded):
        result = await run(pipeline, session_factory, seeded.document_id)

        assert result.status == PipelineStatus.COMPLETED
        assert result.overall_status == "verified"
        assert [s["step_name"] for s in result.step_results] == [
            "fetch_document", "classify_document", "match_owner", "analyze_expiry",
            "check_authenticity", "check_compliance", "decide", "persist_validation",
        ]

        [validation] = await validations_for(session_factory, seeded.document_id)
        assert validation.id == result.validation_id
        assert validation.matched_employee_id == seeded.employee_id
        assert validation.owner_match_confidence == pytest.approx(1.0)
        assert validation.expiry_status == "expiring_later"
        assert validation.authenticity_score == 0.85
        assert validation.can_auto_approve is True
        assert validation.review_priority == "low"
        assert validation.metadata_["summary"]["overall_status"] == "verified"

        document = await load_document(session_factory, seeded.document_id)
        assert document.status == "verified"
        assert document.validation_status == "verified"
        assert document.content_hash is not None
        assert document.validation_metadata["classification"]["document_type"] == "passport"

    async def test_rerun_overwrites_single_row(self, pipeline, session_factory, seeded):
        await run(pipeline, session_factory, seeded.document_id)
        [first] = await validations_for(session_factory, seeded.document_id)

        await run(pipeline, session_factory, seeded.document_id)
        [second] = await validations_for(session_factory, seeded.document_id)

        assert second.id == first.id
        for column in COMPARED_COLUMNS:
            assert getattr(second, column) == getattr(first, column), column

        async with session_factory() as db:
            executions = await db.scalar(
                select(func.count()).select_from(ValidationExecution)
                .where(ValidationExecution.document_id == seeded.document_id)
            )
        assert executions == 2

    async def test_execution_is_recorded(self, pipeline, session_factory, seeded):
        result = await run(pipeline, session_factory, seeded.document_id, triggered_by="queue")

        async with session_factory() as db:
            execution = await db.get(ValidationExecution, result.execution_id)
        assert execution.status == "completed"
        assert execution.triggered_by == "queue"
        assert execution.validation_result_id == result.validation_id
        assert len(execution.execution_log) == 8

    async def test_expired_document_is_rejected(self, pipeline, session_factory, seeded, model_client):
        model_client.payload["expiry_date"] = "2025-01-01"
        result = await run(pipeline, session_factory, seeded.document_id)

        assert result.overall_status == "rejected"
        [validation] = await validations_for(session_factory, seeded.document_id)
        assert "document_expired" in validation.metadata_["summary"]["critical_issues"]
        document = await load_document(session_factory, seeded.document_id)
        assert document.status == "rejected"

    async def test_wrong_document_type_is_rejected(self, pipeline, session_factory, cipher):
        seeded = await seed_document(session_factory, cipher, requested_type="birth_certificate")
        result = await run(pipeline, session_factory, seeded.document_id)
        assert result.overall_status == "rejected"

    async def test_organization_thresholds_apply(self, pipeline, session_factory, cipher):
        seeded = await seed_document(
            session_factory, cipher,
            org_settings={"auto_approval": {"min_authenticity_score": 0.95}},
        )
        result = await run(pipeline, session_factory, seeded.document_id)
        assert result.overall_status == "needs_review"

    async def test_organization_owner_review_threshold(self, pipeline, session_factory, cipher):
        default = await seed_document(session_factory, cipher, sender_email=None)
        lenient = await seed_document(
            session_factory, cipher,
            sender_email=None,
            org_settings={"owner_match_review_threshold": 0.65},
        )
        await run(pipeline, session_factory, default.document_id)
        await run(pipeline, session_factory, lenient.document_id)

        [strict_validation] = await validations_for(session_factory, default.document_id)
        [lenient_validation] = await validations_for(session_factory, lenient.document_id)
        assert strict_validation.owner_match_confidence == pytest.approx(0.7)
        assert strict_validation.metadata_["owner_match"]["requires_review"] is True
        assert lenient_validation.owner_match_confidence == pytest.approx(0.7)
        assert lenient_validation.metadata_["owner_match"]["requires_review"] is False

    async def test_duplicate_submission(self, pipeline, session_factory, seeded):
        async with session_factory() as db:
            first = await db.get(Document, seeded.document_id)
            second = Document(
                organization_id=first.organization_id,
                storage_config_id=first.storage_config_id,
                document_request_id=first.document_request_id,
                storage_path=first.storage_path,
                original_filename="passport-again.png",
                mime_type="image/png",
                sender_email=first.sender_email,
            )
            db.add(second)
            await db.commit()
            second_id = second.id

        await run(pipeline, session_factory, seeded.document_id)
        result = await run(pipeline, session_factory, second_id)

        assert result.overall_status == "needs_review"
        [validation] = await validations_for(session_factory, second_id)
        assert validation.is_duplicate is True
        assert validation.duplicate_of_document_id == seeded.document_id
        assert "duplicate_submission" in validation.metadata_["summary"]["warnings"]

    async def test_fetch_failure_marks_needs_review(self, pipeline, session_factory, seeded, storage):
        storage.fail_with = FetchError("storage unavailable", status_code=503)

        with pytest.raises(FetchError):
            await run(pipeline, session_factory, seeded.document_id)

        document = await load_document(session_factory, seeded.document_id)
        assert document.validation_status == "needs_review"
        assert document.validation_metadata["error"]["type"] == "FetchError"
        assert document.validation_metadata["error"]["step_name"] == "fetch_document"
        assert await validations_for(session_factory, seeded.document_id) == []

        async with session_factory() as db:
            execution = await db.scalar(
                select(ValidationExecution).where(ValidationExecution.document_id == seeded.document_id)
            )
        assert execution.status == "failed"
        assert "storage unavailable" in execution.error_summary

    async def test_refreshed_credentials_survive_later_failure(
        self, pipeline, session_factory, seeded, storage, cipher, monkeypatch,
    ):
        storage.unauthorized = 1

        async def broken_upsert(*args, **kwargs):
            raise RuntimeError("disk full")

        monkeypatch.setattr(
            "docguard.pipeline.steps.persist_validation.validations_repo.upsert_validation",
            broken_upsert,
        )

        with pytest.raises(StepExecutionError):
            await run(pipeline, session_factory, seeded.document_id)

        async with session_factory() as db:
            config = (await db.get(StorageConfig, seeded.storage_config_id)).config
        assert cipher.decrypt(config["encrypted_access_token"]) == "header.payload.signature-refreshed"

    async def test_unexpected_error_is_wrapped(self, pipeline, session_factory, seeded, monkeypatch):
        async def broken_roster(self, org_id):
            raise RuntimeError("directory offline")

        monkeypatch.setattr("docguard.repositories.directory.SqlDirectory.list_employees", broken_roster)

        with pytest.raises(StepExecutionError) as exc_info:
            await run(pipeline, session_factory, seeded.document_id)

        assert exc_info.value.step_name == "match_owner"
        document = await load_document(session_factory, seeded.document_id)
        assert document.validation_status == "needs_review"

    async def test_finalise_failure_flags_document(self, pipeline, session_factory, seeded, monkeypatch):
        finish_execution = executions_repo.finish_execution

        async def locked_on_completion(db, execution_id, **kwargs):
            if kwargs.get("status") == "completed":
                raise OperationalError("UPDATE validation_executions", {}, Exception("database is locked"))
            return await finish_execution(db, execution_id, **kwargs)

        monkeypatch.setattr(executions_repo, "finish_execution", locked_on_completion)

        with pytest.raises(PersistenceError) as exc_info:
            await run(pipeline, session_factory, seeded.document_id)

        assert exc_info.value.step_name == "finalise"
        document = await load_document(session_factory, seeded.document_id)
        assert document.validation_status == "needs_review"
        assert document.validation_metadata["error"]["type"] == "PersistenceError"

        async with session_factory() as db:
            execution = await db.scalar(
                select(ValidationExecution).where(ValidationExecution.document_id == seeded.document_id)
            )
        assert execution.status == "failed"

    async def test_missing_document(self, pipeline, session_factory):
        with pytest.raises(DocumentNotFoundError):
            await run(pipeline, session_factory, uuid.uuid4())

    async def test_classifier_outage_still_validates(self, pipeline, session_factory, seeded, model_client):
        model_client.error = httpx.ReadTimeout("model slow")
        result = await run(pipeline, session_factory, seeded.document_id)

        assert result.status == PipelineStatus.COMPLETED
        [validation] = await validations_for(session_factory, seeded.document_id)
        assert validation.document_type == "passport"
        assert validation.document_type_confidence == 0.6
        assert validation.expiry_status == "no_expiry"
