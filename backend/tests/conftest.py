"""
Shared fixtures: a throwaway SQLite database, seeded documents, and fakes
for the storage provider and the generative model.
"""

from __future__ import annotations

import base64
import json
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from docguard.core.cipher import Cipher
from docguard.core.config import Settings
from docguard.db.models import (
    Base,
    Document,
    DocumentRequest,
    Employee,
    Organization,
    StorageConfig,
)
from docguard.ingestion.storage_client import ProviderConfig, TokenResponse
from docguard.pipeline.engine import ValidationPipeline
from docguard.pipeline.errors import FetchError, StorageUnauthorizedError
from docguard.processing.classifier import Classifier

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
ENCRYPTION_KEY = "test-credential-key"


def legacy_xor_encrypt(plaintext: str, key: str) -> str:
    """Credentials as the pre-AES-GCM deployments stored them."""
    mixed = "".join(chr(ord(ch) ^ ord(key[i % len(key)])) for i, ch in enumerate(plaintext))
    return base64.b64encode(mixed.encode("latin-1")).decode("ascii")


class FixedClock:
    """Settable clock; call it to read the time."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeStorage:
    """
    In-memory StorageClient.

    `unauthorized` is the number of downloads to reject with a 401 before
    serving the file.
    """

    def __init__(self, files: dict[str, bytes] | None = None, *, unauthorized: int = 0) -> None:
        self.files = files or {}
        self.unauthorized = unauthorized
        self.downloads: list[tuple[str | None, str]] = []
        self.refreshes: list[str] = []
        self.token = TokenResponse(
            access_token="header.payload.signature-refreshed",
            expires_in=3600,
            refresh_token=None,
        )
        self.fail_with: Exception | None = None

    async def download(self, provider_config: ProviderConfig, path: str) -> bytes:
        self.downloads.append((provider_config.access_token, path))
        if self.fail_with is not None:
            raise self.fail_with
        if self.unauthorized > 0:
            self.unauthorized -= 1
            raise StorageUnauthorizedError("credential rejected", status_code=401)
        if path not in self.files:
            raise FetchError(f"not found: {path}", status_code=404)
        return self.files[path]

    async def refresh_credential(self, provider_config: ProviderConfig, refresh_token: str) -> TokenResponse:
        self.refreshes.append(refresh_token)
        return self.token


class FakeModelClient:
    """GenerativeClient returning a canned JSON answer (or raising)."""

    def __init__(self, payload: dict | None = None, *, error: Exception | None = None) -> None:
        self.payload = payload or {}
        self.error = error
        self.calls: list[dict] = []

    async def generate(self, *, model, prompt, max_output_tokens, data=None, mime_type=None) -> str:
        self.calls.append({"model": model, "prompt": prompt, "data": data, "mime_type": mime_type})
        if self.error is not None:
            raise self.error
        return json.dumps(self.payload)


@dataclass
class Seeded:
    organization_id: uuid.UUID
    employee_id: uuid.UUID
    storage_config_id: uuid.UUID
    document_id: uuid.UUID


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL_OVERRIDE=f"sqlite+aiosqlite:///{tmp_path / 'docguard.db'}",
        GOOGLE_API_KEY="test-google-key",
        CREDENTIAL_ENCRYPTION_KEY=ENCRYPTION_KEY,
        LEGACY_XOR_KEY="legacy",
        QUEUE_CONCURRENCY=1,
        SERVICE_API_TOKEN="",
        APP_ENV="test",
    )


@pytest.fixture
async def session_factory(settings):
    engine = create_async_engine(settings.DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    finally:
        await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def cipher() -> Cipher:
    return Cipher(ENCRYPTION_KEY, "legacy")


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage({"org/passport.png": PNG_BYTES})


@pytest.fixture
def model_client() -> FakeModelClient:
    return FakeModelClient({
        "document_type": "passport",
        "issuing_country": "US",
        "document_number": "X1234567",
        "expiry_date": "2030-01-01",
        "issue_date": "2020-01-01",
        "full_name_on_document": "Jane Doe",
        "dob_on_document": "1990-05-17",
    })


@pytest.fixture
def pipeline(settings, storage, model_client, cipher, clock) -> ValidationPipeline:
    return ValidationPipeline(
        settings,
        storage=storage,
        classifier=Classifier(settings, client=model_client),
        cipher=cipher,
        clock=clock,
    )


async def seed_document(
    session_factory,
    cipher: Cipher,
    *,
    filename: str = "passport.png",
    path: str = "org/passport.png",
    mime_type: str = "image/png",
    sender_email: str | None = "jane.doe@example.com",
    requested_type: str | None = "passport",
    storage_config: dict | None = None,
    provider: str = "google_drive",
    org_settings: dict | None = None,
) -> Seeded:
    """Insert organization, employee, storage config, request and document."""
    async with session_factory() as db:
        org = Organization(name="Acme", settings=org_settings or {})
        db.add(org)
        await db.flush()

        employee = Employee(
            organization_id=org.id,
            full_name="Jane Doe",
            email="jane.doe@example.com",
            date_of_birth=date(1990, 5, 17),
        )
        config = StorageConfig(
            organization_id=org.id,
            provider=provider,
            config=storage_config if storage_config is not None else {
                "encrypted_access_token": cipher.encrypt("header.payload.signature-original"),
                "encrypted_refresh_token": cipher.encrypt("refresh.token.value"),
            },
        )
        db.add_all([employee, config])
        await db.flush()

        request_id = None
        if requested_type is not None:
            request = DocumentRequest(
                organization_id=org.id,
                request_type=requested_type,
                subject="Please send your ID",
            )
            db.add(request)
            await db.flush()
            request_id = request.id

        document = Document(
            organization_id=org.id,
            storage_config_id=config.id,
            document_request_id=request_id,
            storage_path=path,
            original_filename=filename,
            mime_type=mime_type,
            sender_email=sender_email,
        )
        db.add(document)
        await db.commit()

        return Seeded(
            organization_id=org.id,
            employee_id=employee.id,
            storage_config_id=config.id,
            document_id=document.id,
        )


@pytest.fixture
async def seeded(session_factory, cipher) -> Seeded:
    return await seed_document(session_factory, cipher)
