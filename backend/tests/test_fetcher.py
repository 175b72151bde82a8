"""Tests for document download and the one-shot credential refresh."""

import pytest

from docguard.db.models import Document, StorageConfig
from docguard.ingestion.fetcher import DocumentFetcher, validate_token_format
from docguard.ingestion.storage_client import TokenResponse
from docguard.pipeline.context import DocumentRef
from docguard.pipeline.errors import FetchError

from conftest import PNG_BYTES, FakeStorage, legacy_xor_encrypt, seed_document


async def load_ref(session_factory, document_id) -> DocumentRef:
    async with session_factory() as db:
        return DocumentRef.from_row(await db.get(Document, document_id))


async def load_config(session_factory, storage_config_id) -> dict:
    async with session_factory() as db:
        return (await db.get(StorageConfig, storage_config_id)).config


class TestValidateTokenFormat:
    @pytest.mark.parametrize("token,provider,expected", [
        (None, None, False),
        ("short", None, False),
        ("header.payload.sig", "google_drive", True),
        ("opaque-token-value", "onedrive", True),
        ("opaque-token-value", "google_drive", False),
        ("x" * 100, "google_drive", True),
    ])
    def test_cases(self, token, provider, expected):
        assert validate_token_format(token, provider) is expected


class TestDocumentFetcher:
    async def test_download_with_stored_token(self, session_factory, seeded, cipher, storage):
        ref = await load_ref(session_factory, seeded.document_id)
        async with session_factory() as db:
            outcome = await DocumentFetcher(storage, cipher).fetch(db, ref)

        assert outcome.data == PNG_BYTES
        assert outcome.credentials_refreshed is False
        assert storage.downloads == [("header.payload.signature-original", "org/passport.png")]
        assert storage.refreshes == []

    async def test_unauthorized_refreshes_once_and_retries(self, session_factory, seeded, cipher, storage):
        storage.unauthorized = 1
        ref = await load_ref(session_factory, seeded.document_id)
        async with session_factory() as db:
            outcome = await DocumentFetcher(storage, cipher).fetch(db, ref)
            await db.commit()

        assert outcome.data == PNG_BYTES
        assert outcome.credentials_refreshed is True
        assert storage.refreshes == ["refresh.token.value"]
        assert [token for token, _ in storage.downloads] == [
            "header.payload.signature-original",
            "header.payload.signature-refreshed",
        ]

        config = await load_config(session_factory, seeded.storage_config_id)
        assert cipher.decrypt(config["encrypted_access_token"]) == "header.payload.signature-refreshed"
        assert cipher.decrypt(config["encrypted_refresh_token"]) == "refresh.token.value"
        assert "expires_at" in config

    async def test_second_unauthorized_is_terminal(self, session_factory, seeded, cipher, storage):
        storage.unauthorized = 2
        ref = await load_ref(session_factory, seeded.document_id)
        async with session_factory() as db:
            with pytest.raises(FetchError) as exc_info:
                await DocumentFetcher(storage, cipher).fetch(db, ref)

        assert exc_info.value.status_code == 401
        assert exc_info.value.retryable is True
        assert len(storage.refreshes) == 1
        assert len(storage.downloads) == 2

    async def test_rotated_refresh_token_is_stored(self, session_factory, seeded, cipher, storage):
        storage.unauthorized = 1
        storage.token = TokenResponse(
            access_token="header.payload.signature-refreshed",
            refresh_token="rotated.refresh.token",
        )
        ref = await load_ref(session_factory, seeded.document_id)
        async with session_factory() as db:
            await DocumentFetcher(storage, cipher).fetch(db, ref)
            await db.commit()

        config = await load_config(session_factory, seeded.storage_config_id)
        assert cipher.decrypt(config["encrypted_refresh_token"]) == "rotated.refresh.token"

    async def test_legacy_refresh_token_is_resealed(self, session_factory, cipher):
        seeded = await seed_document(session_factory, cipher, storage_config={
            "encrypted_access_token": cipher.encrypt("header.payload.signature-original"),
            "encryptedRefreshToken": legacy_xor_encrypt("refresh.token.value", "legacy"),
        })
        storage = FakeStorage({"org/passport.png": PNG_BYTES}, unauthorized=1)
        ref = await load_ref(session_factory, seeded.document_id)
        async with session_factory() as db:
            await DocumentFetcher(storage, cipher).fetch(db, ref)
            await db.commit()

        assert storage.refreshes == ["refresh.token.value"]
        config = await load_config(session_factory, seeded.storage_config_id)
        assert "encryptedRefreshToken" not in config
        assert config["encrypted_refresh_token"].startswith("v1:")
        assert cipher.decrypt(config["encrypted_refresh_token"]) == "refresh.token.value"

    async def test_missing_refresh_token(self, session_factory, cipher):
        seeded = await seed_document(session_factory, cipher, storage_config={
            "encrypted_access_token": cipher.encrypt("header.payload.signature-original"),
        })
        storage = FakeStorage({"org/passport.png": PNG_BYTES}, unauthorized=1)
        ref = await load_ref(session_factory, seeded.document_id)
        async with session_factory() as db:
            with pytest.raises(FetchError, match="no refresh token"):
                await DocumentFetcher(storage, cipher).fetch(db, ref)

    async def test_malformed_refreshed_token(self, session_factory, seeded, cipher, storage):
        storage.unauthorized = 1
        storage.token = TokenResponse(access_token="bad")
        ref = await load_ref(session_factory, seeded.document_id)
        async with session_factory() as db:
            with pytest.raises(FetchError, match="malformed"):
                await DocumentFetcher(storage, cipher).fetch(db, ref)

    async def test_undecryptable_token(self, session_factory, cipher):
        seeded = await seed_document(session_factory, cipher, storage_config={
            "encrypted_access_token": "v1:bm90LXJlYWxseS1lbmNyeXB0ZWQtZGF0YQ==",
        })
        ref = await load_ref(session_factory, seeded.document_id)
        async with session_factory() as db:
            with pytest.raises(FetchError, match="could not be decrypted"):
                await DocumentFetcher(FakeStorage(), cipher).fetch(db, ref)
