"""
DocumentFetcher — resolves a document's storage and returns its bytes.

On a 401 from storage the fetcher refreshes the credential exactly once,
persists the new (encrypted) tokens on the storage config, and retries
the download once.  A second failure propagates; retrying further is the
queue's job, not ours.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from docguard.core.cipher import Cipher, CipherError
from docguard.core.constants import StorageProvider
from docguard.core.logging import get_logger
from docguard.db.models.base import utcnow
from docguard.db.models.storage_config import StorageConfig
from docguard.ingestion.storage_client import ProviderConfig, StorageClient
from docguard.pipeline.context import DocumentRef
from docguard.pipeline.errors import FetchError, StorageUnauthorizedError
from docguard.repositories import documents as documents_repo

logger = get_logger(__name__)

MIN_TOKEN_LENGTH = 10
MIN_OPAQUE_TOKEN_LENGTH = 100
_OPAQUE_TOKEN_PROVIDERS = {StorageProvider.ONEDRIVE.value, "outlook"}


def validate_token_format(token: str | None, provider: str | None = None) -> bool:
    """
    Sanity-check an OAuth token before using or storing it.

    Dotted tokens (JWT-like) need at least two segments.  Microsoft
    providers also issue opaque tokens, accepted as-is; for anyone else an
    opaque token must be at least 100 characters.
    """
    if not token or not isinstance(token, str):
        return False
    if len(token) < MIN_TOKEN_LENGTH:
        return False
    if "." in token:
        return len(token.split(".")) >= 2
    if provider in _OPAQUE_TOKEN_PROVIDERS:
        return bool(token.strip())
    return len(token.strip()) >= MIN_OPAQUE_TOKEN_LENGTH


@dataclass
class FetchOutcome:
    """Bytes plus whether the stored credential was rotated on the way."""

    data: bytes
    credentials_refreshed: bool = False


class DocumentFetcher:
    """Download a document's bytes through a StorageClient."""

    def __init__(self, storage: StorageClient, cipher: Cipher) -> None:
        self.storage = storage
        self.cipher = cipher

    async def fetch(self, db: AsyncSession, document: DocumentRef) -> FetchOutcome:
        storage_config = await documents_repo.get_storage_config(db, document.storage_config_id)
        if storage_config is None:
            raise FetchError(
                "Storage configuration not found",
                details={"document_id": str(document.id)},
            )

        provider_config = self._provider_config(storage_config)
        log = logger.bind(
            document_id=str(document.id),
            provider=storage_config.provider,
            storage_config_id=str(storage_config.id),
        )

        try:
            data = await self.storage.download(provider_config, document.storage_path)
            log.info("Document downloaded", size_bytes=len(data))
            return FetchOutcome(data)
        except StorageUnauthorizedError:
            log.info("Storage credential rejected, refreshing")

        provider_config = await self._refresh(db, storage_config, provider_config)

        try:
            data = await self.storage.download(provider_config, document.storage_path)
        except StorageUnauthorizedError as exc:
            raise FetchError(
                f"{storage_config.provider} download failed after credential refresh",
                status_code=401,
                details={"storage_config_id": str(storage_config.id)},
            ) from exc

        log.info("Document downloaded after credential refresh", size_bytes=len(data))
        return FetchOutcome(data, credentials_refreshed=True)

    # ── Credentials ────────────────────────────

    def _provider_config(self, storage_config: StorageConfig) -> ProviderConfig:
        config: dict[str, Any] = dict(storage_config.config or {})
        access_token = None
        encrypted = config.get("encrypted_access_token")
        if encrypted:
            access_token = self._decrypt(encrypted, "access token")
        elif config.get("accessToken"):
            access_token = config["accessToken"]

        return ProviderConfig(
            storage_config_id=storage_config.id,
            provider=storage_config.provider,
            config=config,
            access_token=access_token,
        )

    async def _refresh(
        self,
        db: AsyncSession,
        storage_config: StorageConfig,
        provider_config: ProviderConfig,
    ) -> ProviderConfig:
        provider = storage_config.provider
        config = provider_config.config

        encrypted_refresh = config.get("encrypted_refresh_token") or config.get("encryptedRefreshToken")
        if not encrypted_refresh:
            raise FetchError(
                f"{provider} credential expired and no refresh token is stored",
                status_code=401,
            )

        refresh_token = self._decrypt(encrypted_refresh, "refresh token")
        if not validate_token_format(refresh_token, provider):
            logger.error(
                "Stored refresh token is malformed",
                provider=provider,
                token_length=len(refresh_token),
                has_dots="." in refresh_token,
            )
            raise FetchError("Refresh token is malformed. Please reconnect storage.")

        refreshed = await self.storage.refresh_credential(provider_config, refresh_token)

        if not validate_token_format(refreshed.access_token, provider):
            logger.error(
                "Refreshed access token is malformed",
                provider=provider,
                token_length=len(refreshed.access_token or ""),
            )
            raise FetchError("Refreshed token is malformed. Please reconnect storage.")

        new_config = {k: v for k, v in config.items() if k != "accessToken"}
        new_config["encrypted_access_token"] = self.cipher.encrypt(refreshed.access_token)
        new_config["expires_at"] = (utcnow() + timedelta(seconds=refreshed.expires_in)).isoformat()
        new_config["encrypted_refresh_token"] = encrypted_refresh
        if refreshed.refresh_token:
            new_config["encrypted_refresh_token"] = self.cipher.encrypt(refreshed.refresh_token)
        elif not self.cipher.is_current(encrypted_refresh):
            # Re-seal a legacy refresh token while we have it in hand
            new_config["encrypted_refresh_token"] = self.cipher.encrypt(refresh_token)
        new_config.pop("encryptedRefreshToken", None)

        await documents_repo.update_storage_config(db, storage_config, new_config)

        logger.info(
            "Storage credential refreshed",
            provider=provider,
            storage_config_id=str(storage_config.id),
            token_type="jwt" if "." in refreshed.access_token else "opaque",
            rotated_refresh_token=bool(refreshed.refresh_token),
        )

        return ProviderConfig(
            storage_config_id=storage_config.id,
            provider=provider,
            config=new_config,
            access_token=refreshed.access_token,
        )

    def _decrypt(self, value: str, what: str) -> str:
        try:
            return self.cipher.decrypt(value)
        except CipherError as exc:
            raise FetchError(f"Stored {what} could not be decrypted: {exc}") from exc
