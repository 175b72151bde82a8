"""
Storage client — the download / credential-refresh capability.

`StorageClient` is the seam the DocumentFetcher depends on; tests pass a
fake.  `HttpStorageClient` is the httpx implementation for the three
providers we store documents in:

    supabase       {SUPABASE_URL}/storage/v1/object/{bucket}/{path}
    onedrive       Graph  /me/drive/items/{path}/content
    google_drive   Drive  /files/{path}?alt=media

Every endpoint can be overridden per storage config (`download_url`
template, `token_url`).  Non-2xx responses become FetchError; 401 is the
distinct StorageUnauthorizedError so the fetcher knows to refresh.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from docguard.core.config import Settings
from docguard.core.constants import StorageProvider
from docguard.core.logging import get_logger
from docguard.pipeline.errors import FetchError, StorageUnauthorizedError

logger = get_logger(__name__)

DEFAULT_BUCKET = "documents"

_DOWNLOAD_URLS = {
    StorageProvider.ONEDRIVE: "https://graph.microsoft.com/v1.0/me/drive/items/{path}/content",
    StorageProvider.GOOGLE_DRIVE: "https://www.googleapis.com/drive/v3/files/{path}?alt=media",
}

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
MICROSOFT_TOKEN_URL = "https://login.microsoftonline.com/{tenant}/oauth2/v2.0/token"
MICROSOFT_SCOPE = "https://graph.microsoft.com/.default offline_access"


@dataclass
class ProviderConfig:
    """A storage config with its access token already decrypted."""

    storage_config_id: uuid.UUID
    provider: str
    config: dict[str, Any] = field(default_factory=dict)
    access_token: str | None = None


class TokenResponse(BaseModel):
    """OAuth token endpoint answer (only the fields we use)."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    expires_in: int = 3600
    refresh_token: str | None = None


class StorageClient(Protocol):
    async def download(self, provider_config: ProviderConfig, path: str) -> bytes: ...

    async def refresh_credential(
        self, provider_config: ProviderConfig, refresh_token: str,
    ) -> TokenResponse: ...


class HttpStorageClient:
    """httpx-backed StorageClient."""

    def __init__(self, settings: Settings, http: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self._http = http

    async def download(self, provider_config: ProviderConfig, path: str) -> bytes:
        url, headers = self._download_request(provider_config, path)
        response = await self._send("GET", url, headers=headers)

        if response.status_code == 401:
            raise StorageUnauthorizedError(
                f"{provider_config.provider} rejected the stored credential",
                status_code=401,
            )
        if response.status_code >= 400:
            raise FetchError(
                f"{provider_config.provider} download failed: {response.status_code} {response.text[:200]}",
                status_code=response.status_code,
            )
        return response.content

    async def refresh_credential(
        self, provider_config: ProviderConfig, refresh_token: str,
    ) -> TokenResponse:
        provider = provider_config.provider
        config = provider_config.config

        if provider == StorageProvider.GOOGLE_DRIVE:
            url = config.get("token_url") or GOOGLE_TOKEN_URL
            form = {
                "client_id": self.settings.GOOGLE_CLIENT_ID,
                "client_secret": self.settings.GOOGLE_CLIENT_SECRET,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            }
        elif provider == StorageProvider.ONEDRIVE:
            url = config.get("token_url") or MICROSOFT_TOKEN_URL.format(
                tenant=config.get("tenant_id") or "common",
            )
            form = {
                "client_id": self.settings.MICROSOFT_CLIENT_ID,
                "client_secret": self.settings.MICROSOFT_CLIENT_SECRET,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
                "scope": MICROSOFT_SCOPE,
            }
        else:
            raise FetchError(f"Credential refresh not supported for provider: {provider}")

        logger.info(
            "Refreshing storage credential",
            provider=provider,
            storage_config_id=str(provider_config.storage_config_id),
        )
        response = await self._send("POST", url, data=form)
        if response.status_code >= 400:
            raise FetchError(
                f"{provider} token refresh failed: {response.status_code} {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            return TokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise FetchError(f"{provider} token refresh returned an invalid body") from exc

    # ── Internals ──────────────────────────────

    def _download_request(self, provider_config: ProviderConfig, path: str) -> tuple[str, dict[str, str]]:
        provider = provider_config.provider
        config = provider_config.config

        if provider == StorageProvider.SUPABASE:
            base = (config.get("url") or self.settings.SUPABASE_URL).rstrip("/")
            if not base:
                raise FetchError("Supabase storage URL is not configured")
            bucket = config.get("bucket") or DEFAULT_BUCKET
            key = self.settings.SUPABASE_SERVICE_ROLE_KEY
            return (
                f"{base}/storage/v1/object/{bucket}/{path.lstrip('/')}",
                {"Authorization": f"Bearer {key}", "apikey": key},
            )

        if provider in _DOWNLOAD_URLS:
            if not provider_config.access_token:
                raise FetchError(f"{provider} access token not found")
            template = config.get("download_url") or _DOWNLOAD_URLS[StorageProvider(provider)]
            return (
                template.format(path=path),
                {"Authorization": f"Bearer {provider_config.access_token}"},
            )

        raise FetchError(f"Unsupported storage provider: {provider}")

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            if self._http is not None:
                return await self._http.request(method, url, **kwargs)
            async with httpx.AsyncClient(timeout=self.settings.FETCH_TIMEOUT_SECONDS) as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise FetchError(f"Storage request failed: {exc}") from exc
