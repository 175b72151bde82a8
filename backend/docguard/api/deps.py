"""Shared dependencies for API routes."""

from __future__ import annotations

import hmac
from typing import AsyncGenerator, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from docguard.core.config import Settings, get_settings
from docguard.db.session import async_session
from docguard.db.session import get_db as _get_db
from docguard.jobs.worker import ValidationWorker
from docguard.pipeline.engine import ValidationPipeline

security_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session."""
    async for session in _get_db():
        yield session


def get_app_settings() -> Settings:
    return get_settings()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Factory the queue worker opens its per-job sessions from."""
    return async_session


def get_pipeline_factory() -> Callable[[Settings], ValidationPipeline]:
    return ValidationPipeline.from_settings


def get_worker(
    settings: Settings = Depends(get_app_settings),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    pipeline_factory: Callable[[Settings], ValidationPipeline] = Depends(get_pipeline_factory),
) -> ValidationWorker:
    return ValidationWorker(settings, session_factory, pipeline_factory)


async def require_service_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """Bearer check against SERVICE_API_TOKEN; open when no token is configured."""
    if not settings.SERVICE_API_TOKEN:
        return

    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication credentials were not provided",
        )

    if not hmac.compare_digest(credentials.credentials.encode(), settings.SERVICE_API_TOKEN.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid service token",
        )
