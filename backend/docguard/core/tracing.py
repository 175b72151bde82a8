"""
LangSmith tracing for model calls.

Tracing is process-wide and opt-in: the API lifespan and each Celery task
call `setup_tracing(settings)`, and only a process that has done so with
LANGSMITH_TRACING=true and an API key sends runs.  Decorated functions run
untraced everywhere else (tests, local dev).

    @traceable_step(name="classify_document", run_type="llm")
    async def classify(...): ...
"""

from __future__ import annotations

import functools
import os
from typing import Any, Awaitable, Callable, TypeVar

from langsmith import traceable

from docguard.core.config import Settings
from docguard.core.logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])

# Exported for the LangSmith SDK, which reads its configuration from the environment.
_ENV_KEYS = {
    "LANGSMITH_API_KEY": "LANGSMITH_API_KEY",
    "LANGSMITH_ENDPOINT": "LANGSMITH_ENDPOINT",
    "LANGSMITH_PROJECT": "LANGSMITH_PROJECT",
}

_enabled = False


def setup_tracing(settings: Settings) -> bool:
    """Turn tracing on or off for this process.  Returns the new state."""
    global _enabled

    _enabled = bool(settings.LANGSMITH_TRACING and settings.LANGSMITH_API_KEY)
    if not _enabled:
        logger.debug("LangSmith tracing off")
        return False

    for env_name, field_name in _ENV_KEYS.items():
        os.environ[env_name] = getattr(settings, field_name)
    os.environ["LANGSMITH_TRACING"] = "true"

    logger.info("LangSmith tracing on", project=settings.LANGSMITH_PROJECT)
    return True


def is_tracing_enabled() -> bool:
    return _enabled


def traceable_step(
    name: str,
    run_type: str = "chain",
    tags: list[str] | None = None,
) -> Callable[[F], F]:
    """Wrap an async callable in LangSmith's @traceable, consulted per call."""

    def decorator(func: F) -> F:
        traced = traceable(name=name, run_type=run_type, tags=list(tags or []))(func)

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            target = traced if _enabled else func
            return await target(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator
