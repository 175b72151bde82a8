"""
FastAPI application: manual validation, result lookup and queue operations.

    uvicorn docguard.main:app --app-dir backend
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docguard.api.v1 import documents, validation
from docguard.core.config import settings
from docguard.core.logging import get_logger, setup_logging
from docguard.core.tracing import setup_tracing
from docguard.db.session import engine
from docguard.pipeline.errors import PipelineError

logger = get_logger("docguard.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging("DEBUG" if settings.APP_ENV == "development" else "INFO")
    setup_tracing(settings)
    logger.info("Validation API starting", env=settings.APP_ENV)
    yield
    await engine.dispose()
    logger.info("Validation API stopped")


app = FastAPI(
    title="DocGuard Validation API",
    description="Identity document validation pipeline and retry queue",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    """Pipeline errors that escape a route become `{success: false, error}`."""
    logger.error("Unhandled pipeline error", path=request.url.path, **exc.to_dict())
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": str(exc)},
    )


app.include_router(documents.router, prefix="/api/v1")
app.include_router(validation.router, prefix="/api/v1")


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    return {"status": "ok", "env": settings.APP_ENV}
