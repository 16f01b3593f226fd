"""
StudyHub FastAPI Application Entry Point.

Run with: uvicorn studyhub.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studyhub.config import get_settings
from studyhub.errors import StudyHubError
from studyhub.api.routes import (
    auth,
    chat,
    documents,
    folders,
    lessons,
    progress,
    study_plans,
)

settings = get_settings()

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    logger.info("Starting %s (%s)", settings.app_name, settings.environment)
    yield


app = FastAPI(
    title=settings.app_name,
    description="AI tutoring over uploaded documents: study plans, lessons and grading",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StudyHubError)
async def studyhub_error_handler(request: Request, exc: StudyHubError) -> JSONResponse:
    """Render domain errors as {"error", "message", "context"}."""
    if exc.status_code >= 500:
        logger.error("%s %s failed [%s]: %s", request.method, request.url.path, exc.kind.value, exc.message)
    else:
        logger.info("%s %s rejected [%s]: %s", request.method, request.url.path, exc.kind.value, exc.message)

    body = {
        "error": exc.kind.value,
        "message": exc.user_message,
        "context": exc.context,
    }
    if settings.environment == "development":
        body["detail"] = exc.message
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


# Include routers
app.include_router(auth.router)
app.include_router(folders.router)
app.include_router(documents.router)
app.include_router(study_plans.router)
app.include_router(progress.router)
app.include_router(lessons.router)
app.include_router(chat.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
