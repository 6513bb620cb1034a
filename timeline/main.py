# SPDX-FileCopyrightText: 2025 Roland Knall <rknall@gmail.com>
# SPDX-License-Identifier: GPL-2.0-only
"""FastAPI application entry point."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from timeline.config import settings
from timeline.database import schema
from timeline.services.background_service import job_runner

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Ensure directories exist
os.makedirs(settings.blob_root, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    # Startup: make sure the schema exists before serving traffic
    try:
        schema.ensure()
    except SQLAlchemyError as e:
        logger.error(f"Schema initialization failed, retrying on first use: {e}")

    await job_runner.start()

    yield

    # Shutdown: pending background jobs are abandoned
    logger.info("Stopping background jobs...")
    await job_runner.stop()


app = FastAPI(
    title="Memory Timeline",
    description="Chronological memories with photos and generated place sketches",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Answer store failures with a 500 instead of a bare traceback."""
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Database error"})


@app.get("/health")
def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "healthy"}


# Import and include API router after it's created
from timeline.api.v1.router import api_router  # noqa: E402

app.include_router(api_router, prefix="/api/v1")

# Serve stored blobs
app.mount(
    settings.blob_base_url,
    StaticFiles(directory=settings.blob_root),
    name="blobs",
)
