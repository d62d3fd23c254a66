# =============================================================================
# FastAPI Application
# =============================================================================
#
# Run locally:
#   uvicorn docsearch.main:app --reload
#
# Worker:
#   celery -A docsearch.workers.celery_app worker --loglevel=info
#
# Routers:
#   files.py      POST /files                    upload + ingestion trigger
#   functions.py  POST /process, /embed, /search function endpoints
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docsearch.api import files, functions
from docsearch.config import settings
from docsearch.db.engine import init_db
from docsearch.errors import PipelineError
from docsearch.models.responses import HealthResponse

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    await init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Document upload, markdown sectioning and section embeddings for similarity search.",
    lifespan=lifespan,
)

# Browser clients call the function endpoints directly (preflight included).
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


@app.exception_handler(PipelineError)
async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "%s %s failed unexpectedly", request.method, request.url.path, exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.include_router(files.router)
app.include_router(functions.router)


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health() -> HealthResponse:
    return HealthResponse(version=settings.app_version, service=settings.app_name)
