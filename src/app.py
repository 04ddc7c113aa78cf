"""Main FastAPI application module.

This module initializes the FastAPI application and registers all route handlers.
"""

import asyncio
import logging
import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.responses import Response

from core.logging_config import setup_logging
from config import (
    CORS_ALLOWED_ORIGINS,
    API_HOST,
    API_PORT,
    PURGE_INTERVAL_SECONDS,
)
from core.database import SessionLocal
from api.routes import auth
from core.exceptions import StoreUnavailableError
from utils.code_store import CodeStore
from utils.converters import now_epoch

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

# Initialize FastAPI application
app = FastAPI(
    title="Access Gate API",
    description="One-time access code redemption and bearer token authorization.",
    version="1.0.0",
)

# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Admin-Token", "X-Request-ID"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid

    start = time.time()
    path = request.url.path
    logger.info(
        "REQ rid=%s method=%s path=%s client=%s",
        rid,
        request.method,
        path,
        request.client.host if request.client else None,
    )
    try:
        resp: Response = await call_next(request)
    except Exception:
        dur_ms = int((time.time() - start) * 1000)
        logger.exception("ERR rid=%s dur_ms=%s path=%s", rid, dur_ms, path)
        raise
    dur_ms = int((time.time() - start) * 1000)
    logger.info(
        "RES rid=%s status=%s dur_ms=%s path=%s", rid, resp.status_code, dur_ms, path
    )
    resp.headers["X-Request-ID"] = rid
    return resp


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400 instead of 422."""
    logger.info("Rejected malformed request to %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Invalid request body", "errors": jsonable_encoder(exc.errors())},
    )


# Register route handlers
app.include_router(auth.router)


def purge_expired_codes() -> int:
    """Run one purge pass with its own database session."""
    with SessionLocal() as db:
        return CodeStore(db).purge_expired(now_epoch())


async def _purge_loop(interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(purge_expired_codes)
        except StoreUnavailableError:
            # Already logged by the store; the next pass retries
            continue
        except Exception:
            logger.exception("Purge sweep failed")
            continue


_purge_task: Optional[asyncio.Task] = None


@app.on_event("startup")
async def startup_tasks() -> None:
    """Start the background purge sweep."""
    global _purge_task
    if PURGE_INTERVAL_SECONDS > 0:
        _purge_task = asyncio.create_task(_purge_loop(PURGE_INTERVAL_SECONDS))
        logger.info("Purge sweep started (every %ds)", PURGE_INTERVAL_SECONDS)


@app.on_event("shutdown")
async def shutdown_tasks() -> None:
    global _purge_task
    if _purge_task is not None:
        _purge_task.cancel()
        _purge_task = None


@app.get("/", summary="API root", tags=["Info"])
def root() -> dict:
    """API root, returns API information and documentation links.

    Returns:
        Dictionary with API information and documentation links.
    """
    return {
        "name": "Access Gate API",
        "version": "1.0.0",
        "description": "One-time access code redemption and bearer token authorization.",
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc",
        },
        "health": "/api/health",
    }


@app.get("/api/health", summary="Health check", tags=["Health"])
def health() -> dict:
    """Health check endpoint.

    Returns:
        Dictionary with status "ok".
    """
    return {"status": "ok"}


# --- Startup code for direct execution ---
if __name__ == "__main__":
    import uvicorn

    logger.info("Starting Access Gate API on http://%s:%s", API_HOST, API_PORT)
    uvicorn.run("app:app", host=API_HOST, port=API_PORT)
