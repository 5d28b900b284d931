"""
Snipit Waitlist API
Main FastAPI application
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from api.routes import router as waitlist_router
from config import admin_config, log_level
from errors import (
    DuplicateEmailError, InvalidEmailError, StorageUnavailableError,
    UnauthorizedError, WaitlistError,
)
from models import utc_now_iso
from waitlist import WaitlistService, create_waitlist_service

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

STATUS_CODES = {
    InvalidEmailError: 400,
    DuplicateEmailError: 400,
    UnauthorizedError: 401,
    StorageUnavailableError: 500,
}


def configure_logging() -> None:
    logging.basicConfig(
        level=log_level(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


async def waitlist_error_handler(request: Request, exc: WaitlistError):
    status_code = STATUS_CODES.get(type(exc), 500)
    content = {"success": False, "message": exc.message}
    # Only input errors carry detail; storage failures stay generic
    if isinstance(exc, InvalidEmailError) and exc.details:
        content["detail"] = exc.details
    if status_code >= 500:
        logger.error("Waitlist request failed: %s (%s)", exc.message, exc.details)
    return JSONResponse(status_code=status_code, content=content)


def create_app(
    service: Optional[WaitlistService] = None,
    admin_api_key: Optional[str] = None,
) -> FastAPI:
    """Build the API. Tests pass their own service and admin key."""
    configure_logging()
    service = service or create_waitlist_service()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        service.close()

    app = FastAPI(
        title="Snipit Waitlist",
        description="Waitlist capture and admin access for Snipit",
        version=API_VERSION,
        lifespan=lifespan,
    )
    app.state.waitlist_service = service
    app.state.admin_api_key = admin_api_key if admin_api_key is not None else admin_config()["api_key"]

    # CORS middleware for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(WaitlistError, waitlist_error_handler)
    app.include_router(waitlist_router)

    @app.get("/health")
    async def health():
        """Health check endpoint"""
        return {"status": "ok", "message": "Snipit API is running"}

    @app.get("/api/ping")
    async def ping():
        return {"status": "ok", "timestamp": utc_now_iso()}

    @app.head("/api/ping")
    async def ping_head():
        return Response(
            status_code=200,
            headers={
                "x-api-version": API_VERSION,
                "x-api-status": "healthy",
                "cache-control": "no-store, no-cache, must-revalidate, proxy-revalidate",
                "pragma": "no-cache",
                "expires": "0",
            },
        )

    return app


if __name__ == "__main__":
    uvicorn.run("main:create_app", factory=True, host="0.0.0.0", port=8000, reload=True)
