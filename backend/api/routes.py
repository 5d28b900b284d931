"""
Waitlist API routes for Snipit.

Provides endpoints for:
- Capturing waitlist sign-ups (plus the legacy /waitlist/api path)
- Admin read access to the full list
"""
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from errors import InvalidEmailError, UnauthorizedError, WaitlistError
from models import WaitlistResponse, WaitlistStats
from waitlist import WaitlistService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["waitlist"])


def get_waitlist_service(request: Request) -> WaitlistService:
    """Dependency returning the service built at application start-up."""
    return request.app.state.waitlist_service


def require_admin(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    x_admin_access: Optional[str] = Header(default=None),
) -> None:
    """
    Accept either the admin API key as a bearer token or the dashboard's
    X-Admin-Access flag. The flag is not a session check; it only keeps the
    list away from casual requests.
    """
    admin_key = request.app.state.admin_api_key
    via_token = bool(admin_key) and authorization == f"Bearer {admin_key}"
    via_dashboard = x_admin_access == "true"
    if not via_token and not via_dashboard:
        logger.warning("Unauthorized waitlist data access attempt")
        raise UnauthorizedError("Unauthorized")


async def _read_payload(request: Request) -> dict:
    content_type = request.headers.get("content-type", "")
    if "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type:
        form = await request.form()
        return {key: form.get(key) for key in ("email", "source")}

    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = None
    if not isinstance(payload, dict):
        raise InvalidEmailError("Invalid request format", details="Could not parse request body")
    return payload


@router.post("/api/waitlist", response_model=WaitlistResponse, response_model_exclude_none=True)
@router.post("/waitlist/api", response_model=WaitlistResponse, response_model_exclude_none=True, include_in_schema=False)
async def join_waitlist(request: Request, service: WaitlistService = Depends(get_waitlist_service)):
    """Capture a waitlist sign-up from the landing page or JSON clients."""
    payload = await _read_payload(request)
    email = payload.get("email")
    source = str(payload.get("source") or "waitlist").strip()
    metadata = payload.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}

    try:
        result = await run_in_threadpool(service.add_email, email, source=source, metadata=metadata)
    except WaitlistError:
        raise
    except Exception:
        logger.exception("Critical error processing waitlist request")
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Server error occurred"},
        )

    return WaitlistResponse(success=True, message=result.message)


@router.get("/api/waitlist", response_model=WaitlistStats, dependencies=[Depends(require_admin)])
async def waitlist_stats(service: WaitlistService = Depends(get_waitlist_service)):
    """Return every email on the waitlist (admin only, unpaginated)."""
    return await run_in_threadpool(service.get_stats)
