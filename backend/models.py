"""
Pydantic models for the Snipit waitlist API
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class WaitlistEntry(BaseModel):
    """A single sign-up as handed to the storage backends"""
    email: str
    source: str = "waitlist"
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: str = Field(default_factory=utc_now_iso)


class WaitlistDocument(BaseModel):
    """On-disk layout of waitlist.json"""
    emails: List[str] = Field(default_factory=list)
    lastUpdated: str = Field(default_factory=utc_now_iso)


class AddResult(BaseModel):
    """Outcome of a write against one backend"""
    success: bool
    message: str
    backend: Optional[str] = None
    duplicate: bool = False


class WaitlistRequest(BaseModel):
    """Body of POST /api/waitlist"""
    email: Optional[str] = None
    source: str = "waitlist"
    metadata: Dict[str, Any] = Field(default_factory=dict)


class WaitlistResponse(BaseModel):
    success: bool
    message: str
    detail: Optional[str] = None


class WaitlistStats(BaseModel):
    """Admin view of the waitlist"""
    success: bool = True
    count: int
    lastUpdated: Optional[str] = None
    emails: List[str]
