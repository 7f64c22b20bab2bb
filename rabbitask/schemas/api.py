"""Request / response bodies of the companion API (not sent to the Rabbitask API)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .context import ModalName, UserContext, ViewedUser, ViewMode


class HealthResponse(BaseModel):
    status: str
    authenticated: bool
    api_url: str
    version: str


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    detail: str
    error: str
    errors: Dict[str, str] = Field(default_factory=dict)
    status_code: Optional[int] = None


# ── Session ─────────────────────────────────────────────────────────────────────

class SessionStatus(BaseModel):
    authenticated: bool
    user_context: UserContext


# ── Tasks ───────────────────────────────────────────────────────────────────────

class SearchRequest(BaseModel):
    query: str = ""


class SearchState(BaseModel):
    query: str
    applied_query: str


# ── Oversee / connections ───────────────────────────────────────────────────────

class OverseeRequest(BaseModel):
    user_id: int
    user_name: Optional[str] = None


class OverseeState(BaseModel):
    viewed_user: ViewedUser
    overseeing_user_name: Optional[str] = None
    active_user_for_tasks: Optional[int] = None


class ConnectRequest(BaseModel):
    code: str = ""


class GeneratedCodeState(BaseModel):
    code: str
    expires_at: datetime
    remaining: str


# ── View / modals ───────────────────────────────────────────────────────────────

class ViewRequest(BaseModel):
    view: ViewMode


class ViewState(BaseModel):
    view: ViewMode
    available: List[ViewMode] = Field(default_factory=lambda: list(ViewMode))


class ModalRequest(BaseModel):
    modal: Optional[ModalName] = None
    data: Any = None

