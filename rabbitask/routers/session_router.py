import logging
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Body, Depends

from ..app_state import AppContainer
from ..dependencies import get_container, get_session_store, get_user_context, require_session
from ..schemas.api import MessageResponse, SessionStatus
from ..schemas.user import LoginRequest, UpdateProfileRequest, UserProfile
from ..services import SessionStore, UserContextAggregator

logger = logging.getLogger("rabbitask.routers.session")

router = APIRouter(tags=["Session"])


@router.post("/login", response_model=SessionStatus)
async def login(
    req: LoginRequest,
    container: Annotated[AppContainer, Depends(get_container)],
):
    """Log in and load the user context (profile, role, tags)."""
    await container.session.login(req)
    await container.load_user()
    return SessionStatus(authenticated=True, user_context=container.user_context.get_user_context())


@router.post("/logout", response_model=MessageResponse)
async def logout(session: Annotated[SessionStore, Depends(get_session_store)]):
    session.logout()
    return MessageResponse(message="Logged out")


@router.post("/register", response_model=MessageResponse, status_code=201)
async def register(
    session: Annotated[SessionStore, Depends(get_session_store)],
    form: Dict[str, Any] = Body(...),
):
    """Create an account. The form is validated locally before anything is sent."""
    message = await session.register(form)
    return MessageResponse(message=message or "Account created")


@router.get("/me", response_model=SessionStatus)
async def me(
    session: Annotated[SessionStore, Depends(get_session_store)],
    user_context: Annotated[UserContextAggregator, Depends(get_user_context)],
):
    if not session.is_authenticated():
        return SessionStatus(authenticated=False, user_context=user_context.get_user_context())
    context = await user_context.initialize_user()
    return SessionStatus(authenticated=True, user_context=context)


@router.put("/me", response_model=UserProfile)
async def update_me(
    req: UpdateProfileRequest,
    _session: Annotated[SessionStore, Depends(require_session)],
    user_context: Annotated[UserContextAggregator, Depends(get_user_context)],
):
    return await user_context.update_profile(req)
