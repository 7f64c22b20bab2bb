"""FastAPI dependency injection providers.

The container lives on ``app.state`` (built by the lifespan in ``main.py``),
so every provider resolves stores from the request's application.
"""

from typing import Annotated

from fastapi import Depends, Request

from .app_state import AppContainer
from .exceptions import AuthError
from .services import (
    ConnectionService,
    ModalStateStore,
    SessionStore,
    TaskStateService,
    UserContextAggregator,
    UserContextFacade,
    ViewStateStore,
)


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


Container = Annotated[AppContainer, Depends(get_container)]


def get_session_store(container: Container) -> SessionStore:
    return container.session


def get_user_context(container: Container) -> UserContextAggregator:
    return container.user_context


def get_facade(container: Container) -> UserContextFacade:
    return container.facade


def get_task_state(container: Container) -> TaskStateService:
    return container.task_state


def get_connections(container: Container) -> ConnectionService:
    return container.connections


def get_view_state(container: Container) -> ViewStateStore:
    return container.views


def get_modal_state(container: Container) -> ModalStateStore:
    return container.modals


def require_session(container: Container) -> SessionStore:
    """Reject the request with 401 unless a token is stored."""
    if not container.session.is_authenticated():
        raise AuthError("Not logged in")
    return container.session


def require_active_user(container: Container) -> int:
    """Id of the user whose tasks are shown (own or overseen)."""
    require_session(container)
    user_id = container.facade.get_active_user_for_tasks()
    if user_id is None:
        raise AuthError("User context is not loaded")
    return user_id
