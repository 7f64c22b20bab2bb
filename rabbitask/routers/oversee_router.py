"""Oversee mode and agent / common-user connections."""

import logging
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Response

from ..dependencies import get_connections, get_facade, get_modal_state, require_session
from ..schemas.api import ConnectRequest, GeneratedCodeState, OverseeRequest, OverseeState
from ..schemas.user import ConnectedUser, GeneratedCode
from ..services import ConnectionService, ModalStateStore, UserContextFacade

logger = logging.getLogger("rabbitask.routers.oversee")

router = APIRouter(tags=["Oversee"], dependencies=[Depends(require_session)])

Facade = Annotated[UserContextFacade, Depends(get_facade)]
Connections = Annotated[ConnectionService, Depends(get_connections)]


def _oversee_state(facade: UserContextFacade) -> OverseeState:
    return OverseeState(
        viewed_user=facade.get_viewed_user(),
        overseeing_user_name=facade.overseeing_user_name.value,
        active_user_for_tasks=facade.get_active_user_for_tasks(),
    )


def _code_state(code: GeneratedCode, remaining: str) -> GeneratedCodeState:
    return GeneratedCodeState(
        code=code.code,
        expires_at=code.expires_at,
        remaining=remaining,
    )


# -- Oversee --

@router.get("", response_model=OverseeState)
async def get_oversee(facade: Facade):
    return _oversee_state(facade)


@router.put("", response_model=OverseeState)
async def set_oversee(
    req: OverseeRequest,
    facade: Facade,
    connections: Connections,
    modals: Annotated[ModalStateStore, Depends(get_modal_state)],
):
    """Start overseeing a connected user; the name is fetched when not given."""
    facade.set_overseeing(req.user_id, req.user_name)
    modals.close_all_modals()
    if not req.user_name:
        await connections.restore_overseen_name()
    return _oversee_state(facade)


@router.post("/select", response_model=OverseeState)
async def select_user(user: ConnectedUser, facade: Facade, connections: Connections):
    connections.select_user_to_oversee(user)
    return _oversee_state(facade)


@router.delete("", response_model=OverseeState)
async def clear_oversee(facade: Facade):
    facade.clear_overseeing()
    return _oversee_state(facade)


# -- Connections --

@router.get("/managed-users", response_model=List[ConnectedUser])
async def list_managed_users(connections: Connections):
    """Common users the logged-in agent can oversee."""
    return await connections.list_managed_users()


@router.get("/agents", response_model=List[ConnectedUser])
async def list_my_agents(connections: Connections):
    return await connections.list_my_agents()


@router.get("/responsible", response_model=List[ConnectedUser])
async def list_responsible_users(connections: Connections):
    return await connections.list_responsible_users()


@router.post("/connect", response_model=Optional[ConnectedUser])
async def connect(req: ConnectRequest, connections: Connections):
    return await connections.connect_with_code(req.code)


@router.delete("/users/{user_id}")
async def disconnect(user_id: int, connections: Connections):
    await connections.disconnect_user(user_id)
    return Response(status_code=204)


# -- Connection code --

@router.post("/code", response_model=GeneratedCodeState, status_code=201)
async def generate_code(connections: Connections):
    code = await connections.generate_code()
    return _code_state(code, connections.code_remaining(code))


@router.get("/code", response_model=Optional[GeneratedCodeState])
async def get_code(connections: Connections):
    """The last generated code while it is still valid, otherwise ``null``."""
    code = connections.get_generated_code()
    return _code_state(code, connections.code_remaining(code)) if code is not None else None


@router.delete("/code")
async def clear_code(connections: Connections):
    connections.clear_generated_code()
    return Response(status_code=204)
