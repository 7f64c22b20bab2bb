from typing import Annotated

from fastapi import APIRouter, Depends

from ..dependencies import get_modal_state, get_view_state
from ..schemas.api import ModalRequest, ViewRequest, ViewState
from ..schemas.context import ModalState
from ..services import ModalStateStore, ViewStateStore

router = APIRouter(tags=["View"])

Views = Annotated[ViewStateStore, Depends(get_view_state)]
Modals = Annotated[ModalStateStore, Depends(get_modal_state)]


# -- Display mode --

@router.get("", response_model=ViewState)
async def get_view(views: Views):
    return ViewState(view=views.current)


@router.put("", response_model=ViewState)
async def set_view(req: ViewRequest, views: Views):
    """Switch the task display mode; the choice survives restarts."""
    views.set_view(req.view)
    return ViewState(view=views.current)


# -- Modals --

@router.get("/modal", response_model=ModalState)
async def get_modal(modals: Modals):
    return modals.get_current_state()


@router.post("/modal", response_model=ModalState)
async def open_modal(req: ModalRequest, modals: Modals):
    """Open a modal; opening the one already open (or ``null``) closes it."""
    modals.open_modal(req.modal, req.data)
    return modals.get_current_state()


@router.delete("/modal", response_model=ModalState)
async def close_modals(modals: Modals):
    modals.close_all_modals()
    return modals.get_current_state()
