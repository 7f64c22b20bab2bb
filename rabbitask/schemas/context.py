"""Schemas describing who is logged in, who is being viewed and UI state."""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .common import NamedRef
from .user import UserProfile


class UserRole(str, Enum):
    AGENT = "agente"
    COMMON = "comum"


class UserContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: Optional[int] = None
    user_data: Optional[UserProfile] = None
    user_type: Optional[UserRole] = None
    available_tags: List[NamedRef] = Field(default_factory=list)

    # Derived from user_type so the two flags can never both be set.
    @computed_field
    @property
    def is_agent(self) -> bool:
        return self.user_type is UserRole.AGENT

    @computed_field
    @property
    def is_common(self) -> bool:
        return self.user_type is UserRole.COMMON


EMPTY_USER_CONTEXT = UserContext()


class ViewedUser(BaseModel):
    model_config = ConfigDict(frozen=True)

    context: UserContext
    is_overseen: bool
    overseeing_user_id: Optional[int] = None


class ViewMode(str, Enum):
    LIST = "list"
    CALENDAR = "calendar"
    TIMELINE = "timeline"
    KANBAN = "kanban"


class ModalName(str, Enum):
    NEW_TASK = "NovaTarefa"
    VISUAL = "Visual"
    CONFIG = "Config"
    CONNECTIONS = "Conexoes"
    ACCOUNT = "Conta"
    EDIT_TASK = "EditTarefa"
    TASK_DETAIL = "TarefaDetalhe"


class ModalState(BaseModel):
    model_config = ConfigDict(frozen=True)

    active_modal: Optional[ModalName] = None
    show_blocking_overlay: bool = False
    modal_data: Optional[Any] = None
