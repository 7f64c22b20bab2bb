"""Pydantic schemas for tasks (``/Tarefa``) and their derived categories."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .common import NamedRef


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # The API omits the offset on some timestamps; they are UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ── Response model ──────────────────────────────────────────────────────────────

class Task(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int = Field(alias="cd")
    name: str = Field("", alias="nome")
    description: Optional[str] = Field(None, alias="descricao")
    due_at: Optional[datetime] = Field(None, alias="dataPrazo")
    completed_at: Optional[datetime] = Field(None, alias="dataConclusao")
    created_at: Optional[datetime] = Field(None, alias="dataCriacao")
    priority: Optional[NamedRef] = Field(None, alias="prioridade")
    user: Optional[NamedRef] = Field(None, alias="usuario")
    owner: Optional[NamedRef] = Field(None, alias="usuarioProprietario")
    tags: List[NamedRef] = Field(default_factory=list)

    @field_validator("due_at", "completed_at", "created_at")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    @field_validator("tags", mode="before")
    @classmethod
    def null_tags(cls, v):
        return [] if v is None else v

    @property
    def tag_names(self) -> List[str]:
        return [t.name for t in self.tags]

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


# ── Request models ──────────────────────────────────────────────────────────────

class UpdateTaskRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(alias="nome")
    description: str = Field("", alias="descricao")
    priority_id: Optional[int] = Field(None, alias="cdPrioridade")
    due_at: Optional[datetime] = Field(None, alias="dataPrazo")
    tag_names: List[str] = Field(default_factory=list, alias="tagNomes")

    @field_validator("due_at")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class CreateTaskRequest(UpdateTaskRequest):
    user_id: int = Field(alias="cdUsuario")


class TaskQueryParams(BaseModel):
    """Query string accepted by ``GET /Tarefa``."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[int] = Field(None, alias="cdUsuario")
    include_connected: Optional[bool] = Field(None, alias="incluirConectados")
    priority_id: Optional[int] = Field(None, alias="cdPrioridade")
    completed: Optional[bool] = Field(None, alias="concluidas")
    page: Optional[int] = Field(None, alias="pagina")
    page_size: Optional[int] = Field(None, alias="paginaTamanho")
    order_by: Optional[str] = Field(None, alias="ordenacao")
    direction: Optional[Literal["ASC", "DESC"]] = Field(None, alias="direcao")

    def to_query(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ── Derived view ────────────────────────────────────────────────────────────────

class TaskCategories(BaseModel):
    """Partition of a task list; ``all`` is the (optionally filtered) input."""

    all: List[Task] = Field(default_factory=list)
    delayed: List[Task] = Field(default_factory=list)
    pending: List[Task] = Field(default_factory=list)
    completed: List[Task] = Field(default_factory=list)
