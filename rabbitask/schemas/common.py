"""Envelope and small value objects shared by every endpoint."""

from __future__ import annotations

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Uniform ``{success, message, data}`` envelope returned by the API."""

    success: bool = True
    message: str = ""
    data: Optional[T] = None


class NamedRef(BaseModel):
    """``{cd, nome}`` pair used for priorities, users and tags."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int = Field(alias="cd")
    name: str = Field("", alias="nome")
