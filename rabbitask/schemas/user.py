"""Pydantic schemas for authentication, profiles and agent/common connections."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .common import NamedRef

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _digits(value: str) -> str:
    return re.sub(r"\D", "", value or "")


# ── Auth ────────────────────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str = Field(alias="senha")


class SessionData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str
    user_id: Optional[int] = Field(None, alias="cdUsuario")
    username: Optional[str] = Field(None, alias="nmUsuario")
    email: Optional[str] = None


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(alias="nmUsuario")
    email: str = Field(alias="nmEmail")
    password: str = Field(alias="nmSenha")
    phone: str = Field(alias="cdTelefone")
    user_type: int = Field(alias="cdTipoUsuario")


class RegisterForm(BaseModel):
    """Registration form as typed by the user, validated before any request."""

    name: str
    email: str
    confirm_email: str
    phone: str
    confirm_phone: str
    password: str
    confirm_password: str
    user_type: Literal[1, 2]

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please enter your full name")
        if len(v) < 3:
            raise ValueError("Name must have at least 3 characters")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Please enter your email")
        if not _EMAIL_RE.match(v):
            raise ValueError("Please enter a valid email")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        if not v:
            raise ValueError("Please enter your phone number")
        if len(_digits(v)) < 10:
            raise ValueError("Please enter a valid phone number")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Please enter a password")
        if len(v) < 8:
            raise ValueError("Password must have at least 8 characters")
        return v

    @model_validator(mode="after")
    def confirmations_match(self) -> "RegisterForm":
        if self.confirm_email.strip() != self.email:
            raise ValueError("confirm_email: Emails do not match")
        if self.confirm_phone != self.phone:
            raise ValueError("confirm_phone: Phone numbers do not match")
        if self.confirm_password != self.password:
            raise ValueError("confirm_password: Passwords do not match")
        return self

    def to_request(self) -> RegisterRequest:
        return RegisterRequest(
            username=self.name,
            email=self.email,
            password=self.password,
            phone=_digits(self.phone),
            user_type=self.user_type,
        )


# ── Profiles ────────────────────────────────────────────────────────────────────

class UserProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int = Field(alias="cd")
    username: Optional[str] = Field(None, alias="nmUsuario")
    name: Optional[str] = Field(None, alias="nome")
    email: Optional[str] = None
    phone: Optional[str] = Field(None, alias="telefone")
    type: Optional[NamedRef] = Field(None, alias="tipo")


class UpdateProfileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(None, alias="nome")
    email: Optional[str] = None
    phone: Optional[str] = Field(None, alias="telefone")
    new_password: Optional[str] = Field(None, alias="novaSenha")

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ConnectedUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int = Field(alias="cd")
    username: Optional[str] = Field(None, alias="nmUsuario")
    name: Optional[str] = Field(None, alias="nome")
    email: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.username or self.name or "usuário"


# ── Connection codes ────────────────────────────────────────────────────────────

class GeneratedCode(BaseModel):
    """Connection code generated by a common user, as persisted on the client."""

    model_config = ConfigDict(populate_by_name=True)

    code: str = Field(alias="codigo")
    expires_at: datetime = Field(alias="expiraEm")
    saved_at: Optional[int] = Field(None, alias="savedAt")  # epoch milliseconds

    @field_validator("expires_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now
