"""Exceptions raised by the API clients and the client-side stores."""

from __future__ import annotations

from typing import Dict, Optional


class RabbitaskError(Exception):
    """Base exception for all client errors."""

    pass


class FormValidationError(RabbitaskError):
    """Client-side validation failed; nothing was sent to the server."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{field}: {msg}" for field, msg in self.errors.items()))


class ApiError(RabbitaskError):
    """The API answered with an error status or a failed envelope."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AuthError(ApiError):
    """401 / invalid credentials."""

    def __init__(self, message: str = "Invalid email or password", status_code: Optional[int] = 401):
        super().__init__(message, status_code)


class ConflictError(ApiError):
    """409 — duplicate email/phone, expired connection code, ..."""

    pass


class NotFoundError(ApiError):
    pass


class TransportError(RabbitaskError):
    """The request never produced an HTTP response (DNS, refused, timeout)."""

    pass
