"""Client-side form validation; failures never reach the server."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import ValidationError

from .exceptions import FormValidationError
from .schemas.user import RegisterForm

_VALUE_ERROR_PREFIX = "Value error, "


def form_errors(exc: ValidationError) -> Dict[str, str]:
    """Flatten a pydantic ValidationError into ``{field: message}``.

    Model-level validators report their field as a ``"field: message"`` prefix.
    Only the first message per field is kept.
    """
    errors: Dict[str, str] = {}
    for err in exc.errors():
        msg = err.get("msg", "")
        if msg.startswith(_VALUE_ERROR_PREFIX):
            msg = msg[len(_VALUE_ERROR_PREFIX):]
        loc = err.get("loc") or ()
        if loc:
            field = str(loc[0])
        elif ": " in msg:
            field, msg = msg.split(": ", 1)
        else:
            field = "__all__"
        errors.setdefault(field, msg)
    return errors


def validate_register_form(data: Dict[str, Any] | RegisterForm) -> RegisterForm:
    if isinstance(data, RegisterForm):
        return data
    try:
        return RegisterForm.model_validate(data)
    except ValidationError as exc:
        raise FormValidationError(form_errors(exc)) from exc


def require_connection_code(code: str) -> str:
    code = (code or "").strip()
    if not code:
        raise FormValidationError({"code": "Enter a valid code"})
    return code
