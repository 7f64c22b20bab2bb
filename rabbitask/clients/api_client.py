"""httpx transport for the Rabbitask REST API.

Attaches the bearer token from client storage to every request, unwraps the
``{success, message, data}`` envelope and maps failures onto
:mod:`rabbitask.exceptions`.
"""

import logging
import time
from typing import Any, Dict, Optional, Type

import httpx
from pydantic import ValidationError

from ..exceptions import ApiError, AuthError, ConflictError, NotFoundError, TransportError
from ..repositories.storage import ClientStorage
from ..schemas.common import ApiResponse

logger = logging.getLogger("rabbitask.clients.api_client")


class BearerTokenAuth(httpx.Auth):
    """Reads the token on every request; no token means an anonymous request."""

    def __init__(self, storage: ClientStorage, token_key: str):
        self._storage = storage
        self._token_key = token_key

    def auth_flow(self, request: httpx.Request):
        token = self._storage.get_item(self._token_key)
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        yield request


def _error_message(body: Any) -> Optional[str]:
    if isinstance(body, dict):
        if body.get("message"):
            return str(body["message"])
        errors = body.get("errors")
        if isinstance(errors, list) and errors:
            return ", ".join(str(e) for e in errors)
        if isinstance(errors, dict) and errors:
            # ASP.NET validation problem details: {field: [messages]}
            return ", ".join(str(m) for msgs in errors.values() for m in (msgs if isinstance(msgs, list) else [msgs]))
        if body.get("title"):
            return str(body["title"])
    if isinstance(body, str) and body.strip():
        return body.strip()
    return None


class ApiClient:
    def __init__(
        self,
        base_url: str,
        storage: ClientStorage,
        token_key: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=BearerTokenAuth(storage, token_key),
            timeout=timeout,
            transport=transport,
        )

    # ── public API ─────────────────────────────────────────────────────────

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (``None`` when empty)."""
        start = time.time()
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise TransportError(f"{method} {path} failed: {exc}") from exc
        duration_ms = int((time.time() - start) * 1000)
        logger.debug("%s %s -> %s (%dms)", method, path, response.status_code, duration_ms)

        body = self._decode(response)
        if response.status_code >= 400:
            raise self._error_for(response.status_code, body)
        return body

    async def request_envelope(
        self,
        method: str,
        path: str,
        data_type: Type[Any] = Any,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> ApiResponse:
        """Like :meth:`request` but validates the envelope; ``success: false`` raises."""
        body = await self.request(method, path, params=params, json=json)
        try:
            envelope = ApiResponse[data_type].model_validate(body if body is not None else {})
        except ValidationError as exc:
            logger.error("Unexpected response shape from %s %s: %s", method, path, exc)
            raise ApiError(f"Unexpected response from {method} {path}") from exc
        if not envelope.success:
            raise ApiError(envelope.message or f"{method} {path} was not successful")
        return envelope

    # ── internals ──────────────────────────────────────────────────────────

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _error_for(status_code: int, body: Any) -> ApiError:
        message = _error_message(body)
        if status_code == 401:
            # Never echo server detail for credential failures.
            return AuthError()
        if status_code == 404:
            return NotFoundError(message or "Not found", status_code)
        if status_code == 409:
            return ConflictError(message or "Conflict", status_code)
        return ApiError(message or f"Request failed with status {status_code}", status_code)

    # ── context manager ────────────────────────────────────────────────────

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *_):
        await self.aclose()
