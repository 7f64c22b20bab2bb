import logging
from typing import Any, List, Optional
from urllib.parse import quote

from ..exceptions import ApiError, AuthError
from ..schemas.common import NamedRef
from ..schemas.task import CreateTaskRequest, Task, TaskQueryParams, UpdateTaskRequest
from ..schemas.user import (
    ConnectedUser,
    GeneratedCode,
    LoginRequest,
    RegisterRequest,
    SessionData,
    UpdateProfileRequest,
    UserProfile,
)
from .api_client import ApiClient
from .api_gateway import AuthGateway, TaskGateway, UserGateway

logger = logging.getLogger("rabbitask.clients.http_gateway")


def _unwrap(body: Any) -> Any:
    """Some endpoints answer with the bare object instead of the envelope."""
    if isinstance(body, dict) and "success" in body and "data" in body:
        if not body["success"]:
            raise ApiError(body.get("message") or "Request was not successful")
        return body["data"]
    return body


class HttpAuthGateway(AuthGateway):
    def __init__(self, api: ApiClient):
        self.api = api

    async def login(self, credentials: LoginRequest) -> SessionData:
        body = await self.api.request(
            "POST", "/Auth/login", json=credentials.model_dump(by_alias=True)
        )
        if not isinstance(body, dict):
            raise AuthError()
        # Token arrives wrapped in data or at the top level
        data = body.get("data") if isinstance(body.get("data"), dict) else {}
        token = data.get("token") or body.get("token")
        if not token:
            raise AuthError()
        return SessionData.model_validate({**data, "token": token})

    async def register(self, req: RegisterRequest) -> str:
        envelope = await self.api.request_envelope(
            "POST", "/Auth/cadastrar", json=req.model_dump(by_alias=True)
        )
        return envelope.message


class HttpUserGateway(UserGateway):
    def __init__(self, api: ApiClient):
        self.api = api

    async def get_me(self) -> UserProfile:
        envelope = await self.api.request_envelope("GET", "/Usuario/eu", UserProfile)
        if envelope.data is None:
            raise ApiError("Profile missing from response")
        return envelope.data

    async def update_profile(self, user_id: int, req: UpdateProfileRequest) -> UserProfile:
        envelope = await self.api.request_envelope(
            "PUT", f"/Usuario/{user_id}", UserProfile, json=req.to_payload()
        )
        if envelope.data is None:
            raise ApiError("Profile missing from response")
        logger.info("Profile %s updated", user_id)
        return envelope.data

    async def get_user_by_id(self, user_id: int) -> ConnectedUser:
        body = await self.api.request("GET", f"/Usuario/{user_id}")
        return ConnectedUser.model_validate(_unwrap(body))

    async def get_tags(self) -> List[NamedRef]:
        envelope = await self.api.request_envelope("GET", "/Tag", List[NamedRef])
        return envelope.data or []

    # ── Connections ─────────────────────────────────────────────────────────────

    async def list_managed_users(self) -> List[ConnectedUser]:
        envelope = await self.api.request_envelope(
            "GET", "/Usuario/meus-usuarios", List[ConnectedUser]
        )
        return envelope.data or []

    async def list_my_agents(self) -> List[ConnectedUser]:
        envelope = await self.api.request_envelope(
            "GET", "/Usuario/meus-agentes", List[ConnectedUser]
        )
        return envelope.data or []

    async def list_responsible_users(self) -> List[ConnectedUser]:
        """Agents responsible for the logged-in common user."""
        envelope = await self.api.request_envelope(
            "GET", "/Usuario/meus-responsaveis", List[ConnectedUser]
        )
        return envelope.data or []

    async def generate_code(self) -> GeneratedCode:
        body = _unwrap(await self.api.request("POST", "/Usuario/gerar-codigo"))
        if not isinstance(body, dict) or not body.get("codigo"):
            logger.error("Code not found in response: %r", body)
            raise ApiError("Connection code missing from response")
        return GeneratedCode.model_validate(body)

    async def connect(self, code: str) -> Optional[ConnectedUser]:
        body = _unwrap(await self.api.request("POST", f"/Usuario/conectar/{quote(code, safe='')}"))
        if isinstance(body, dict) and "cd" in body:
            return ConnectedUser.model_validate(body)
        return None

    async def disconnect(self, agent_id: int, user_id: int) -> None:
        await self.api.request_envelope(
            "DELETE",
            "/Usuario/desconectar",
            params={"cdAgente": agent_id, "cdUsuario": user_id},
        )


class HttpTaskGateway(TaskGateway):
    def __init__(self, api: ApiClient):
        self.api = api

    async def list_tasks(self, params: TaskQueryParams) -> List[Task]:
        envelope = await self.api.request_envelope(
            "GET", "/Tarefa", List[Task], params=params.to_query()
        )
        return envelope.data or []

    async def create_task(self, req: CreateTaskRequest) -> Optional[Task]:
        envelope = await self.api.request_envelope(
            "POST", "/Tarefa", Optional[Task], json=req.to_payload()
        )
        return envelope.data

    async def update_task(self, task_id: int, user_id: int, req: UpdateTaskRequest) -> Optional[Task]:
        envelope = await self.api.request_envelope(
            "PUT",
            f"/Tarefa/{task_id}",
            Optional[Task],
            params={"cdUsuario": user_id},
            json=req.to_payload(),
        )
        return envelope.data

    async def complete_task(self, task_id: int, user_id: int) -> Optional[Task]:
        envelope = await self.api.request_envelope(
            "PATCH", f"/Tarefa/{task_id}/concluir", Optional[Task],
            params={"cdUsuario": user_id}, json={},
        )
        return envelope.data

    async def reopen_task(self, task_id: int, user_id: int) -> Optional[Task]:
        envelope = await self.api.request_envelope(
            "PATCH", f"/Tarefa/{task_id}/reabrir", Optional[Task],
            params={"cdUsuario": user_id}, json={},
        )
        return envelope.data

    async def delete_task(self, task_id: int, user_id: int) -> None:
        await self.api.request_envelope(
            "DELETE", f"/Tarefa/{task_id}", params={"cdUsuario": user_id}
        )
