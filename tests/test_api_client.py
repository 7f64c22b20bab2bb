# tests/test_api_client.py

from __future__ import annotations

import json

import httpx
import pytest

from rabbitask.clients import ApiClient, HttpAuthGateway, HttpTaskGateway, HttpUserGateway
from rabbitask.exceptions import ApiError, AuthError, ConflictError, NotFoundError, TransportError
from rabbitask.schemas.task import CreateTaskRequest, TaskQueryParams
from rabbitask.schemas.user import LoginRequest

from .fakes import MemoryStorage

BASE_URL = "http://rabbitask.test/api"


def _client(handler, token: str = None) -> ApiClient:
    storage = MemoryStorage({"jwt_token": token} if token else {})
    return ApiClient(BASE_URL, storage, "jwt_token", transport=httpx.MockTransport(handler))


def _ok(data=None, message: str = "") -> httpx.Response:
    return httpx.Response(200, json={"success": True, "message": message, "data": data})


@pytest.mark.asyncio
async def test_bearer_token_is_attached_when_stored() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        seen["path"] = request.url.path
        return _ok({"cd": 7, "nmUsuario": "Ana", "tipo": {"cd": 2, "nome": "Agente"}})

    async with _client(handler, token="tok-1") as api:
        profile = await HttpUserGateway(api).get_me()

    assert seen == {"auth": "Bearer tok-1", "path": "/api/Usuario/eu"}
    assert profile.id == 7
    assert profile.type.id == 2


@pytest.mark.asyncio
async def test_no_token_means_anonymous_request() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("Authorization")
        return _ok([])

    async with _client(handler) as api:
        assert await HttpUserGateway(api).get_tags() == []
    assert seen["auth"] is None


@pytest.mark.asyncio
async def test_login_reads_token_and_sends_portuguese_fields() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return _ok({"token": "tok-9", "cdUsuario": 7})

    async with _client(handler) as api:
        session = await HttpAuthGateway(api).login(LoginRequest(email="a@b.co", password="pw"))

    assert seen["body"] == {"email": "a@b.co", "senha": "pw"}
    assert session.token == "tok-9"
    assert session.user_id == 7


@pytest.mark.asyncio
async def test_unauthorized_is_a_generic_auth_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Senha incorreta para ana@example.com"})

    async with _client(handler) as api:
        with pytest.raises(AuthError) as excinfo:
            await HttpAuthGateway(api).login(LoginRequest(email="a@b.co", password="pw"))

    assert str(excinfo.value) == "Invalid email or password"


@pytest.mark.asyncio
async def test_conflict_keeps_server_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"success": False, "message": "Código expirado"})

    async with _client(handler) as api:
        with pytest.raises(ConflictError) as excinfo:
            await HttpUserGateway(api).connect("ABC")

    assert excinfo.value.message == "Código expirado"
    assert excinfo.value.status_code == 409


@pytest.mark.asyncio
async def test_not_found_and_validation_problem_details() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/Usuario/99"):
            return httpx.Response(404)
        return httpx.Response(400, json={"title": "Bad", "errors": {"Nome": ["Nome é obrigatório"]}})

    async with _client(handler) as api:
        with pytest.raises(NotFoundError):
            await HttpUserGateway(api).get_user_by_id(99)
        with pytest.raises(ApiError) as excinfo:
            await HttpTaskGateway(api).create_task(CreateTaskRequest(name="", user_id=7))

    assert excinfo.value.message == "Nome é obrigatório"
    assert excinfo.value.status_code == 400


@pytest.mark.asyncio
async def test_unsuccessful_envelope_raises_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "message": "Sem permissão", "data": None})

    async with _client(handler) as api:
        with pytest.raises(ApiError) as excinfo:
            await HttpUserGateway(api).list_managed_users()

    assert excinfo.value.message == "Sem permissão"


@pytest.mark.asyncio
async def test_network_failure_is_a_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with _client(handler) as api:
        with pytest.raises(TransportError):
            await HttpTaskGateway(api).list_tasks(TaskQueryParams(user_id=7))


@pytest.mark.asyncio
async def test_list_tasks_sends_query_and_parses_tasks() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return _ok([
            {"cd": 1, "nome": "Pay bills", "dataPrazo": "2025-06-14T10:00:00", "tags": None},
            {"cd": 2, "nome": "Done", "dataConclusao": "2025-06-10T08:00:00Z",
             "tags": [{"cd": 3, "nome": "home"}]},
        ])

    async with _client(handler) as api:
        tasks = await HttpTaskGateway(api).list_tasks(TaskQueryParams(user_id=7, page=1, page_size=100))

    assert seen["params"] == {"cdUsuario": "7", "pagina": "1", "paginaTamanho": "100"}
    assert [t.id for t in tasks] == [1, 2]
    assert tasks[0].tags == []
    assert tasks[0].due_at.tzinfo is not None
    assert tasks[1].tag_names == ["home"]
    assert tasks[1].is_completed is True


@pytest.mark.asyncio
async def test_complete_without_body_returns_none() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(204)

    async with _client(handler) as api:
        assert await HttpTaskGateway(api).complete_task(5, 7) is None

    assert seen == {"method": "PATCH", "path": "/api/Tarefa/5/concluir", "params": {"cdUsuario": "7"}}


@pytest.mark.asyncio
async def test_disconnect_sends_both_ids() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["params"] = dict(request.url.params)
        return _ok()

    async with _client(handler) as api:
        await HttpUserGateway(api).disconnect(7, 42)

    assert seen == {"method": "DELETE", "params": {"cdAgente": "7", "cdUsuario": "42"}}


@pytest.mark.asyncio
async def test_generate_code_accepts_bare_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"codigo": "ABC123", "expiraEm": "2025-06-15T12:05:00"})

    async with _client(handler) as api:
        code = await HttpUserGateway(api).generate_code()

    assert code.code == "ABC123"
    assert code.expires_at.tzinfo is not None


@pytest.mark.asyncio
async def test_list_responsible_users() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        return _ok([{"cd": 99, "nmUsuario": "Zé"}])

    async with _client(handler, token="tok-1") as api:
        agents = await HttpUserGateway(api).list_responsible_users()

    assert seen["path"] == "/api/Usuario/meus-responsaveis"
    assert [a.id for a in agents] == [99]
