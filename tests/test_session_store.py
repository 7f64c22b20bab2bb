# tests/test_session_store.py

from __future__ import annotations

import pytest

from rabbitask.constants import GENERATED_CODE_KEY, OVERSEE_USER_ID_KEY
from rabbitask.exceptions import AuthError, FormValidationError
from rabbitask.schemas.common import NamedRef
from rabbitask.schemas.context import EMPTY_USER_CONTEXT, ModalName, UserRole
from rabbitask.schemas.user import LoginRequest
from rabbitask.services import SessionStore

from .fakes import MemoryStorage, make_task


def _register_form(**overrides):
    form = {
        "name": "Ana Souza",
        "email": "ana@example.com",
        "confirm_email": "ana@example.com",
        "phone": "(11) 98765-4321",
        "confirm_phone": "(11) 98765-4321",
        "password": "supersecret",
        "confirm_password": "supersecret",
        "user_type": 1,
    }
    form.update(overrides)
    return form


@pytest.mark.asyncio
async def test_login_stores_and_publishes_token(container, storage) -> None:
    session = container.session
    tokens = []
    session.token.subscribe(tokens.append, replay=False)

    token = await session.login({"email": "ana@example.com", "senha": "secret123"})

    assert token == "tok-1"
    assert tokens == ["tok-1"]
    assert storage.get_item("jwt_token") == "tok-1"
    assert session.is_authenticated() is True


@pytest.mark.asyncio
async def test_bad_credentials_raise_generic_auth_error(container, storage) -> None:
    with pytest.raises(AuthError) as excinfo:
        await container.session.login(LoginRequest(email="ana@example.com", password="nope"))

    assert str(excinfo.value) == "Invalid email or password"
    assert storage.get_item("jwt_token") is None


@pytest.mark.asyncio
async def test_user_type_is_memoized(container, users_api) -> None:
    session = container.session
    assert await session.get_user_type() == 2
    assert await session.is_agent() is True
    assert await session.is_common() is False
    assert users_api.calls["get_me"] == 1


@pytest.mark.asyncio
async def test_register_validates_before_calling_api(container, auth_api) -> None:
    with pytest.raises(FormValidationError) as excinfo:
        await container.session.register(_register_form(confirm_password="different1"))

    assert excinfo.value.errors == {"confirm_password": "Passwords do not match"}
    assert auth_api.registered == []


@pytest.mark.asyncio
async def test_register_sends_digits_only_phone(container, auth_api) -> None:
    message = await container.session.register(_register_form())

    assert message == "Usuário cadastrado com sucesso"
    sent = auth_api.registered[0]
    assert sent.phone == "11987654321"
    assert sent.model_dump(by_alias=True)["cdTipoUsuario"] == 1


@pytest.mark.asyncio
async def test_logout_clears_every_user_scoped_store(container, storage, tasks_api) -> None:
    tasks_api.tasks_by_user[7] = [make_task(1)]
    await container.session.login({"email": "ana@example.com", "senha": "secret123"})
    await container.load_user()
    await container.task_state.load_tasks_for_user(7)
    container.facade.set_overseeing(42, "Bruno")
    container.modals.open_modal(ModalName.CONFIG)
    await container.connections.generate_code()

    container.session.logout()

    assert container.session.get_token() is None
    assert storage.get_item("jwt_token") is None
    assert container.task_state.get_cached_tasks() == []
    assert container.user_context.get_user_context() == EMPTY_USER_CONTEXT
    assert container.oversee.current is None
    assert storage.get_item(OVERSEE_USER_ID_KEY) is None
    assert container.modals.get_active_modal() is None
    assert storage.get_item(GENERATED_CODE_KEY) is None
    assert container.facade.get_active_user_for_tasks() is None


def test_logout_hooks_run_in_order_and_survive_failures(auth_api, users_api) -> None:
    calls = []
    session = SessionStore(MemoryStorage({"jwt_token": "tok-0"}), auth_api, users_api, "jwt_token")
    session.add_logout_hook("first", lambda: calls.append("first"))
    session.add_logout_hook("broken", lambda: 1 / 0)
    session.add_logout_hook("last", lambda: calls.append("last"))

    session.logout()

    assert calls == ["first", "last"]


@pytest.mark.asyncio
async def test_second_login_drops_previous_user_state(container, storage, users_api, tasks_api) -> None:
    tasks_api.tasks_by_user[7] = [make_task(1)]
    await container.session.login({"email": "ana@example.com", "senha": "secret123"})
    await container.load_user()
    await container.task_state.load_tasks_for_user(7)
    container.facade.set_overseeing(42, "Bruno")
    container.modals.open_modal(ModalName.CONFIG)

    users_api.profile = users_api.profile.model_copy(
        update={"id": 8, "username": "Bia", "type": NamedRef(id=1, name="Comum")}
    )
    await container.session.login({"email": "bia@example.com", "senha": "secret123"})
    await container.load_user()

    context = container.user_context.get_user_context()
    assert context.user_id == 8
    assert context.user_type is UserRole.COMMON
    assert container.oversee.current is None
    assert storage.get_item(OVERSEE_USER_ID_KEY) is None
    assert container.task_state.get_cached_tasks() == []
    assert container.modals.get_active_modal() is None
    assert container.facade.get_active_user_for_tasks() == 8


@pytest.mark.asyncio
async def test_rejected_second_login_keeps_current_session(container) -> None:
    await container.session.login({"email": "ana@example.com", "senha": "secret123"})
    await container.load_user()

    with pytest.raises(AuthError):
        await container.session.login({"email": "bia@example.com", "senha": "wrong"})

    assert container.session.get_token() == "tok-1"
    assert container.user_context.get_user_id() == 7
