# tests/test_connection_service.py

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from rabbitask.constants import GENERATED_CODE_KEY
from rabbitask.exceptions import FormValidationError, NotFoundError
from rabbitask.schemas.context import ModalName
from rabbitask.schemas.user import ConnectedUser, GeneratedCode
from rabbitask.services import CodeCountdown, GeneratedCodeStore, format_remaining

from .fakes import NOW, FixedClock, MemoryStorage


def test_format_remaining() -> None:
    assert format_remaining(NOW + timedelta(minutes=4, seconds=59, milliseconds=900), NOW) == "04:59"
    assert format_remaining(NOW + timedelta(seconds=1), NOW) == "00:01"
    assert format_remaining(NOW, NOW) == "Expirado"
    assert format_remaining(NOW - timedelta(seconds=3), NOW) == "Expirado"


def test_code_store_restores_valid_code(clock) -> None:
    storage = MemoryStorage()
    store = GeneratedCodeStore(storage, clock=clock)
    saved = store.save(GeneratedCode(code="XYZ", expires_at=NOW + timedelta(minutes=2)))

    assert saved.saved_at == int(NOW.timestamp() * 1000)
    restored = store.restore()
    assert restored.code == "XYZ"
    assert store.remaining(restored) == "02:00"
    assert '"codigo":"XYZ"' in storage.get_item(GENERATED_CODE_KEY)


def test_code_store_drops_expired_code(clock) -> None:
    storage = MemoryStorage()
    store = GeneratedCodeStore(storage, clock=clock)
    store.save(GeneratedCode(code="XYZ", expires_at=NOW + timedelta(minutes=2)))

    clock.advance(minutes=2)

    assert store.restore() is None
    assert storage.get_item(GENERATED_CODE_KEY) is None


def test_code_store_drops_corrupt_entry(clock) -> None:
    storage = MemoryStorage({GENERATED_CODE_KEY: "{not json"})
    assert GeneratedCodeStore(storage, clock=clock).restore() is None
    assert storage.get_item(GENERATED_CODE_KEY) is None


@pytest.mark.asyncio
async def test_countdown_ticks_until_expired() -> None:
    clock = FixedClock()
    countdown = CodeCountdown(NOW + timedelta(seconds=2), interval=0.01, clock=clock)
    seen = []
    countdown.text.subscribe(seen.append)

    async with countdown:
        await asyncio.sleep(0.03)
        clock.advance(seconds=2)
        await asyncio.sleep(0.05)
        assert countdown.running is False

    assert seen[0] == "00:02"
    assert seen[-1] == "Expirado"
    assert countdown.expired is True


@pytest.mark.asyncio
async def test_countdown_stops_when_closed() -> None:
    countdown = CodeCountdown(NOW + timedelta(minutes=5), interval=0.01, clock=FixedClock())
    countdown.start()
    await asyncio.sleep(0.02)
    assert countdown.running is True

    countdown.close()
    assert countdown.running is False
    assert countdown.expired is False


# -- ConnectionService --

@pytest.mark.asyncio
async def test_blank_code_never_reaches_the_api(container, users_api) -> None:
    with pytest.raises(FormValidationError) as excinfo:
        await container.connections.connect_with_code("   ")
    assert excinfo.value.errors == {"code": "Enter a valid code"}
    assert users_api.connected_codes == []


@pytest.mark.asyncio
async def test_connect_with_code_strips_input(container, users_api) -> None:
    user = await container.connections.connect_with_code("  ABC123 ")
    assert user.id == 42
    assert users_api.connected_codes == ["ABC123"]


@pytest.mark.asyncio
async def test_disconnect_uses_own_id_and_stops_overseeing(container, users_api) -> None:
    await container.user_context.initialize_user()
    container.facade.set_overseeing(42, "Bruno")

    await container.connections.disconnect_user(42)

    assert users_api.disconnected == [(7, 42)]
    assert container.oversee.current is None


@pytest.mark.asyncio
async def test_generate_code_persists_it(container, storage) -> None:
    code = await container.connections.generate_code()

    assert code.code == "ABC123"
    assert container.connections.get_generated_code().code == "ABC123"
    assert container.connections.code_remaining(code) == "05:00"
    container.connections.clear_generated_code()
    assert storage.get_item(GENERATED_CODE_KEY) is None


def test_select_user_sets_name_and_closes_modals(container) -> None:
    container.modals.open_modal(ModalName.CONNECTIONS)

    container.connections.select_user_to_oversee(ConnectedUser(id=43, name="Carla"))

    assert container.oversee.current == 43
    assert container.oversee.current_user_name == "Carla"
    assert container.modals.get_active_modal() is None


@pytest.mark.asyncio
async def test_restore_overseen_name_after_restart(container, users_api) -> None:
    container.oversee.set_overseeing(42)
    assert container.oversee.current_user_name is None

    name = await container.connections.restore_overseen_name()

    assert name == "Bruno"
    assert container.facade.overseeing_user_name.value == "Bruno"


@pytest.mark.asyncio
async def test_restore_overseen_name_tolerates_missing_user(container, users_api) -> None:
    users_api.fail["get_user_by_id"] = NotFoundError("Usuário não encontrado", 404)
    container.oversee.set_overseeing(42)

    assert await container.connections.restore_overseen_name() is None
    assert container.oversee.current == 42


@pytest.mark.asyncio
async def test_countdown_for_generated_code(container) -> None:
    code = await container.connections.generate_code()
    countdown = container.connections.countdown(code)

    assert countdown.text.value == "05:00"
    assert countdown.running is False
    countdown.close()
