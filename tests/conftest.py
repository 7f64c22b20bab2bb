# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from rabbitask.app_state import AppContainer
from rabbitask.config import Settings

from .fakes import FakeAuthGateway, FakeTaskGateway, FakeUserGateway, FixedClock, MemoryStorage


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite file; search applies immediately."""
    return Settings(
        API_URL="http://rabbitask.test/api",
        STATE_DB_URL=f"sqlite:///{tmp_path / 'state.db'}",
        SEARCH_DEBOUNCE_MS=0,
        TASK_PAGE_SIZE=100,
    )


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def auth_api() -> FakeAuthGateway:
    return FakeAuthGateway()


@pytest.fixture()
def users_api() -> FakeUserGateway:
    return FakeUserGateway()


@pytest.fixture()
def tasks_api() -> FakeTaskGateway:
    return FakeTaskGateway()


@pytest.fixture()
def container(settings, storage, auth_api, users_api, tasks_api, clock) -> AppContainer:
    return AppContainer(
        settings,
        storage=storage,
        auth=auth_api,
        users=users_api,
        tasks=tasks_api,
        clock=clock,
    )
