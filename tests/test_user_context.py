# tests/test_user_context.py

from __future__ import annotations

import asyncio

import pytest

from rabbitask.exceptions import ApiError, TransportError
from rabbitask.schemas.context import EMPTY_USER_CONTEXT, UserRole
from rabbitask.schemas.user import UpdateProfileRequest


@pytest.mark.asyncio
async def test_initialize_user_loads_profile_role_and_tags(container, users_api) -> None:
    context = await container.user_context.initialize_user()

    assert context.user_id == 7
    assert context.user_data.username == "Ana"
    assert context.user_type is UserRole.AGENT
    assert context.is_agent is True
    assert context.is_common is False
    assert [t.name for t in context.available_tags] == ["urgent", "home"]


@pytest.mark.asyncio
async def test_initialize_user_is_idempotent(container, users_api) -> None:
    uc = container.user_context
    await asyncio.gather(uc.initialize_user(), uc.initialize_user())
    await uc.initialize_user()

    assert users_api.calls["get_tags"] == 1
    # One profile call for the context, one for the memoized user type.
    assert users_api.calls["get_me"] == 2


@pytest.mark.asyncio
async def test_tags_failure_degrades_to_empty_list(container, users_api) -> None:
    users_api.fail["get_tags"] = TransportError("boom")

    context = await container.user_context.initialize_user()

    assert context.user_id == 7
    assert context.user_type is UserRole.AGENT
    assert context.available_tags == []


@pytest.mark.asyncio
async def test_profile_failure_leaves_context_empty_and_allows_retry(container, users_api) -> None:
    users_api.fail["get_me"] = ApiError("down", 500)
    uc = container.user_context

    assert await uc.initialize_user() == EMPTY_USER_CONTEXT
    assert users_api.calls.get("get_tags") is None

    del users_api.fail["get_me"]
    context = await uc.initialize_user()
    assert context.user_id == 7


@pytest.mark.asyncio
async def test_common_user_role(users_api, container) -> None:
    users_api.profile = users_api.profile.model_copy(
        update={"type": users_api.profile.type.model_copy(update={"id": 1})}
    )
    context = await container.user_context.initialize_user()
    assert context.user_type is UserRole.COMMON
    assert await container.session.is_common() is True


@pytest.mark.asyncio
async def test_reset_publishes_empty_context(container) -> None:
    uc = container.user_context
    await uc.initialize_user()

    uc.reset()

    assert uc.get_user_context() == EMPTY_USER_CONTEXT
    assert uc.get_user_id() is None


@pytest.mark.asyncio
async def test_get_user_by_id_is_memoized(container, users_api) -> None:
    uc = container.user_context
    first = await uc.get_user_by_id(42)
    second = await uc.get_user_by_id(42)
    assert first is second
    assert users_api.calls["get_user_by_id"] == 1


@pytest.mark.asyncio
async def test_update_profile_republishes_user_data(container) -> None:
    uc = container.user_context
    await uc.initialize_user()

    await uc.update_profile(UpdateProfileRequest(name="Ana Maria"))

    assert uc.get_user_context().user_data.name == "Ana Maria"


@pytest.mark.asyncio
async def test_role_failure_degrades_without_blocking_tags(container, users_api) -> None:
    # First get_me loads the profile, the second one is the role lookup.
    users_api.fail_on_call[("get_me", 2)] = TransportError("boom")

    context = await container.user_context.initialize_user()

    assert context.user_id == 7
    assert context.user_type is None
    assert context.is_agent is False
    assert context.is_common is False
    assert [t.name for t in context.available_tags] == ["urgent", "home"]
