"""User context aggregator — profile, role and tags, loaded once per session.

Initialization runs in two phases:

1. ``GET /Usuario/eu`` for the user id and profile;
2. only once phase 1 succeeded, the role and the tag list in parallel.

Each phase-2 fetch degrades on its own (role unknown, no tags) so one failing
call never blocks the other.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

from ..clients.api_gateway import UserGateway
from ..constants import USER_TYPE_AGENT, USER_TYPE_COMMON
from ..exceptions import RabbitaskError
from ..schemas.common import NamedRef
from ..schemas.context import EMPTY_USER_CONTEXT, UserContext, UserRole
from ..schemas.user import ConnectedUser, UpdateProfileRequest, UserProfile
from ..state_channel import ChannelView, StateChannel
from .session_store import SessionStore

logger = logging.getLogger("rabbitask.services.user_context")

_ROLE_BY_TYPE = {USER_TYPE_AGENT: UserRole.AGENT, USER_TYPE_COMMON: UserRole.COMMON}


class UserContextAggregator:
    def __init__(self, users: UserGateway, session: SessionStore):
        self.users = users
        self.session = session
        self._user_context: StateChannel[UserContext] = StateChannel(
            EMPTY_USER_CONTEXT, name="user_context"
        )
        self._initialized = False
        self._init_task: Optional[asyncio.Task] = None
        self._epoch = 0
        self._users_by_id: Dict[int, ConnectedUser] = {}

    @property
    def user_context(self) -> ChannelView[UserContext]:
        return self._user_context.readonly()

    # ── Initialization ──────────────────────────────────────────────────────────

    async def initialize_user(self) -> UserContext:
        """Load the context once; later calls return it (or join the running load)."""
        if not self._initialized:
            self._initialized = True
            self._init_task = asyncio.ensure_future(self._load(self._epoch))
        if self._init_task is not None:
            await asyncio.shield(self._init_task)
        return self.get_user_context()

    async def _load(self, epoch: int) -> None:
        try:
            profile = await self.users.get_me()
        except Exception:
            logger.exception("Error initializing user context")
            if epoch == self._epoch:
                # Nothing was loaded; let the next call try again.
                self._initialized = False
            return
        if epoch != self._epoch:
            return

        self._user_context.publish(
            self._user_context.value.model_copy(
                update={"user_id": profile.id, "user_data": profile}
            )
        )

        user_type, tags = await asyncio.gather(self._fetch_role(), self._fetch_tags())
        if epoch != self._epoch:
            return

        self._user_context.publish(
            self._user_context.value.model_copy(
                update={"user_type": user_type, "available_tags": tags}
            )
        )
        logger.info(
            "User context loaded: user=%s role=%s tags=%d",
            profile.id, user_type.value if user_type else None, len(tags),
        )

    async def _fetch_role(self) -> Optional[UserRole]:
        try:
            type_id = await self.session.get_user_type()
        except Exception:
            logger.exception("Error fetching user role")
            return None
        return _ROLE_BY_TYPE.get(type_id)

    async def _fetch_tags(self) -> List[NamedRef]:
        try:
            return await self.users.get_tags()
        except Exception:
            logger.exception("Error fetching tags")
            return []

    # ── Snapshots ───────────────────────────────────────────────────────────────

    def get_user_context(self) -> UserContext:
        return self._user_context.value

    def get_user_id(self) -> Optional[int]:
        return self._user_context.value.user_id

    def get_tags(self) -> List[NamedRef]:
        return list(self._user_context.value.available_tags)

    def is_agent(self) -> bool:
        return self._user_context.value.is_agent

    def is_common(self) -> bool:
        return self._user_context.value.is_common

    async def get_user_by_id(self, user_id: int) -> ConnectedUser:
        """Fetch another user's summary, memoized for the session."""
        cached = self._users_by_id.get(user_id)
        if cached is not None:
            return cached
        user = await self.users.get_user_by_id(user_id)
        self._users_by_id[user_id] = user
        return user

    async def update_profile(self, req: UpdateProfileRequest) -> UserProfile:
        user_id = self.get_user_id()
        if user_id is None:
            raise RabbitaskError("User context is not loaded")
        profile = await self.users.update_profile(user_id, req)
        self._user_context.publish(
            self._user_context.value.model_copy(update={"user_data": profile})
        )
        logger.info("Profile of user %s updated", user_id)
        return profile

    # ── Logout ──────────────────────────────────────────────────────────────────

    def reset(self) -> None:
        self._epoch += 1
        # A load still in flight sees the new epoch and publishes nothing.
        self._initialized = False
        self._init_task = None
        self._users_by_id.clear()
        self._user_context.publish(EMPTY_USER_CONTEXT)
