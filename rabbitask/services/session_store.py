"""Authentication token and memoized user type — the source of truth for who is logged in."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..clients.api_gateway import AuthGateway, UserGateway
from ..constants import USER_TYPE_AGENT, USER_TYPE_COMMON
from ..exceptions import AuthError
from ..repositories.storage import ClientStorage
from ..schemas.context import UserRole
from ..schemas.user import LoginRequest, RegisterForm
from ..state_channel import ChannelView, StateChannel
from ..validation import validate_register_form

logger = logging.getLogger("rabbitask.services.session_store")

_ROLE_TYPES = {UserRole.COMMON: USER_TYPE_COMMON, UserRole.AGENT: USER_TYPE_AGENT}


class SessionStore:
    def __init__(
        self,
        storage: ClientStorage,
        auth: AuthGateway,
        users: UserGateway,
        token_key: str,
    ):
        self.storage = storage
        self.auth = auth
        self.users = users
        self._token_key = token_key
        self._token: StateChannel[Optional[str]] = StateChannel(
            storage.get_item(token_key), name="token"
        )
        self._user_type: Optional[int] = None
        self._user_type_lookup: Optional[asyncio.Task] = None
        # Bumped on login/logout so a lookup started by a previous session is not memoized.
        self._epoch = 0
        self._logout_hooks: List[Tuple[str, Callable[[], None]]] = []

    @property
    def token(self) -> ChannelView[Optional[str]]:
        return self._token.readonly()

    def get_token(self) -> Optional[str]:
        return self._token.value or self.storage.get_item(self._token_key)

    def is_authenticated(self) -> bool:
        return self.get_token() is not None

    # ── Login / register ────────────────────────────────────────────────────────

    async def login(self, credentials: Union[LoginRequest, Dict[str, Any]]) -> str:
        if not isinstance(credentials, LoginRequest):
            credentials = LoginRequest.model_validate(credentials)
        try:
            session = await self.auth.login(credentials)
        except AuthError:
            logger.warning("Login rejected for %s", credentials.email)
            raise

        if self.is_authenticated():
            logger.info("Replacing the active session; clearing per-user state")
            self._reset_user_state()

        self._epoch += 1
        self._user_type = None
        self._user_type_lookup = None
        self.storage.set_item(self._token_key, session.token)
        self._token.publish(session.token)
        logger.info("Logged in as %s", credentials.email)
        return session.token

    async def register(self, form: Union[RegisterForm, Dict[str, Any]]) -> str:
        """Validate the form locally, then create the account. Returns the server message."""
        valid = validate_register_form(form)
        message = await self.auth.register(valid.to_request())
        logger.info("Registered %s", valid.email)
        return message

    # ── User type ───────────────────────────────────────────────────────────────

    async def get_user_type(self) -> Optional[int]:
        """Numeric user type (1 = comum, 2 = agente), fetched once per session."""
        if self._user_type is not None:
            return self._user_type
        if self._user_type_lookup is None or self._user_type_lookup.done():
            self._user_type_lookup = asyncio.ensure_future(self._fetch_user_type(self._epoch))
        # shield: one impatient caller must not cancel the lookup shared with others
        return await asyncio.shield(self._user_type_lookup)

    async def is_role(self, role: Union[UserRole, str]) -> bool:
        return await self.get_user_type() == _ROLE_TYPES[UserRole(role)]

    async def is_agent(self) -> bool:
        return await self.is_role(UserRole.AGENT)

    async def is_common(self) -> bool:
        return await self.is_role(UserRole.COMMON)

    async def _fetch_user_type(self, epoch: int) -> Optional[int]:
        try:
            profile = await self.users.get_me()
        except Exception:
            logger.exception("Error fetching user type")
            return None
        type_id = profile.type.id if profile.type else None
        if type_id and epoch == self._epoch:
            self._user_type = type_id
        return type_id or None

    # ── Logout ──────────────────────────────────────────────────────────────────

    def add_logout_hook(self, name: str, hook: Callable[[], None]) -> None:
        """Register per-user state to clear on logout; hooks run in registration order."""
        self._logout_hooks.append((name, hook))

    def logout(self) -> None:
        self._epoch += 1
        self._token.publish(None)
        self._user_type = None
        self._user_type_lookup = None
        self.storage.remove_item(self._token_key)
        self._reset_user_state()
        logger.info("Logged out")

    def _reset_user_state(self) -> None:
        for name, hook in self._logout_hooks:
            try:
                hook()
            except Exception:
                logger.exception("Logout hook '%s' failed", name)
