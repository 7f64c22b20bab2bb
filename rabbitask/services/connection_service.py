"""Agent ↔ common-user connections, connection codes and their countdown."""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timezone
from typing import Callable, List, Optional

from pydantic import ValidationError

from ..clients.api_gateway import UserGateway
from ..constants import GENERATED_CODE_KEY
from ..exceptions import RabbitaskError
from ..repositories.storage import ClientStorage
from ..schemas.user import ConnectedUser, GeneratedCode
from ..state_channel import ChannelView, StateChannel
from ..timers import RepeatingTimer
from ..validation import require_connection_code
from .modal_state import ModalStateStore
from .oversee_store import OverseeStore
from .user_context import UserContextAggregator

logger = logging.getLogger("rabbitask.services.connection_service")

EXPIRED_TEXT = "Expirado"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_remaining(expires_at: datetime, now: datetime) -> str:
    """``MM:SS`` until *expires_at*, or ``Expirado`` once it has passed."""
    remaining = (expires_at - now).total_seconds()
    if remaining <= 0:
        return EXPIRED_TEXT
    total = int(math.floor(remaining))
    minutes, seconds = divmod(total, 60)
    return f"{minutes:02d}:{seconds:02d}"


# ── Generated code persistence ──────────────────────────────────────────────────

class GeneratedCodeStore:
    def __init__(
        self,
        storage: ClientStorage,
        storage_key: str = GENERATED_CODE_KEY,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.storage = storage
        self._key = storage_key
        self.clock = clock

    def save(self, code: GeneratedCode) -> GeneratedCode:
        saved = code.model_copy(update={"saved_at": int(self.clock().timestamp() * 1000)})
        self.storage.set_item(self._key, saved.model_dump_json(by_alias=True))
        return saved

    def restore(self) -> Optional[GeneratedCode]:
        """The saved code if it is still valid; expired or unreadable entries are removed."""
        raw = self.storage.get_item(self._key)
        if raw is None:
            return None
        try:
            code = GeneratedCode.model_validate(json.loads(raw))
        except (ValueError, ValidationError):
            logger.warning("Removing unreadable generated code entry")
            self.clear()
            return None
        if code.is_expired(self.clock()):
            logger.info("Generated code %s expired; removing it", code.code)
            self.clear()
            return None
        return code

    def remaining(self, code: GeneratedCode) -> str:
        return format_remaining(code.expires_at, self.clock())

    def clear(self) -> None:
        self.storage.remove_item(self._key)


# ── Countdown ───────────────────────────────────────────────────────────────────

class CodeCountdown:
    """Publishes the remaining time of a code every *interval* seconds.

    Stops by itself at expiry; otherwise the owner must ``close()`` it or use
    it as an async context manager::

        async with CodeCountdown(code.expires_at) as countdown:
            countdown.text.subscribe(print)
    """

    def __init__(
        self,
        expires_at: datetime,
        interval: float = 1.0,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.expires_at = expires_at
        self._clock = clock
        self._text: StateChannel[str] = StateChannel(
            format_remaining(expires_at, clock()), name="code_countdown"
        )
        self._timer = RepeatingTimer(interval, self._tick, name="code_countdown")

    @property
    def text(self) -> ChannelView[str]:
        return self._text.readonly()

    @property
    def expired(self) -> bool:
        return self._text.value == EXPIRED_TEXT

    @property
    def running(self) -> bool:
        return self._timer.running

    def start(self) -> None:
        self._timer.start()

    def close(self) -> None:
        self._timer.cancel()

    def _tick(self) -> bool:
        text = format_remaining(self.expires_at, self._clock())
        self._text.publish(text)
        if text == EXPIRED_TEXT:
            logger.info("Connection code expired")
            return False
        return True

    async def __aenter__(self) -> "CodeCountdown":
        self.start()
        return self

    async def __aexit__(self, *_) -> None:
        self.close()


# ── Connections ─────────────────────────────────────────────────────────────────

class ConnectionService:
    def __init__(
        self,
        users: UserGateway,
        user_context: UserContextAggregator,
        oversee: OverseeStore,
        modals: ModalStateStore,
        codes: GeneratedCodeStore,
        countdown_interval: float = 1.0,
    ):
        self.users = users
        self.user_context = user_context
        self.oversee = oversee
        self.modals = modals
        self.codes = codes
        self.countdown_interval = countdown_interval

    async def list_managed_users(self) -> List[ConnectedUser]:
        """Common users connected to the logged-in agent."""
        return await self.users.list_managed_users()

    async def list_my_agents(self) -> List[ConnectedUser]:
        """Agents connected to the logged-in common user."""
        return await self.users.list_my_agents()

    async def list_responsible_users(self) -> List[ConnectedUser]:
        """Agents responsible for the logged-in common user."""
        return await self.users.list_responsible_users()

    async def connect_with_code(self, code: str) -> Optional[ConnectedUser]:
        code = require_connection_code(code)
        user = await self.users.connect(code)
        logger.info("Connected with code %s", code)
        return user

    async def disconnect_user(self, user_id: int) -> None:
        agent_id = self.user_context.get_user_id()
        if agent_id is None:
            raise RabbitaskError("User context is not loaded")
        await self.users.disconnect(agent_id, user_id)
        if self.oversee.current == user_id:
            self.oversee.clear()
        logger.info("Agent %s disconnected user %s", agent_id, user_id)

    async def generate_code(self) -> GeneratedCode:
        code = await self.users.generate_code()
        return self.codes.save(code)

    def get_generated_code(self) -> Optional[GeneratedCode]:
        return self.codes.restore()

    def code_remaining(self, code: GeneratedCode) -> str:
        """``MM:SS`` left on *code*, or ``Expirado``."""
        return self.codes.remaining(code)

    def countdown(self, code: GeneratedCode) -> CodeCountdown:
        """A countdown for *code*; the caller starts it and must close it."""
        return CodeCountdown(code.expires_at, self.countdown_interval, clock=self.codes.clock)

    def clear_generated_code(self) -> None:
        self.codes.clear()

    def select_user_to_oversee(self, user: ConnectedUser) -> None:
        self.oversee.set_overseeing(user.id, user.display_name)
        self.modals.close_all_modals()

    async def restore_overseen_name(self) -> Optional[str]:
        """Re-fetch the display name of a persisted oversee id (lost on reload)."""
        user_id = self.oversee.current
        if user_id is None:
            return None
        if self.oversee.current_user_name:
            return self.oversee.current_user_name
        try:
            user = await self.user_context.get_user_by_id(user_id)
        except RabbitaskError as exc:
            logger.warning("Could not fetch name of overseen user %s: %s", user_id, exc)
            return None
        if self.oversee.current == user_id:
            self.oversee.set_user_name(user.display_name)
        return user.display_name
