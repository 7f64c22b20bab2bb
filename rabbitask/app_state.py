"""Composition root: builds every store once and wires them together.

Nothing in :mod:`rabbitask.services` is a module-level singleton; the
companion API owns exactly one :class:`AppContainer` (created in the
lifespan) and tests build their own around in-memory fakes.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

import httpx

from .clients import (
    ApiClient,
    AuthGateway,
    HttpAuthGateway,
    HttpTaskGateway,
    HttpUserGateway,
    TaskGateway,
    UserGateway,
)
from .config import Settings
from .database import init_db, make_engine, make_session_factory
from .repositories.sql_storage import SqlClientStorage
from .repositories.storage import ClientStorage
from .services import (
    ConnectionService,
    GeneratedCodeStore,
    ModalStateStore,
    OverseeStore,
    SessionStore,
    TaskStateService,
    UserContextAggregator,
    UserContextFacade,
    ViewStateStore,
)

logger = logging.getLogger("rabbitask.app_state")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AppContainer:
    def __init__(
        self,
        settings: Settings,
        *,
        storage: Optional[ClientStorage] = None,
        auth: Optional[AuthGateway] = None,
        users: Optional[UserGateway] = None,
        tasks: Optional[TaskGateway] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings

        self.engine = None
        if storage is None:
            self.engine = make_engine(settings.STATE_DB_URL)
            init_db(self.engine)
            storage = SqlClientStorage(make_session_factory(self.engine))
        self.storage = storage

        self.api: Optional[ApiClient] = None
        if auth is None or users is None or tasks is None:
            self.api = ApiClient(
                settings.API_URL,
                storage,
                settings.JWT_TOKEN_KEY,
                timeout=settings.REQUEST_TIMEOUT_SECONDS,
                transport=transport,
            )
        self.auth = auth or HttpAuthGateway(self.api)
        self.users = users or HttpUserGateway(self.api)
        self.tasks = tasks or HttpTaskGateway(self.api)

        self.session = SessionStore(storage, self.auth, self.users, settings.JWT_TOKEN_KEY)
        self.oversee = OverseeStore(storage)
        self.user_context = UserContextAggregator(self.users, self.session)
        self.facade = UserContextFacade(self.user_context, self.oversee)
        self.task_state = TaskStateService(
            self.tasks,
            self.facade,
            page_size=settings.TASK_PAGE_SIZE,
            search_debounce_seconds=settings.SEARCH_DEBOUNCE_MS / 1000,
            clock=clock,
        )
        self.views = ViewStateStore(storage)
        self.modals = ModalStateStore()
        self.codes = GeneratedCodeStore(storage, clock=clock)
        self.connections = ConnectionService(
            self.users,
            self.user_context,
            self.oversee,
            self.modals,
            self.codes,
            countdown_interval=settings.CODE_COUNTDOWN_INTERVAL_SECONDS,
        )

        # Order matters: drop tasks before the user id they belong to disappears.
        self.session.add_logout_hook("task_cache", self.task_state.clear_cache)
        self.session.add_logout_hook("user_context", self.user_context.reset)
        self.session.add_logout_hook("oversee", self.oversee.clear)
        self.session.add_logout_hook("modals", self.modals.close_all_modals)
        self.session.add_logout_hook("generated_code", self.codes.clear)

    async def startup(self) -> None:
        self.task_state.initialize()
        if self.session.is_authenticated():
            await self.load_user()
        logger.info("Client state ready (authenticated=%s)", self.session.is_authenticated())

    async def load_user(self) -> None:
        """Initialize the user context and restore the overseen user's name."""
        await self.user_context.initialize_user()
        await self.connections.restore_overseen_name()

    async def aclose(self) -> None:
        await self.task_state.close()
        if self.api is not None:
            await self.api.aclose()
        if self.engine is not None:
            self.engine.dispose()
