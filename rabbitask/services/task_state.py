"""Task cache & categorizer — the only owner of the in-memory task list.

Every task mutation goes through this service.  It replaces its cache, and
the ``categories`` / ``filtered_categories`` channels re-derive from
(cache, now, search query) on their own; nothing recategorizes by hand.

Reloads follow the facade's active user id (own user or overseen user).
Each reload carries a generation number and a response that arrives after a
newer reload was issued is dropped, so a slow request for the previous user
can never overwrite the list of the current one.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone, tzinfo
from typing import Any, Awaitable, Callable, List, Optional, Set, Tuple, TypeVar

from ..clients.api_gateway import TaskGateway
from ..exceptions import RabbitaskError
from ..schemas.task import CreateTaskRequest, Task, TaskCategories, TaskQueryParams, UpdateTaskRequest
from ..state_channel import ChannelView, DerivedChannel, StateChannel, Subscription, combine_latest
from ..task_helpers import categorize_tasks, filter_tasks, remove_by_key, task_key, upsert
from ..timers import Debouncer
from .context_facade import UserContextFacade

logger = logging.getLogger("rabbitask.services.task_state")

R = TypeVar("R")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskStateService:
    def __init__(
        self,
        gateway: TaskGateway,
        facade: UserContextFacade,
        *,
        page_size: int = 100,
        search_debounce_seconds: float = 0.3,
        clock: Callable[[], datetime] = _utcnow,
        display_tz: Optional[tzinfo] = None,
    ):
        self.gateway = gateway
        self.facade = facade
        self.page_size = page_size
        self._clock = clock
        self._display_tz = display_tz

        self._tasks: StateChannel[Tuple[Task, ...]] = StateChannel((), name="tasks")
        self._loading: StateChannel[bool] = StateChannel(False, name="loading")
        self._error: StateChannel[Optional[Exception]] = StateChannel(None, name="error")
        self._search_query: StateChannel[str] = StateChannel("", name="search_query")
        # Query actually applied to the filtered view: debounced and deduplicated.
        self._applied_query: StateChannel[str] = StateChannel("", name="applied_search_query")
        self._debouncer = Debouncer(search_debounce_seconds, self._apply_search_query)

        self._categories: DerivedChannel[TaskCategories] = self._tasks.map(
            lambda tasks: categorize_tasks(tasks, self._clock()), name="categories"
        )
        self._filter_sources = combine_latest(
            self._tasks, self._applied_query, name="filtered_categories.sources"
        )
        self._filtered_categories: DerivedChannel[TaskCategories] = self._filter_sources.map(
            lambda values: self._categorize_filtered(*values), name="filtered_categories"
        )

        self._generation = 0
        self._last_load: Optional[Tuple[int, Optional[TaskQueryParams]]] = None
        self._active_user_sub: Optional[Subscription] = None
        self._background: Set[asyncio.Task] = set()

    # ── Channels ────────────────────────────────────────────────────────────────

    @property
    def tasks(self) -> ChannelView[Tuple[Task, ...]]:
        return self._tasks.readonly()

    @property
    def categories(self) -> ChannelView[TaskCategories]:
        return ChannelView(self._categories)

    @property
    def filtered_categories(self) -> ChannelView[TaskCategories]:
        return ChannelView(self._filtered_categories)

    @property
    def loading(self) -> ChannelView[bool]:
        return self._loading.readonly()

    @property
    def error(self) -> ChannelView[Optional[Exception]]:
        return self._error.readonly()

    @property
    def search_query(self) -> ChannelView[str]:
        return self._search_query.readonly()

    @property
    def applied_search_query(self) -> ChannelView[str]:
        return self._applied_query.readonly()

    # ── Lifecycle ───────────────────────────────────────────────────────────────

    def initialize(self) -> None:
        """Reload whenever the active user id changes to a non-null value.

        Must be called from a running event loop; the current id (if any) is
        loaded right away.
        """
        if self._active_user_sub is not None:
            return
        self._active_user_sub = self.facade.active_user_for_tasks.subscribe(self._on_active_user)

    def _on_active_user(self, user_id: Optional[int]) -> None:
        if user_id is None:
            return
        logger.info("Active user for tasks is now %s", user_id)
        self._spawn(self.load_tasks_for_user(user_id))

    def _spawn(self, coro: Awaitable[Any]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_for_reloads(self) -> None:
        """Wait until every reload started by an active-user change has finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def close(self) -> None:
        if self._active_user_sub is not None:
            self._active_user_sub.unsubscribe()
            self._active_user_sub = None
        self._debouncer.cancel()
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*list(self._background), return_exceptions=True)
        self._filtered_categories.close()
        self._filter_sources.close()
        self._categories.close()

    # ── Load ────────────────────────────────────────────────────────────────────

    async def load_tasks_for_user(self, user_id: int, params: Optional[TaskQueryParams] = None) -> bool:
        """Replace the cache with the tasks of *user_id*.

        Failures go to the ``error`` channel and leave the cache untouched.
        Returns whether the cache was replaced.
        """
        self._generation += 1
        generation = self._generation
        self._last_load = (user_id, params)

        query = TaskQueryParams(user_id=user_id, page=1, page_size=self.page_size)
        if params is not None:
            query = query.model_copy(update=params.model_dump(exclude_none=True))

        self._loading.publish(True)
        self._error.publish(None)
        try:
            tasks = await self.gateway.list_tasks(query)
        except RabbitaskError as exc:
            if generation == self._generation:
                logger.error("Error loading tasks for user %s: %s", user_id, exc)
                self._error.publish(exc)
            return False
        else:
            if generation != self._generation:
                logger.info("Discarding stale task list for user %s", user_id)
                return False
            self._tasks.publish(tuple(tasks))
            logger.info("Loaded %d tasks for user %s", len(tasks), user_id)
            return True
        finally:
            if generation == self._generation:
                self._loading.publish(False)

    async def retry(self) -> bool:
        """Reload the active user's tasks (or the last requested user) after a failure.

        The filters of the last load are reused when it was for the same user.
        """
        user_id = self.facade.get_active_user_for_tasks()
        params: Optional[TaskQueryParams] = None
        if self._last_load is not None:
            last_user_id, last_params = self._last_load
            if user_id is None or user_id == last_user_id:
                user_id, params = last_user_id, last_params
        if user_id is None:
            return False
        return await self.load_tasks_for_user(user_id, params)

    # ── Create / edit ───────────────────────────────────────────────────────────

    async def create_task(self, req: CreateTaskRequest) -> Optional[Task]:
        task = await self._call("create task", self.gateway.create_task(req))
        if task is not None:
            self._upsert(task)
            logger.info("Task %s created for user %s", task.id, req.user_id)
        return task

    async def edit_task(self, task_id: int, user_id: int, req: UpdateTaskRequest) -> Optional[Task]:
        task = await self._call(f"edit task {task_id}", self.gateway.update_task(task_id, user_id, req))
        if task is not None:
            self._upsert(task)
            logger.info("Task %s updated", task_id)
        return task

    # ── Complete / reopen ───────────────────────────────────────────────────────

    async def complete_task(self, task_id: int, user_id: int) -> Optional[Task]:
        task = await self._call(f"complete task {task_id}", self.gateway.complete_task(task_id, user_id))
        if task is not None:
            self._upsert(task)
        else:
            # API omitted the body; mirror the server-side change locally.
            self._set_completed_at(task_id, self._clock())
        logger.info("Task %s completed", task_id)
        return self._find(task_id)

    async def reopen_task(self, task_id: int, user_id: int) -> Optional[Task]:
        task = await self._call(f"reopen task {task_id}", self.gateway.reopen_task(task_id, user_id))
        if task is not None:
            self._upsert(task)
        else:
            self._set_completed_at(task_id, None)
        logger.info("Task %s reopened", task_id)
        return self._find(task_id)

    # ── Delete ──────────────────────────────────────────────────────────────────

    async def delete_task(self, task_id: int, user_id: int) -> None:
        await self._call(f"delete task {task_id}", self.gateway.delete_task(task_id, user_id))
        self._tasks.publish(tuple(remove_by_key(self._tasks.value, task_id, task_key)))
        logger.info("Task %s deleted", task_id)

    # ── Search ──────────────────────────────────────────────────────────────────

    def set_search_query(self, query: str) -> None:
        query = query or ""
        self._search_query.publish(query)
        self._debouncer.call(query)

    def clear_search(self) -> None:
        self.set_search_query("")

    def _apply_search_query(self, query: str) -> None:
        if query == self._applied_query.value:
            return
        self._applied_query.publish(query)

    # ── Reset ───────────────────────────────────────────────────────────────────

    def clear_cache(self) -> None:
        """Forget everything user specific; reloads still in flight are dropped."""
        self._generation += 1
        self._last_load = None
        self._debouncer.cancel()
        self._tasks.publish(())
        self._loading.publish(False)
        self._error.publish(None)
        self._search_query.publish("")
        self._applied_query.publish("")

    # ── Snapshots ───────────────────────────────────────────────────────────────

    def get_cached_tasks(self) -> List[Task]:
        return list(self._tasks.value)

    def get_task(self, task_id: int) -> Optional[Task]:
        return self._find(task_id)

    def get_categories(self) -> TaskCategories:
        return categorize_tasks(self._tasks.value, self._clock())

    def get_filtered_categories(self) -> TaskCategories:
        return self._categorize_filtered(self._tasks.value, self._applied_query.value)

    # ── internals ──────────────────────────────────────────────────────────

    async def _call(self, action: str, awaitable: Awaitable[R]) -> R:
        try:
            result = await awaitable
        except RabbitaskError as exc:
            logger.error("Failed to %s: %s", action, exc)
            self._error.publish(exc)
            raise
        self._error.publish(None)
        return result

    def _categorize_filtered(self, tasks: Tuple[Task, ...], query: str) -> TaskCategories:
        return categorize_tasks(filter_tasks(tasks, query, self._display_tz), self._clock())

    def _find(self, task_id: int) -> Optional[Task]:
        return next((t for t in self._tasks.value if t.id == task_id), None)

    def _upsert(self, task: Task) -> None:
        self._tasks.publish(tuple(upsert(self._tasks.value, task, task_key)))

    def _set_completed_at(self, task_id: int, completed_at: Optional[datetime]) -> None:
        current = self._find(task_id)
        if current is None:
            return
        self._upsert(current.model_copy(update={"completed_at": completed_at}))
