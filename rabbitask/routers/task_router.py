"""Task routes — all of them act on the active user (own or overseen)."""

import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, Response

from ..dependencies import get_task_state, require_active_user, require_session
from ..exceptions import NotFoundError
from ..schemas.api import SearchRequest, SearchState
from ..schemas.task import CreateTaskRequest, Task, TaskCategories, UpdateTaskRequest
from ..services import SessionStore, TaskStateService

logger = logging.getLogger("rabbitask.routers.tasks")

router = APIRouter(tags=["Tasks"])

TaskState = Annotated[TaskStateService, Depends(get_task_state)]
ActiveUser = Annotated[int, Depends(require_active_user)]


def _search_state(tasks: TaskStateService) -> SearchState:
    return SearchState(query=tasks.search_query.value, applied_query=tasks.applied_search_query.value)


# -- Read --

@router.get("", response_model=TaskCategories)
async def get_categories(tasks: TaskState, _session: Annotated[SessionStore, Depends(require_session)]):
    """Cached tasks split into delayed / pending / completed at request time."""
    return tasks.get_categories()


@router.get("/filtered", response_model=TaskCategories)
async def get_filtered_categories(tasks: TaskState, _session: Annotated[SessionStore, Depends(require_session)]):
    return tasks.get_filtered_categories()


@router.get("/list", response_model=List[Task])
async def list_cached_tasks(tasks: TaskState, _session: Annotated[SessionStore, Depends(require_session)]):
    return tasks.get_cached_tasks()


@router.post("/retry", response_model=TaskCategories)
async def retry_load(tasks: TaskState, _user_id: ActiveUser):
    """Reload after a failure; the error stays on the error channel if it fails again."""
    await tasks.retry()
    if tasks.error.value is not None:
        raise tasks.error.value
    return tasks.get_categories()


# -- Search --

@router.get("/search", response_model=SearchState)
async def get_search(tasks: TaskState):
    return _search_state(tasks)


@router.put("/search", response_model=SearchState)
async def set_search(req: SearchRequest, tasks: TaskState):
    tasks.set_search_query(req.query)
    return _search_state(tasks)


@router.delete("/search", response_model=SearchState)
async def clear_search(tasks: TaskState):
    tasks.clear_search()
    return _search_state(tasks)


# -- Mutations --

@router.post("", response_model=Task, status_code=201)
async def create_task(req: CreateTaskRequest, tasks: TaskState, _user_id: ActiveUser):
    task = await tasks.create_task(req)
    if task is None:
        raise NotFoundError("The API did not return the created task")
    return task


@router.put("/{task_id}", response_model=Task)
async def edit_task(task_id: int, req: UpdateTaskRequest, tasks: TaskState, user_id: ActiveUser):
    task = await tasks.edit_task(task_id, user_id, req)
    if task is None:
        raise NotFoundError(f"Task {task_id} not found")
    return task


@router.post("/{task_id}/complete", response_model=Task)
async def complete_task(task_id: int, tasks: TaskState, user_id: ActiveUser):
    task = await tasks.complete_task(task_id, user_id)
    if task is None:
        raise NotFoundError(f"Task {task_id} not found")
    return task


@router.post("/{task_id}/reopen", response_model=Task)
async def reopen_task(task_id: int, tasks: TaskState, user_id: ActiveUser):
    task = await tasks.reopen_task(task_id, user_id)
    if task is None:
        raise NotFoundError(f"Task {task_id} not found")
    return task


@router.delete("/{task_id}")
async def delete_task(task_id: int, tasks: TaskState, user_id: ActiveUser):
    await tasks.delete_task(task_id, user_id)
    return Response(status_code=204)
