"""Pure helpers behind the task cache: upsert, categorization and search."""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Callable, Hashable, Iterable, List, Optional, Sequence, TypeVar

from .schemas.task import Task, TaskCategories

T = TypeVar("T")


def upsert(items: Sequence[T], item: T, key: Callable[[T], Hashable]) -> List[T]:
    """Return a new list with *item* replacing the element of the same key, or appended."""
    k = key(item)
    result = list(items)
    for index, existing in enumerate(result):
        if key(existing) == k:
            result[index] = item
            return result
    result.append(item)
    return result


def remove_by_key(items: Sequence[T], k: Hashable, key: Callable[[T], Hashable]) -> List[T]:
    return [existing for existing in items if key(existing) != k]


def task_key(task: Task) -> int:
    return task.id


def categorize_tasks(tasks: Iterable[Task], now: datetime) -> TaskCategories:
    """Partition *tasks* into delayed / pending / completed as of *now*.

    A task is completed when it has a completion timestamp, delayed when it is
    open and its due date is strictly before *now*, pending otherwise.
    """
    all_tasks = list(tasks)
    delayed: List[Task] = []
    pending: List[Task] = []
    completed: List[Task] = []

    for task in all_tasks:
        if task.completed_at is not None:
            completed.append(task)
        elif task.due_at is not None and task.due_at < now:
            delayed.append(task)
        else:
            pending.append(task)

    return TaskCategories(all=all_tasks, delayed=delayed, pending=pending, completed=completed)


def format_due_date(due_at: datetime, tz: Optional[tzinfo] = None) -> str:
    """Deadline the way users type it in the search box (``15/12/2025``)."""
    return due_at.astimezone(tz).strftime("%d/%m/%Y")


def searchable_text(task: Task, tz: Optional[tzinfo] = None) -> str:
    name = (task.name or "").lower()
    description = (task.description or "").lower()
    tag_names = " ".join(t.name.lower() for t in task.tags)
    deadline = format_due_date(task.due_at, tz) if task.due_at is not None else ""
    return f"{name} {description} {tag_names} {deadline}"


def filter_tasks(tasks: Iterable[Task], query: str, tz: Optional[tzinfo] = None) -> List[Task]:
    """Keep the tasks whose searchable text contains every whitespace-separated term."""
    tasks = list(tasks)
    terms = (query or "").lower().split()
    if not terms:
        return tasks
    return [
        task for task in tasks
        if all(term in searchable_text(task, tz) for term in terms)
    ]
