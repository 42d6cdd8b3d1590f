"""Pure list operations over the in-memory todo list. Nothing here talks to a backend."""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

Todo = Dict[str, Any]


class Filter(str, Enum):
    all = "all"
    active = "active"
    completed = "completed"


def filter_todos(todos: List[Todo], current: Filter) -> List[Todo]:
    if current == Filter.active:
        return [t for t in todos if not t["completed"]]
    if current == Filter.completed:
        return [t for t in todos if t["completed"]]
    return list(todos)


def _timestamp(todo: Todo) -> datetime:
    raw = todo.get("updated_at") or todo.get("created_at")
    if not raw:
        return datetime.now(timezone.utc)
    if isinstance(raw, datetime):
        value = raw
    else:
        value = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def reorganize(todos: List[Todo]) -> List[Todo]:
    """
    Active todos first in their current relative order, then completed
    todos with the most recently updated first.
    """
    active = [t for t in todos if not t["completed"]]
    completed = sorted((t for t in todos if t["completed"]), key=_timestamp, reverse=True)
    return active + completed


def move_todo(todos: List[Todo], todo_id: int, before_id: Optional[int] = None) -> List[Todo]:
    """
    Returns a new list with `todo_id` placed immediately before `before_id`,
    or at the end when `before_id` is None. Unknown ids leave the order alone.
    """
    moving = next((t for t in todos if t["id"] == todo_id), None)
    if moving is None or before_id == todo_id:
        return list(todos)
    rest = [t for t in todos if t["id"] != todo_id]
    if before_id is None:
        return rest + [moving]
    for index, todo in enumerate(rest):
        if todo["id"] == before_id:
            return rest[:index] + [moving] + rest[index:]
    return list(todos)


def counts(todos: List[Todo]) -> Dict[Filter, int]:
    active = sum(1 for t in todos if not t["completed"])
    return {
        Filter.all: len(todos),
        Filter.active: active,
        Filter.completed: len(todos) - active,
    }


def items_left_text(active_count: int) -> str:
    return "1 item left" if active_count == 1 else f"{active_count} items left"
