"""
Persistence backends for the client controller.

The controller talks to one of these and does not care whether the todos
live on the server (RemoteBackend) or only in a local file (LocalBackend,
the offline variant with no accounts).
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol
import time

from .api import ApiClient, ClientError
from .storage import LocalTodoFile


class LocalStoreError(ClientError):
    pass


class TodoBackend(Protocol):
    requires_auth: bool

    def list_todos(self) -> List[Dict[str, Any]]: ...

    def create_todo(self, text: str) -> Dict[str, Any]: ...

    def update_todo(self, todo_id: int, **fields) -> Dict[str, Any]: ...

    def delete_todo(self, todo_id: int) -> None: ...

    def reorder(self, todo_ids: List[int]) -> None: ...


class RemoteBackend:
    """Todos kept on the server, authorized with the current bearer token."""
    requires_auth = True

    def __init__(self, api: ApiClient):
        self.api = api
        self.token: Optional[str] = None

    # --- Authentication ---

    def login(self, username: str, password: str) -> Dict[str, Any]:
        return self.api.login(username, password)

    def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        return self.api.register(username, email, password)

    def verify(self, token: str) -> Dict[str, Any]:
        return self.api.verify(token)

    # --- Todos ---

    def list_todos(self) -> List[Dict[str, Any]]:
        return self.api.list_todos(self.token)

    def create_todo(self, text: str) -> Dict[str, Any]:
        return self.api.create_todo(self.token, text)

    def update_todo(self, todo_id: int, **fields) -> Dict[str, Any]:
        return self.api.update_todo(self.token, todo_id, **fields)

    def delete_todo(self, todo_id: int) -> None:
        self.api.delete_todo(self.token, todo_id)

    def reorder(self, todo_ids: List[int]) -> None:
        # manual order stays on this device, the server keeps its own
        pass


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class LocalBackend:
    """Offline todos persisted to a JSON file after every change."""
    requires_auth = False

    def __init__(self, store: LocalTodoFile):
        self.store = store
        self._todos = store.load()
        self._last_id = max((t["id"] for t in self._todos), default=0)

    def _next_id(self) -> int:
        # millisecond clock ids, bumped when two land in the same tick
        self._last_id = max(int(time.time() * 1000), self._last_id + 1)
        return self._last_id

    def _find(self, todo_id: int) -> Dict[str, Any]:
        for todo in self._todos:
            if todo["id"] == todo_id:
                return todo
        raise LocalStoreError(f"Todo {todo_id} not found")

    def list_todos(self) -> List[Dict[str, Any]]:
        return [dict(t) for t in self._todos]

    def create_todo(self, text: str) -> Dict[str, Any]:
        text = (text or "").strip()
        if not text:
            raise LocalStoreError("Todo text is required")
        now = _now_iso()
        todo = {
            "id": self._next_id(),
            "text": text,
            "completed": False,
            "position": 0,
            "created_at": now,
            "updated_at": now,
        }
        self._todos.insert(0, todo)
        self.store.save(self._todos)
        return dict(todo)

    def update_todo(self, todo_id: int, **fields) -> Dict[str, Any]:
        if fields.get("text") is None and fields.get("completed") is None:
            raise LocalStoreError("No fields to update")
        text = fields.get("text")
        if text is not None:
            text = text.strip()
            if not text:
                raise LocalStoreError("Todo text is required")
        todo = self._find(todo_id)
        if text is not None:
            todo["text"] = text
        if fields.get("completed") is not None:
            todo["completed"] = bool(fields["completed"])
        todo["updated_at"] = _now_iso()
        self.store.save(self._todos)
        return dict(todo)

    def delete_todo(self, todo_id: int) -> None:
        todo = self._find(todo_id)
        self._todos.remove(todo)
        self.store.save(self._todos)

    def reorder(self, todo_ids: List[int]) -> None:
        """Saves the list in the given order; ids not named keep their place at the end."""
        by_id = {t["id"]: t for t in self._todos}
        ordered = [by_id.pop(i) for i in todo_ids if i in by_id]
        self._todos = ordered + [t for t in self._todos if t["id"] in by_id]
        self.store.save(self._todos)
