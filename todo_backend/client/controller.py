"""
Client state controller.

Holds the session (token and user), the in-memory todo list and the
active filter, keeps them in step with a backend and hands a fresh View to
the renderer after every change. UI code feeds user input in through
dispatch() as typed Events rather than calling methods by name.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import logging
import time

from .api import ApiError, ClientError, NetworkError
from .backends import TodoBackend
from .state import Filter, counts, filter_todos, items_left_text, move_todo, reorganize
from .storage import TokenStore

logger = logging.getLogger(__name__)

NETWORK_ERROR_MESSAGE = "Network error. Please try again."


class Screen(str, Enum):
    auth = "auth"
    todos = "todos"


class AuthForm(str, Enum):
    login = "login"
    register = "register"


class Action(str, Enum):
    SHOW_LOGIN = "show_login"
    SHOW_REGISTER = "show_register"
    LOGIN = "login"
    REGISTER = "register"
    LOGOUT = "logout"
    ADD = "add"
    TOGGLE = "toggle"
    DELETE = "delete"
    MOVE = "move"
    CLEAR_COMPLETED = "clear_completed"
    FILTER = "filter"


# actions that target a single rendered row
ROW_ACTIONS = frozenset({Action.TOGGLE, Action.DELETE, Action.MOVE})


@dataclass(frozen=True)
class Event:
    action: Action
    todo_id: Optional[int] = None
    value: Any = None


@dataclass(frozen=True)
class Row:
    id: int
    text: str
    completed: bool
    removing: bool = False


@dataclass
class View:
    screen: Screen
    auth_form: AuthForm
    greeting: str = ""
    rows: List[Row] = field(default_factory=list)
    filter: Filter = Filter.all
    filter_counts: Dict[Filter, int] = field(default_factory=dict)
    items_left: str = ""
    show_footer: bool = False
    show_empty_state: bool = True
    show_clear_completed: bool = False
    errors: Dict[AuthForm, str] = field(default_factory=dict)


class TodoController:
    def __init__(
        self,
        backend: TodoBackend,
        token_store: Optional[TokenStore] = None,
        renderer: Optional[Callable[[View], None]] = None,
        reorder_on_toggle: bool = True,
        removal_delay: float = 0.3,
    ):
        self.backend = backend
        self.token_store = token_store
        self.renderer = renderer
        self.reorder_on_toggle = reorder_on_toggle
        self.removal_delay = removal_delay

        self.token: Optional[str] = None
        self.user: Optional[Dict[str, Any]] = None
        self.todos: List[Dict[str, Any]] = []
        self.filter = Filter.all
        self.screen = Screen.auth
        self.auth_form = AuthForm.login
        self.errors: Dict[AuthForm, str] = {}
        self._removing = set()

        self._handlers: Dict[Action, Callable[[Event], Any]] = {
            Action.SHOW_LOGIN: lambda e: self.show_auth_form(AuthForm.login),
            Action.SHOW_REGISTER: lambda e: self.show_auth_form(AuthForm.register),
            Action.LOGIN: lambda e: self.login(e.value["username"], e.value["password"]),
            Action.REGISTER: lambda e: self.register(e.value["username"], e.value["email"], e.value["password"]),
            Action.LOGOUT: lambda e: self.logout(),
            Action.ADD: lambda e: self.add(e.value),
            Action.TOGGLE: lambda e: self.toggle(e.todo_id),
            Action.DELETE: lambda e: self.delete(e.todo_id),
            Action.MOVE: lambda e: self.move(e.todo_id, e.value),
            Action.CLEAR_COMPLETED: lambda e: self.clear_completed(),
            Action.FILTER: lambda e: self.set_filter(e.value),
        }

    # --- Dispatch and rendering ---

    def dispatch(self, event: Event) -> Any:
        if event.action in ROW_ACTIONS and event.todo_id not in self.visible_ids():
            logger.warning("Ignoring %s for todo %s, not on screen", event.action.value, event.todo_id)
            return None
        return self._handlers[event.action](event)

    def visible_ids(self) -> set:
        if self.screen != Screen.todos:
            return set()
        return {t["id"] for t in filter_todos(self.todos, self.filter)}

    def view(self) -> View:
        totals = counts(self.todos)
        greeting = f"Welcome, {self.user['username']}!" if self.user else ""
        rows = [
            Row(id=t["id"], text=t["text"], completed=bool(t["completed"]), removing=t["id"] in self._removing)
            for t in filter_todos(self.todos, self.filter)
        ]
        return View(
            screen=self.screen,
            auth_form=self.auth_form,
            greeting=greeting,
            rows=rows,
            filter=self.filter,
            filter_counts=totals,
            items_left=items_left_text(totals[Filter.active]),
            show_footer=bool(self.todos),
            show_empty_state=not self.todos,
            show_clear_completed=totals[Filter.completed] > 0,
            errors=dict(self.errors),
        )

    def render(self) -> None:
        if self.renderer is not None:
            self.renderer(self.view())

    # --- Session ---

    def start(self) -> None:
        if not self.backend.requires_auth:
            self.screen = Screen.todos
            self._load_todos()
            self.render()
            return

        token = self.token_store.load() if self.token_store else None
        if token and self._verify(token):
            self._show_todos()
            return
        self.screen = Screen.auth
        self.render()

    def _verify(self, token: str) -> bool:
        try:
            data = self.backend.verify(token)
        except ClientError as e:
            logger.info("Stored session rejected: %s", e)
            self._discard_session()
            return False
        self.token = token
        self.backend.token = token
        self.user = data["user"]
        return True

    def _discard_session(self) -> None:
        self.token = None
        self.user = None
        self.backend.token = None
        if self.token_store:
            self.token_store.clear()

    def _show_todos(self) -> None:
        self.screen = Screen.todos
        self.errors = {}
        self._load_todos()
        self.render()

    def _start_session(self, data: Dict[str, Any]) -> None:
        self.token = data["token"]
        self.user = data["user"]
        self.backend.token = self.token
        if self.token_store:
            self.token_store.save(self.token)
        self._show_todos()

    def _auth_call(self, form: AuthForm, call: Callable[[], Dict[str, Any]]) -> bool:
        try:
            data = call()
        except ApiError as e:
            self.errors[form] = e.message
            self.render()
            return False
        except NetworkError:
            self.errors[form] = NETWORK_ERROR_MESSAGE
            self.render()
            return False
        self._start_session(data)
        return True

    def show_auth_form(self, form: AuthForm) -> None:
        self.auth_form = form
        self.errors = {}
        self.render()

    def login(self, username: str, password: str) -> bool:
        username = (username or "").strip()
        return self._auth_call(AuthForm.login, lambda: self.backend.login(username, password))

    def register(self, username: str, email: str, password: str) -> bool:
        username = (username or "").strip()
        email = (email or "").strip()
        return self._auth_call(AuthForm.register, lambda: self.backend.register(username, email, password))

    def logout(self) -> None:
        self._discard_session()
        self.todos = []
        self._removing.clear()
        self.screen = Screen.auth
        self.show_auth_form(AuthForm.login)

    # --- Todos ---

    def _load_todos(self) -> None:
        try:
            self.todos = self.backend.list_todos()
        except ClientError as e:
            logger.error("Failed to load todos: %s", e)

    def _save_order(self) -> None:
        self.backend.reorder([t["id"] for t in self.todos])

    def _find(self, todo_id: int) -> Optional[Dict[str, Any]]:
        return next((t for t in self.todos if t["id"] == todo_id), None)

    def add(self, text: str) -> Optional[Dict[str, Any]]:
        text = (text or "").strip()
        if not text:
            return None
        try:
            todo = self.backend.create_todo(text)
        except ClientError as e:
            logger.error("Failed to add todo: %s", e)
            return None
        self.todos.insert(0, todo)
        self.render()
        return todo

    def toggle(self, todo_id: int) -> bool:
        todo = self._find(todo_id)
        if todo is None:
            return False
        try:
            updated = self.backend.update_todo(todo_id, completed=not todo["completed"])
        except ClientError as e:
            logger.error("Failed to update todo %s: %s", todo_id, e)
            return False
        # the server's copy wins, updated_at included
        todo.update(updated)
        if self.reorder_on_toggle:
            self.todos = reorganize(self.todos)
            self._save_order()
        self.render()
        return True

    def delete(self, todo_id: int) -> bool:
        if self._find(todo_id) is None:
            return False
        self._removing.add(todo_id)
        self.render()
        if self.removal_delay:
            time.sleep(self.removal_delay)
        try:
            self.backend.delete_todo(todo_id)
        except ClientError as e:
            logger.error("Failed to delete todo %s: %s", todo_id, e)
            self._removing.discard(todo_id)
            self.render()
            return False
        self._removing.discard(todo_id)
        self.todos = [t for t in self.todos if t["id"] != todo_id]
        self.render()
        return True

    def clear_completed(self) -> None:
        """Best effort: completed todos leave the list even if a delete failed."""
        for todo in [t for t in self.todos if t["completed"]]:
            try:
                self.backend.delete_todo(todo["id"])
            except ClientError as e:
                logger.error("Failed to delete todo %s: %s", todo["id"], e)
        self.todos = [t for t in self.todos if not t["completed"]]
        self.render()

    def set_filter(self, value) -> None:
        self.filter = Filter(value)
        self.render()

    def move(self, todo_id: int, before_id: Optional[int] = None) -> None:
        # never sent to the server; the offline backend keeps it
        self.todos = move_todo(self.todos, todo_id, before_id)
        self._save_order()
        self.render()
