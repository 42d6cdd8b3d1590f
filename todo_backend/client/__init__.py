from .api import ApiClient, ApiError, ClientError, NetworkError
from .backends import LocalBackend, RemoteBackend
from .controller import Action, AuthForm, Event, Screen, TodoController, View
from .state import Filter
from .storage import LocalTodoFile, TokenStore

__all__ = [
    "Action",
    "ApiClient",
    "ApiError",
    "AuthForm",
    "ClientError",
    "Event",
    "Filter",
    "LocalBackend",
    "LocalTodoFile",
    "NetworkError",
    "RemoteBackend",
    "Screen",
    "TodoController",
    "TokenStore",
    "View",
]
