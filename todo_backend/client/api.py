"""HTTP client for the todo API."""
from typing import Any, Dict, List, Optional
import logging

import httpx

logger = logging.getLogger(__name__)


class ClientError(Exception):
    """Base for failures the client controller reports and recovers from."""


class ApiError(ClientError):
    """The server answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"{status_code}: {message}")


class NetworkError(ClientError):
    """No response was received."""


class ApiClient:
    def __init__(self, http: httpx.Client, base_path: str = "/api"):
        self.http = http
        self.base_path = base_path.rstrip("/")

    def _request(self, method: str, path: str, token: Optional[str] = None, json: Any = None) -> Any:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        logger.debug("%s %s%s", method, self.base_path, path)
        try:
            response = self.http.request(method, f"{self.base_path}{path}", json=json, headers=headers)
        except httpx.TransportError as e:
            raise NetworkError(str(e)) from e

        try:
            data = response.json()
        except ValueError:
            data = None
        if response.is_success:
            return data
        message = data.get("detail") if isinstance(data, dict) else None
        raise ApiError(response.status_code, message or response.reason_phrase)

    # --- Authentication ---

    def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        return self._request("POST", "/auth/register", json={"username": username, "email": email, "password": password})

    def login(self, username: str, password: str) -> Dict[str, Any]:
        return self._request("POST", "/auth/login", json={"username": username, "password": password})

    def verify(self, token: str) -> Dict[str, Any]:
        return self._request("GET", "/auth/verify", token=token)

    # --- Todos ---

    def list_todos(self, token: str) -> List[Dict[str, Any]]:
        return self._request("GET", "/todos", token=token)

    def create_todo(self, token: str, text: str) -> Dict[str, Any]:
        return self._request("POST", "/todos", token=token, json={"text": text})

    def update_todo(self, token: str, todo_id: int, **fields) -> Dict[str, Any]:
        data = self._request("PUT", f"/todos/{todo_id}", token=token, json=fields)
        return data.get("todo", data)

    def delete_todo(self, token: str, todo_id: int) -> None:
        self._request("DELETE", f"/todos/{todo_id}", token=token)
