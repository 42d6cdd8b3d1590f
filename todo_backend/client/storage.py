"""Durable client-side storage: the session token and the offline todo list."""
from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import logging
import os

logger = logging.getLogger(__name__)


class JsonFile:
    """A JSON document kept in a single file, rewritten atomically."""

    def __init__(self, path):
        self.path = Path(path)

    def read(self, default=None):
        if not self.path.exists():
            return default
        try:
            with open(self.path, "r") as f:
                return json.load(f)
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable client storage file %s", self.path)
            return default

    def write(self, value) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w") as f:
            json.dump(value, f, indent=2)
        os.replace(tmp, self.path)

    def remove(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass


class TokenStore:
    """Holds the current session token across restarts under one key."""
    KEY = "token"

    def __init__(self, path):
        self._file = JsonFile(path)

    def load(self) -> Optional[str]:
        data = self._file.read(default={})
        token = data.get(self.KEY) if isinstance(data, dict) else None
        return token or None

    def save(self, token: str) -> None:
        self._file.write({self.KEY: token})

    def clear(self) -> None:
        self._file.remove()


class LocalTodoFile:
    """The offline variant's todo list."""

    def __init__(self, path):
        self._file = JsonFile(path)

    def load(self) -> List[Dict[str, Any]]:
        data = self._file.read(default=[])
        return data if isinstance(data, list) else []

    def save(self, todos: List[Dict[str, Any]]) -> None:
        self._file.write(todos)
