"""Session access with pluggable storage."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from tableforge.config import DEFAULT_SESSION_PREFIX


@runtime_checkable
class SessionStorage(Protocol):
    """Interface all session storage backends must implement."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class MemorySessionStorage:
    """Process-local storage, one instance per session."""

    def __init__(self, data: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class Session:
    """A user's session. Keys are namespaced with ``prefix``."""

    USER_ID_KEY = "user_id"

    def __init__(self, storage: SessionStorage | None = None, prefix: str = DEFAULT_SESSION_PREFIX):
        self.storage = storage if storage is not None else MemorySessionStorage()
        self.prefix = prefix

    def get(self, key: str, default: Any = None) -> Any:
        return self.storage.get(self.prefix + key, default)

    def set(self, key: str, value: Any) -> None:
        self.storage.set(self.prefix + key, value)

    def delete(self, key: str) -> None:
        self.storage.delete(self.prefix + key)

    @property
    def user_id(self) -> Any:
        return self.get(self.USER_ID_KEY)

    @user_id.setter
    def user_id(self, value: Any) -> None:
        if value is None:
            self.delete(self.USER_ID_KEY)
        else:
            self.set(self.USER_ID_KEY, value)

    def is_logged_in(self) -> bool:
        return self.user_id is not None
