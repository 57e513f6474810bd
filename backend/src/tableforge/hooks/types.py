"""Hook system types for TableForge.

Defines the core data structures for the hook/event pipeline:
- Priority: ordering levels for handlers on the same event
- HookKind: action (fire and forget) or filter (payload transformation)
- HookRegistration: one handler bound to one event
- Payload: the mutable envelope threaded through a filter chain
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, Callable, Iterator


class Priority(IntEnum):
    """Handler priority. Higher values run first."""

    LOW = -10
    DEFAULT = 0
    HIGH = 10


class HookKind(Enum):
    ACTION = "action"
    FILTER = "filter"


# Action: (*args) -> None. Filter: (payload, *args) -> payload
Handler = Callable[..., Any]


@dataclass(frozen=True)
class HookRegistration:
    """A handler registered against an event.

    Attributes:
        event_name: Dotted event name (e.g. "table.insert:before")
        kind: ACTION or FILTER
        priority: Ordering level; ties keep registration order
        handler: The callable
        sequence: Registration counter used as the tie breaker
    """

    event_name: str
    kind: HookKind
    priority: int
    handler: Handler
    sequence: int

    @property
    def sort_key(self) -> tuple[int, int]:
        return (-self.priority, self.sequence)


class Payload:
    """Mutable envelope describing a table operation.

    Known fields are ``table_name``, ``data``, ``select_state``,
    ``result`` and ``column``; handlers may attach any other field.
    Fields are reachable both as attributes and as items.

    Example:
        payload = Payload(table_name="directus_users", data={"password": "x"})
        payload.data["password"]
        payload["table_name"]
    """

    def __init__(self, **fields: Any):
        object.__setattr__(self, "_fields", dict(fields))

    def __getattr__(self, name: str) -> Any:
        fields = object.__getattribute__(self, "_fields")
        try:
            return fields[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        self._fields[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self._fields[name]
        except KeyError:
            raise AttributeError(name) from None

    def __getitem__(self, name: str) -> Any:
        return self._fields[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self._fields[name] = value

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Payload):
            return NotImplemented
        return self._fields == other._fields

    def __repr__(self) -> str:
        inner = ", ".join(f"{k}={v!r}" for k, v in self._fields.items())
        return f"Payload({inner})"

    def get(self, name: str, default: Any = None) -> Any:
        return self._fields.get(name, default)

    def copy(self) -> Payload:
        """Deep copy of the envelope."""
        return Payload(**copy.deepcopy(self._fields))

    def to_dict(self) -> dict[str, Any]:
        return dict(self._fields)
