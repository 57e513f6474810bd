"""TableForge hook/event pipeline.

Table gateways dispatch events around every query so that business
rules can be written as handlers instead of being hard-coded:

- actions: fire-and-forget side effects, failures isolated per handler
- filters: sequential payload transformation, failures abort the chain

Usage:
    from tableforge.hooks import HookEmitter, Payload, Priority

    emitter = HookEmitter()
    emitter.add_filter("table.insert:before", stamp_owner, priority=Priority.HIGH)
    payload = emitter.apply("table.insert:before", Payload(table_name="posts", data=row))

The builtin handlers live in ``tableforge.hooks.builtin``.
"""

from tableforge.hooks.emitter import HookEmitter, positional
from tableforge.hooks.events import (
    AFTER,
    APPLICATION_ERROR,
    BEFORE,
    LOAD_RELATIONAL_ONETOMANY,
    table_event,
    table_events,
)
from tableforge.hooks.types import HookKind, HookRegistration, Payload, Priority

__all__ = [
    "AFTER",
    "APPLICATION_ERROR",
    "BEFORE",
    "HookEmitter",
    "HookKind",
    "HookRegistration",
    "LOAD_RELATIONAL_ONETOMANY",
    "Payload",
    "Priority",
    "positional",
    "table_event",
    "table_events",
]
