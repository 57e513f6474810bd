"""Hook emitter: actions and filters keyed by event name.

Handlers for an event run by priority (higher first), then in the order
they were registered.

- Actions are best-effort side effects. A failing action is reported and
  the remaining actions still run.
- Filters thread a payload through each handler in turn. A failing filter
  aborts the chain and the error propagates to the caller.
"""

from __future__ import annotations

import functools
import itertools
import logging
import threading
from typing import Any, Callable

from tableforge.errors import HandlerError, TableForgeError
from tableforge.hooks.events import APPLICATION_ERROR
from tableforge.hooks.types import Handler, HookKind, HookRegistration, Payload, Priority

logger = logging.getLogger(__name__)

ErrorReporter = Callable[[HandlerError], None]


class HookEmitter:
    """Registry and dispatcher for hook handlers.

    Example:
        emitter = HookEmitter()
        emitter.add_filter("table.insert:before", strip_binary_data)
        payload = emitter.apply("table.insert:before", Payload(table_name="t", data={}))
    """

    def __init__(self, error_reporter: ErrorReporter | None = None):
        self._registrations: dict[str, list[HookRegistration]] = {}
        self._counter = itertools.count()
        self._lock = threading.Lock()
        self._error_reporter = error_reporter
        self._reporting = threading.local()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_action(self, event: str, handler: Handler, priority: int = Priority.DEFAULT) -> None:
        """Register a fire-and-forget handler for ``event``."""
        self._add(event, HookKind.ACTION, handler, priority)

    def add_filter(self, event: str, handler: Handler, priority: int = Priority.DEFAULT) -> None:
        """Register a payload-transforming handler for ``event``."""
        self._add(event, HookKind.FILTER, handler, priority)

    def _add(self, event: str, kind: HookKind, handler: Handler, priority: int) -> None:
        if not callable(handler):
            raise TypeError(f"Hook handler for '{event}' is not callable: {handler!r}")
        with self._lock:
            registration = HookRegistration(
                event_name=event,
                kind=kind,
                priority=int(priority),
                handler=handler,
                sequence=next(self._counter),
            )
            self._registrations.setdefault(event, []).append(registration)

    def listeners(self, event: str, kind: HookKind | None = None) -> list[Handler]:
        """Handlers for ``event`` in dispatch order."""
        return [r.handler for r in self._ordered(event, kind)]

    def has_listeners(self, event: str, kind: HookKind | None = None) -> bool:
        return bool(self._ordered(event, kind))

    def set_error_reporter(self, reporter: ErrorReporter | None) -> None:
        self._error_reporter = reporter

    def _ordered(self, event: str, kind: HookKind | None) -> list[HookRegistration]:
        registrations = list(self._registrations.get(event, ()))
        if kind is not None:
            registrations = [r for r in registrations if r.kind is kind]
        return sorted(registrations, key=lambda r: r.sort_key)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def run(self, event: str, *args: Any) -> None:
        """Invoke every action registered for ``event``.

        Return values are ignored. Each handler failure is wrapped in a
        HandlerError, logged and reported, then dispatch continues.
        """
        for registration in self._ordered(event, HookKind.ACTION):
            try:
                registration.handler(*args)
            except Exception as e:
                error = HandlerError(event, registration.handler, e)
                error.__cause__ = e
                logger.error("Action handler failed for '%s': %s", event, e)
                self._report(error)

    def apply(self, event: str, payload: Any, *args: Any) -> Any:
        """Feed ``payload`` through the filters registered for ``event``.

        Each handler receives the previous handler's return value. With no
        handlers the payload is returned unchanged.

        Raises:
            HandlerError: If a handler raised an unexpected exception
            TableForgeError: Domain errors raised by a handler propagate as is
        """
        for registration in self._ordered(event, HookKind.FILTER):
            try:
                payload = registration.handler(payload, *args)
            except TableForgeError:
                raise
            except Exception as e:
                raise HandlerError(event, registration.handler, e) from e
        return payload

    def _report(self, error: HandlerError) -> None:
        if self._error_reporter is not None:
            try:
                self._error_reporter(error)
            except Exception:
                logger.exception("Error reporter failed for '%s'", error.event)
            return

        # Default: re-emit as application.error, never recursively
        if error.event == APPLICATION_ERROR or getattr(self._reporting, "active", False):
            return
        self._reporting.active = True
        try:
            self.run(APPLICATION_ERROR, error)
        finally:
            self._reporting.active = False


def positional(*fields: str) -> Callable[[Handler], Handler]:
    """Adapt a legacy handler that takes payload fields as positional arguments.

    The wrapped function is called with the named payload fields; its
    return value replaces the first named field.

    Example:
        @positional("result", "select_state")
        def add_urls(result, select_state):
            ...
            return result
    """
    if not fields:
        raise ValueError("positional() needs at least one payload field")

    def decorator(fn: Handler) -> Handler:
        @functools.wraps(fn)
        def wrapper(payload: Payload, *args: Any) -> Payload:
            values = [payload[name] for name in fields]
            payload[fields[0]] = fn(*values, *args)
            return payload

        return wrapper

    return decorator
