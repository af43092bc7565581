"""Minimal observer hooks with explicit disposal."""
from __future__ import annotations

from typing import Any, Callable


class Subscription:
    """Handle returned by :meth:`EventHook.subscribe`.

    Call :meth:`dispose` (or use it as a context manager) to detach the
    handler. Disposing twice is harmless.
    """

    def __init__(self, hook: EventHook, handler: Callable[..., Any]):
        self._hook = hook
        self._handler = handler

    @property
    def active(self) -> bool:
        return self._hook is not None

    def dispose(self) -> None:
        if self._hook is None:
            return
        self._hook._remove(self._handler)
        self._hook = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()
        return False


class EventHook:
    """A named notification that handlers can subscribe to."""

    def __init__(self, name: str):
        self.name = name
        self._handlers: list[Callable[..., Any]] = []

    def __len__(self) -> int:
        return len(self._handlers)

    def subscribe(self, handler: Callable[..., Any]) -> Subscription:
        self._handlers.append(handler)
        return Subscription(self, handler)

    def _remove(self, handler: Callable[..., Any]) -> None:
        try:
            self._handlers.remove(handler)
        except ValueError:
            pass

    def emit(self, *args: Any) -> None:
        # Snapshot so handlers may unsubscribe while being notified.
        for handler in list(self._handlers):
            handler(*args)

    def clear(self) -> None:
        self._handlers.clear()
