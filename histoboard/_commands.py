"""Serialized execution of chart sync operations."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

REBUILD = "rebuild"
REBIND = "rebind"
REBIND_ALL = "rebind_all"


@dataclass
class SyncCommand:
    """A pending rebuild or rebind of the design surface."""

    kind: str
    apply_fn: Callable[[], None]
    series_id: int | None = None
    description: str = ""

    def execute(self) -> None:
        self.apply_fn()

    def covers(self, other: SyncCommand) -> bool:
        """True if running this command makes *other* redundant."""
        if self.kind == REBUILD:
            return True
        if self.kind == REBIND_ALL:
            return other.kind in (REBIND, REBIND_ALL)
        return other.kind == REBIND and other.series_id == self.series_id


class SyncQueue:
    """Single-flight queue: one command runs at a time, in submit order.

    Commands submitted while another is running (e.g. from an event handler)
    wait their turn instead of interleaving. Pending commands that an
    earlier or later pending command covers are coalesced. If a command
    raises, the remaining pending commands are dropped and the error
    propagates to whoever triggered the drain.
    """

    def __init__(self, max_history: int = 100,
                 on_change: Callable[[], None] | None = None):
        self._pending: list[SyncCommand] = []
        self._history: list[SyncCommand] = []
        self._max_history = max_history
        self._running = False
        self._on_change = on_change

    @property
    def busy(self) -> bool:
        return self._running

    @property
    def pending(self) -> list[SyncCommand]:
        return list(self._pending)

    @property
    def history(self) -> list[SyncCommand]:
        return list(self._history)

    def submit(self, cmd: SyncCommand) -> None:
        if any(p.covers(cmd) for p in self._pending):
            logger.debug("Coalesced %s into pending work", cmd.kind)
        else:
            self._pending = [p for p in self._pending if not cmd.covers(p)]
            self._pending.append(cmd)
        if not self._running:
            self.drain()

    def drain(self) -> None:
        if self._running:
            return
        self._running = True
        try:
            while self._pending:
                cmd = self._pending.pop(0)
                logger.debug("Running %s", cmd.description or cmd.kind)
                cmd.execute()
                self._history.append(cmd)
                if len(self._history) > self._max_history:
                    self._history.pop(0)
                if self._on_change:
                    self._on_change()
        except Exception:
            self._pending.clear()
            raise
        finally:
            self._running = False

    def clear(self) -> None:
        self._pending.clear()
        self._history.clear()
