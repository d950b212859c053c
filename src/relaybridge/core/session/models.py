"""Session entry — one conversation's backend session."""

from __future__ import annotations

import time
from dataclasses import dataclass, field


def cursor_value(cursor: str | None) -> int:
    """Numeric value of a watermark; empty means beginning of history."""
    return int(cursor) if cursor else 0


@dataclass
class SessionEntry:
    """A single conversation → backend session mapping.

    ``session_id`` and ``token`` are fixed at creation. ``cursor`` is only
    advanced by the reply poller; ``last_touched`` by the coordinator.
    """

    conversation_id: str
    session_id: str
    token: str
    cursor: str = ""  # Direct Line watermark of the last relayed batch
    created_at: float = field(default_factory=time.monotonic)
    last_touched: float = field(default_factory=time.monotonic)
    active_polls: int = 0  # pollers currently holding this entry

    def touch(self) -> None:
        self.last_touched = time.monotonic()

    def idle_for(self, now: float | None = None) -> float:
        return (now if now is not None else time.monotonic()) - self.last_touched

    def cursor_value(self) -> int:
        return cursor_value(self.cursor)

    @property
    def in_use(self) -> bool:
        return self.active_polls > 0
