"""
Session registry — keyed cache of backend sessions per channel conversation.

Invariants:
  - At most one SessionEntry exists per conversation id.
  - Creation is single-flight per key: concurrent callers for an unseen key
    share one ``create_session()`` call and observe the same entry.
  - Callers for different keys never wait on each other.
  - A failed creation inserts nothing; the next call retries.
  - Entries idle longer than the TTL are evicted by ``prune_expired()``
    (periodic sweep) or replaced on access, but never while a poller holds
    them (``active_polls > 0``).
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog

from relaybridge.backend.protocol import SessionFactory
from relaybridge.core.exceptions import SessionCreationError
from relaybridge.core.session.models import SessionEntry

logger = structlog.get_logger()

# Default idle TTL: 1 hour
_DEFAULT_IDLE_TTL_S = 3600.0
_DEFAULT_SWEEP_INTERVAL_S = 60.0


class SessionRegistry:
    """Process-scoped registry of conversation sessions."""

    def __init__(
        self,
        factory: SessionFactory,
        idle_ttl_seconds: float = _DEFAULT_IDLE_TTL_S,
        sweep_interval_seconds: float = _DEFAULT_SWEEP_INTERVAL_S,
    ) -> None:
        self._factory = factory
        self._ttl = idle_ttl_seconds
        self._sweep_interval = sweep_interval_seconds
        self._entries: dict[str, SessionEntry] = {}
        self._pending: dict[str, asyncio.Future[SessionEntry]] = {}

    async def get_or_create(self, conversation_id: str) -> SessionEntry:
        """Return the live entry for ``conversation_id``, creating it on miss.

        Raises:
            SessionCreationError: the backend could not start a session.
        """
        entry = self._live(conversation_id)
        if entry is not None:
            return entry

        pending = self._pending.get(conversation_id)
        if pending is None:
            pending = asyncio.ensure_future(self._create(conversation_id))
            self._pending[conversation_id] = pending
            pending.add_done_callback(
                lambda fut, key=conversation_id: self._forget_pending(key, fut)
            )
        # shield: one caller being cancelled must not cancel creation for the others
        return await asyncio.shield(pending)

    def _forget_pending(self, conversation_id: str, fut: asyncio.Future[SessionEntry]) -> None:
        if self._pending.get(conversation_id) is fut:
            del self._pending[conversation_id]

    async def _create(self, conversation_id: str) -> SessionEntry:
        try:
            session = await self._factory.create_session()
        except SessionCreationError:
            logger.warning("session_creation_failed", conversation_id=conversation_id[:16])
            raise
        except Exception as exc:
            logger.warning(
                "session_creation_failed",
                conversation_id=conversation_id[:16],
                error=str(exc),
            )
            raise SessionCreationError(f"session creation failed: {exc}") from exc

        entry = SessionEntry(
            conversation_id=conversation_id,
            session_id=session.session_id,
            token=session.token,
        )
        self._entries[conversation_id] = entry
        logger.info(
            "session_created",
            conversation_id=conversation_id[:16],
            session_id=session.session_id[:8],
        )
        return entry

    def _live(self, conversation_id: str) -> SessionEntry | None:
        entry = self._entries.get(conversation_id)
        if entry is None:
            return None
        if self._is_expired(entry):
            del self._entries[conversation_id]
            logger.debug("session_expired_on_access", conversation_id=conversation_id[:16])
            return None
        return entry

    def get(self, conversation_id: str) -> SessionEntry | None:
        """Return the live entry for ``conversation_id`` without creating one."""
        return self._live(conversation_id)

    def remove(self, conversation_id: str) -> bool:
        """Drop an entry. No close handshake is sent to the backend."""
        return self._entries.pop(conversation_id, None) is not None

    @asynccontextmanager
    async def acquire(self, entry: SessionEntry) -> AsyncIterator[SessionEntry]:
        """Mark ``entry`` in use for the duration of a poll."""
        entry.active_polls += 1
        try:
            yield entry
        finally:
            entry.active_polls -= 1
            entry.touch()

    # ------------------------------------------------------------------
    # Eviction
    # ------------------------------------------------------------------

    def prune_expired(self, now: float | None = None) -> int:
        """Remove idle, unused entries.

        Returns:
            Number of entries pruned.
        """
        now = now if now is not None else time.monotonic()
        to_remove = [
            key for key, e in self._entries.items() if self._is_expired(e, now)
        ]
        for key in to_remove:
            del self._entries[key]
        if to_remove:
            logger.info("sessions_pruned", count=len(to_remove))
        return len(to_remove)

    async def sweep_loop(self) -> None:
        """Prune periodically until cancelled."""
        logger.debug("session_sweep_started", interval=self._sweep_interval)
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.prune_expired()

    def _is_expired(self, entry: SessionEntry, now: float | None = None) -> bool:
        return not entry.in_use and entry.idle_for(now) > self._ttl

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def active_count(self) -> int:
        """Number of non-expired entries."""
        return sum(1 for e in self._entries.values() if not self._is_expired(e))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._entries
