"""
Reply poller — fetches backend replies for one turn and relays them.

After the user's message is posted, the backend conversation is polled
from the entry's cursor (Direct Line watermark) until the agent answers or
the attempt budget runs out:

  - only ``message`` activities whose sender name equals the agent's name
    (ordinal, case-sensitive) are relayed; the user's own echo is not
  - a fetch that carries agent messages but whose watermark is not strictly
    greater than the entry's cursor means a newer turn has already advanced
    the conversation; this poll yields without touching the cursor
  - otherwise the cursor advances to the fetch's watermark and the batch is
    sent to the sink in backend order
  - a failed fetch consumes one attempt; the interval still elapses

Outcomes are values, not exceptions: a timeout or an interleave abort is a
normal end to a turn.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Sequence
from enum import StrEnum
from typing import Protocol

import structlog

from relaybridge.backend.models import MESSAGE_TYPE, Activity
from relaybridge.backend.protocol import ActivityStream
from relaybridge.channel.models import OutboundActivity
from relaybridge.core.config import PollingConfig
from relaybridge.core.exceptions import PollFetchError
from relaybridge.core.relay.converter import convert_activities
from relaybridge.core.session.models import SessionEntry, cursor_value

logger = structlog.get_logger()

Converter = Callable[[Iterable[Activity]], list[OutboundActivity]]


class PollOutcome(StrEnum):
    """How a reply poll ended."""

    COMPLETED = "completed"
    ABORTED_BY_SENDER_INTERLEAVE = "aborted_by_sender_interleave"
    TIMED_OUT = "timed_out"


class OutboundSink(Protocol):
    async def send_activities(self, activities: Sequence[OutboundActivity]) -> None: ...


class ReplyPoller:
    """Bounded poll loop for one backend agent."""

    def __init__(
        self,
        stream: ActivityStream,
        bot_name: str,
        *,
        interval_seconds: float = 1.0,
        max_attempts: int = 10,
        converter: Converter = convert_activities,
    ) -> None:
        self._stream = stream
        self._bot_name = bot_name
        self._interval = interval_seconds
        self._max_attempts = max(1, max_attempts)
        self._convert = converter

    @classmethod
    def from_config(
        cls, stream: ActivityStream, bot_name: str, polling: PollingConfig
    ) -> ReplyPoller:
        return cls(
            stream,
            bot_name,
            interval_seconds=polling.interval_seconds,
            max_attempts=polling.max_attempts,
        )

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def agent_messages(self, activities: Iterable[Activity]) -> list[Activity]:
        """Keep the agent's own message activities, in order."""
        return [
            a
            for a in activities
            if a.type == MESSAGE_TYPE and a.sender_name == self._bot_name
        ]

    async def poll_and_relay(self, entry: SessionEntry, sink: OutboundSink) -> PollOutcome:
        log = logger.bind(
            conversation_id=entry.conversation_id[:16],
            session_id=entry.session_id[:8],
        )
        log.debug("reply_poll_started", cursor=entry.cursor, max_attempts=self._max_attempts)

        for attempt in range(1, self._max_attempts + 1):
            try:
                result = await self._stream.get_activities(
                    entry.session_id, entry.token, entry.cursor
                )
                watermark = cursor_value(result.watermark)
            except (PollFetchError, ValueError) as exc:
                log.warning("reply_poll_fetch_failed", attempt=attempt, error=str(exc))
                await asyncio.sleep(self._interval)
                continue

            replies = self.agent_messages(result.activities)
            if not replies:
                log.debug("reply_poll_empty", attempt=attempt)
                await asyncio.sleep(self._interval)
                continue

            if watermark <= entry.cursor_value():
                # A newer turn already advanced this conversation past us
                log.info(
                    "reply_poll_aborted_interleave",
                    attempt=attempt,
                    watermark=result.watermark,
                    cursor=entry.cursor,
                )
                return PollOutcome.ABORTED_BY_SENDER_INTERLEAVE

            entry.cursor = str(watermark)
            outbound = self._convert(replies)
            log.info("reply_received", attempt=attempt, count=len(outbound), cursor=entry.cursor)
            await sink.send_activities(outbound)
            return PollOutcome.COMPLETED

        log.info("reply_poll_timed_out", attempts=self._max_attempts)
        return PollOutcome.TIMED_OUT
