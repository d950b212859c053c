"""
Relay coordinator — per-turn entry point.

  conversation start → registry.get_or_create (pre-warm the backend session)
  message            → get_or_create → post to backend → reply poll

Forward failures end the turn without polling. Poll outcomes are logged,
never raised.
"""

from __future__ import annotations

import structlog

from relaybridge.backend.models import Activity, ChannelAccount
from relaybridge.backend.protocol import ActivityStream
from relaybridge.channel.models import CONVERSATION_UPDATE, MESSAGE, ChannelActivity
from relaybridge.core.exceptions import ForwardError
from relaybridge.core.relay.poller import OutboundSink, PollOutcome, ReplyPoller
from relaybridge.core.session.models import SessionEntry
from relaybridge.core.session.registry import SessionRegistry

logger = structlog.get_logger()


class RelayCoordinator:
    """Routes channel events into backend sessions and relays replies."""

    def __init__(
        self,
        registry: SessionRegistry,
        stream: ActivityStream,
        poller: ReplyPoller,
    ) -> None:
        self._registry = registry
        self._stream = stream
        self._poller = poller

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    async def on_conversation_start(self, conversation_id: str) -> SessionEntry:
        return await self._registry.get_or_create(conversation_id)

    async def on_message(
        self,
        conversation_id: str,
        text: str | None,
        sender_id: str | None,
        sender_name: str | None,
        locale: str | None,
        text_format: str | None,
        sink: OutboundSink,
    ) -> PollOutcome:
        """Forward one user message and relay the agent's reply.

        Raises:
            SessionCreationError: no backend session could be started.
            ForwardError: the message could not be posted.
        """
        entry = await self._registry.get_or_create(conversation_id)
        entry.touch()
        log = logger.bind(conversation_id=conversation_id[:16], session_id=entry.session_id[:8])
        log.info("relay_message_received", sender_id=sender_id)

        activity = Activity(
            type=MESSAGE,
            from_=ChannelAccount(id=sender_id, name=sender_name),
            text=text,
            text_format=text_format,
            locale=locale,
        )
        try:
            await self._stream.post_activity(entry.session_id, entry.token, activity)
        except ForwardError as exc:
            log.error("relay_forward_failed", error=str(exc), status_code=exc.status_code)
            raise

        async with self._registry.acquire(entry):
            outcome = await self._poller.poll_and_relay(entry, sink)

        log.info("relay_turn_finished", outcome=outcome.value)
        entry.touch()
        return outcome

    async def handle_activity(
        self, activity: ChannelActivity, sink: OutboundSink
    ) -> PollOutcome | None:
        """Dispatch an inbound channel activity by type.

        Returns the poll outcome for messages, None otherwise.
        """
        conversation_id = activity.conversation.id
        if activity.type == CONVERSATION_UPDATE:
            await self.on_conversation_start(conversation_id)
            return None
        if activity.type == MESSAGE:
            return await self.on_message(
                conversation_id,
                text=activity.text,
                sender_id=activity.from_.id,
                sender_name=activity.from_.name,
                locale=activity.locale,
                text_format=activity.text_format,
                sink=sink,
            )
        logger.debug(
            "relay_activity_ignored", type=activity.type, conversation_id=conversation_id[:16]
        )
        return None
