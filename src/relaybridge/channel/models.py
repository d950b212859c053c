"""Bot Framework activity models for the end-user channel."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from relaybridge.backend.models import ChannelAccount, WireModel

MESSAGE = "message"
CONVERSATION_UPDATE = "conversationUpdate"


class ConversationAccount(WireModel):
    id: str
    name: str | None = None
    is_group: bool | None = None


class ChannelActivity(WireModel):
    """An inbound activity posted to ``/api/messages``."""

    type: str
    id: str | None = None
    channel_id: str | None = None
    service_url: str | None = None
    conversation: ConversationAccount
    from_: ChannelAccount = Field(default_factory=ChannelAccount, alias="from")
    recipient: ChannelAccount | None = None
    text: str | None = None
    text_format: str | None = None
    locale: str | None = None
    members_added: list[ChannelAccount] | None = None


class OutboundActivity(WireModel):
    """A reply sent back to the end user."""

    type: str = MESSAGE
    text: str | None = None
    text_format: str | None = None
    locale: str | None = None
    speak: str | None = None
    input_hint: str | None = None
    attachment_layout: str | None = None
    attachments: list[dict[str, Any]] | None = None
    suggested_actions: dict[str, Any] | None = None
    channel_data: Any = None
    reply_to_id: str | None = None
