"""Direct Line wire models.

Field names follow Python conventions; aliases carry the camelCase names
used on the wire. Unknown fields are kept so nothing the backend sends is
dropped before conversion.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MESSAGE_TYPE = "message"


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ChannelAccount(WireModel):
    id: str | None = None
    name: str | None = None


class Activity(WireModel):
    """One activity in a Direct Line conversation."""

    type: str = MESSAGE_TYPE
    id: str | None = None
    from_: ChannelAccount | None = Field(default=None, alias="from")
    text: str | None = None
    text_format: str | None = None
    locale: str | None = None
    speak: str | None = None
    input_hint: str | None = None
    attachment_layout: str | None = None
    attachments: list[dict[str, Any]] | None = None
    suggested_actions: dict[str, Any] | None = None
    channel_data: Any = None
    timestamp: str | None = None

    @property
    def sender_name(self) -> str | None:
        return self.from_.name if self.from_ else None


class ActivitySet(WireModel):
    """Result of a fetch: activities at/after the requested watermark."""

    activities: list[Activity] = Field(default_factory=list)
    watermark: str | None = None


@dataclass(frozen=True)
class BackendSession:
    """Handle returned by session creation."""

    session_id: str
    token: str
