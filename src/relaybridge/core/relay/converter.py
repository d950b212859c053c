"""Backend → channel activity conversion.

Pure and order-preserving: one outbound activity per backend activity,
carrying the presentation fields the end-user channel renders.
"""

from __future__ import annotations

from collections.abc import Iterable

from relaybridge.backend.models import Activity
from relaybridge.channel.models import OutboundActivity

_COPIED_FIELDS = (
    "type",
    "text",
    "text_format",
    "locale",
    "speak",
    "input_hint",
    "attachment_layout",
    "attachments",
    "suggested_actions",
    "channel_data",
)


def convert_activity(activity: Activity) -> OutboundActivity:
    return OutboundActivity(**{name: getattr(activity, name) for name in _COPIED_FIELDS})


def convert_activities(activities: Iterable[Activity]) -> list[OutboundActivity]:
    """Convert backend activities to channel activities, keeping order."""
    return [convert_activity(a) for a in activities]
