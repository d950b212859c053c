"""Conversation session registry — maps channel conversations to backend sessions."""

from relaybridge.core.session.models import SessionEntry
from relaybridge.core.session.registry import SessionRegistry

__all__ = [
    "SessionEntry",
    "SessionRegistry",
]
