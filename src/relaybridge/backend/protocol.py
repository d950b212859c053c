"""Collaborator protocols consumed by the relay core."""

from __future__ import annotations

from typing import Protocol

from relaybridge.backend.models import Activity, ActivitySet, BackendSession


class SessionFactory(Protocol):
    async def create_session(self) -> BackendSession:
        """Start a backend conversation. Raises SessionCreationError."""
        ...


class ActivityStream(Protocol):
    async def post_activity(self, session_id: str, token: str, activity: Activity) -> str:
        """Send one activity. Returns its id. Raises ForwardError."""
        ...

    async def get_activities(self, session_id: str, token: str, watermark: str) -> ActivitySet:
        """Fetch activities after ``watermark``. Raises PollFetchError."""
        ...


class AgentBackend(SessionFactory, ActivityStream, Protocol):
    """Both collaborators, as implemented by DirectLineClient."""
