"""
Direct Line client — the backend side of the relay.

Implements both collaborators the core consumes:

  create_session()   token acquisition + conversation start
  post_activity()    send the user's message into the conversation
  get_activities()   replay activities from a watermark

Token acquisition uses the configured token endpoint (Copilot Studio style,
``GET`` returning ``{"token": ...}``) or, when only a Direct Line secret is
configured, ``POST /tokens/generate``.

All transport failures are mapped onto the relaybridge exception types so
callers never see ``httpx`` errors.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from relaybridge.backend.models import Activity, ActivitySet, BackendSession
from relaybridge.core.config import BackendConfig
from relaybridge.core.exceptions import ForwardError, PollFetchError, SessionCreationError

logger = structlog.get_logger()


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class DirectLineClient:
    """Async Direct Line 3.0 client sharing one ``httpx.AsyncClient``."""

    def __init__(
        self,
        config: BackendConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._base_url = config.base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=config.request_timeout_seconds)

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Session creation
    # ------------------------------------------------------------------

    async def _acquire_token(self) -> str:
        if self._config.token_endpoint:
            resp = await self._client.get(self._config.token_endpoint)
        else:
            resp = await self._client.post(
                f"{self._base_url}/tokens/generate",
                headers=_bearer(self._config.directline_secret),
            )
        resp.raise_for_status()
        token = resp.json().get("token")
        if not token:
            raise SessionCreationError("token response did not contain a token")
        return str(token)

    async def create_session(self) -> BackendSession:
        try:
            token = await self._acquire_token()
            resp = await self._client.post(
                f"{self._base_url}/conversations",
                headers=_bearer(token),
            )
            resp.raise_for_status()
            body: dict[str, Any] = resp.json()
        except httpx.HTTPStatusError as exc:
            raise SessionCreationError(
                f"session creation rejected: HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise SessionCreationError(f"session creation failed: {exc}") from exc

        session_id = body.get("conversationId")
        if not session_id:
            raise SessionCreationError("conversation start did not return a conversationId")

        # The start call may hand back a conversation-scoped token
        session = BackendSession(session_id=str(session_id), token=str(body.get("token") or token))
        logger.info("backend_session_created", session_id=session.session_id[:8])
        return session

    # ------------------------------------------------------------------
    # Activities
    # ------------------------------------------------------------------

    async def post_activity(self, session_id: str, token: str, activity: Activity) -> str:
        try:
            resp = await self._client.post(
                f"{self._base_url}/conversations/{session_id}/activities",
                headers=_bearer(token),
                json=activity.to_wire(),
            )
            resp.raise_for_status()
            return str(resp.json().get("id", ""))
        except httpx.HTTPStatusError as exc:
            raise ForwardError(
                f"post activity rejected: HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ForwardError(f"post activity failed: {exc}") from exc

    async def get_activities(self, session_id: str, token: str, watermark: str) -> ActivitySet:
        params = {"watermark": watermark} if watermark else None
        try:
            resp = await self._client.get(
                f"{self._base_url}/conversations/{session_id}/activities",
                headers=_bearer(token),
                params=params,
            )
            resp.raise_for_status()
            return ActivitySet.model_validate(resp.json())
        except httpx.HTTPStatusError as exc:
            raise PollFetchError(
                f"get activities rejected: HTTP {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise PollFetchError(f"get activities failed: {exc}") from exc
