"""
Channel endpoint — FastAPI app receiving Bot Framework activities.

Routes:
    POST /api/messages   — inbound activity; replies returned in the body
    GET  /healthz        — liveness and session count

Replies use expect-replies delivery: every activity the agent produced for
the turn comes back as ``{"activities": [...]}`` on the same request.

The app owns the process-scoped services: one DirectLineClient, one
SessionRegistry (with its sweep task), one RelayCoordinator.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from relaybridge import __version__
from relaybridge.backend.directline import DirectLineClient
from relaybridge.backend.protocol import AgentBackend
from relaybridge.channel.models import ChannelActivity, OutboundActivity
from relaybridge.core.config import RelayBridgeConfig
from relaybridge.core.exceptions import RelayBridgeError
from relaybridge.core.relay.coordinator import RelayCoordinator
from relaybridge.core.relay.poller import ReplyPoller
from relaybridge.core.session.registry import SessionRegistry

logger = structlog.get_logger()

TURN_ERROR_TEXT = "The bot encountered an error or bug."


class CollectingSink:
    """Outbound sink that buffers replies for the HTTP response."""

    def __init__(self) -> None:
        self.activities: list[OutboundActivity] = []

    async def send_activities(self, activities: Sequence[OutboundActivity]) -> None:
        self.activities.extend(activities)

    def to_wire(self) -> list[dict[str, Any]]:
        return [a.to_wire() for a in self.activities]


def build_coordinator(config: RelayBridgeConfig, backend: AgentBackend) -> RelayCoordinator:
    registry = SessionRegistry(
        backend,
        idle_ttl_seconds=config.sessions.idle_eviction_seconds,
        sweep_interval_seconds=config.sessions.sweep_interval_seconds,
    )
    poller = ReplyPoller.from_config(backend, config.backend.bot_name, config.polling)
    return RelayCoordinator(registry, backend, poller)


def create_app(config: RelayBridgeConfig, backend: AgentBackend | None = None) -> FastAPI:
    """Build the channel app.

    ``backend`` defaults to a DirectLineClient for ``config.backend``; tests
    pass a fake.
    """
    owns_backend = backend is None
    if backend is None:
        backend = DirectLineClient(config.backend)
    coordinator = build_coordinator(config, backend)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        sweep = asyncio.create_task(coordinator.registry.sweep_loop())
        logger.info("relay_started", bot_name=config.backend.bot_name, version=__version__)
        try:
            yield
        finally:
            sweep.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweep
            if owns_backend and isinstance(backend, DirectLineClient):
                await backend.aclose()
            logger.info("relay_stopped")

    app = FastAPI(title="relaybridge", version=__version__, lifespan=lifespan)
    app.state.coordinator = coordinator

    @app.post("/api/messages")
    async def post_messages(request: Request) -> JSONResponse:
        try:
            activity = ChannelActivity.model_validate(await request.json())
        except (ValidationError, ValueError) as exc:
            logger.warning("inbound_activity_invalid", error=str(exc))
            return JSONResponse({"error": "invalid activity"}, status_code=400)

        sink = CollectingSink()
        try:
            outcome = await coordinator.handle_activity(activity, sink)
        except RelayBridgeError as exc:
            logger.error(
                "relay_turn_failed",
                conversation_id=activity.conversation.id[:16],
                error_type=type(exc).__name__,
                error=str(exc),
            )
            error_reply = OutboundActivity(text=TURN_ERROR_TEXT, reply_to_id=activity.id)
            return JSONResponse({"activities": [error_reply.to_wire()]}, status_code=502)

        body: dict[str, Any] = {"activities": sink.to_wire()}
        if outcome is not None:
            body["outcome"] = outcome.value
        return JSONResponse(body)

    @app.get("/healthz")
    async def healthz() -> dict[str, Any]:
        return {"status": "ok", "sessions": coordinator.registry.active_count}

    return app


def start_server(config: RelayBridgeConfig) -> None:
    """Run the channel app under uvicorn (blocking)."""
    import uvicorn

    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_config=None,
    )
