"""Shared fixtures for relaybridge tests."""

from __future__ import annotations

import pytest

from relaybridge.core.relay.coordinator import RelayCoordinator
from relaybridge.core.relay.poller import ReplyPoller
from relaybridge.core.session.registry import SessionRegistry
from tests.fakes import BOT_NAME, FakeBackend, RecordingSink


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def registry(backend: FakeBackend) -> SessionRegistry:
    return SessionRegistry(backend, idle_ttl_seconds=3600.0, sweep_interval_seconds=0.01)


@pytest.fixture()
def poller(backend: FakeBackend) -> ReplyPoller:
    return ReplyPoller(backend, BOT_NAME, interval_seconds=0.0, max_attempts=5)


@pytest.fixture()
def coordinator(
    registry: SessionRegistry, backend: FakeBackend, poller: ReplyPoller
) -> RelayCoordinator:
    return RelayCoordinator(registry, backend, poller)
