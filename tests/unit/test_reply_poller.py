"""Unit tests for ReplyPoller — filtering, watermark handling, timeouts."""

from __future__ import annotations

import pytest

from relaybridge.core.config import PollingConfig
from relaybridge.core.exceptions import PollFetchError
from relaybridge.core.relay.poller import PollOutcome, ReplyPoller
from relaybridge.core.session.models import SessionEntry
from tests.fakes import BOT_NAME, agent_msg, fetch, typing, user_msg


def _entry(cursor: str = "") -> SessionEntry:
    return SessionEntry(
        conversation_id="conv-1", session_id="dl-conv-1", token="token-1", cursor=cursor
    )


# ---------------------------------------------------------------------------
# Relaying
# ---------------------------------------------------------------------------


class TestRelay:
    @pytest.mark.asyncio()
    async def test_empty_then_reply(self, poller, backend, sink):
        """Empty fetch at watermark 0 continues; reply at 3 is relayed."""
        entry = _entry()
        backend.fetches = [
            fetch(watermark="0"),
            fetch(agent_msg("Hi, how can I help?"), watermark="3"),
        ]

        outcome = await poller.poll_and_relay(entry, sink)

        assert outcome == PollOutcome.COMPLETED
        assert entry.cursor == "3"
        assert sink.texts == ["Hi, how can I help?"]
        assert backend.fetch_watermarks == ["", ""]

    @pytest.mark.asyncio()
    async def test_fetches_from_entry_cursor(self, poller, backend, sink):
        entry = _entry(cursor="4")
        backend.fetches = [fetch(agent_msg("later"), watermark="6")]
        await poller.poll_and_relay(entry, sink)
        assert backend.fetch_watermarks == ["4"]
        assert entry.cursor == "6"

    @pytest.mark.asyncio()
    async def test_only_agent_messages_relayed_in_order(self, poller, backend, sink):
        entry = _entry()
        backend.fetches = [
            fetch(
                user_msg("what is my balance?"),
                agent_msg("Let me check."),
                typing(),
                agent_msg("Your balance is 42.", name="Other Bot"),
                agent_msg("It is 42."),
                watermark="5",
            )
        ]

        await poller.poll_and_relay(entry, sink)

        assert len(sink.batches) == 1
        assert sink.texts == ["Let me check.", "It is 42."]

    @pytest.mark.asyncio()
    async def test_sender_match_is_case_sensitive(self, poller, backend, sink):
        entry = _entry()
        backend.fetches = [fetch(agent_msg("hello", name=BOT_NAME.lower()), watermark="2")]

        outcome = await poller.poll_and_relay(entry, sink)

        assert outcome == PollOutcome.TIMED_OUT
        assert sink.batches == []
        assert entry.cursor == ""

    @pytest.mark.asyncio()
    async def test_cursor_strictly_increases_across_polls(self, poller, backend, sink):
        entry = _entry()
        seen: list[int] = []
        for wm in ("2", "5", "9"):
            backend.fetches = [fetch(agent_msg(f"reply {wm}"), watermark=wm)]
            assert await poller.poll_and_relay(entry, sink) == PollOutcome.COMPLETED
            seen.append(entry.cursor_value())
        assert seen == [2, 5, 9]


# ---------------------------------------------------------------------------
# Interleave abort
# ---------------------------------------------------------------------------


class TestInterleaveAbort:
    @pytest.mark.asyncio()
    async def test_equal_watermark_aborts(self, poller, backend, sink):
        entry = _entry(cursor="5")
        backend.fetches = [fetch(agent_msg("stale"), watermark="5")]

        outcome = await poller.poll_and_relay(entry, sink)

        assert outcome == PollOutcome.ABORTED_BY_SENDER_INTERLEAVE
        assert entry.cursor == "5"
        assert sink.batches == []

    @pytest.mark.asyncio()
    async def test_lower_watermark_aborts(self, poller, backend, sink):
        entry = _entry(cursor="8")
        backend.fetches = [fetch(agent_msg("stale"), watermark="6")]
        assert await poller.poll_and_relay(entry, sink) == PollOutcome.ABORTED_BY_SENDER_INTERLEAVE
        assert entry.cursor == "8"

    @pytest.mark.asyncio()
    async def test_missing_watermark_counts_as_zero(self, poller, backend, sink):
        entry = _entry()
        backend.fetches = [fetch(agent_msg("no watermark"), watermark=None)]
        assert await poller.poll_and_relay(entry, sink) == PollOutcome.ABORTED_BY_SENDER_INTERLEAVE
        assert entry.cursor == ""

    @pytest.mark.asyncio()
    async def test_abort_stops_polling(self, poller, backend, sink):
        entry = _entry(cursor="5")
        backend.fetches = [
            fetch(agent_msg("stale"), watermark="5"),
            fetch(agent_msg("fresh"), watermark="7"),
        ]
        await poller.poll_and_relay(entry, sink)
        assert len(backend.fetch_watermarks) == 1


# ---------------------------------------------------------------------------
# Timeout and fetch failures
# ---------------------------------------------------------------------------


class TestTimeout:
    @pytest.mark.asyncio()
    async def test_times_out_after_max_attempts(self, poller, backend, sink):
        entry = _entry(cursor="3")

        outcome = await poller.poll_and_relay(entry, sink)

        assert outcome == PollOutcome.TIMED_OUT
        assert len(backend.fetch_watermarks) == poller.max_attempts
        assert sink.batches == []
        assert entry.cursor == "3"

    @pytest.mark.asyncio()
    async def test_user_echo_alone_times_out(self, poller, backend, sink):
        entry = _entry()
        backend.fetches = [fetch(user_msg("hello"), watermark="1")] * 5
        assert await poller.poll_and_relay(entry, sink) == PollOutcome.TIMED_OUT
        assert entry.cursor == ""

    @pytest.mark.asyncio()
    async def test_fetch_error_consumes_attempt(self, poller, backend, sink):
        entry = _entry()
        backend.fetches = [
            PollFetchError("HTTP 502", status_code=502),
            PollFetchError("HTTP 502", status_code=502),
            fetch(agent_msg("recovered"), watermark="4"),
        ]

        outcome = await poller.poll_and_relay(entry, sink)

        assert outcome == PollOutcome.COMPLETED
        assert len(backend.fetch_watermarks) == 3
        assert sink.texts == ["recovered"]

    @pytest.mark.asyncio()
    async def test_persistent_fetch_errors_time_out(self, backend, sink):
        poller = ReplyPoller(backend, BOT_NAME, interval_seconds=0.0, max_attempts=3)
        backend.fetches = [PollFetchError("down")] * 3
        assert await poller.poll_and_relay(_entry(), sink) == PollOutcome.TIMED_OUT
        assert len(backend.fetch_watermarks) == 3

    @pytest.mark.asyncio()
    async def test_fetch_errors_still_wait_interval(self, backend, sink, monkeypatch):
        sleeps: list[float] = []

        async def _fake_sleep(delay: float) -> None:
            sleeps.append(delay)

        monkeypatch.setattr("relaybridge.core.relay.poller.asyncio.sleep", _fake_sleep)
        poller = ReplyPoller(backend, BOT_NAME, interval_seconds=1.0, max_attempts=2)
        backend.fetches = [PollFetchError("down"), PollFetchError("down")]

        await poller.poll_and_relay(_entry(), sink)

        assert sleeps == [1.0, 1.0]


class TestFromConfig:
    def test_attempts_derived_from_timeout(self, backend):
        polling = PollingConfig(interval_ms=500, response_timeout_ms=10_000)
        poller = ReplyPoller.from_config(backend, BOT_NAME, polling)
        assert poller.max_attempts == 20

    def test_defaults_give_ten_attempts(self, backend):
        poller = ReplyPoller.from_config(backend, BOT_NAME, PollingConfig())
        assert poller.max_attempts == 10
