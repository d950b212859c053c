"""Reply polling and turn coordination."""

from relaybridge.core.relay.coordinator import RelayCoordinator
from relaybridge.core.relay.poller import OutboundSink, PollOutcome, ReplyPoller

__all__ = [
    "OutboundSink",
    "PollOutcome",
    "RelayCoordinator",
    "ReplyPoller",
]
