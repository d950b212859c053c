"""relaybridge — relays chat-channel turns to a Direct Line agent backend."""

__version__ = "0.3.0"
