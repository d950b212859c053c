"""Inbound channel boundary: Bot Framework activities over HTTP."""
