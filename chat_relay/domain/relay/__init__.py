"""Relay domain: registry, token cache, push dispatch, message relay, presence."""
