"""Chat relay: real-time message routing with presence and push fallback."""
__version__ = "0.1.0"
