"""Signaling transports for januskit."""

from typing import Any

from januskit.transport.base import ReceiveCallback, Transport
from januskit.transport.mock import MockTransport

__all__ = [
    "MockTransport",
    "ReceiveCallback",
    "Transport",
    # Lazy import for the optional websockets dependency
    "WebSocketTransport",
]


def __getattr__(name: str) -> Any:
    """Lazy import for optional transports."""
    if name == "WebSocketTransport":
        from januskit.transport.websocket import WebSocketTransport

        return WebSocketTransport
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
