"""Base abstraction for the signaling connection a handle talks through."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from januskit.models.message import InboundMessage

__all__ = ["ReceiveCallback", "Transport"]

# Called once per inbound message, in delivery order
ReceiveCallback = Callable[[InboundMessage], Any]


class Transport(ABC):
    """A persistent connection to the gateway.

    The transport owns connection setup, keep-alive and reconnection.
    Handles only need two things from it: a way to send a request and a
    single receiver that gets every inbound message in delivery order.

    Lifecycle:
        1. Create the transport and call ``set_receiver(router.route)``
        2. Open the connection (transport-specific, e.g. ``connect()``)
        3. Handles call ``send(payload)``; the transport calls the receiver
           for every inbound message
        4. Call ``close()`` to release the connection
    """

    def __init__(self) -> None:
        self._receiver: ReceiveCallback | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in logs, e.g. ``"websocket:wss://janus/"``."""
        ...

    @abstractmethod
    async def send(self, payload: dict[str, Any]) -> None:
        """Send one request payload.

        Raises:
            TransportError: If the request could not be sent.
        """
        ...

    async def close(self) -> None:
        """Release the connection.

        The default implementation does nothing.
        """
        return None

    def set_receiver(self, receiver: ReceiveCallback | None) -> None:
        self._receiver = receiver

    def _dispatch(self, message: InboundMessage) -> Any:
        """Hand *message* to the receiver, if one is set."""
        if self._receiver is None:
            return None
        return self._receiver(message)
