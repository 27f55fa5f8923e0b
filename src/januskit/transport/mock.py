"""Mock transport for testing."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from januskit.core.errors import TransportError
from januskit.models.message import InboundMessage
from januskit.transport.base import Transport

# Given a sent payload, returns the replies to deliver (or None for no reply)
Responder = Callable[[dict[str, Any]], list[dict[str, Any]] | dict[str, Any] | None]


class MockTransport(Transport):
    """Records outbound requests and delivers synthetic inbound messages.

    Replies produced by ``responder`` are delivered on the next loop
    iteration, after the sending coroutine has suspended on its
    transaction, the way a real connection would deliver them.
    """

    def __init__(self, responder: Responder | None = None) -> None:
        super().__init__()
        self.sent: list[dict[str, Any]] = []
        self.delivered: list[InboundMessage] = []
        self.responder = responder
        self.send_error: Exception | None = None
        self.closed = False

    @property
    def name(self) -> str:
        return "mock"

    @property
    def last_sent(self) -> dict[str, Any] | None:
        return self.sent[-1] if self.sent else None

    async def send(self, payload: dict[str, Any]) -> None:
        if self.closed:
            raise TransportError("Transport closed")
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(payload)
        if self.responder is None:
            return
        replies = self.responder(payload)
        if replies is None:
            return
        if isinstance(replies, dict):
            replies = [replies]
        loop = asyncio.get_running_loop()
        for reply in replies:
            loop.call_soon(self.deliver, reply)

    def deliver(self, raw: InboundMessage | dict[str, Any] | str | bytes) -> Any:
        """Push an inbound message to the receiver and return its result."""
        message = InboundMessage.from_raw(raw)
        self.delivered.append(message)
        return self._dispatch(message)

    async def close(self) -> None:
        self.closed = True
