"""Routes inbound messages from a transport to the handle they belong to."""

from __future__ import annotations

import logging
from typing import Any

from januskit.core.handle import Handle
from januskit.models.message import InboundMessage, NormalizedEvent
from januskit.transport.base import Transport

logger = logging.getLogger("januskit.router")

__all__ = ["HandleRouter"]


class HandleRouter:
    """Delivers each inbound message to exactly one handle.

    Messages are routed by ``sender`` (the handle id) when present.
    Replies that carry no sender, such as gateway ``ack`` and ``error``
    replies, are routed to the handle that owns their transaction.
    Correlation ids are globally unique, so at most one handle owns any
    given id.

    Args:
        transport: When given, the router installs itself as the
            transport's receiver.
    """

    def __init__(self, transport: Transport | None = None) -> None:
        self._handles: dict[str, Handle] = {}
        if transport is not None:
            transport.set_receiver(self.route)

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, handle_id: object) -> bool:
        return str(handle_id) in self._handles

    def add(self, handle: Handle) -> Handle:
        key = str(handle.id)
        if key in self._handles:
            raise ValueError(f"Handle {handle.id} is already registered")
        self._handles[key] = handle
        return handle

    def get(self, handle_id: int | str) -> Handle | None:
        return self._handles.get(str(handle_id))

    def remove(self, handle_id: int | str, reason: str = "detached") -> Handle | None:
        """Unregister a handle and detach it."""
        handle = self._handles.pop(str(handle_id), None)
        if handle is not None:
            handle.detach(reason)
        return handle

    def close(self, reason: str = "connection closed") -> None:
        """Detach every handle, rejecting all of their pending requests."""
        for handle_id in list(self._handles):
            self.remove(handle_id, reason)

    def route(self, raw: InboundMessage | dict[str, Any] | str | bytes) -> NormalizedEvent | None:
        message = InboundMessage.from_raw(raw)
        handle = self._resolve(message)
        if handle is None:
            logger.debug(
                "No handle for %s message (sender=%s, transaction=%s)",
                message.janus,
                message.sender,
                message.transaction,
            )
            return None

        event = handle.handle_message(message)
        if handle.detached:
            self._handles.pop(str(handle.id), None)
        return event

    def _resolve(self, message: InboundMessage) -> Handle | None:
        if message.sender is not None:
            return self._handles.get(str(message.sender))
        if message.transaction is None:
            return None
        for handle in self._handles.values():
            if handle.owns_transaction(message.transaction):
                return handle
        return None
