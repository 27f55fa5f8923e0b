"""Protocol trace model for handle observability."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal


@dataclass(frozen=True)
class ProtocolTrace:
    """A single signaling message seen by a handle.

    Disabled by default; a handle only builds traces once an emitter is set.

    Attributes:
        handle_id: Which handle saw the message.
        direction: Whether the message was inbound or outbound.
        summary: Human-readable one-liner (e.g. "message register").
        payload: The decoded wire payload.
        transaction: Correlation id carried by the message, if any.
        timestamp: When the trace was captured.
    """

    handle_id: int | str
    direction: Literal["inbound", "outbound"]
    summary: str
    payload: dict[str, Any] = field(default_factory=dict)
    transaction: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
