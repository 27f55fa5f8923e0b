"""Wire and normalized message models."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, field_validator


class Jsep(BaseModel):
    """A negotiation payload (SDP offer or answer) riding on a message."""

    type: str
    sdp: str
    trickle: bool | None = None

    model_config = {"extra": "allow", "frozen": True}


class PluginData(BaseModel):
    """Plugin namespace and plugin-specific body of a gateway message."""

    plugin: str
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = {"extra": "allow", "frozen": True}


class JanusErrorBody(BaseModel):
    """Gateway-level error body (``{"janus": "error", "error": {...}}``)."""

    code: int | None = None
    reason: str = ""

    model_config = {"extra": "allow", "frozen": True}


class InboundMessage(BaseModel):
    """A message pushed by the gateway over the signaling connection.

    Immutable once received.  Fields the model does not know about are
    kept so handlers further up the chain can still inspect them.
    """

    janus: str
    transaction: str | None = None
    session_id: int | str | None = None
    sender: int | str | None = None
    plugindata: PluginData | None = None
    jsep: Jsep | None = None
    error: JanusErrorBody | None = None

    model_config = {"extra": "allow", "frozen": True}

    @field_validator("transaction", mode="before")
    @classmethod
    def normalize_transaction(cls, v: Any) -> Any:
        # Correlation ids are opaque; compare them as strings
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @classmethod
    def from_raw(cls, raw: InboundMessage | dict[str, Any] | str | bytes) -> InboundMessage:
        """Build a message from a decoded dict or raw JSON text."""
        if isinstance(raw, InboundMessage):
            return raw
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        if isinstance(raw, str):
            raw = json.loads(raw)
        return cls.model_validate(raw)

    @property
    def correlation_id(self) -> str | None:
        return self.transaction

    @property
    def plugin_namespace(self) -> str | None:
        return self.plugindata.plugin if self.plugindata is not None else None

    @property
    def body(self) -> dict[str, Any]:
        """The plugin-specific body, or an empty dict for non-plugin messages."""
        return self.plugindata.data if self.plugindata is not None else {}


@dataclass(frozen=True)
class NormalizedEvent:
    """A classifier's interpretation of an inbound message.

    ``event`` is ``None`` when no classifier rule recognized the message.
    ``data`` is an exception only for the error branch.
    """

    event: str | None
    data: dict[str, Any] | Exception

    @property
    def is_error(self) -> bool:
        return isinstance(self.data, Exception)


@dataclass(frozen=True)
class Reply:
    """Value a successfully settled transaction resolves with."""

    message: InboundMessage
    event: NormalizedEvent | None = None

    @property
    def tag(self) -> str | None:
        return self.event.event if self.event is not None else None
