"""Message models and enums."""

from januskit.models.enums import HandleEvent, MessageKind
from januskit.models.message import (
    InboundMessage,
    JanusErrorBody,
    Jsep,
    NormalizedEvent,
    PluginData,
    Reply,
)
from januskit.models.trace import ProtocolTrace

__all__ = [
    "HandleEvent",
    "InboundMessage",
    "JanusErrorBody",
    "Jsep",
    "MessageKind",
    "NormalizedEvent",
    "PluginData",
    "ProtocolTrace",
    "Reply",
]
