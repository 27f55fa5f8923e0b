"""String enums shared by every handle type."""

from __future__ import annotations

from enum import StrEnum, unique


@unique
class MessageKind(StrEnum):
    """Value of the top-level ``janus`` field of a gateway message."""

    EVENT = "event"
    SUCCESS = "success"
    ACK = "ack"
    ERROR = "error"
    HANGUP = "hangup"
    WEBRTC_UP = "webrtcup"
    MEDIA = "media"
    SLOW_LINK = "slowlink"
    DETACHED = "detached"
    TRICKLE = "trickle"
    TIMEOUT = "timeout"


@unique
class HandleEvent(StrEnum):
    """Plugin-independent events emitted by every handle."""

    WEBRTC_UP = "handle_webrtcup"
    MEDIA = "handle_media"
    SLOW_LINK = "handle_slowlink"
    HANGUP = "handle_hangup"
    DETACHED = "handle_detached"
    TRICKLE = "handle_trickle"
