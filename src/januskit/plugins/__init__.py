"""Plugin handles for januskit."""

from januskit.plugins.base import PluginDescriptor
from januskit.plugins.sip import (
    NATIVE_EVENTS,
    SIP_EVENTS,
    SIP_PLUGIN,
    SipEvent,
    SipHandle,
    SipRegistration,
    build_sip_classifier,
    map_native_event,
)

__all__ = [
    "NATIVE_EVENTS",
    "SIP_EVENTS",
    "SIP_PLUGIN",
    "PluginDescriptor",
    "SipEvent",
    "SipHandle",
    "SipRegistration",
    "build_sip_classifier",
    "map_native_event",
]
