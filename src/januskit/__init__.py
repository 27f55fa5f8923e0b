"""januskit - async Python adapter for the Janus WebRTC gateway signaling API."""

from januskit._version import __version__
from januskit.config import JanusConfig
from januskit.core.classifier import (
    ClassifierRule,
    MessageClassifier,
    RuleClassifier,
    error_rule,
    generic_result_rule,
    named_event_rule,
)
from januskit.core.errors import (
    DuplicateTransactionError,
    HandleDetachedError,
    JanusKitError,
    MalformedAnswerError,
    ProtocolError,
    TransactionTimeoutError,
    TransportError,
    UnexpectedResponseTagError,
    ValidationError,
)
from januskit.core.handle import Handle
from januskit.core.observers import ObserverRegistry, Subscription
from januskit.core.router import HandleRouter
from januskit.core.transactions import Transaction, TransactionRegistry, TransactionState
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
from januskit.plugins.base import PluginDescriptor
from januskit.plugins.sip import (
    SIP_EVENTS,
    SIP_PLUGIN,
    SipEvent,
    SipHandle,
    SipRegistration,
    map_native_event,
)
from januskit.transport.base import ReceiveCallback, Transport
from januskit.transport.mock import MockTransport

__all__ = [
    "__version__",
    # Config
    "JanusConfig",
    # Core
    "ClassifierRule",
    "Handle",
    "HandleRouter",
    "MessageClassifier",
    "ObserverRegistry",
    "RuleClassifier",
    "Subscription",
    "Transaction",
    "TransactionRegistry",
    "TransactionState",
    "error_rule",
    "generic_result_rule",
    "named_event_rule",
    # Errors
    "DuplicateTransactionError",
    "HandleDetachedError",
    "JanusKitError",
    "MalformedAnswerError",
    "ProtocolError",
    "TransactionTimeoutError",
    "TransportError",
    "UnexpectedResponseTagError",
    "ValidationError",
    # Models
    "HandleEvent",
    "InboundMessage",
    "JanusErrorBody",
    "Jsep",
    "MessageKind",
    "NormalizedEvent",
    "PluginData",
    "ProtocolTrace",
    "Reply",
    # Plugins
    "PluginDescriptor",
    "SIP_EVENTS",
    "SIP_PLUGIN",
    "SipEvent",
    "SipHandle",
    "SipRegistration",
    "map_native_event",
    # Transports
    "MockTransport",
    "ReceiveCallback",
    "Transport",
]
