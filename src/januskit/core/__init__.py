"""Transaction correlation and message dispatch."""

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

__all__ = [
    "ClassifierRule",
    "DuplicateTransactionError",
    "Handle",
    "HandleDetachedError",
    "HandleRouter",
    "JanusKitError",
    "MalformedAnswerError",
    "MessageClassifier",
    "ObserverRegistry",
    "ProtocolError",
    "RuleClassifier",
    "Subscription",
    "Transaction",
    "TransactionRegistry",
    "TransactionState",
    "TransactionTimeoutError",
    "TransportError",
    "UnexpectedResponseTagError",
    "ValidationError",
    "error_rule",
    "generic_result_rule",
    "named_event_rule",
]
