"""Exception hierarchy for januskit."""

from __future__ import annotations

__all__ = [
    "DuplicateTransactionError",
    "HandleDetachedError",
    "JanusKitError",
    "MalformedAnswerError",
    "ProtocolError",
    "TransactionTimeoutError",
    "TransportError",
    "UnexpectedResponseTagError",
    "ValidationError",
]


class JanusKitError(Exception):
    """Base exception for all januskit errors."""


class ValidationError(JanusKitError, ValueError):
    """Caller input was rejected before anything was sent."""


class MalformedAnswerError(ValidationError):
    """A negotiation answer is missing its ``answer`` type or its SDP body."""


class ProtocolError(JanusKitError):
    """The gateway or a plugin reported an error for a request.

    Attributes:
        code: Numeric error code reported by the server, if any.
        reason: Human-readable error text reported by the server.
    """

    def __init__(self, code: int | None, reason: str) -> None:
        super().__init__(f"{code} {reason}" if code is not None else reason)
        self.code = code
        self.reason = reason


class UnexpectedResponseTagError(JanusKitError):
    """A request settled successfully but with an event it does not accept."""

    def __init__(self, request: str, tag: str | None) -> None:
        super().__init__(f"{request} error: unexpected response event {tag!r}")
        self.request = request
        self.tag = tag


class DuplicateTransactionError(JanusKitError):
    """A correlation id is already pending in the registry."""

    def __init__(self, transaction_id: str) -> None:
        super().__init__(f"Transaction {transaction_id!r} is already pending")
        self.transaction_id = transaction_id


class HandleDetachedError(JanusKitError):
    """The handle was detached while, or before, a request was pending."""

    def __init__(self, handle_id: int | str, reason: str = "detached") -> None:
        super().__init__(f"Handle {handle_id} {reason}")
        self.handle_id = handle_id
        self.reason = reason


class TransactionTimeoutError(JanusKitError, TimeoutError):
    """No reply settled a transaction within the allotted time."""

    def __init__(self, transaction_id: str, timeout: float) -> None:
        super().__init__(f"Transaction {transaction_id!r} timed out after {timeout:.1f}s")
        self.transaction_id = transaction_id
        self.timeout = timeout


class TransportError(JanusKitError):
    """The transport could not deliver a request."""
