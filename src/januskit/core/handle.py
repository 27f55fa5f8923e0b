"""Handle: the per-plugin-instance dispatcher and request primitive.

Every inbound message addressed to a handle goes through
:meth:`Handle.handle_message`.  The handle asks its classifier what the
message means, settles the owning transaction if there is one, and
broadcasts the event to observers only when nobody was waiting on it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Collection
from typing import Any, ClassVar

from januskit.core.classifier import MessageClassifier
from januskit.core.errors import HandleDetachedError, ProtocolError, UnexpectedResponseTagError
from januskit.core.observers import EventCallback, ObserverRegistry, Subscription
from januskit.core.transactions import TransactionRegistry
from januskit.models.enums import HandleEvent, MessageKind
from januskit.models.message import InboundMessage, Jsep, NormalizedEvent, Reply
from januskit.models.trace import ProtocolTrace
from januskit.transport.base import Transport

logger = logging.getLogger("januskit.handle")

__all__ = ["Handle"]

# Generic gateway messages re-emitted as handle events
_HANDLE_EVENTS: dict[str, HandleEvent] = {
    MessageKind.WEBRTC_UP: HandleEvent.WEBRTC_UP,
    MessageKind.MEDIA: HandleEvent.MEDIA,
    MessageKind.SLOW_LINK: HandleEvent.SLOW_LINK,
    MessageKind.HANGUP: HandleEvent.HANGUP,
    MessageKind.TRICKLE: HandleEvent.TRICKLE,
}


class Handle:
    """A bound attachment to one plugin instance on the gateway.

    Subclasses provide a classifier (override :meth:`_build_classifier`)
    and their request surface on top of :meth:`message`.

    Args:
        handle_id: Gateway-assigned handle id.
        transport: Connection used to send requests.
        session_id: Parent session id, added to every request when set.
        classifier: Overrides the classifier built by the subclass.
        request_timeout: Default seconds to wait for a reply; ``None``
            waits forever.
    """

    plugin_id: ClassVar[str] = ""

    def __init__(
        self,
        handle_id: int | str,
        *,
        transport: Transport,
        session_id: int | str | None = None,
        classifier: MessageClassifier | None = None,
        request_timeout: float | None = 10.0,
    ) -> None:
        self.id = handle_id
        self.session_id = session_id
        self._transport = transport
        self._classifier = classifier if classifier is not None else self._build_classifier()
        self._request_timeout = request_timeout
        self._transactions = TransactionRegistry(owner=handle_id)
        self._observers = ObserverRegistry()
        self._detached = False
        self._trace_emitter: Callable[[ProtocolTrace], Any] | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, session_id={self.session_id!r})"

    def _build_classifier(self) -> MessageClassifier | None:
        """Return the plugin classifier; the base handle has none."""
        return None

    @property
    def detached(self) -> bool:
        return self._detached

    @property
    def transactions(self) -> TransactionRegistry:
        return self._transactions

    def owns_transaction(self, transaction_id: str | None) -> bool:
        return self._transactions.owns(transaction_id)

    # -------------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------------

    def on(self, event: str, callback: EventCallback) -> Subscription:
        """Subscribe *callback* to a normalized event tag.

        The callback receives the event ``data`` (a dict, or an exception
        for error events).  Call ``cancel()`` on the returned subscription
        to stop delivery.
        """
        return self._observers.subscribe(event, callback)

    def off(self, subscription: Subscription | str) -> bool:
        return self._observers.unsubscribe(subscription)

    def listener(self, event: str) -> Callable[[EventCallback], EventCallback]:
        """Decorator form of :meth:`on`.

        Example::

            @handle.listener(SipEvent.INCOMING_CALL)
            async def on_incoming(data):
                ...
        """

        def decorator(callback: EventCallback) -> EventCallback:
            self.on(event, callback)
            return callback

        return decorator

    def set_trace_emitter(self, emitter: Callable[[ProtocolTrace], Any] | None) -> None:
        self._trace_emitter = emitter

    # -------------------------------------------------------------------------
    # Inbound dispatch
    # -------------------------------------------------------------------------

    def handle_message(
        self, raw: InboundMessage | dict[str, Any] | str | bytes
    ) -> NormalizedEvent | None:
        """Dispatch one inbound message addressed to this handle.

        Returns the normalized event, whether or not it was also broadcast,
        or ``None`` when the plugin classifier did not recognize the message.
        """
        message = InboundMessage.from_raw(raw)
        self._trace("inbound", message.janus, message.model_dump(exclude_none=True), message)

        event = self._classifier.classify(message) if self._classifier is not None else None
        if event is None or event.event is None:
            self._handle_generic(message)
            return None

        transaction_id = message.transaction
        owned = self._transactions.owns(transaction_id)
        if event.is_error:
            self._transactions.settle_error(transaction_id, event.data)  # type: ignore[arg-type]
        else:
            self._transactions.settle_success(transaction_id, Reply(message, event))

        if not owned:
            self._observers.emit(event.event, event.data)
        return event

    def _handle_generic(self, message: InboundMessage) -> None:
        """Session-level handling for messages the plugin did not classify."""
        kind = message.janus
        transaction_id = message.transaction

        if kind == MessageKind.ACK:
            # The plugin reply follows asynchronously on the same transaction
            return

        if kind == MessageKind.ERROR:
            body = message.error
            error = ProtocolError(
                body.code if body is not None else None,
                body.reason if body is not None else "unknown error",
            )
            if not self._transactions.settle_error(transaction_id, error):
                logger.warning(
                    "Gateway error for handle %s without pending transaction: %s",
                    self.id,
                    error,
                    extra={"handle_id": self.id, "transaction_id": transaction_id},
                )
            return

        if kind in (MessageKind.SUCCESS, MessageKind.EVENT) and self._transactions.owns(
            transaction_id
        ):
            self._transactions.settle_success(transaction_id, Reply(message))
            return

        if kind == MessageKind.DETACHED:
            self.detach("detached by gateway")
            return

        handle_event = _HANDLE_EVENTS.get(kind)
        if handle_event is not None:
            self._observers.emit(handle_event, message.model_dump(exclude_none=True))
            return

        logger.debug(
            "Unhandled %s message on handle %s",
            kind,
            self.id,
            extra={"handle_id": self.id, "transaction_id": transaction_id},
        )

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------

    async def message(
        self,
        body: dict[str, Any],
        jsep: Jsep | dict[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Reply:
        """Send a plugin request and wait for the reply that settles it.

        Args:
            body: Plugin request body.
            jsep: Optional negotiation payload sent alongside the body.
            timeout: Seconds to wait; defaults to the handle's
                ``request_timeout``.

        Raises:
            HandleDetachedError: If the handle is, or becomes, detached.
            ProtocolError: If the gateway or plugin reports an error.
            TransactionTimeoutError: If no reply arrives in time.
        """
        if self._detached:
            raise HandleDetachedError(self.id)

        transaction_id = self._transactions.new_id()
        payload: dict[str, Any] = {
            "janus": "message",
            "body": body,
            "transaction": transaction_id,
            "handle_id": self.id,
        }
        if self.session_id is not None:
            payload["session_id"] = self.session_id
        if jsep is not None:
            if isinstance(jsep, Jsep):
                jsep = jsep.model_dump(exclude_none=True)
            payload["jsep"] = jsep

        request = body.get("request")
        txn = self._transactions.begin(transaction_id, request=request)
        self._trace("outbound", f"message {request}", payload, None)
        try:
            await self._transport.send(payload)
        except BaseException:
            # Includes cancellation while the send is still in flight
            self._transactions.discard(transaction_id)
            raise

        if timeout is None:
            timeout = self._request_timeout
        return await self._transactions.wait(txn, timeout)  # type: ignore[no-any-return]

    async def _request(
        self,
        body: dict[str, Any],
        accepted: Collection[str],
        jsep: Jsep | dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send *body* and return the event data if its tag is in *accepted*.

        Raises:
            UnexpectedResponseTagError: If the reply carries any other tag.
        """
        reply = await self.message(body, jsep)
        event = reply.event
        if event is not None and not event.is_error and event.event in accepted:
            return event.data  # type: ignore[return-value]
        raise UnexpectedResponseTagError(body.get("request", "message"), reply.tag)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def detach(self, reason: str = "detached") -> int:
        """Detach locally: reject every pending request and drop observers.

        Idempotent.  Sending the gateway ``detach`` request is the parent
        session's job.

        Returns:
            The number of pending requests rejected.
        """
        if self._detached:
            return 0
        self._detached = True
        rejected = self._transactions.reject_all(lambda _txn: HandleDetachedError(self.id, reason))
        logger.info(
            "Handle %s %s (%d pending request(s) rejected)",
            self.id,
            reason,
            rejected,
            extra={"handle_id": self.id},
        )
        self._observers.emit(HandleEvent.DETACHED, {"handle_id": self.id, "reason": reason})
        self._observers.clear()
        return rejected

    def _trace(
        self,
        direction: str,
        summary: str,
        payload: dict[str, Any],
        message: InboundMessage | None,
    ) -> None:
        if self._trace_emitter is None:
            return
        if message is not None:
            transaction = message.transaction
        else:
            transaction = payload.get("transaction")
        self._trace_emitter(
            ProtocolTrace(
                handle_id=self.id,
                direction=direction,  # type: ignore[arg-type]
                summary=summary,
                payload=payload,
                transaction=transaction,
            )
        )
