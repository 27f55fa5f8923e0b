"""SIP plugin handle (``janus.plugin.sip``).

Lets a WebRTC peer register at a SIP server and take calls through the
gateway.  Only the signaling vocabulary lives here; the SIP dialogs
themselves run inside the gateway plugin.

Usage::

    from januskit.plugins.sip import SipEvent, SipHandle

    sip = SipHandle(handle_id, transport=transport, session_id=session_id)
    router.add(sip)

    @sip.listener(SipEvent.INCOMING_CALL)
    async def on_incoming(data):
        await sip.accept(await make_answer(data["jsep"]))

    await sip.register(username="sip:500@pbx.example.com", secret="s")
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import StrEnum, unique
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, SecretStr, field_validator
from pydantic import ValidationError as PydanticValidationError

from januskit.core.classifier import (
    RuleClassifier,
    error_rule,
    generic_result_rule,
    named_event_rule,
)
from januskit.core.errors import MalformedAnswerError, ValidationError
from januskit.core.handle import Handle
from januskit.models.message import Jsep
from januskit.plugins.base import PluginDescriptor

logger = logging.getLogger("januskit.plugins.sip")

PLUGIN_ID = "janus.plugin.sip"

REQUEST_ACCEPT = "accept"
REQUEST_DECLINE = "decline"
REQUEST_DTMF = "dtmf_info"
REQUEST_HANGUP = "hangup"
REQUEST_REGISTER = "register"
REQUEST_UNREGISTER = "unregister"


@unique
class SipEvent(StrEnum):
    """Normalized SIP event tags."""

    ACCEPTED = "sip_accepted"
    DECLINING = "sip_declining"
    DTMF_INFO = "sip_dtmf_info"
    DTMF_SENT = "sip_dtmfsent"
    ERROR = "sip_error"
    GENERIC = "sip_generic"
    HANGUP = "sip_hangup"
    HANGINGUP = "sip_hangingup"
    HOLD = "sip_hold"
    INCOMING_CALL = "sip_incomingcall"
    INFO = "sip_info"
    REGISTERED = "sip_registered"
    REGISTERING = "sip_registering"
    REGISTRATION_FAILED = "sip_registration_failed"
    UNHOLD = "sip_unhold"
    UNREGISTERED = "sip_unregistered"
    UNREGISTERING = "sip_unregistering"


# Native ``result.event`` tokens -> normalized tags
NATIVE_EVENTS: Mapping[str, SipEvent] = MappingProxyType(
    {
        # call events
        "incomingcall": SipEvent.INCOMING_CALL,
        "accepted": SipEvent.ACCEPTED,
        "hangingup": SipEvent.HANGINGUP,
        "hangup": SipEvent.HANGUP,
        "declining": SipEvent.DECLINING,
        "dtmfsent": SipEvent.DTMF_SENT,
        # registration events
        "registering": SipEvent.REGISTERING,
        "registered": SipEvent.REGISTERED,
        "unregistering": SipEvent.UNREGISTERING,
        "unregistered": SipEvent.UNREGISTERED,
        "registration_failed": SipEvent.REGISTRATION_FAILED,
    }
)

# Stable vocabulary exported to applications
SIP_EVENTS: Mapping[str, SipEvent] = MappingProxyType(
    {
        "ERROR": SipEvent.ERROR,
        "INCOMING_CALL": SipEvent.INCOMING_CALL,
        "REGISTERED": SipEvent.REGISTERED,
        "UNREGISTERED": SipEvent.UNREGISTERED,
        "HANGUP": SipEvent.HANGUP,
        "REGISTRATION_FAILED": SipEvent.REGISTRATION_FAILED,
    }
)


def map_native_event(token: Any) -> SipEvent | None:
    """Map a native SIP plugin event token to its tag, or ``None``."""
    if not isinstance(token, str):
        return None
    return NATIVE_EVENTS.get(token)


def build_sip_classifier() -> RuleClassifier:
    """Named events win over the generic fallback; errors are checked last."""
    return RuleClassifier(
        PLUGIN_ID,
        [
            named_event_rule(map_native_event),
            # Stop-gap: results the taxonomy does not enumerate yet
            generic_result_rule(SipEvent.GENERIC),
            error_rule(SipEvent.ERROR),
        ],
        discriminator=("sip", "event"),
    )


class SipRegistration(BaseModel):
    """Parameters of a ``register`` request.

    Extra fields (``authuser``, ``outbound_proxy``, ``headers``, ...) are
    passed through to the plugin unchanged.
    """

    username: str | None = None
    display_name: str | None = None
    proxy: str | None = None
    secret: SecretStr | None = None

    model_config = {"extra": "allow"}

    @field_validator("username", "proxy")
    @classmethod
    def validate_sip_uri(cls, v: str | None) -> str | None:
        if v is not None and not v.startswith(("sip:", "sips:")):
            raise ValueError(f"expected a sip: or sips: URI, got {v!r}")
        return v

    def to_body(self) -> dict[str, Any]:
        body = self.model_dump(exclude_none=True, exclude={"secret"})
        if self.secret is not None:
            body["secret"] = self.secret.get_secret_value()
        body["request"] = REQUEST_REGISTER
        return body


def _validate_answer(answer: Any) -> Jsep:
    if isinstance(answer, Jsep):
        jsep = answer
    elif isinstance(answer, Mapping):
        try:
            jsep = Jsep.model_validate(dict(answer))
        except PydanticValidationError as exc:
            raise MalformedAnswerError(
                f"{REQUEST_ACCEPT} error, SDP answer packet is malformed"
            ) from exc
    else:
        raise MalformedAnswerError(f"{REQUEST_ACCEPT} error, SDP answer packet is malformed")
    if jsep.type != "answer" or not jsep.sdp:
        raise MalformedAnswerError(f"{REQUEST_ACCEPT} error, SDP answer packet is malformed")
    return jsep


class SipHandle(Handle):
    """Handle attached to the SIP plugin.

    Every request resolves with the normalized event data of its reply.
    Most requests also accept the plugin's ``generic`` acknowledgement;
    :meth:`accept` only succeeds on an ``accepted`` event.
    """

    plugin_id = PLUGIN_ID

    def _build_classifier(self) -> RuleClassifier:
        return build_sip_classifier()

    async def register(
        self,
        *,
        username: str | None = None,
        proxy: str | None = None,
        secret: str | None = None,
        display_name: str | None = None,
        **extra: Any,
    ) -> dict[str, Any]:
        """Register at a SIP server.

        Raises:
            ValidationError: If *username* or *proxy* is not a SIP URI.
        """
        try:
            registration = SipRegistration(
                username=username,
                proxy=proxy,
                secret=secret,
                display_name=display_name,
                **extra,
            )
        except PydanticValidationError as exc:
            raise ValidationError(f"{REQUEST_REGISTER} error, invalid parameters: {exc}") from exc

        logger.info("Registering %s on handle %s", username, self.id, extra={"handle_id": self.id})
        return await self._request(
            registration.to_body(), {SipEvent.GENERIC, SipEvent.REGISTERING}
        )

    async def unregister(self) -> dict[str, Any]:
        return await self._request(
            {"request": REQUEST_UNREGISTER}, {SipEvent.GENERIC, SipEvent.UNREGISTERING}
        )

    async def send_dtmf(self, digit: str, *, duration: int | None = None) -> dict[str, Any]:
        """Send a DTMF digit via SIP INFO.

        Raises:
            ValidationError: If *digit* is not a string.
        """
        if not isinstance(digit, str):
            raise ValidationError("digit must be a string")
        body: dict[str, Any] = {"request": REQUEST_DTMF, "digit": digit}
        if duration is not None:
            body["duration"] = duration
        return await self._request(body, {SipEvent.GENERIC, SipEvent.DTMF_SENT})

    async def decline(self, *, code: int | None = None) -> dict[str, Any]:
        """Decline the incoming call, optionally with a SIP response code."""
        body: dict[str, Any] = {"request": REQUEST_DECLINE}
        if code is not None:
            body["code"] = code
        return await self._request(body, {SipEvent.GENERIC, SipEvent.DECLINING})

    async def accept(self, answer: Jsep | Mapping[str, Any]) -> dict[str, Any]:
        """Accept the incoming call with an SDP answer.

        Raises:
            MalformedAnswerError: If *answer* is not ``{"type": "answer",
                "sdp": <non-empty>}``.  Nothing is sent in that case.
            UnexpectedResponseTagError: If the reply is not ``accepted``.
        """
        jsep = _validate_answer(answer)
        return await self._request({"request": REQUEST_ACCEPT}, {SipEvent.ACCEPTED}, jsep)

    async def hangup(self) -> dict[str, Any]:
        return await self._request(
            {"request": REQUEST_HANGUP}, {SipEvent.GENERIC, SipEvent.HANGINGUP}
        )


SIP_PLUGIN = PluginDescriptor(id=PLUGIN_ID, handle_cls=SipHandle, events=SIP_EVENTS)
