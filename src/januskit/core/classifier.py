"""Ordered-rule message classification.

A classifier turns an inbound plugin message into a :class:`NormalizedEvent`.
Policy is expressed as data: a list of rules evaluated in order, where the
first rule that returns an event wins.  Rules are plain callables so a
plugin can mix the stock factories below with its own.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from januskit.core.errors import ProtocolError
from januskit.models.message import InboundMessage, NormalizedEvent

logger = logging.getLogger("januskit.classifier")

__all__ = [
    "ClassifierRule",
    "MessageClassifier",
    "RuleClassifier",
    "error_rule",
    "generic_result_rule",
    "named_event_rule",
]

RuleFn = Callable[[InboundMessage, dict[str, Any]], NormalizedEvent | None]
EventMapper = Callable[[Any], str | None]


class MessageClassifier(Protocol):
    """Anything that can interpret a message for one plugin namespace."""

    def classify(self, message: InboundMessage) -> NormalizedEvent | None: ...


@dataclass(frozen=True)
class ClassifierRule:
    """A named classification rule.

    Attributes:
        name: Used in debug logs to show which rule matched.
        fn: Receives the message and its plugin body; returns an event or
            ``None`` to let the next rule try.
    """

    name: str
    fn: RuleFn

    def __call__(self, message: InboundMessage, body: dict[str, Any]) -> NormalizedEvent | None:
        return self.fn(message, body)


def _with_jsep(message: InboundMessage, data: dict[str, Any]) -> dict[str, Any]:
    if message.jsep is not None:
        data["jsep"] = message.jsep.model_dump(exclude_none=True)
    return data


def named_event_rule(mapper: EventMapper) -> ClassifierRule:
    """Match a ``result`` whose ``event`` field the mapper knows.

    The event data is the result fields merged with any negotiation payload.
    """

    def rule(message: InboundMessage, body: dict[str, Any]) -> NormalizedEvent | None:
        result = body.get("result")
        if not isinstance(result, dict):
            return None
        tag = mapper(result.get("event"))
        if tag is None:
            return None
        return NormalizedEvent(event=tag, data=_with_jsep(message, dict(result)))

    return ClassifierRule("named_event", rule)


def generic_result_rule(tag: str) -> ClassifierRule:
    """Match any ``result`` object not claimed by an earlier rule."""

    def rule(message: InboundMessage, body: dict[str, Any]) -> NormalizedEvent | None:
        result = body.get("result")
        if result is None:
            return None
        return NormalizedEvent(event=tag, data=_with_jsep(message, {"result": result}))

    return ClassifierRule("generic_result", rule)


def error_rule(tag: str) -> ClassifierRule:
    """Match an ``error`` / ``error_code`` body and build a :class:`ProtocolError`."""

    def rule(message: InboundMessage, body: dict[str, Any]) -> NormalizedEvent | None:
        error = body.get("error")
        if not error:
            return None
        code = body.get("error_code")
        return NormalizedEvent(event=tag, data=ProtocolError(code, str(error)))

    return ClassifierRule("error", rule)


class RuleClassifier:
    """Evaluates rules in order for messages addressed to one plugin.

    Args:
        namespace: Plugin id (``plugindata.plugin``) this classifier serves.
        rules: Rules evaluated in order; the first match wins.
        discriminator: Optional ``(key, value)`` the plugin body must carry
            for the message to be classified at all.  A value of ``None``
            only requires the key to be present.
    """

    def __init__(
        self,
        namespace: str,
        rules: Sequence[ClassifierRule],
        *,
        discriminator: tuple[str, str | None] | None = None,
    ) -> None:
        self.namespace = namespace
        self._rules = tuple(rules)
        self._discriminator = discriminator

    @property
    def rules(self) -> tuple[ClassifierRule, ...]:
        return self._rules

    def classify(self, message: InboundMessage) -> NormalizedEvent | None:
        if message.plugindata is None or message.plugin_namespace != self.namespace:
            return None
        body = message.body
        if self._discriminator is not None:
            key, expected = self._discriminator
            if key not in body:
                return None
            if expected is not None and body[key] != expected:
                return None

        for rule in self._rules:
            event = rule(message, body)
            if event is not None:
                logger.debug("Rule %s matched %s -> %s", rule.name, self.namespace, event.event)
                return event
        return None
