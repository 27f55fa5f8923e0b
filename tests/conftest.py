"""Shared test fixtures and helpers."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any

import pytest

from januskit.core.router import HandleRouter
from januskit.plugins.sip import PLUGIN_ID, SipHandle
from januskit.transport.mock import MockTransport

SESSION_ID = 1111
HANDLE_ID = 2222

ANSWER = {"type": "answer", "sdp": "v=0\r\no=- 1 1 IN IP4 10.0.0.1\r\ns=-\r\n"}
OFFER = {"type": "offer", "sdp": "v=0\r\no=- 2 2 IN IP4 10.0.0.2\r\ns=-\r\n"}


@pytest.fixture
def advance() -> Callable[[int], Coroutine[Any, Any, None]]:
    """Yield control to let pending tasks run without real delay.

    ::

        await advance()       # 5 yields (default)
        await advance(10)     # 10 yields for heavier workloads
    """

    async def _advance(n: int = 5) -> None:
        for _ in range(n):
            await asyncio.sleep(0)

    return _advance


@pytest.fixture
def transport() -> MockTransport:
    return MockTransport()


@pytest.fixture
def router(transport: MockTransport) -> HandleRouter:
    return HandleRouter(transport)


@pytest.fixture
def sip_handle(transport: MockTransport, router: HandleRouter) -> SipHandle:
    handle = SipHandle(HANDLE_ID, transport=transport, session_id=SESSION_ID, request_timeout=None)
    router.add(handle)
    return handle


def sip_message(
    data: dict[str, Any],
    *,
    transaction: str | None = None,
    janus: str = "event",
    sender: int | str | None = HANDLE_ID,
    jsep: dict[str, Any] | None = None,
    plugin: str = PLUGIN_ID,
) -> dict[str, Any]:
    """Build a raw gateway message carrying a SIP plugin body."""
    message: dict[str, Any] = {
        "janus": janus,
        "session_id": SESSION_ID,
        "plugindata": {"plugin": plugin, "data": {"sip": "event", **data}},
    }
    if sender is not None:
        message["sender"] = sender
    if transaction is not None:
        message["transaction"] = transaction
    if jsep is not None:
        message["jsep"] = jsep
    return message


def sip_result(
    event: str | None = None,
    *,
    transaction: str | None = None,
    jsep: dict[str, Any] | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """Build a SIP ``result`` message, e.g. ``sip_result("registered")``."""
    result = dict(fields)
    if event is not None:
        result["event"] = event
    return sip_message({"result": result}, transaction=transaction, jsep=jsep)


def sip_error(code: int, reason: str, *, transaction: str | None = None) -> dict[str, Any]:
    return sip_message({"error": reason, "error_code": code}, transaction=transaction)


async def reply_to_last(
    transport: MockTransport,
    advance: Callable[[int], Coroutine[Any, Any, None]],
    build: Callable[[str], dict[str, Any]],
) -> Any:
    """Wait for the next request, then deliver ``build(transaction_id)``."""
    await advance(5)
    sent = transport.last_sent
    assert sent is not None, "no request was sent"
    return transport.deliver(build(sent["transaction"]))
