"""Tests for handle dispatch, ownership, and lifecycle."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from januskit.core.errors import (
    HandleDetachedError,
    ProtocolError,
    TransactionTimeoutError,
    TransportError,
    UnexpectedResponseTagError,
)
from januskit.core.handle import Handle
from januskit.models.enums import HandleEvent
from januskit.models.message import Reply
from januskit.models.trace import ProtocolTrace
from januskit.plugins.sip import SipEvent, SipHandle
from januskit.transport.mock import MockTransport
from tests.conftest import HANDLE_ID, SESSION_ID, sip_error, sip_result


class TestDispatchOwnership:
    async def test_owned_reply_settles_and_is_not_emitted(
        self, sip_handle: SipHandle, transport: MockTransport, advance: Any
    ) -> None:
        emitted: list[Any] = []
        sip_handle.on(SipEvent.REGISTERING, emitted.append)

        task = asyncio.create_task(sip_handle.message({"request": "register"}))
        await advance()
        tid = transport.last_sent["transaction"]  # type: ignore[index]

        event = sip_handle.handle_message(sip_result("registering", transaction=tid))
        reply = await task

        assert event is not None
        assert event.event == SipEvent.REGISTERING
        assert isinstance(reply, Reply)
        assert reply.event is event
        assert reply.message.transaction == tid
        assert emitted == []

    async def test_unsolicited_event_is_emitted(self, sip_handle: SipHandle) -> None:
        emitted: list[Any] = []
        sip_handle.on(SipEvent.REGISTERED, emitted.append)

        event = sip_handle.handle_message(sip_result("registered", username="sip:500@h"))

        assert event is not None
        assert emitted == [{"event": "registered", "username": "sip:500@h"}]

    async def test_late_duplicate_reply_is_emitted_once_settled(
        self, sip_handle: SipHandle, transport: MockTransport, advance: Any
    ) -> None:
        emitted: list[Any] = []
        sip_handle.on(SipEvent.GENERIC, emitted.append)

        task = asyncio.create_task(sip_handle.message({"request": "info"}))
        await advance()
        tid = transport.last_sent["transaction"]  # type: ignore[index]

        sip_handle.handle_message(sip_result("progress", transaction=tid))
        first = await task
        # Same transaction again: no longer owned, so it is broadcast
        sip_handle.handle_message(sip_result("progress", transaction=tid))

        assert first.tag == SipEvent.GENERIC
        assert len(emitted) == 1

    async def test_unknown_transaction_is_emitted(self, sip_handle: SipHandle) -> None:
        emitted: list[Any] = []
        sip_handle.on(SipEvent.HANGUP, emitted.append)

        sip_handle.handle_message(sip_result("hangup", transaction="not-ours"))

        assert len(emitted) == 1

    async def test_owned_error_rejects_without_emitting(
        self, sip_handle: SipHandle, transport: MockTransport, advance: Any
    ) -> None:
        emitted: list[Any] = []
        sip_handle.on(SipEvent.ERROR, emitted.append)

        task = asyncio.create_task(sip_handle.message({"request": "unregister"}))
        await advance()
        tid = transport.last_sent["transaction"]  # type: ignore[index]
        sip_handle.handle_message(sip_error(452, "Not registered", transaction=tid))

        with pytest.raises(ProtocolError) as exc_info:
            await task
        assert exc_info.value.code == 452
        assert emitted == []

    async def test_unsolicited_error_is_emitted_not_raised(self, sip_handle: SipHandle) -> None:
        emitted: list[Any] = []
        sip_handle.on(SipEvent.ERROR, emitted.append)

        event = sip_handle.handle_message(sip_error(500, "boom"))

        assert event is not None and event.is_error
        assert len(emitted) == 1
        assert isinstance(emitted[0], ProtocolError)

    async def test_integer_transaction_treated_as_unsolicited(self, sip_handle: SipHandle) -> None:
        emitted: list[Any] = []
        sip_handle.on(SipEvent.REGISTERED, emitted.append)

        raw = sip_result("registered") | {"transaction": 42}
        event = sip_handle.handle_message(raw)

        assert event is not None
        assert emitted == [{"event": "registered"}]

    async def test_unclassified_returns_none(self, sip_handle: SipHandle) -> None:
        raw = {"janus": "event", "sender": HANDLE_ID, "plugindata": {"plugin": "x", "data": {}}}
        assert sip_handle.handle_message(raw) is None

    async def test_accepts_json_text(self, sip_handle: SipHandle) -> None:
        emitted: list[Any] = []
        sip_handle.on(SipEvent.REGISTERED, emitted.append)

        raw = (
            '{"janus": "event", "sender": 2222, "plugindata": {"plugin": "janus.plugin.sip",'
            ' "data": {"sip": "event", "result": {"event": "registered"}}}}'
        )
        sip_handle.handle_message(raw)

        assert emitted == [{"event": "registered"}]


class TestGenericHandling:
    async def test_ack_keeps_transaction_pending(
        self, sip_handle: SipHandle, transport: MockTransport, advance: Any
    ) -> None:
        task = asyncio.create_task(sip_handle.message({"request": "register"}))
        await advance()
        tid = transport.last_sent["transaction"]  # type: ignore[index]

        assert sip_handle.handle_message({"janus": "ack", "transaction": tid}) is None
        assert sip_handle.owns_transaction(tid)

        sip_handle.handle_message(sip_result("registering", transaction=tid))
        assert (await task).tag == SipEvent.REGISTERING

    async def test_gateway_error_rejects(
        self, sip_handle: SipHandle, transport: MockTransport, advance: Any
    ) -> None:
        task = asyncio.create_task(sip_handle.message({"request": "register"}))
        await advance()
        tid = transport.last_sent["transaction"]  # type: ignore[index]

        sip_handle.handle_message(
            {"janus": "error", "transaction": tid, "error": {"code": 458, "reason": "No session"}}
        )

        with pytest.raises(ProtocolError) as exc_info:
            await task
        assert exc_info.value.code == 458
        assert exc_info.value.reason == "No session"

    async def test_success_without_plugin_event_settles_untagged(
        self, sip_handle: SipHandle, transport: MockTransport, advance: Any
    ) -> None:
        task = asyncio.create_task(sip_handle.message({"request": "register"}))
        await advance()
        tid = transport.last_sent["transaction"]  # type: ignore[index]

        sip_handle.handle_message({"janus": "success", "transaction": tid})

        reply = await task
        assert reply.event is None
        assert reply.tag is None

    @pytest.mark.parametrize(
        ("kind", "expected"),
        [
            ("webrtcup", HandleEvent.WEBRTC_UP),
            ("media", HandleEvent.MEDIA),
            ("slowlink", HandleEvent.SLOW_LINK),
            ("hangup", HandleEvent.HANGUP),
        ],
    )
    async def test_session_events_emitted(
        self, sip_handle: SipHandle, kind: str, expected: HandleEvent
    ) -> None:
        emitted: list[Any] = []
        sip_handle.on(expected, emitted.append)

        sip_handle.handle_message({"janus": kind, "sender": HANDLE_ID, "reason": "x"})

        assert len(emitted) == 1
        assert emitted[0]["janus"] == kind
        assert emitted[0]["reason"] == "x"

    async def test_detached_message_detaches(self, sip_handle: SipHandle) -> None:
        emitted: list[Any] = []
        sip_handle.on(HandleEvent.DETACHED, emitted.append)

        sip_handle.handle_message({"janus": "detached", "sender": HANDLE_ID})

        assert sip_handle.detached
        assert emitted == [{"handle_id": HANDLE_ID, "reason": "detached by gateway"}]


class TestRequests:
    async def test_message_payload(
        self, sip_handle: SipHandle, transport: MockTransport, advance: Any
    ) -> None:
        task = asyncio.create_task(
            sip_handle.message({"request": "accept"}, {"type": "answer", "sdp": "v=0"})
        )
        await advance()

        sent = transport.last_sent
        assert sent is not None
        assert sent["janus"] == "message"
        assert sent["body"] == {"request": "accept"}
        assert sent["jsep"] == {"type": "answer", "sdp": "v=0"}
        assert sent["session_id"] == SESSION_ID
        assert sent["handle_id"] == HANDLE_ID
        assert sip_handle.owns_transaction(sent["transaction"])

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert not sip_handle.owns_transaction(sent["transaction"])

    async def test_reply_delivered_during_send(self) -> None:
        """A reply pushed by the connection right after the send settles the request."""
        transport = MockTransport()
        handle = SipHandle(1, transport=transport, request_timeout=1.0)
        transport.set_receiver(handle.handle_message)
        transport.responder = lambda payload: sip_result(
            "registering", transaction=payload["transaction"]
        ) | {"sender": 1}

        reply = await handle.message({"request": "register"})

        assert reply.tag == SipEvent.REGISTERING

    async def test_transport_failure_drops_transaction(self, transport: MockTransport) -> None:
        handle = SipHandle(1, transport=transport)
        transport.send_error = TransportError("down")

        with pytest.raises(TransportError):
            await handle.message({"request": "register"})

        assert len(handle.transactions) == 0

    async def test_cancel_during_send_drops_transaction(self, advance: Any) -> None:
        class StalledTransport(MockTransport):
            async def send(self, payload: dict[str, Any]) -> None:
                self.sent.append(payload)
                await asyncio.sleep(3600)

        transport = StalledTransport()
        handle = SipHandle(1, transport=transport, request_timeout=None)
        transport.set_receiver(handle.handle_message)
        emitted: list[Any] = []
        handle.on(SipEvent.UNREGISTERING, emitted.append)

        task = asyncio.create_task(handle.unregister())
        await advance()
        tid = transport.last_sent["transaction"]  # type: ignore[index]
        assert handle.owns_transaction(tid)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert handle.transactions.pending_ids == []
        # A reply arriving afterwards is unsolicited
        transport.deliver(sip_result("unregistering", transaction=tid) | {"sender": 1})
        assert emitted == [{"event": "unregistering"}]

    async def test_timeout(self, transport: MockTransport) -> None:
        handle = SipHandle(1, transport=transport, request_timeout=0.01)

        with pytest.raises(TransactionTimeoutError):
            await handle.message({"request": "register"})

        assert len(handle.transactions) == 0

    async def test_per_call_timeout_overrides_default(self, transport: MockTransport) -> None:
        handle = SipHandle(1, transport=transport, request_timeout=None)

        with pytest.raises(TransactionTimeoutError) as exc_info:
            await handle.message({"request": "register"}, timeout=0.01)

        assert exc_info.value.timeout == 0.01

    async def test_unexpected_tag_rejected(
        self, sip_handle: SipHandle, transport: MockTransport, advance: Any
    ) -> None:
        task = asyncio.create_task(
            sip_handle._request({"request": "decline"}, {SipEvent.DECLINING})
        )
        await advance()
        tid = transport.last_sent["transaction"]  # type: ignore[index]
        sip_handle.handle_message(sip_result("registered", transaction=tid))

        with pytest.raises(UnexpectedResponseTagError) as exc_info:
            await task
        assert exc_info.value.request == "decline"
        assert exc_info.value.tag == SipEvent.REGISTERED


class TestDetach:
    async def test_detach_rejects_pending(
        self, sip_handle: SipHandle, transport: MockTransport, advance: Any
    ) -> None:
        first = asyncio.create_task(sip_handle.message({"request": "register"}))
        second = asyncio.create_task(sip_handle.message({"request": "unregister"}))
        await advance()

        assert sip_handle.detach() == 2

        for task in (first, second):
            with pytest.raises(HandleDetachedError) as exc_info:
                await task
            assert exc_info.value.handle_id == HANDLE_ID
        assert len(sip_handle.transactions) == 0

    async def test_detach_is_idempotent(self, sip_handle: SipHandle) -> None:
        emitted: list[Any] = []
        sip_handle.on(HandleEvent.DETACHED, emitted.append)

        sip_handle.detach()
        assert sip_handle.detach() == 0
        assert len(emitted) == 1

    async def test_requests_after_detach_fail_before_send(
        self, sip_handle: SipHandle, transport: MockTransport
    ) -> None:
        sip_handle.detach()

        with pytest.raises(HandleDetachedError):
            await sip_handle.message({"request": "register"})
        assert transport.sent == []

    async def test_observers_dropped_after_detach(self, sip_handle: SipHandle) -> None:
        emitted: list[Any] = []
        sip_handle.on(SipEvent.REGISTERED, emitted.append)

        sip_handle.detach()
        sip_handle.handle_message(sip_result("registered"))

        assert emitted == []


class TestObserverSurface:
    async def test_listener_decorator(self, sip_handle: SipHandle) -> None:
        received: list[Any] = []

        @sip_handle.listener(SipEvent.INCOMING_CALL)
        def on_call(data: Any) -> None:
            received.append(data)

        sip_handle.handle_message(sip_result("incomingcall", username="sip:666@h"))

        assert received[0]["username"] == "sip:666@h"

    async def test_off(self, sip_handle: SipHandle) -> None:
        received: list[Any] = []
        sub = sip_handle.on(SipEvent.REGISTERED, received.append)

        assert sip_handle.off(sub) is True
        sip_handle.handle_message(sip_result("registered"))

        assert received == []


class TestTrace:
    async def test_trace_emitter_sees_both_directions(
        self, sip_handle: SipHandle, transport: MockTransport, advance: Any
    ) -> None:
        traces: list[ProtocolTrace] = []
        sip_handle.set_trace_emitter(traces.append)

        task = asyncio.create_task(sip_handle.message({"request": "register"}))
        await advance()
        tid = transport.last_sent["transaction"]  # type: ignore[index]
        sip_handle.handle_message(sip_result("registering", transaction=tid))
        await task

        assert [t.direction for t in traces] == ["outbound", "inbound"]
        assert traces[0].summary == "message register"
        assert all(t.transaction == tid for t in traces)
        assert all(t.handle_id == HANDLE_ID for t in traces)


class TestBaseHandle:
    async def test_base_handle_without_classifier(self, transport: MockTransport) -> None:
        handle = Handle(5, transport=transport)
        emitted: list[Any] = []
        handle.on(HandleEvent.WEBRTC_UP, emitted.append)

        assert handle.handle_message(sip_result("registered")) is None
        handle.handle_message({"janus": "webrtcup", "sender": 5})

        assert len(emitted) == 1
