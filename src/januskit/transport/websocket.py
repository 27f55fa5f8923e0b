"""WebSocket transport for the Janus signaling API."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import TYPE_CHECKING, Any

from januskit.core.errors import TransportError
from januskit.models.message import InboundMessage
from januskit.transport.base import Transport

if TYPE_CHECKING:
    from januskit.config import JanusConfig

# Optional dependency - import for type checking and availability check
try:
    import websockets
    from websockets import ClientConnection

    HAS_WEBSOCKETS = True
except ImportError:
    websockets = None  # type: ignore[assignment]
    ClientConnection = None  # type: ignore[assignment, misc]
    HAS_WEBSOCKETS = False

logger = logging.getLogger("januskit.transport.websocket")


class WebSocketTransport(Transport):
    """WebSocket client connection to a Janus gateway.

    Sends requests as JSON text frames and hands every received frame to
    the receiver in delivery order.  Reconnection and keep-alive are left
    to the application.

    Example:
        from januskit import HandleRouter, SipHandle
        from januskit.transport.websocket import WebSocketTransport

        transport = WebSocketTransport("wss://janus.example.com/ws")
        router = HandleRouter(transport)
        await transport.connect()

        sip = SipHandle(handle_id, transport=transport, session_id=session_id)
        router.add(sip)
        await sip.register(username="sip:500@example.com", secret="s")
    """

    def __init__(
        self,
        url: str,
        *,
        subprotocol: str = "janus-protocol",
        api_secret: str | None = None,
        open_timeout: float = 10.0,
        max_size: int = 2**20,  # 1 MB
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize the WebSocket transport.

        Args:
            url: Gateway WebSocket URL (ws:// or wss://).
            subprotocol: WebSocket subprotocol the gateway expects.
            api_secret: Added as ``apisecret`` to every request when set.
            open_timeout: Timeout for the opening handshake in seconds.
            max_size: Maximum inbound frame size in bytes.
            headers: Additional HTTP headers for the handshake.
        """
        super().__init__()
        self._url = url
        self._subprotocol = subprotocol
        self._api_secret = api_secret
        self._open_timeout = open_timeout
        self._max_size = max_size
        self._headers = headers or {}
        self._ws: ClientConnection | None = None
        self._receive_task: asyncio.Task[None] | None = None
        self._messages_received = 0

    @classmethod
    def from_config(cls, config: JanusConfig) -> WebSocketTransport:
        return cls(
            config.url,
            subprotocol=config.subprotocol,
            api_secret=config.api_secret.get_secret_value() if config.api_secret else None,
            open_timeout=config.open_timeout,
            max_size=config.max_size,
        )

    @property
    def name(self) -> str:
        return f"websocket:{self._url}"

    @property
    def connected(self) -> bool:
        return self._ws is not None

    @property
    def messages_received(self) -> int:
        return self._messages_received

    async def connect(self) -> None:
        """Open the connection and start the receive loop."""
        if not HAS_WEBSOCKETS:
            raise ImportError(
                "websockets is required for WebSocketTransport. "
                "Install it with: pip install januskit[websocket]"
            )
        if self._ws is not None:
            return

        connect_kwargs: dict[str, Any] = {
            "uri": self._url,
            "subprotocols": [self._subprotocol],
            "open_timeout": self._open_timeout,
            "max_size": self._max_size,
        }
        if self._headers:
            connect_kwargs["additional_headers"] = self._headers

        self._ws = await websockets.connect(**connect_kwargs)
        self._receive_task = asyncio.get_running_loop().create_task(
            self._receive_loop(self._ws), name="januskit_ws_receive"
        )
        logger.info("Connected to %s", self._url)

    async def send(self, payload: dict[str, Any]) -> None:
        if self._ws is None:
            raise TransportError("WebSocket not connected")
        if self._api_secret is not None:
            payload = {**payload, "apisecret": self._api_secret}
        try:
            await self._ws.send(json.dumps(payload))
        except Exception as exc:
            raise TransportError(f"Failed to send request: {exc}") from exc

    async def _receive_loop(self, ws: ClientConnection) -> None:
        """Read frames until the connection closes."""
        try:
            async for raw in ws:
                try:
                    message = InboundMessage.from_raw(raw)
                except ValueError as e:
                    logger.debug("Failed to parse message: %s", e)
                    continue
                self._messages_received += 1
                try:
                    self._dispatch(message)
                except Exception:
                    logger.exception("Receiver failed for %s message", message.janus)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("WebSocket connection to %s lost: %s", self._url, e)
        finally:
            if self._ws is ws:
                self._ws = None

    async def close(self) -> None:
        """Close the connection and stop the receive loop."""
        ws, self._ws = self._ws, None
        if ws is not None:
            with contextlib.suppress(Exception):
                await ws.close()
        if self._receive_task is not None:
            self._receive_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._receive_task
            self._receive_task = None
        logger.info("WebSocket transport closed")
