import asyncio
import logging
from typing import AsyncIterator, Optional, Protocol, Union

from websockets.asyncio.client import ClientConnection, connect

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 10


class Transport(Protocol):
    """Bidirectional text-message channel the streamer runs over."""

    async def connect(self, url: str) -> None: ...

    async def send(self, text: str) -> None: ...

    async def close(self, force: bool = False) -> None: ...

    def __aiter__(self) -> AsyncIterator[Union[str, bytes]]: ...


class WebSocketTransport:
    """Transport backed by a ``websockets`` client connection.

    Reconnection is left to the caller.
    """

    websocket: Optional[ClientConnection] = None

    def __init__(self, connect_timeout: float = CONNECT_TIMEOUT_SECONDS) -> None:
        self.connect_timeout = connect_timeout

    async def connect(self, url: str) -> None:
        self.websocket = await asyncio.wait_for(connect(url), timeout=self.connect_timeout)
        logger.info("WebSocket connected to %s", url)

    async def send(self, text: str) -> None:
        if self.websocket is None:
            raise ConnectionError("WebSocket is not connected")
        await self.websocket.send(text)

    async def close(self, force: bool = False) -> None:
        if self.websocket is None:
            return

        ws = self.websocket
        self.websocket = None

        if force:
            # Drop the TCP connection without the closing handshake
            ws.transport.abort()
            logger.info("WebSocket aborted")
        else:
            await ws.close()
            logger.info("WebSocket closed")

    async def __aiter__(self) -> AsyncIterator[Union[str, bytes]]:
        assert self.websocket is not None, "websocket should be initialized"
        async for message in self.websocket:
            yield message
