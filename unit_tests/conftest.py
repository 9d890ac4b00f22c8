"""Shared fixtures: a principals bundle, deterministic ids/clock and an in-memory transport."""

import asyncio
import copy
import json
from typing import Any, AsyncIterator, Union

import pytest
import pytest_asyncio

from ameritrade.connections.principals import SessionContext
from ameritrade.connections.sockets import TDStreamer

REQUEST_ID = "test_requestid"
LOGIN_TIMESTAMP = 1577836800000

PRINCIPALS: dict[str, Any] = {
    "userId": "test_user",
    "accounts": [
        {
            "accountId": "123456789",
            "displayName": "test_display",
            "accountCdDomainId": "A000000011111111",
            "company": "AMER",
            "segment": "AMER",
        },
        {
            "accountId": "987654321",
            "displayName": "second_display",
            "accountCdDomainId": "A000000022222222",
            "company": "AMER",
            "segment": "ADVNCED",
        },
    ],
    "streamerInfo": {
        "streamerBinaryUrl": "streamer-bin.tdameritrade.com",
        "streamerSocketUrl": "streamer-ws.tdameritrade.com",
        "token": "test_token",
        "tokenTimestamp": "2020-01-01T00:00:00+0000",
        "userGroup": "ACCT",
        "accessLevel": "ACCT",
        "acl": "test_acl",
        "appId": "test_appId",
    },
    "streamerSubscriptionKeys": {"keys": [{"key": "test_key"}]},
}

LOGIN_OK: dict[str, Any] = {
    "response": [
        {
            "service": "ADMIN",
            "requestid": REQUEST_ID,
            "command": "LOGIN",
            "timestamp": 1594480424741,
            "content": {"code": 0, "msg": "29-3"},
        }
    ]
}

END_OF_STREAM = object()


def fixed_id() -> str:
    return REQUEST_ID


def fixed_clock() -> int:
    return LOGIN_TIMESTAMP


class LoopbackTransport:
    """In-memory transport: records outbound text and replays fed inbound messages."""

    def __init__(self) -> None:
        self.url: Union[str, None] = None
        self.sent: list[str] = []
        self.inbound: asyncio.Queue = asyncio.Queue()
        self.closed = False
        self.forced: Union[bool, None] = None

    async def connect(self, url: str) -> None:
        self.url = url
        self.closed = False
        self.inbound = asyncio.Queue()

    async def send(self, text: str) -> None:
        self.sent.append(text)

    async def close(self, force: bool = False) -> None:
        self.closed = True
        self.forced = force

    def feed(self, message: Union[str, bytes, dict]) -> None:
        if not isinstance(message, (str, bytes)):
            message = json.dumps(message)
        self.inbound.put_nowait(message)

    def hang_up(self) -> None:
        self.inbound.put_nowait(END_OF_STREAM)

    async def drain(self) -> None:
        """Wait until every fed message has been dispatched."""
        await self.inbound.join()

    @property
    def requests(self) -> list[dict[str, Any]]:
        return [json.loads(text) for text in self.sent]

    async def __aiter__(self) -> AsyncIterator[Union[str, bytes]]:
        queue = self.inbound
        while True:
            message = await queue.get()
            try:
                if message is END_OF_STREAM:
                    return
                yield message
            finally:
                queue.task_done()


@pytest.fixture
def principals() -> dict[str, Any]:
    return copy.deepcopy(PRINCIPALS)


@pytest.fixture
def context(principals: dict[str, Any]) -> SessionContext:
    return SessionContext.from_principals(principals)


@pytest.fixture
def transport() -> LoopbackTransport:
    return LoopbackTransport()


@pytest.fixture
def streamer(context: SessionContext, transport: LoopbackTransport) -> TDStreamer:
    return TDStreamer(context, transport=transport, id_generator=fixed_id, clock=fixed_clock)


@pytest_asyncio.fixture
async def authenticated_streamer(
    streamer: TDStreamer, transport: LoopbackTransport
) -> AsyncIterator[TDStreamer]:
    await streamer.connect()
    transport.feed(LOGIN_OK)
    await transport.drain()
    await streamer.flush()
    transport.sent.clear()

    yield streamer

    await streamer.disconnect(force=True)
