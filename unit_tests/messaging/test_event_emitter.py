import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from ameritrade.config.enumerations import StreamerEvent
from ameritrade.messaging.events import EventEmitter


def test_on_listener_receives_every_emit() -> None:
    emitter = EventEmitter()
    listener = MagicMock()
    emitter.on("chart", listener)

    emitter.emit("chart", 1)
    emitter.emit("chart", 2)

    assert [c.args for c in listener.call_args_list] == [(1,), (2,)]


def test_once_listener_fires_once() -> None:
    emitter = EventEmitter()
    listener = MagicMock()
    emitter.once("heartbeat", listener)

    assert emitter.emit("heartbeat", "1") == 1
    assert emitter.emit("heartbeat", "2") == 0
    listener.assert_called_once_with("1")


def test_enum_and_string_names_are_the_same_event() -> None:
    emitter = EventEmitter()
    listener = MagicMock()
    emitter.on(StreamerEvent.CHART, listener)

    emitter.emit("chart", {})

    listener.assert_called_once_with({})


def test_off_removes_listener() -> None:
    emitter = EventEmitter()
    listener = MagicMock()
    emitter.on("chart", listener)
    emitter.off("chart", listener)

    emitter.emit("chart", {})

    listener.assert_not_called()
    assert emitter.listener_count("chart") == 0


def test_raising_listener_does_not_stop_others(caplog: pytest.LogCaptureFixture) -> None:
    emitter = EventEmitter()
    after = MagicMock()
    emitter.on("chart", MagicMock(side_effect=RuntimeError("boom")))
    emitter.on("chart", after)

    with caplog.at_level(logging.ERROR):
        emitter.emit("chart", {})

    after.assert_called_once_with({})
    assert "raised" in caplog.text


def test_listener_registered_during_emit_waits_for_next_emit() -> None:
    emitter = EventEmitter()
    late = MagicMock()
    emitter.on("chart", lambda _: emitter.on("chart", late))

    emitter.emit("chart", 1)
    late.assert_not_called()

    emitter.emit("chart", 2)
    late.assert_called_once_with(2)


@pytest.mark.asyncio
async def test_coroutine_listener_is_scheduled() -> None:
    emitter = EventEmitter()
    listener = AsyncMock()
    emitter.on("authenticated", listener)

    emitter.emit("authenticated", "entry")
    assert len(emitter.pending) == 1
    await asyncio.gather(*emitter.pending)

    listener.assert_awaited_once_with("entry")
