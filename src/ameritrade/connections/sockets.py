import asyncio
import json
import logging
from types import TracebackType
from typing import Any, Mapping, Optional, Sequence, Union

from injector import singleton

from ameritrade.common.exceptions import InvalidArgumentError
from ameritrade.config.configurations import StreamerConfig
from ameritrade.config.enumerations import AuthState, Commands, QOSLevel, Services, StreamerEvent
from ameritrade.connections.auth import AuthenticationController, Clock, epoch_millis
from ameritrade.connections.principals import SessionContext
from ameritrade.connections.transport import Transport, WebSocketTransport
from ameritrade.messaging.events import EventEmitter, EventName, Listener
from ameritrade.messaging.handlers import ResponseDispatcher
from ameritrade.messaging.models.messages import RequestBatch
from ameritrade.messaging.requests import (
    CommandSpecs,
    IdGenerator,
    RequestBuilder,
    as_spec_list,
    default_id_generator,
)
from ameritrade.messaging.schemas import DEFAULT_REGISTRY, FieldNames, FieldSchemaRegistry

logger = logging.getLogger(__name__)

Symbols = Union[str, Sequence[str]]
OutboundMessage = Union[str, Mapping[str, Any], RequestBatch]


def join_symbols(symbols: Symbols) -> str:
    keys = symbols if isinstance(symbols, str) else ",".join(symbols)
    if not keys:
        raise InvalidArgumentError("at least one symbol is required")
    return keys


def resolve_qos(level: Union[QOSLevel, str]) -> QOSLevel:
    if isinstance(level, QOSLevel):
        return level
    try:
        return QOSLevel[level.upper()]
    except KeyError:
        raise InvalidArgumentError(
            f"unknown QOS level '{level}', expected one of "
            f"{', '.join(qos.name for qos in QOSLevel)}"
        ) from None


@singleton
class TDStreamer:
    """Client for the TD Ameritrade streamer websocket.

    Outbound messages go through a FIFO queue drained by a writer task, so every
    send method is synchronous and returns what it queued. Inbound messages are
    read by a listener task and dispatched to event listeners.

    Usage::

        streamer = TDStreamer(SessionContext.from_principals(principals))
        streamer.on("chart", print)
        streamer.once("authenticated", lambda _: streamer.subs_chart_equity("SPY"))

        async with streamer:
            await asyncio.sleep(60)
    """

    transport: Optional[Transport] = None
    auth: Optional[AuthenticationController] = None
    outbound: Optional[asyncio.Queue] = None

    listener_task: Optional[asyncio.Task] = None
    writer_task: Optional[asyncio.Task] = None

    def __init__(
        self,
        context: SessionContext,
        transport: Optional[Transport] = None,
        registry: FieldSchemaRegistry = DEFAULT_REGISTRY,
        id_generator: IdGenerator = default_id_generator,
        clock: Clock = epoch_millis,
        config: Optional[StreamerConfig] = None,
    ) -> None:
        self.context = context
        self.transport = transport
        self.registry = registry
        self.clock = clock
        self.config = config or StreamerConfig()

        self.emitter = EventEmitter()
        self.builder = RequestBuilder(context, id_generator)
        self.dispatcher = ResponseDispatcher(registry, self.emitter)
        self.connected = False

    async def __aenter__(self) -> "TDStreamer":
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.disconnect()

    # --- Listener registration --------------------------------------------

    def on(self, event: EventName, listener: Listener) -> Listener:
        return self.emitter.on(event, listener)

    def once(self, event: EventName, listener: Listener) -> Listener:
        return self.emitter.once(event, listener)

    def off(self, event: EventName, listener: Listener) -> None:
        self.emitter.off(event, listener)

    @property
    def auth_state(self) -> Optional[AuthState]:
        return self.auth.state if self.auth is not None else None

    @property
    def is_authenticated(self) -> bool:
        return self.auth is not None and self.auth.is_authenticated

    # --- Lifecycle ----------------------------------------------------------

    async def connect(self) -> None:
        """Open the transport, start the background tasks and send LOGIN."""
        if self.connected:
            logger.warning("Streamer already connected")
            return

        if self.transport is None:
            self.transport = WebSocketTransport(connect_timeout=self.config.connect_timeout)

        await self.transport.connect(self.context.websocket_url)

        self.outbound = asyncio.Queue()
        self.connected = True
        self.auth = AuthenticationController(
            self.context, self.builder, self.send, self.emitter, self.clock
        )
        self.dispatcher.auth = self.auth

        self.writer_task = asyncio.create_task(self.socket_writer(), name="td_streamer_writer")
        self.listener_task = asyncio.create_task(
            self.socket_listener(), name="td_streamer_listener"
        )

        self.emitter.emit(StreamerEvent.CONNECTED)
        self.auth.on_open()

    async def disconnect(self, force: bool = False) -> None:
        """Stop the background tasks and close the transport.

        Args:
            force: Abort the connection without the closing handshake
        """
        if not self.connected:
            logger.warning("Streamer - No active connection to close")
            return

        # Listener goes first so a close frame from our own shutdown isn't
        # reported as a remote close
        listener_task, self.listener_task = self.listener_task, None
        writer_task, self.writer_task = self.writer_task, None
        tasks_to_cancel = [("Listener", listener_task), ("Writer", writer_task)]
        for name, task in tasks_to_cancel:
            if task is not None:
                await self.cancel_tasks(name, task)

        await self.teardown(force)

    async def flush(self) -> None:
        """Wait until every queued outbound message has been handed to the transport."""
        if self.outbound is not None:
            await self.outbound.join()

    async def teardown(self, force: bool) -> None:
        self.connected = False
        self.auth = None
        self.dispatcher.auth = None
        self.outbound = None

        if self.transport is not None:
            await self.transport.close(force=force)

        self.emitter.emit(StreamerEvent.DISCONNECTED)
        logger.info("Streamer connection closed and cleaned up")

    async def on_remote_close(self) -> None:
        self.connected = False
        if self.auth is not None:
            self.auth.on_close()

        writer_task, self.writer_task = self.writer_task, None
        self.listener_task = None
        if writer_task is not None:
            await self.cancel_tasks("Writer", writer_task)

        await self.teardown(force=False)

    async def cancel_tasks(self, name: str, task: asyncio.Task) -> None:
        try:
            task.cancel()
            await task
            logger.info("%s task cancelled", name)
        except asyncio.CancelledError:
            logger.info("%s task was cancelled", name)

    # --- Background tasks ----------------------------------------------------

    async def socket_listener(self) -> None:
        """Dispatch inbound messages until the transport closes."""
        assert self.transport is not None, "transport should be initialized"
        try:
            async for message in self.transport:
                logger.debug("%s", message)
                self.dispatcher.dispatch(message)
        except asyncio.CancelledError:
            logger.info("Streamer listener stopped")
            return
        except Exception as e:
            logger.error("Streamer listener error: %s", e)

        logger.info("Streamer connection closed by server")
        await self.on_remote_close()

    async def socket_writer(self) -> None:
        """Send queued messages one at a time, in queue order."""
        assert self.transport is not None, "transport should be initialized"
        assert self.outbound is not None, "outbound queue should be initialized"
        transport, queue = self.transport, self.outbound
        try:
            while True:
                text = await queue.get()
                try:
                    await asyncio.wait_for(transport.send(text), timeout=self.config.send_timeout)
                    logger.debug("Sent: %s", text)
                except Exception as e:
                    logger.error("Failed to send message: %s", e)
                finally:
                    queue.task_done()
        except asyncio.CancelledError:
            logger.info("Streamer writer stopped")

    # --- Outbound ------------------------------------------------------------

    def send(self, message: OutboundMessage) -> OutboundMessage:
        """Queue ``message`` for transmission as-is.

        Raises:
            ConnectionError: If the streamer is not connected
        """
        if not self.connected or self.outbound is None:
            raise ConnectionError("Streamer is not connected")

        if isinstance(message, RequestBatch):
            text = message.to_json()
        elif isinstance(message, str):
            text = message
        else:
            text = json.dumps(message)

        self.outbound.put_nowait(text)
        return message

    def create_request(self, specs: CommandSpecs) -> RequestBatch:
        return self.builder.build(specs)

    def send_request(self, specs: CommandSpecs) -> RequestBatch:
        batch = self.builder.build(specs)
        self.send(batch)
        return batch

    def subscribe(self, specs: CommandSpecs) -> RequestBatch:
        return self.send_request(
            [{**spec, "command": Commands.SUBS} for spec in as_spec_list(specs)]
        )

    def unsubscribe(self, specs: CommandSpecs) -> RequestBatch:
        return self.send_request(
            [{**spec, "command": Commands.UNSUBS} for spec in as_spec_list(specs)]
        )

    def set_qos(self, level: Union[QOSLevel, str]) -> RequestBatch:
        qos = resolve_qos(level)
        return self.send_request(
            {
                "service": Services.ADMIN,
                "command": Commands.QOS,
                "parameters": {"qoslevel": qos.value},
            }
        )

    def subscribe_service(
        self, service: Services, symbols: Symbols, fields: FieldNames = None
    ) -> RequestBatch:
        """SUBS for ``symbols`` on ``service``; ``fields`` defaults to every field."""
        parameters = {
            "keys": join_symbols(symbols),
            "fields": self.registry.indices_for(service, fields),
        }
        return self.subscribe({"service": service, "parameters": parameters})

    def unsubscribe_service(self, service: Services, symbols: Symbols) -> RequestBatch:
        return self.unsubscribe({"service": service, "parameters": {"keys": join_symbols(symbols)}})

    # --- Account activity ----------------------------------------------------

    def subs_account_activity(
        self, fields: FieldNames = None, keys: Optional[Symbols] = None
    ) -> RequestBatch:
        """Subscribe to account activity under the session's subscription key(s)."""
        return self.subscribe_service(
            Services.ACCT_ACTIVITY,
            keys if keys is not None else self.context.subscription_keys,
            fields,
        )

    def unsubs_account_activity(self) -> RequestBatch:
        return self.unsubscribe({"service": Services.ACCT_ACTIVITY})

    # --- Charts --------------------------------------------------------------

    def subs_chart_equity(self, symbols: Symbols, fields: FieldNames = None) -> RequestBatch:
        return self.subscribe_service(Services.CHART_EQUITY, symbols, fields)

    def unsubs_chart_equity(self, symbols: Symbols) -> RequestBatch:
        return self.unsubscribe_service(Services.CHART_EQUITY, symbols)

    def subs_chart_futures(self, symbols: Symbols, fields: FieldNames = None) -> RequestBatch:
        return self.subscribe_service(Services.CHART_FUTURES, symbols, fields)

    def unsubs_chart_futures(self, symbols: Symbols) -> RequestBatch:
        return self.unsubscribe_service(Services.CHART_FUTURES, symbols)

    # Option charts are requested through the CHART_FUTURES service
    def subs_chart_options(self, symbols: Symbols, fields: FieldNames = None) -> RequestBatch:
        return self.subscribe_service(Services.CHART_FUTURES, symbols, fields)

    def unsubs_chart_options(self, symbols: Symbols) -> RequestBatch:
        return self.unsubscribe_service(Services.CHART_FUTURES, symbols)

    # --- News ----------------------------------------------------------------

    def subs_news_headline(self, symbols: Symbols, fields: FieldNames = None) -> RequestBatch:
        return self.subscribe_service(Services.NEWS_HEADLINE, symbols, fields)

    def unsubs_news_headline(self, symbols: Symbols) -> RequestBatch:
        return self.unsubscribe_service(Services.NEWS_HEADLINE, symbols)

    # --- Time & sales ----------------------------------------------------------

    def subs_timesale_equity(self, symbols: Symbols, fields: FieldNames = None) -> RequestBatch:
        return self.subscribe_service(Services.TIMESALE_EQUITY, symbols, fields)

    def unsubs_timesale_equity(self, symbols: Symbols) -> RequestBatch:
        return self.unsubscribe_service(Services.TIMESALE_EQUITY, symbols)

    def subs_timesale_futures(self, symbols: Symbols, fields: FieldNames = None) -> RequestBatch:
        return self.subscribe_service(Services.TIMESALE_FUTURES, symbols, fields)

    def unsubs_timesale_futures(self, symbols: Symbols) -> RequestBatch:
        return self.unsubscribe_service(Services.TIMESALE_FUTURES, symbols)

    def subs_timesale_options(self, symbols: Symbols, fields: FieldNames = None) -> RequestBatch:
        return self.subscribe_service(Services.TIMESALE_OPTIONS, symbols, fields)

    def unsubs_timesale_options(self, symbols: Symbols) -> RequestBatch:
        return self.unsubscribe_service(Services.TIMESALE_OPTIONS, symbols)

    def subs_timesale_forex(self, symbols: Symbols, fields: FieldNames = None) -> RequestBatch:
        return self.subscribe_service(Services.TIMESALE_FOREX, symbols, fields)

    def unsubs_timesale_forex(self, symbols: Symbols) -> RequestBatch:
        return self.unsubscribe_service(Services.TIMESALE_FOREX, symbols)

    # --- Level one -------------------------------------------------------------

    def subs_level_one_equity(self, symbols: Symbols, fields: FieldNames = None) -> RequestBatch:
        return self.subscribe_service(Services.QUOTE, symbols, fields)

    def unsubs_level_one_equity(self, symbols: Symbols) -> RequestBatch:
        return self.unsubscribe_service(Services.QUOTE, symbols)

    def subs_level_one_option(self, symbols: Symbols, fields: FieldNames = None) -> RequestBatch:
        return self.subscribe_service(Services.OPTION, symbols, fields)

    def unsubs_level_one_option(self, symbols: Symbols) -> RequestBatch:
        return self.unsubscribe_service(Services.OPTION, symbols)

    def subs_level_one_futures(self, symbols: Symbols, fields: FieldNames = None) -> RequestBatch:
        return self.subscribe_service(Services.LEVELONE_FUTURES, symbols, fields)

    def unsubs_level_one_futures(self, symbols: Symbols) -> RequestBatch:
        return self.unsubscribe_service(Services.LEVELONE_FUTURES, symbols)

    def subs_level_one_forex(self, symbols: Symbols, fields: FieldNames = None) -> RequestBatch:
        return self.subscribe_service(Services.LEVELONE_FOREX, symbols, fields)

    def unsubs_level_one_forex(self, symbols: Symbols) -> RequestBatch:
        return self.unsubscribe_service(Services.LEVELONE_FOREX, symbols)

    def subs_level_one_futures_options(
        self, symbols: Symbols, fields: FieldNames = None
    ) -> RequestBatch:
        return self.subscribe_service(Services.LEVELONE_FUTURES_OPTIONS, symbols, fields)

    def unsubs_level_one_futures_options(self, symbols: Symbols) -> RequestBatch:
        return self.unsubscribe_service(Services.LEVELONE_FUTURES_OPTIONS, symbols)
