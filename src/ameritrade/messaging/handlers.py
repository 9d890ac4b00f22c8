import json
import logging
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Union

from pydantic import ValidationError

from ameritrade.common.exceptions import MalformedFrameError, UnknownServiceError
from ameritrade.config.configurations import SERVICE_EVENTS
from ameritrade.config.enumerations import StreamerEvent
from ameritrade.messaging.events import EventEmitter
from ameritrade.messaging.models.messages import (
    DataFrame,
    InboundMessage,
    NotifyFrame,
    ResponseEntry,
)
from ameritrade.messaging.schemas import DEFAULT_REGISTRY, FieldSchemaRegistry

if TYPE_CHECKING:
    from ameritrade.connections.auth import AuthenticationController

logger = logging.getLogger(__name__)

RawMessage = Union[str, bytes, Mapping[str, Any]]


class ResponseDispatcher:
    """Routes each section of an inbound message to its handler.

    Frames are handled independently: a malformed frame is logged and skipped
    and the rest of the message is still dispatched.
    """

    def __init__(
        self,
        registry: FieldSchemaRegistry = DEFAULT_REGISTRY,
        emitter: Optional[EventEmitter] = None,
        auth: Optional["AuthenticationController"] = None,
        service_events: Mapping[str, StreamerEvent] = SERVICE_EVENTS,
    ) -> None:
        self.registry = registry
        self.emitter = emitter or EventEmitter()
        self.auth = auth
        self.service_events = service_events

        self.section_handlers: dict[str, Callable[[Any], None]] = {
            "response": self.handle_response,
            "data": self.handle_data,
            "snapshot": self.handle_data,
            "notify": self.handle_notify,
        }

    def dispatch(self, raw: RawMessage) -> None:
        self.emitter.emit(StreamerEvent.MESSAGE, raw)

        try:
            payload = self.parse(raw)
        except MalformedFrameError as e:
            self.log_malformed(e)
            return

        for section, entries in payload.items():
            handler = self.section_handlers.get(section)
            if handler is None:
                logger.debug("Ignoring unrecognised section '%s'", section)
                continue

            for entry in entries:
                try:
                    handler(entry)
                except MalformedFrameError as e:
                    self.log_malformed(e)

    @staticmethod
    def parse(raw: RawMessage) -> dict[str, Any]:
        """Decode ``raw`` into a dict whose known sections are lists."""
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8")

        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError as e:
                raise MalformedFrameError("Message is not valid JSON", e) from e

        if not isinstance(raw, Mapping):
            raise MalformedFrameError(f"Message is not an object: {type(raw).__name__}")

        try:
            InboundMessage.model_validate(raw)
        except ValidationError as e:
            raise MalformedFrameError("Message sections must be lists", e) from e

        return dict(raw)

    def handle_response(self, entry: Any) -> None:
        try:
            response = ResponseEntry.model_validate(entry)
        except ValidationError as e:
            raise MalformedFrameError("Invalid response entry", e) from e

        logger.debug(
            "%s/%s response: code=%s msg=%s",
            response.service,
            response.command,
            response.code,
            response.msg,
        )

        if self.auth is not None:
            self.auth.on_response(response)

        self.emitter.emit(StreamerEvent.RESPONSE, entry)

    def handle_data(self, entry: Any) -> None:
        self.emitter.emit(*self.decode_frame(entry))

    def decode_frame(self, entry: Any) -> tuple[StreamerEvent, dict[str, Any]]:
        """Named copy of a data frame plus the event it is emitted on."""
        try:
            frame = DataFrame.model_validate(entry)
        except ValidationError as e:
            raise MalformedFrameError("Invalid data frame", e) from e

        event = self.service_events.get(frame.service)
        if event is None:
            raise MalformedFrameError(f"No event mapped for service '{frame.service}'")

        try:
            content = [self.registry.names_for(frame.service, record) for record in frame.content]
        except UnknownServiceError as e:
            raise MalformedFrameError(
                f"Data frame for unregistered service '{frame.service}'", e
            ) from e

        return event, {**entry, "content": content}

    def handle_notify(self, entry: Any) -> None:
        if isinstance(entry, Mapping) and "heartbeat" in entry:
            try:
                notify = NotifyFrame.model_validate(entry)
            except ValidationError as e:
                raise MalformedFrameError("Invalid heartbeat", e) from e

            logger.debug("Heartbeat: %s", notify.heartbeat)
            self.emitter.emit(StreamerEvent.HEARTBEAT, notify.heartbeat)
            return

        logger.info("Notification: %s", entry)
        self.emitter.emit(StreamerEvent.NOTIFICATION, entry)

    @staticmethod
    def log_malformed(error: MalformedFrameError) -> None:
        logger.warning("Skipping malformed frame: %s", error)
        if error.original_exception:
            logger.debug("Original exception:", exc_info=error.original_exception)
