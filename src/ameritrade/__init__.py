"""Client-side adapter for the TD Ameritrade streamer websocket protocol."""

from ameritrade.common.exceptions import (
    AmeritradeStreamerError,
    AuthenticationFailure,
    InvalidArgumentError,
    MalformedFrameError,
    SchemaError,
    UnknownServiceError,
)
from ameritrade.config.enumerations import AuthState, QOSLevel, Services, StreamerEvent
from ameritrade.connections.principals import SessionContext, UserPrincipals
from ameritrade.connections.sockets import TDStreamer
from ameritrade.messaging.schemas import DEFAULT_REGISTRY, FieldSchema, FieldSchemaRegistry

__all__ = [
    "AmeritradeStreamerError",
    "AuthState",
    "AuthenticationFailure",
    "DEFAULT_REGISTRY",
    "FieldSchema",
    "FieldSchemaRegistry",
    "InvalidArgumentError",
    "MalformedFrameError",
    "QOSLevel",
    "SchemaError",
    "Services",
    "SessionContext",
    "StreamerEvent",
    "TDStreamer",
    "UnknownServiceError",
    "UserPrincipals",
]
