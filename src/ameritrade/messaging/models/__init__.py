from ameritrade.messaging.models.messages import (
    DataFrame,
    InboundMessage,
    NotifyFrame,
    RequestBatch,
    RequestEnvelope,
    ResponseEntry,
)

__all__ = [
    "DataFrame",
    "InboundMessage",
    "NotifyFrame",
    "RequestBatch",
    "RequestEnvelope",
    "ResponseEntry",
]
