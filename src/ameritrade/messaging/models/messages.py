"""Pydantic models for the streamer websocket protocol.

Outbound models use ``extra="forbid"`` to catch typos at construction time.
Inbound models use ``extra="allow"`` so new server fields don't break parsing.
"""

import json
import logging
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class RequestEnvelope(BaseModel):
    """Outbound: one logical request.

    Wire format::

        {"requestid":"1","account":"123456789","source":"APP","service":"CHART_EQUITY",
         "command":"SUBS","parameters":{"keys":"SPY","fields":"0,1,2"}}

    ``parameters`` is omitted from the wire entirely when empty.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    requestid: str = Field(description="Client request ID")
    account: str = Field(description="Account ID from the session context")
    source: str = Field(description="Streamer app ID from the session context")
    service: str
    command: str
    parameters: Optional[dict[str, Any]] = None

    @field_validator("requestid", "account", "source", "service", "command", mode="before")
    @classmethod
    def convert_to_str(cls, value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("parameters", mode="before")
    @classmethod
    def drop_empty_parameters(cls, value: Any) -> Any:
        return value or None

    def to_wire(self) -> dict[str, Any]:
        wire = self.model_dump(exclude={"parameters"})
        if self.parameters:
            wire["parameters"] = dict(self.parameters)
        return wire


class RequestBatch(BaseModel):
    """Outbound: ordered envelopes sent as a single websocket message.

    Wire format::

        {"requests":[{...}, {...}]}
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    requests: list[RequestEnvelope] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.requests)

    def to_wire(self) -> dict[str, Any]:
        return {"requests": [request.to_wire() for request in self.requests]}

    def to_json(self) -> str:
        return json.dumps(self.to_wire())


class InboundMessage(BaseModel):
    """Inbound: top-level shape of every server message.

    Each section is a list of entries; entries are validated one by one so a
    single bad frame does not invalidate its neighbours.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    response: list[Any] = Field(default_factory=list)
    data: list[Any] = Field(default_factory=list)
    notify: list[Any] = Field(default_factory=list)
    snapshot: list[Any] = Field(default_factory=list)


class ResponseEntry(BaseModel):
    """Inbound: reply to a request.

    Wire format::

        {"service":"ADMIN","requestid":"1","command":"LOGIN","timestamp":1594480424741,
         "content":{"code":0,"msg":"29-3"}}
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    service: str
    command: str
    requestid: Optional[str] = None
    timestamp: Optional[int] = None
    content: dict[str, Any] = Field(default_factory=dict)

    @field_validator("requestid", mode="before")
    @classmethod
    def convert_requestid(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def code(self) -> Any:
        return self.content.get("code")

    @property
    def msg(self) -> Optional[str]:
        return self.content.get("msg")


class DataFrame(BaseModel):
    """Inbound: one service's batch of index-keyed content records.

    Wire format::

        {"service":"CHART_EQUITY","timestamp":1594480424741,"command":"SUBS",
         "content":[{"1":318.01,"2":318.15,"seq":707,"key":"SPY"}]}
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    service: str
    timestamp: Optional[int] = None
    command: Optional[str] = None
    content: list[dict[str, Any]] = Field(default_factory=list)


class NotifyFrame(BaseModel):
    """Inbound: server heartbeat.

    Wire format::

        {"heartbeat":"1595384500929"}
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    heartbeat: str
