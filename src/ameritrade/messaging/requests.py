import logging
import uuid
from typing import Any, Callable, Mapping, Sequence, Union

from pydantic import ValidationError

from ameritrade.common.exceptions import InvalidArgumentError
from ameritrade.connections.principals import SessionContext
from ameritrade.messaging.models.messages import RequestBatch, RequestEnvelope

logger = logging.getLogger(__name__)

IdGenerator = Callable[[], str]

CommandSpec = Mapping[str, Any]
CommandSpecs = Union[CommandSpec, Sequence[CommandSpec]]


def default_id_generator() -> str:
    return uuid.uuid4().hex


def as_spec_list(specs: CommandSpecs) -> list[CommandSpec]:
    if isinstance(specs, Mapping):
        return [specs]
    return list(specs)


class RequestBuilder:
    """Builds request envelopes from command specs.

    A command spec is a mapping with ``service`` and ``command`` plus optional
    ``requestid`` and ``parameters``::

        builder.build({"service": "CHART_EQUITY", "command": "SUBS",
                       "parameters": {"keys": "SPY", "fields": "0,1,2"}})
    """

    def __init__(
        self,
        context: SessionContext,
        id_generator: IdGenerator = default_id_generator,
    ) -> None:
        self.context = context
        self.id_generator = id_generator

    def envelope(self, spec: CommandSpec) -> RequestEnvelope:
        if not spec.get("service") or not spec.get("command"):
            raise InvalidArgumentError(f"command spec requires service and command: {dict(spec)}")

        requestid = spec.get("requestid")
        if requestid is None:
            requestid = self.id_generator()

        try:
            return RequestEnvelope(
                requestid=requestid,
                account=self.context.account_id,
                source=self.context.source,
                service=spec["service"],
                command=spec["command"],
                parameters=spec.get("parameters"),
            )
        except ValidationError as e:
            raise InvalidArgumentError(f"malformed command spec {dict(spec)}: {e}") from e

    def build(self, specs: CommandSpecs) -> RequestBatch:
        """One envelope per spec, in input order."""
        batch = RequestBatch(requests=[self.envelope(spec) for spec in as_spec_list(specs)])
        logger.debug("Built request batch of %d envelope(s)", len(batch))
        return batch
