"""Field tables translating between field names and the streamer's numeric wire indices.

Content records arrive keyed by string indices (``"0"``, ``"1"``, ...) plus a few
literal keys such as ``key`` and ``seq``. Subscriptions name the wanted fields by
the same indices, comma separated, in the caller's order::

    DEFAULT_REGISTRY.indices_for("CHART_EQUITY", ["key", "openPrice", "closePrice"])
    '0,1,4'

    DEFAULT_REGISTRY.names_for("CHART_EQUITY", {"1": 318.01, "seq": 707, "key": "SPY"})
    {'seq': 707, 'key': 'SPY', 'openPrice': 318.01}
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from ameritrade.common.exceptions import (
    InvalidArgumentError,
    SchemaError,
    UnknownServiceError,
)
from ameritrade.config.enumerations import Services

logger = logging.getLogger(__name__)

FieldNames = Optional[Union[str, Sequence[str]]]


@dataclass(frozen=True)
class FieldSchema:
    """Ordered name <-> index bijection for one service.

    The position of a name in ``fields`` is its wire index.
    """

    service: str
    fields: tuple[str, ...]
    name_to_index: dict[str, str] = field(init=False, repr=False, compare=False)
    index_to_name: dict[str, str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if len(set(self.fields)) != len(self.fields):
            raise InvalidArgumentError(f"duplicate field names in {self.service} schema")

        object.__setattr__(
            self, "name_to_index", {name: str(i) for i, name in enumerate(self.fields)}
        )
        object.__setattr__(
            self, "index_to_name", {str(i): name for i, name in enumerate(self.fields)}
        )

    @property
    def default_fields(self) -> tuple[str, ...]:
        return self.fields

    def alias(self, service: str) -> "FieldSchema":
        """Same layout registered under another service name."""
        return FieldSchema(service=service, fields=self.fields)

    def indices_for(self, field_names: FieldNames = None) -> str:
        if not field_names:
            field_names = self.default_fields
        elif isinstance(field_names, str):
            field_names = [field_names]

        indices = []
        for name in field_names:
            try:
                indices.append(self.name_to_index[name])
            except KeyError:
                raise SchemaError(self.service, name) from None

        return ",".join(indices)

    def names_for(self, record: Mapping[str, Any]) -> dict[str, Any]:
        # Literal keys win over a decoded index carrying the same name
        decoded: dict[str, Any] = {
            wire_key: value for wire_key, value in record.items() if not str(wire_key).isdigit()
        }

        for wire_key, value in record.items():
            index = str(wire_key)
            if not index.isdigit():
                continue

            name = self.index_to_name.get(index)
            if name is None:
                logger.debug("Dropping unknown index %s for %s", index, self.service)
                continue

            decoded.setdefault(name, value)

        return decoded


ACCT_ACTIVITY = FieldSchema(
    service=Services.ACCT_ACTIVITY.value,
    fields=("subscriptionKey", "accountNumber", "messageType", "messageData"),
)

CHART_EQUITY = FieldSchema(
    service=Services.CHART_EQUITY.value,
    fields=(
        "key",
        "openPrice",
        "highPrice",
        "lowPrice",
        "closePrice",
        "volume",
        "seq",
        "chartTime",
    ),
)

CHART_FUTURES = FieldSchema(
    service=Services.CHART_FUTURES.value,
    fields=(
        "key",
        "chartTime",
        "openPrice",
        "highPrice",
        "lowPrice",
        "closePrice",
        "volume",
    ),
)

CHART_OPTIONS = CHART_FUTURES.alias(Services.CHART_OPTIONS.value)

NEWS_HEADLINE = FieldSchema(
    service=Services.NEWS_HEADLINE.value,
    fields=(
        "symbol",
        "errorCode",
        "storyDatetime",
        "headlineID",
        "status",
        "headline",
        "storyID",
        "countForKeyword",
        "keywordArray",
        "isHot",
        "storySource",
    ),
)

TIMESALE_FIELDS = ("symbol", "tradeTime", "lastPrice", "lastSize", "lastSequence")

TIMESALE_EQUITY = FieldSchema(service=Services.TIMESALE_EQUITY.value, fields=TIMESALE_FIELDS)
TIMESALE_FUTURES = FieldSchema(service=Services.TIMESALE_FUTURES.value, fields=TIMESALE_FIELDS)
TIMESALE_OPTIONS = FieldSchema(service=Services.TIMESALE_OPTIONS.value, fields=TIMESALE_FIELDS)
TIMESALE_FOREX = FieldSchema(service=Services.TIMESALE_FOREX.value, fields=TIMESALE_FIELDS)

QUOTE = FieldSchema(
    service=Services.QUOTE.value,
    fields=(
        "key",
        "bidPrice",
        "askPrice",
        "lastPrice",
        "bidSize",
        "askSize",
        "askID",
        "bidID",
        "totalVolume",
        "lastSize",
        "tradeTime",
        "quoteTime",
        "highPrice",
        "lowPrice",
        "bidTick",
        "closePrice",
        "exchangeID",
        "marginable",
        "shortable",
        "islandBid",
        "islandAsk",
        "islandVolume",
        "quoteDay",
        "tradeDay",
        "volatility",
        "description",
        "lastID",
        "digits",
        "openPrice",
        "netChange",
        "high52Week",
        "low52Week",
        "peRatio",
        "dividendAmount",
        "dividendYield",
        "islandBidSize",
        "islandAskSize",
        "nav",
        "fundPrice",
        "exchangeName",
        "dividendDate",
        "regularMarketQuote",
        "regularMarketTrade",
        "regularMarketLastPrice",
        "regularMarketLastSize",
        "regularMarketTradeTime",
        "regularMarketTradeDay",
        "regularMarketNetChange",
        "securityStatus",
        "mark",
        "quoteTimeInLong",
        "tradeTimeInLong",
        "regularMarketTradeTimeInLong",
    ),
)

OPTION = FieldSchema(
    service=Services.OPTION.value,
    fields=(
        "key",
        "description",
        "bidPrice",
        "askPrice",
        "lastPrice",
        "highPrice",
        "lowPrice",
        "closePrice",
        "totalVolume",
        "openInterest",
        "volatility",
        "quoteTime",
        "tradeTime",
        "moneyIntrinsicValue",
        "quoteDay",
        "tradeDay",
        "expirationYear",
        "multiplier",
        "digits",
        "openPrice",
        "bidSize",
        "askSize",
        "lastSize",
        "netChange",
        "strikePrice",
        "contractType",
        "underlying",
        "expirationMonth",
        "deliverables",
        "timeValue",
        "expirationDay",
        "daysToExpiration",
        "delta",
        "gamma",
        "theta",
        "vega",
        "rho",
        "securityStatus",
        "theoreticalOptionValue",
        "underlyingPrice",
        "uvExpirationType",
        "mark",
    ),
)

LEVELONE_FUTURES_FIELDS = (
    "key",
    "bidPrice",
    "askPrice",
    "lastPrice",
    "bidSize",
    "askSize",
    "askID",
    "bidID",
    "totalVolume",
    "lastSize",
    "quoteTime",
    "tradeTime",
    "highPrice",
    "lowPrice",
    "closePrice",
    "exchangeID",
    "description",
    "lastID",
    "openPrice",
    "netChange",
    "futurePercentChange",
    "exchangeName",
    "securityStatus",
    "openInterest",
    "mark",
    "tick",
    "tickAmount",
    "product",
    "futurePriceFormat",
    "futureTradingHours",
    "futureIsTradable",
    "futureMultiplier",
    "futureIsActive",
    "futureSettlementPrice",
    "futureActiveSymbol",
    "futureExpirationDate",
)

LEVELONE_FUTURES = FieldSchema(
    service=Services.LEVELONE_FUTURES.value, fields=LEVELONE_FUTURES_FIELDS
)

LEVELONE_FUTURES_OPTIONS = FieldSchema(
    service=Services.LEVELONE_FUTURES_OPTIONS.value, fields=LEVELONE_FUTURES_FIELDS
)

LEVELONE_FOREX = FieldSchema(
    service=Services.LEVELONE_FOREX.value,
    fields=(
        "key",
        "bidPrice",
        "askPrice",
        "lastPrice",
        "bidSize",
        "askSize",
        "totalVolume",
        "lastSize",
        "quoteTime",
        "tradeTime",
        "highPrice",
        "lowPrice",
        "closePrice",
        "exchangeID",
        "description",
        "openPrice",
        "netChange",
        "percentChange",
        "exchangeName",
        "digits",
        "securityStatus",
        "tick",
        "tickAmount",
        "product",
        "tradingHours",
        "isTradable",
        "marketMaker",
        "high52Week",
        "low52Week",
        "mark",
    ),
)


class FieldSchemaRegistry:
    """Lookup of field schemas by service name."""

    def __init__(self, schemas: Iterable[FieldSchema] = ()) -> None:
        self.schemas: dict[str, FieldSchema] = {}
        for schema in schemas:
            self.register(schema)

    def register(self, schema: FieldSchema) -> None:
        if schema.service in self.schemas:
            raise InvalidArgumentError(f"schema for {schema.service} already registered")
        self.schemas[schema.service] = schema

    @property
    def services(self) -> tuple[str, ...]:
        return tuple(self.schemas)

    def __contains__(self, service: object) -> bool:
        return self.service_name(service) in self.schemas

    @staticmethod
    def service_name(service: object) -> str:
        return service.value if isinstance(service, Services) else str(service)

    def schema(self, service: Union[str, Services]) -> FieldSchema:
        name = self.service_name(service)
        try:
            return self.schemas[name]
        except KeyError:
            raise UnknownServiceError(name) from None

    def indices_for(self, service: Union[str, Services], field_names: FieldNames = None) -> str:
        """Comma-joined wire indices for ``field_names`` in the order given.

        Raises:
            UnknownServiceError: If no schema is registered for ``service``
            SchemaError: If a field name is not part of the schema
        """
        return self.schema(service).indices_for(field_names)

    def names_for(self, service: Union[str, Services], record: Mapping[str, Any]) -> dict[str, Any]:
        """Copy of ``record`` with numeric keys replaced by field names.

        Literal keys (``key``, ``seq`` and any other named vendor extras) are kept
        unchanged; numeric keys missing from the schema are dropped.
        """
        return self.schema(service).names_for(record)


DEFAULT_REGISTRY = FieldSchemaRegistry(
    [
        ACCT_ACTIVITY,
        CHART_EQUITY,
        CHART_FUTURES,
        CHART_OPTIONS,
        NEWS_HEADLINE,
        TIMESALE_EQUITY,
        TIMESALE_FUTURES,
        TIMESALE_OPTIONS,
        TIMESALE_FOREX,
        QUOTE,
        OPTION,
        LEVELONE_FUTURES,
        LEVELONE_FOREX,
        LEVELONE_FUTURES_OPTIONS,
    ]
)
