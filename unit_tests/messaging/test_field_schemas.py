"""Tests for the per-service field tables and the schema registry."""

import pytest

from ameritrade.common.exceptions import InvalidArgumentError, SchemaError, UnknownServiceError
from ameritrade.config.enumerations import Services
from ameritrade.messaging.schemas import (
    CHART_EQUITY,
    CHART_FUTURES,
    CHART_OPTIONS,
    DEFAULT_REGISTRY,
    FieldSchema,
    FieldSchemaRegistry,
)

# ---------------------------------------------------------------------------
# indices_for
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "service, field_names, expected",
    [
        ("ACCT_ACTIVITY", None, "0,1,2,3"),
        ("ACCT_ACTIVITY", ["accountNumber", "messageData", "subscriptionKey"], "1,3,0"),
        ("CHART_EQUITY", None, "0,1,2,3,4,5,6,7"),
        ("CHART_EQUITY", ["key", "openPrice", "closePrice"], "0,1,4"),
        ("CHART_FUTURES", None, "0,1,2,3,4,5,6"),
        ("CHART_FUTURES", ["key", "openPrice", "closePrice"], "0,2,5"),
        ("CHART_OPTIONS", ["key", "openPrice", "closePrice"], "0,2,5"),
        ("NEWS_HEADLINE", None, "0,1,2,3,4,5,6,7,8,9,10"),
        ("NEWS_HEADLINE", ["symbol", "headline"], "0,5"),
        ("TIMESALE_EQUITY", None, "0,1,2,3,4"),
        ("TIMESALE_FUTURES", ["symbol", "lastPrice"], "0,2"),
        ("TIMESALE_OPTIONS", ["symbol", "lastPrice"], "0,2"),
        ("TIMESALE_FOREX", ["symbol", "lastPrice"], "0,2"),
    ],
)
def test_indices_for_matches_wire_layout(service: str, field_names: list, expected: str) -> None:
    assert DEFAULT_REGISTRY.indices_for(service, field_names) == expected


def test_indices_for_preserves_caller_order() -> None:
    assert DEFAULT_REGISTRY.indices_for("CHART_EQUITY", ["chartTime", "key", "volume"]) == "7,0,5"


def test_indices_for_empty_list_means_defaults() -> None:
    assert DEFAULT_REGISTRY.indices_for("TIMESALE_EQUITY", []) == "0,1,2,3,4"


def test_indices_for_accepts_single_name() -> None:
    assert DEFAULT_REGISTRY.indices_for("CHART_EQUITY", "volume") == "5"


def test_indices_for_accepts_service_enum() -> None:
    assert DEFAULT_REGISTRY.indices_for(Services.NEWS_HEADLINE, ["headline"]) == "5"


def test_indices_for_unknown_field_raises_schema_error() -> None:
    with pytest.raises(SchemaError) as exc_info:
        DEFAULT_REGISTRY.indices_for("CHART_EQUITY", ["key", "bogus"])

    assert exc_info.value.service == "CHART_EQUITY"
    assert exc_info.value.field == "bogus"


def test_indices_for_unknown_service_raises() -> None:
    with pytest.raises(UnknownServiceError, match="NOPE"):
        DEFAULT_REGISTRY.indices_for("NOPE", None)


# ---------------------------------------------------------------------------
# names_for
# ---------------------------------------------------------------------------


def test_names_for_chart_equity_record() -> None:
    record = {
        "1": 318.01,
        "2": 318.15,
        "3": 318.01,
        "4": 318.1,
        "5": 4460,
        "6": 779,
        "7": 1594425540000,
        "8": 18453,
        "seq": 707,
        "key": "SPY",
    }

    assert DEFAULT_REGISTRY.names_for("CHART_EQUITY", record) == {
        "key": "SPY",
        "seq": 707,
        "openPrice": 318.01,
        "highPrice": 318.15,
        "lowPrice": 318.01,
        "closePrice": 318.1,
        "volume": 4460,
        "chartTime": 1594425540000,
    }


def test_names_for_drops_unknown_indices() -> None:
    decoded = DEFAULT_REGISTRY.names_for("TIMESALE_EQUITY", {"2": 0.703, "99": "x", "key": "OAS"})
    assert decoded == {"key": "OAS", "lastPrice": 0.703}


def test_names_for_literal_key_wins_over_decoded_index() -> None:
    decoded = DEFAULT_REGISTRY.names_for("CHART_FUTURES", {"0": "/NQ", "key": "/ES"})
    assert decoded["key"] == "/ES"


def test_chart_equity_index_six_folds_into_seq() -> None:
    assert DEFAULT_REGISTRY.indices_for("CHART_EQUITY", ["seq"]) == "6"
    assert DEFAULT_REGISTRY.names_for("CHART_EQUITY", {"6": 779, "seq": 707}) == {"seq": 707}
    assert DEFAULT_REGISTRY.names_for("CHART_EQUITY", {"6": 779, "key": "SPY"}) == {
        "key": "SPY",
        "seq": 779,
    }


def test_names_for_keeps_vendor_extras() -> None:
    decoded = DEFAULT_REGISTRY.names_for("QUOTE", {"key": "SPY", "delayed": False, "3": 318.1})
    assert decoded == {"key": "SPY", "delayed": False, "lastPrice": 318.1}


def test_names_for_does_not_mutate_input() -> None:
    record = {"1": 1594414740000, "key": "/ES"}
    DEFAULT_REGISTRY.names_for("CHART_FUTURES", record)
    assert record == {"1": 1594414740000, "key": "/ES"}


def test_names_for_unknown_service_raises() -> None:
    with pytest.raises(UnknownServiceError):
        DEFAULT_REGISTRY.names_for("NOPE", {"1": 2})


@pytest.mark.parametrize("service", DEFAULT_REGISTRY.services)
def test_round_trip_recovers_requested_names(service: str) -> None:
    schema = DEFAULT_REGISTRY.schema(service)
    names = list(reversed(schema.fields))

    indices = DEFAULT_REGISTRY.indices_for(service, names).split(",")
    record = {index: f"value-{index}" for index in indices}

    assert set(DEFAULT_REGISTRY.names_for(service, record)) == set(names)


# ---------------------------------------------------------------------------
# Schemas and registry
# ---------------------------------------------------------------------------


def test_chart_options_reuses_chart_futures_layout() -> None:
    assert CHART_OPTIONS.service == "CHART_OPTIONS"
    assert CHART_OPTIONS.fields == CHART_FUTURES.fields


def test_schema_rejects_duplicate_names() -> None:
    with pytest.raises(InvalidArgumentError):
        FieldSchema(service="DUP", fields=("key", "price", "key"))


def test_schema_is_immutable() -> None:
    with pytest.raises(AttributeError):
        CHART_EQUITY.fields = ("key",)  # type: ignore[misc]


def test_registry_rejects_duplicate_service() -> None:
    registry = FieldSchemaRegistry([CHART_EQUITY])
    with pytest.raises(InvalidArgumentError):
        registry.register(CHART_EQUITY.alias("CHART_EQUITY"))


def test_registry_contains_every_data_service() -> None:
    expected = {service.value for service in Services if service is not Services.ADMIN}
    assert set(DEFAULT_REGISTRY.services) == expected


def test_registry_membership_accepts_enum_and_string() -> None:
    assert Services.QUOTE in DEFAULT_REGISTRY
    assert "LEVELONE_FOREX" in DEFAULT_REGISTRY
    assert "ADMIN" not in DEFAULT_REGISTRY


@pytest.mark.parametrize(
    "service, size",
    [
        ("QUOTE", 53),
        ("OPTION", 42),
        ("LEVELONE_FUTURES", 36),
        ("LEVELONE_FUTURES_OPTIONS", 36),
        ("LEVELONE_FOREX", 30),
    ],
)
def test_level_one_tables(service: str, size: int) -> None:
    schema = DEFAULT_REGISTRY.schema(service)
    assert len(schema.fields) == size
    assert schema.fields[0] == "key"
