# central location for streamer configurations

from dataclasses import dataclass

from ameritrade.config.enumerations import QOSLevel, Services, StreamerEvent


@dataclass
class StreamerConfig:
    connect_timeout: int = 10
    send_timeout: int = 5
    default_qos: QOSLevel = QOSLevel.FAST
    socket_path: str = "/ws"
    protocol_version: str = "1.0"


# Category event emitted for decoded data frames of each service
SERVICE_EVENTS: dict[str, StreamerEvent] = {
    Services.ACCT_ACTIVITY.value: StreamerEvent.ACCOUNT_ACTIVITY,
    Services.CHART_EQUITY.value: StreamerEvent.CHART,
    Services.CHART_FUTURES.value: StreamerEvent.CHART,
    Services.CHART_OPTIONS.value: StreamerEvent.CHART,
    Services.NEWS_HEADLINE.value: StreamerEvent.NEWS_HEADLINE,
    Services.TIMESALE_EQUITY.value: StreamerEvent.TIMESALE,
    Services.TIMESALE_FUTURES.value: StreamerEvent.TIMESALE,
    Services.TIMESALE_OPTIONS.value: StreamerEvent.TIMESALE,
    Services.TIMESALE_FOREX.value: StreamerEvent.TIMESALE,
    Services.QUOTE.value: StreamerEvent.LEVEL_ONE_EQUITY,
    Services.OPTION.value: StreamerEvent.LEVEL_ONE_OPTION,
    Services.LEVELONE_FUTURES.value: StreamerEvent.LEVEL_ONE_FUTURES,
    Services.LEVELONE_FOREX.value: StreamerEvent.LEVEL_ONE_FOREX,
    Services.LEVELONE_FUTURES_OPTIONS.value: StreamerEvent.LEVEL_ONE_FUTURES_OPTIONS,
}
