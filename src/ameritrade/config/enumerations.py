import logging
from enum import Enum

logger = logging.getLogger(__name__)


class Services(str, Enum):
    ADMIN = "ADMIN"
    ACCT_ACTIVITY = "ACCT_ACTIVITY"
    CHART_EQUITY = "CHART_EQUITY"
    CHART_FUTURES = "CHART_FUTURES"
    CHART_OPTIONS = "CHART_OPTIONS"
    NEWS_HEADLINE = "NEWS_HEADLINE"
    TIMESALE_EQUITY = "TIMESALE_EQUITY"
    TIMESALE_FUTURES = "TIMESALE_FUTURES"
    TIMESALE_OPTIONS = "TIMESALE_OPTIONS"
    TIMESALE_FOREX = "TIMESALE_FOREX"
    QUOTE = "QUOTE"
    OPTION = "OPTION"
    LEVELONE_FUTURES = "LEVELONE_FUTURES"
    LEVELONE_FOREX = "LEVELONE_FOREX"
    LEVELONE_FUTURES_OPTIONS = "LEVELONE_FUTURES_OPTIONS"


class Commands(str, Enum):
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    QOS = "QOS"
    SUBS = "SUBS"
    UNSUBS = "UNSUBS"
    ADD = "ADD"
    VIEW = "VIEW"


class QOSLevel(Enum):
    """Server-side update frequency tiers."""

    EXPRESS = 0  # 500 ms
    REALTIME = 1  # 750 ms
    FAST = 2  # 1000 ms
    MODERATE = 3  # 1500 ms
    SLOW = 4  # 3000 ms
    DELAYED = 5  # 5000 ms


class AuthState(Enum):
    """States of the streamer LOGIN handshake."""

    CONNECTING = "connecting"
    AWAITING_LOGIN_RESPONSE = "awaiting_login_response"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class StreamerEvent(str, Enum):
    """Signals emitted by the streamer to registered listeners."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    AUTHENTICATED = "authenticated"
    AUTHENTICATION_FAILED = "authentication_failed"
    MESSAGE = "message"
    RESPONSE = "response"
    HEARTBEAT = "heartbeat"
    NOTIFICATION = "notification"
    ACCOUNT_ACTIVITY = "account_activity"
    CHART = "chart"
    NEWS_HEADLINE = "news_headline"
    TIMESALE = "timesale"
    LEVEL_ONE_EQUITY = "level_one_equity"
    LEVEL_ONE_OPTION = "level_one_option"
    LEVEL_ONE_FUTURES = "level_one_futures"
    LEVEL_ONE_FOREX = "level_one_forex"
    LEVEL_ONE_FUTURES_OPTIONS = "level_one_futures_options"
