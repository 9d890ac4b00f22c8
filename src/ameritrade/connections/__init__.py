from typing import Optional

from ameritrade.config import ConfigurationManager
from ameritrade.config.enumerations import QOSLevel
from ameritrade.connections.principals import SessionContext, UserPrincipals


class Credentials:
    principals_file: Optional[str]
    account_index: int
    qos: QOSLevel

    @property
    def as_dict(self) -> dict:
        return vars(self)

    def __init__(self, config: ConfigurationManager):
        """Streamer credentials located through the configuration manager.

        Args:
            config: Configuration manager for reading env vars.

        Raises:
            ValueError: If TDA_QOS does not name a QOS level
        """
        self.principals_file = config.get("TDA_PRINCIPALS_FILE")
        self.account_index = config.get("TDA_ACCOUNT_INDEX", default=0, value_type=int)

        qos_name = config.get("TDA_QOS", default=QOSLevel.FAST.name)
        try:
            self.qos = QOSLevel[qos_name.upper()]
        except KeyError:
            raise ValueError(
                f"TDA_QOS must be one of {', '.join(level.name for level in QOSLevel)}"
            ) from None

    def session_context(self) -> SessionContext:
        if not self.principals_file:
            raise ValueError("TDA_PRINCIPALS_FILE is not configured")

        principals = UserPrincipals.from_file(self.principals_file)
        return SessionContext.from_principals(principals, account_index=self.account_index)


__all__ = ["Credentials", "SessionContext", "UserPrincipals"]
