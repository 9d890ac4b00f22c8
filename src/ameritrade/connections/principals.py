"""User principals bundle and the immutable session context derived from it.

The principals bundle is the vendor's ``GET /userprincipals`` payload requested with
``fields=streamerSubscriptionKeys,streamerConnectionInfo``. Fetching it is left to
the caller; this module only parses it.
"""

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Union
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ameritrade.common.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "1.0"
SOCKET_PATH = "/ws"


class PrincipalsModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class PrincipalAccount(PrincipalsModel):
    account_id: str = Field(alias="accountId")
    company: str
    segment: str
    account_cd_domain_id: str = Field(alias="accountCdDomainId")
    display_name: Optional[str] = Field(default=None, alias="displayName")

    @field_validator("account_id", mode="before")
    @classmethod
    def convert_account_id(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value


class StreamerInfo(PrincipalsModel):
    streamer_socket_url: str = Field(alias="streamerSocketUrl")
    token: str
    token_timestamp: Optional[str] = Field(default=None, alias="tokenTimestamp")
    user_group: str = Field(alias="userGroup")
    access_level: str = Field(alias="accessLevel")
    acl: str
    app_id: str = Field(alias="appId")


class SubscriptionKey(PrincipalsModel):
    key: str


class SubscriptionKeys(PrincipalsModel):
    keys: list[SubscriptionKey] = Field(default_factory=list)


class UserPrincipals(PrincipalsModel):
    user_id: Optional[str] = Field(default=None, alias="userId")
    accounts: list[PrincipalAccount]
    streamer_info: StreamerInfo = Field(alias="streamerInfo")
    streamer_subscription_keys: SubscriptionKeys = Field(
        default_factory=SubscriptionKeys, alias="streamerSubscriptionKeys"
    )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "UserPrincipals":
        with open(path, encoding="utf-8") as f:
            return cls.model_validate(json.load(f))


class SessionContext(BaseModel):
    """Read-only session values shared by every component for one connection."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    account_id: str
    source: str = Field(description="Streamer app ID")
    token: str
    version: str = PROTOCOL_VERSION
    company: str
    segment: str
    cd_domain: str
    user_group: str
    access_level: str
    acl: str
    streamer_url: str
    subscription_keys: tuple[str, ...] = ()

    @classmethod
    def from_principals(
        cls,
        principals: Union[UserPrincipals, Mapping[str, Any]],
        account_index: int = 0,
    ) -> "SessionContext":
        if not isinstance(principals, UserPrincipals):
            principals = UserPrincipals.model_validate(principals)

        try:
            account = principals.accounts[account_index]
        except IndexError:
            raise InvalidArgumentError(
                f"account index {account_index} out of range "
                f"({len(principals.accounts)} account(s) in principals)"
            ) from None

        info = principals.streamer_info
        return cls(
            account_id=account.account_id,
            source=info.app_id,
            token=info.token,
            company=account.company,
            segment=account.segment,
            cd_domain=account.account_cd_domain_id,
            user_group=info.user_group,
            access_level=info.access_level,
            acl=info.acl,
            streamer_url=info.streamer_socket_url,
            subscription_keys=tuple(k.key for k in principals.streamer_subscription_keys.keys),
        )

    @property
    def websocket_url(self) -> str:
        if self.streamer_url.startswith(("ws://", "wss://")):
            return self.streamer_url
        return f"wss://{self.streamer_url}{SOCKET_PATH}"

    def credential(self, timestamp: int) -> str:
        """URL-encoded LOGIN credential; ``timestamp`` is epoch milliseconds."""
        return urlencode(
            [
                ("userid", self.account_id),
                ("token", self.token),
                ("company", self.company),
                ("segment", self.segment),
                ("cddomain", self.cd_domain),
                ("usergroup", self.user_group),
                ("accesslevel", self.access_level),
                ("authorized", "Y"),
                ("timestamp", timestamp),
                ("appid", self.source),
                ("acl", self.acl),
            ]
        )

    def login_parameters(self, timestamp: int) -> dict[str, str]:
        return {
            "credential": self.credential(timestamp),
            "token": self.token,
            "version": self.version,
        }
