"""LOGIN handshake state machine for one streamer connection.

States::

    CONNECTING --on_open--> AWAITING_LOGIN_RESPONSE --code 0--> AUTHENTICATED
                                     |
                                     +--other code / on_close--> FAILED

AUTHENTICATED and FAILED are terminal; LOGIN responses arriving after either are
ignored. A controller lives for exactly one connection.
"""

import logging
import time
from typing import Any, Callable, Optional

from ameritrade.common.exceptions import AuthenticationFailure
from ameritrade.config.enumerations import AuthState, Commands, Services, StreamerEvent
from ameritrade.connections.principals import SessionContext
from ameritrade.messaging.events import EventEmitter
from ameritrade.messaging.models.messages import RequestBatch, ResponseEntry
from ameritrade.messaging.requests import RequestBuilder

logger = logging.getLogger(__name__)

Clock = Callable[[], int]
Sender = Callable[[RequestBatch], Any]

LOGIN_SUCCESS_CODE = 0


def epoch_millis() -> int:
    return int(time.time() * 1000)


def is_success_code(code: Any) -> bool:
    # bool is an int subclass; True must not read as code 1 or False as 0
    return isinstance(code, int) and not isinstance(code, bool) and code == LOGIN_SUCCESS_CODE


class AuthenticationController:
    def __init__(
        self,
        context: SessionContext,
        builder: RequestBuilder,
        send: Sender,
        emitter: EventEmitter,
        clock: Clock = epoch_millis,
    ) -> None:
        self.context = context
        self.builder = builder
        self.send = send
        self.emitter = emitter
        self.clock = clock

        self.state = AuthState.CONNECTING
        self.login_request: Optional[RequestBatch] = None
        self.failure: Optional[AuthenticationFailure] = None

    @property
    def is_authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED

    @property
    def is_terminal(self) -> bool:
        return self.state in (AuthState.AUTHENTICATED, AuthState.FAILED)

    def on_open(self) -> Optional[RequestBatch]:
        """Send ADMIN/LOGIN and start waiting for its response."""
        if self.state is not AuthState.CONNECTING:
            logger.warning("Ignoring transport open in state %s", self.state.name)
            return None

        timestamp = self.clock()
        batch = self.builder.build(
            {
                "service": Services.ADMIN,
                "command": Commands.LOGIN,
                "parameters": self.context.login_parameters(timestamp),
            }
        )

        self.send(batch)
        self.login_request = batch
        self.state = AuthState.AWAITING_LOGIN_RESPONSE
        logger.info("LOGIN sent for account %s", self.context.account_id)
        return batch

    def on_response(self, entry: ResponseEntry) -> None:
        if entry.service != Services.ADMIN.value or entry.command != Commands.LOGIN.value:
            return

        if self.state is not AuthState.AWAITING_LOGIN_RESPONSE:
            logger.debug("Ignoring LOGIN response in state %s", self.state.name)
            return

        if is_success_code(entry.code):
            self.state = AuthState.AUTHENTICATED
            logger.info("Streamer session authenticated: %s", entry.msg)
            self.emitter.emit(StreamerEvent.AUTHENTICATED, entry)
        else:
            self.fail(AuthenticationFailure(entry.msg or "LOGIN rejected", code=entry.code))

    def on_close(self) -> None:
        if self.is_terminal:
            return
        self.fail(AuthenticationFailure("Connection closed before LOGIN completed"))

    def fail(self, failure: AuthenticationFailure) -> None:
        self.state = AuthState.FAILED
        self.failure = failure
        logger.error("Streamer authentication failed: %s", failure)
        self.emitter.emit(StreamerEvent.AUTHENTICATION_FAILED, failure)
