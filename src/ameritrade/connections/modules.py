import logging
from typing import Optional

from injector import Injector, Module, provider, singleton

from ameritrade.config.configurations import StreamerConfig
from ameritrade.config.manager import (
    ConfigurationManager,
    EnvConfigManager,
    create_config_manager,
)
from ameritrade.connections import Credentials
from ameritrade.connections.principals import SessionContext
from ameritrade.connections.sockets import TDStreamer
from ameritrade.connections.transport import WebSocketTransport
from ameritrade.messaging.schemas import DEFAULT_REGISTRY, FieldSchemaRegistry

logger = logging.getLogger(__name__)


class StreamerModule(Module):
    """Wires a websocket-backed ``TDStreamer`` from configuration.

    Usage::

        injector = Injector([StreamerModule(EnvConfigManager(".env"))])
        streamer = injector.get(TDStreamer)
    """

    def __init__(
        self,
        config: Optional[ConfigurationManager] = None,
        streamer_config: Optional[StreamerConfig] = None,
    ) -> None:
        self.config = config or EnvConfigManager()
        self.streamer_config = streamer_config or StreamerConfig()

    @singleton
    @provider
    def provide_configuration(self) -> ConfigurationManager:
        return self.config

    @singleton
    @provider
    def provide_streamer_config(self) -> StreamerConfig:
        return self.streamer_config

    @singleton
    @provider
    def provide_credentials(self, config: ConfigurationManager) -> Credentials:
        return Credentials(config)

    @singleton
    @provider
    def provide_session_context(self, credentials: Credentials) -> SessionContext:
        context = credentials.session_context()
        logger.info("Session context loaded for account %s", context.account_id)
        return context

    @singleton
    @provider
    def provide_registry(self) -> FieldSchemaRegistry:
        return DEFAULT_REGISTRY

    @singleton
    @provider
    def provide_streamer(
        self,
        context: SessionContext,
        registry: FieldSchemaRegistry,
        streamer_config: StreamerConfig,
    ) -> TDStreamer:
        return TDStreamer(
            context,
            transport=WebSocketTransport(connect_timeout=streamer_config.connect_timeout),
            registry=registry,
            config=streamer_config,
        )


def create_injector(
    config: Optional[ConfigurationManager] = None,
    backend: str = "env",
    env_file: Optional[str] = None,
) -> Injector:
    """Injector over ``config``, or over a fresh manager for ``backend`` when not given."""
    if config is None:
        config = create_config_manager(backend, env_file)
    return Injector([StreamerModule(config)])
