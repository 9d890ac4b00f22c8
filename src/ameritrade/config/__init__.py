from ameritrade.config.manager import (
    CONFIG_BACKENDS,
    ConfigurationManager,
    EnvConfigManager,
    RedisConfigManager,
    create_config_manager,
)

__all__ = [
    "CONFIG_BACKENDS",
    "ConfigurationManager",
    "EnvConfigManager",
    "RedisConfigManager",
    "create_config_manager",
]
