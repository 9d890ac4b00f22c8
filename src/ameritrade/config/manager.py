import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type, TypeVar, cast

import redis  # type: ignore
from dotenv import dotenv_values

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ConfigurationManager(ABC):
    """Abstract base class defining the configuration manager interface."""

    @abstractmethod
    def get(self, key: str, default: Any = None, value_type: Optional[Type[T]] = None) -> Any:
        """Get a configuration value."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Set a configuration value."""
        pass

    @abstractmethod
    def get_all(self) -> Dict[str, str]:
        """Get all configuration values."""
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete a configuration value."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close any connections."""
        pass

    @abstractmethod
    def initialize(self, force: bool = False) -> None:
        """Initialize the configuration storage."""
        pass


class ConfigManagerBase:
    """Shared value handling for configuration managers."""

    def convert_value(self, value: str, value_type: Type[T]) -> T:
        """Convert a string value to the specified type."""
        if value_type is bool:
            return cast(T, value.lower() in ["true", "1", "yes", "y", "t"])
        elif value_type is int:
            return cast(T, int(value))
        elif value_type is float:
            return cast(T, float(value))
        elif value_type is list or value_type is List:
            try:
                return cast(T, json.loads(value))
            except json.JSONDecodeError:
                # Fall back to comma-separated values
                return cast(T, [item.strip() for item in value.split(",")])
        elif value_type is dict or value_type is Dict:
            return cast(T, json.loads(value))
        else:
            return cast(T, value)

    @staticmethod
    def serialize_value(value: Any) -> str:
        if isinstance(value, str):
            return value
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return str(value)


class EnvConfigManager(ConfigManagerBase, ConfigurationManager):
    """Configuration read from a ``.env`` file, overridden by the process environment."""

    def __init__(self, env_file: Optional[str] = None) -> None:
        self.env_file = env_file or ".env"
        self.values: Dict[str, str] = {}
        self.initialized = False

    def initialize(self, force: bool = False) -> None:
        """Load the ``.env`` file and overlay ``os.environ``.

        Args:
            force: Reload even if already initialized
        """
        if self.initialized and not force:
            return

        env_vars = {k: v for k, v in dotenv_values(self.env_file).items() if v is not None}
        if not env_vars:
            logger.debug("No variables found in .env file: %s", self.env_file)

        self.values = {**env_vars, **os.environ}
        self.initialized = True

    def get(self, key: str, default: Any = None, value_type: Optional[Type[T]] = None) -> Any:
        self.initialize()

        value = self.values.get(key)
        if value is None:
            return default

        if value_type is not None:
            return self.convert_value(value, value_type)
        return value

    def set(self, key: str, value: Any) -> None:
        self.initialize()
        self.values[key] = self.serialize_value(value)

    def get_all(self) -> Dict[str, str]:
        self.initialize()
        return dict(self.values)

    def delete(self, key: str) -> None:
        self.initialize()
        self.values.pop(key, None)

    def close(self) -> None:
        self.values = {}
        self.initialized = False


class RedisConfigManager(ConfigManagerBase, ConfigurationManager):
    """Redis-backed synchronous configuration manager."""

    def __init__(
        self,
        redis_host: Optional[str] = None,
        redis_port: Optional[int] = None,
        redis_db: Optional[int] = None,
        namespace: str = "ameritrade",
        env_file: Optional[str] = None,
    ):
        """Initialize the configuration manager.

        Args:
            redis_host: Redis host (defaults to REDIS_HOST from .env or 'redis')
            redis_port: Redis port (defaults to REDIS_PORT from .env or 6379)
            redis_db: Redis DB (defaults to REDIS_DB from .env or 0)
            namespace: Redis hash key holding all configuration values
            env_file: Path to .env file used to seed the hash
        """
        self.env_file = env_file or ".env"
        env_vars = dotenv_values(self.env_file)

        self.namespace = namespace
        self.redis_client = redis.Redis(
            host=redis_host or env_vars.get("REDIS_HOST") or "redis",
            port=int(redis_port or env_vars.get("REDIS_PORT") or 6379),
            db=int(redis_db or env_vars.get("REDIS_DB") or 0),
        )
        self.initialized = False

    def initialize(self, force: bool = False) -> None:
        """Copy the ``.env`` file into the Redis hash.

        Args:
            force: Force reinitialization even if values already exist
        """
        if self.initialized and not force:
            return

        try:
            if env_vars := {k: v for k, v in dotenv_values(self.env_file).items() if v is not None}:
                self.redis_client.hset(self.namespace, mapping=env_vars)
                logger.info("Initialized %d variables from .env file in Redis", len(env_vars))
            else:
                logger.warning("No variables found in .env file: %s", self.env_file)

            self.initialized = True

        except Exception as e:
            logger.error("Error initializing configuration: %s", e)
            raise

    def get(self, key: str, default: Any = None, value_type: Optional[Type[T]] = None) -> Any:
        logger.debug("Getting %s from Redis", key)
        value = self.redis_client.hget(self.namespace, key)

        if value is None:
            return default

        value = value.decode("utf-8")

        if value_type is not None:
            value = self.convert_value(value, value_type)

        return value

    def set(self, key: str, value: Any) -> None:
        self.redis_client.hset(self.namespace, key, self.serialize_value(value))

    def get_all(self) -> Dict[str, str]:
        values = self.redis_client.hgetall(self.namespace)
        return {k.decode("utf-8"): v.decode("utf-8") for k, v in values.items()}

    def delete(self, key: str) -> None:
        self.redis_client.hdel(self.namespace, key)

    def close(self) -> None:
        """Close the Redis connection."""
        self.redis_client.close()


CONFIG_BACKENDS = ("env", "redis")


def create_config_manager(
    backend: str = "env", env_file: Optional[str] = None
) -> ConfigurationManager:
    """Build and initialize the configuration manager for ``backend``.

    ``redis`` seeds the Redis hash from ``env_file`` before returning.
    """
    config: ConfigurationManager
    if backend == "env":
        config = EnvConfigManager(env_file)
    elif backend == "redis":
        config = RedisConfigManager(env_file=env_file)
    else:
        raise ValueError(
            f"Unknown configuration backend '{backend}', "
            f"expected one of {', '.join(CONFIG_BACKENDS)}"
        )

    config.initialize()
    return config
