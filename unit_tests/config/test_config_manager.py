from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from ameritrade.config.manager import (
    ConfigManagerBase,
    EnvConfigManager,
    RedisConfigManager,
    create_config_manager,
)


@pytest.fixture
def env_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    for name in ("TDA_QOS", "TDA_ACCOUNT_INDEX", "TDA_SYMBOLS", "TDA_FLAGS"):
        monkeypatch.delenv(name, raising=False)

    path = tmp_path / ".env"
    path.write_text(
        "TDA_QOS=slow\n"
        "TDA_ACCOUNT_INDEX=2\n"
        'TDA_SYMBOLS=["SPY", "QQQ"]\n'
        "REDIS_HOST=cache\n"
        "REDIS_PORT=6380\n"
    )
    return str(path)


# ---------------------------------------------------------------------------
# Value conversion
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "value, value_type, expected",
    [
        ("true", bool, True),
        ("Y", bool, True),
        ("no", bool, False),
        ("42", int, 42),
        ("1.5", float, 1.5),
        ('["SPY", "QQQ"]', list, ["SPY", "QQQ"]),
        ("SPY, QQQ", list, ["SPY", "QQQ"]),
        ('{"a": 1}', dict, {"a": 1}),
        ("plain", str, "plain"),
    ],
)
def test_convert_value(value: str, value_type: type, expected: object) -> None:
    assert ConfigManagerBase().convert_value(value, value_type) == expected


@pytest.mark.parametrize(
    "value, expected",
    [("text", "text"), (3, "3"), (["a"], '["a"]'), ({"k": "v"}, '{"k": "v"}')],
)
def test_serialize_value(value: object, expected: str) -> None:
    assert ConfigManagerBase.serialize_value(value) == expected


# ---------------------------------------------------------------------------
# EnvConfigManager
# ---------------------------------------------------------------------------


def test_env_manager_reads_dotenv(env_file: str) -> None:
    config = EnvConfigManager(env_file)

    assert config.get("TDA_QOS") == "slow"
    assert config.get("TDA_ACCOUNT_INDEX", value_type=int) == 2
    assert config.get("TDA_SYMBOLS", value_type=list) == ["SPY", "QQQ"]
    assert config.get("MISSING", default="fallback") == "fallback"


def test_env_manager_environment_overrides_file(
    env_file: str, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("TDA_QOS", "express")
    assert EnvConfigManager(env_file).get("TDA_QOS") == "express"


def test_env_manager_set_and_delete(env_file: str) -> None:
    config = EnvConfigManager(env_file)

    config.set("TDA_FLAGS", {"json": True})
    assert config.get("TDA_FLAGS", value_type=dict) == {"json": True}

    config.delete("TDA_FLAGS")
    assert config.get("TDA_FLAGS") is None


def test_env_manager_close_resets(env_file: str) -> None:
    config = EnvConfigManager(env_file)
    config.set("TDA_QOS", "delayed")

    config.close()

    assert config.get("TDA_QOS") == "slow"


# ---------------------------------------------------------------------------
# RedisConfigManager
# ---------------------------------------------------------------------------


@patch("ameritrade.config.manager.redis.Redis")
def test_redis_manager_uses_env_connection_settings(mock_redis: MagicMock, env_file: str) -> None:
    RedisConfigManager(env_file=env_file)
    mock_redis.assert_called_once_with(host="cache", port=6380, db=0)


@patch("ameritrade.config.manager.redis.Redis")
def test_redis_manager_initialize_seeds_hash(mock_redis: MagicMock, env_file: str) -> None:
    config = RedisConfigManager(env_file=env_file)

    config.initialize()
    config.initialize()

    client = mock_redis.return_value
    client.hset.assert_called_once()
    assert client.hset.call_args.args == ("ameritrade",)
    assert client.hset.call_args.kwargs["mapping"]["TDA_QOS"] == "slow"


@patch("ameritrade.config.manager.redis.Redis")
def test_redis_manager_get_decodes_and_converts(mock_redis: MagicMock, env_file: str) -> None:
    client = mock_redis.return_value
    client.hget.return_value = b"2"
    config = RedisConfigManager(env_file=env_file)

    assert config.get("TDA_ACCOUNT_INDEX", value_type=int) == 2
    client.hget.assert_called_once_with("ameritrade", "TDA_ACCOUNT_INDEX")


@patch("ameritrade.config.manager.redis.Redis")
def test_redis_manager_get_missing_returns_default(mock_redis: MagicMock, env_file: str) -> None:
    mock_redis.return_value.hget.return_value = None
    config = RedisConfigManager(env_file=env_file)

    assert config.get("TDA_QOS", default="fast") == "fast"


@patch("ameritrade.config.manager.redis.Redis")
def test_redis_manager_set_get_all_delete(mock_redis: MagicMock, env_file: str) -> None:
    client = mock_redis.return_value
    client.hgetall.return_value = {b"TDA_QOS": b"slow"}
    config = RedisConfigManager(env_file=env_file, namespace="streamer")

    config.set("TDA_SYMBOLS", ["SPY"])
    config.delete("TDA_QOS")

    client.hset.assert_called_once_with("streamer", "TDA_SYMBOLS", '["SPY"]')
    client.hdel.assert_called_once_with("streamer", "TDA_QOS")
    assert config.get_all() == {"TDA_QOS": "slow"}


@patch("ameritrade.config.manager.redis.Redis")
def test_redis_manager_close(mock_redis: MagicMock, env_file: str) -> None:
    RedisConfigManager(env_file=env_file).close()
    mock_redis.return_value.close.assert_called_once_with()


# ---------------------------------------------------------------------------
# Backend selection
# ---------------------------------------------------------------------------


def test_create_config_manager_env(env_file: str) -> None:
    config = create_config_manager("env", env_file)

    assert isinstance(config, EnvConfigManager)
    assert config.get("TDA_QOS") == "slow"


@patch("ameritrade.config.manager.redis.Redis")
def test_create_config_manager_redis_seeds_hash(mock_redis: MagicMock, env_file: str) -> None:
    config = create_config_manager("redis", env_file)

    assert isinstance(config, RedisConfigManager)
    assert mock_redis.return_value.hset.call_args.kwargs["mapping"]["TDA_ACCOUNT_INDEX"] == "2"


def test_create_config_manager_rejects_unknown_backend() -> None:
    with pytest.raises(ValueError, match="Unknown configuration backend 'etcd'"):
        create_config_manager("etcd")
