"""
Click CLI for streaming TD Ameritrade market data to the log.

This module implements the `td-stream` CLI tool: it connects, authenticates,
subscribes to one service and logs every decoded frame until the duration
elapses or the process is interrupted.
"""

import asyncio
import logging
import sys
from typing import Any, Optional

import click

from ameritrade.common.exceptions import AuthenticationFailure
from ameritrade.common.logging import setup_logging
from ameritrade.config.configurations import SERVICE_EVENTS
from ameritrade.config.enumerations import QOSLevel, Services, StreamerEvent
from ameritrade.config.manager import CONFIG_BACKENDS, create_config_manager
from ameritrade.connections import Credentials
from ameritrade.connections.principals import SessionContext, UserPrincipals
from ameritrade.connections.sockets import TDStreamer
from ameritrade.messaging.schemas import DEFAULT_REGISTRY

logger = logging.getLogger(__name__)

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

VALID_SERVICES = list(DEFAULT_REGISTRY.services)


def split_csv(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def validate_service(_ctx: click.Context, _param: click.Parameter, value: str) -> str:
    """Validate the service name against the registered field schemas."""
    service = value.upper()
    if service not in DEFAULT_REGISTRY:
        raise click.BadParameter(
            f"Unknown service: '{value}'. Valid services: {', '.join(VALID_SERVICES)}"
        )
    return service


def validate_symbols(
    _ctx: click.Context, _param: click.Parameter, value: Optional[str]
) -> list[str]:
    """Validate and parse comma-separated symbols."""
    if value is None:
        return []

    symbols = split_csv(value)
    if not symbols:
        raise click.BadParameter("At least one symbol is required")

    return symbols


def validate_fields(
    ctx: click.Context, _param: click.Parameter, value: Optional[str]
) -> list[str]:
    """Validate comma-separated field names against the service's schema."""
    fields = split_csv(value)
    service = ctx.params.get("service")
    if not fields or service is None:
        return fields

    known = DEFAULT_REGISTRY.schema(service).fields
    invalid = [name for name in fields if name not in known]
    if invalid:
        raise click.BadParameter(
            f"Invalid field(s) for {service}: {', '.join(invalid)}. "
            f"Valid fields: {', '.join(known)}"
        )
    return fields


def validate_qos(_ctx: click.Context, _param: click.Parameter, value: str) -> QOSLevel:
    try:
        return QOSLevel[value.upper()]
    except KeyError:
        raise click.BadParameter(
            f"Invalid QOS level: '{value}'. "
            f"Valid levels: {', '.join(level.name for level in QOSLevel)}"
        ) from None


def validate_log_level(_ctx: click.Context, _param: click.Parameter, value: str) -> str:
    """Validate log level."""
    value_upper = value.upper()
    if value_upper not in VALID_LOG_LEVELS:
        raise click.BadParameter(
            f"Invalid log level: '{value}'. "
            f"Valid levels: {', '.join(VALID_LOG_LEVELS)}"
        )
    return value_upper


def load_context(
    principals_file: Optional[str],
    config_backend: str,
    env_file: str,
    account_index: Optional[int],
) -> SessionContext:
    """Session context from ``--principals`` or, without it, from the configuration backend."""
    if principals_file:
        principals = UserPrincipals.from_file(principals_file)
        return SessionContext.from_principals(principals, account_index=account_index or 0)

    config = create_config_manager(config_backend, env_file)
    try:
        credentials = Credentials(config)
        if account_index is not None:
            credentials.account_index = account_index
        return credentials.session_context()
    except ValueError as e:
        raise click.UsageError(f"{e}. Pass --principals or configure TDA_PRINCIPALS_FILE") from e
    finally:
        config.close()


async def run_stream(
    context: SessionContext,
    service: str,
    symbols: list[str],
    fields: list[str],
    qos: QOSLevel,
    duration: Optional[float],
) -> None:
    streamer = TDStreamer(context)
    login_done = asyncio.Event()
    failures: list[AuthenticationFailure] = []

    def on_failed(failure: AuthenticationFailure) -> None:
        failures.append(failure)
        login_done.set()

    def on_frame(frame: dict[str, Any]) -> None:
        if frame.get("service") != service:
            return
        for record in frame.get("content", []):
            logger.info("%s %s", service, record)

    streamer.once(StreamerEvent.AUTHENTICATED, lambda _: login_done.set())
    streamer.once(StreamerEvent.AUTHENTICATION_FAILED, on_failed)
    streamer.on(SERVICE_EVENTS[service], on_frame)
    streamer.on(StreamerEvent.HEARTBEAT, lambda heartbeat: logger.debug("Heartbeat %s", heartbeat))

    async with streamer:
        await asyncio.wait_for(login_done.wait(), timeout=streamer.config.connect_timeout)
        if failures:
            raise failures[0]

        streamer.set_qos(qos)
        if service == Services.ACCT_ACTIVITY.value:
            streamer.subs_account_activity(fields=fields or None, keys=symbols or None)
        else:
            streamer.subscribe_service(Services(service), symbols, fields or None)
        await streamer.flush()

        if duration:
            await asyncio.sleep(duration)
        else:
            await asyncio.Event().wait()


@click.command()
@click.version_option(version="0.1.0", prog_name="td-stream")
@click.option(
    "--principals",
    "principals_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to the user principals JSON. Default: TDA_PRINCIPALS_FILE from the configuration",
)
@click.option(
    "--config",
    "config_backend",
    type=click.Choice(CONFIG_BACKENDS),
    default="env",
    help="Configuration backend read when --principals is not given. Default: env",
)
@click.option(
    "--env-file",
    default=".env",
    help="Path to the .env file (seeds Redis for --config redis). Default: .env",
)
@click.option(
    "--service",
    required=True,
    is_eager=True,
    callback=validate_service,
    help=f"Streamer service. Valid: {', '.join(VALID_SERVICES)}",
)
@click.option(
    "--symbols",
    callback=validate_symbols,
    help="Comma-separated list of symbols (e.g., SPY,QQQ). Defaults to the "
    "subscription key for ACCT_ACTIVITY",
)
@click.option(
    "--fields",
    callback=validate_fields,
    help="Comma-separated field names. Default: every field of the service",
)
@click.option(
    "--account-index",
    default=None,
    type=int,
    help="Index of the account in the principals bundle. Default: TDA_ACCOUNT_INDEX or 0",
)
@click.option(
    "--qos",
    default=QOSLevel.FAST.name,
    callback=validate_qos,
    help=f"Update frequency. Valid: {', '.join(level.name for level in QOSLevel)}. Default: fast",
)
@click.option(
    "--log-level",
    default="INFO",
    callback=validate_log_level,
    help="Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO",
)
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON objects")
@click.option(
    "--duration",
    type=float,
    default=None,
    help="Seconds to stream before disconnecting. Default: run until interrupted",
)
def main(
    principals_file: Optional[str],
    config_backend: str,
    env_file: str,
    service: str,
    symbols: list[str],
    fields: list[str],
    account_index: Optional[int],
    qos: QOSLevel,
    log_level: str,
    json_logs: bool,
    duration: Optional[float],
) -> None:
    """Stream one TD Ameritrade service and log the decoded records.

    \b
    Example:
      td-stream --principals principals.json --service CHART_EQUITY --symbols SPY,QQQ
    """
    if service != Services.ACCT_ACTIVITY.value and not symbols:
        raise click.UsageError(f"--symbols is required for {service}")

    setup_logging(level=getattr(logging, log_level), json_format=json_logs)

    context = load_context(principals_file, config_backend, env_file, account_index)

    logger.info("=" * 60)
    logger.info("TD Ameritrade Streamer - Starting")
    logger.info("=" * 60)
    logger.info("  Account:  %s", context.account_id)
    logger.info("  Service:  %s", service)
    logger.info("  Symbols:  %s", ", ".join(symbols) or "(subscription key)")
    logger.info("  Fields:   %s", ", ".join(fields) or "(all)")
    logger.info("  QOS:      %s", qos.name)
    logger.info("=" * 60)

    try:
        asyncio.run(run_stream(context, service, symbols, fields, qos, duration))
    except KeyboardInterrupt:
        logger.info("Received interrupt signal - shutting down")
    except AuthenticationFailure as e:
        logger.error("Login rejected: %s", e)
        sys.exit(2)
    except Exception as e:
        logger.error("Fatal error: %s", e, exc_info=True)
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
