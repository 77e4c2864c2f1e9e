"""Connector client command line. Use --help for usage."""

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from connector.auth.credentials import AnonymousCredentials, StaticTokenCredentials
from connector.client import ConnectorClient
from connector.config import ClientConfiguration, load_configuration
from connector.errors.exceptions import ConnectorError, OperationCanceledError
from connector.logging.setup import setup_logging
from connector.lro.models import OperationHandle
from connector.types import CredentialProvider

# Project root directory (where .env file is located)
# __main__.py is at src/connector/__main__.py, so root is 3 levels up
PROJECT_ROOT = Path(__file__).parent.parent.parent

TOKEN_ENV_VAR = "CONNECTOR_TOKEN"

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m connector",
        description="Connector service client tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Show the user agent and effective configuration
    python -m connector info

    # Same, loading settings from a YAML file
    python -m connector --config config/connector.yaml info --json

    # Poll a long-running operation until it finishes (token from CONNECTOR_TOKEN)
    python -m connector poll https://api.botframework.com/v3/operations/abc123
        """,
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML file with a 'connector:' section (default: built-in defaults)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Logging level (default: WARNING)",
    )

    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit log records as JSON lines",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    info = subparsers.add_parser("info", help="Print the user agent and effective configuration")
    info.add_argument("--json", action="store_true", help="Print as JSON")

    poll = subparsers.add_parser("poll", help="Poll a long-running operation to completion")
    poll.add_argument("location", help="Operation location URL")
    poll.add_argument(
        "--timeout",
        type=int,
        default=None,
        help="Seconds to wait (default: long_running_operation_timeout from configuration)",
    )

    return parser.parse_args(argv)


def _credentials_from_env() -> CredentialProvider:
    token = os.getenv(TOKEN_ENV_VAR)
    if token:
        return StaticTokenCredentials(token)
    return AnonymousCredentials()


def _build_configuration(args: argparse.Namespace) -> ClientConfiguration:
    credentials = _credentials_from_env()
    if args.config:
        return load_configuration(args.config, credentials)
    return ClientConfiguration(credentials=credentials)


def describe_configuration(config: ClientConfiguration) -> dict[str, Any]:
    transport = config.transport
    return {
        "user_agent": config.user_agent,
        "base_url": config.base_url,
        "accept_language": config.accept_language,
        "generate_client_request_id": config.generate_client_request_id,
        "long_running_operation_timeout": config.long_running_operation_timeout,
        "lro_poll_interval": config.lro_poll_interval,
        "retry_policy": repr(config.retry_policy),
        "transport": {
            "request_timeout": transport.request_timeout,
            "max_connections": transport.max_connections,
            "proxy": transport.proxy,
            "verify_ssl": transport.verify_ssl,
        },
        "credentials": type(config.credentials).__name__,
    }


def run_info(config: ClientConfiguration, as_json: bool) -> int:
    details = describe_configuration(config)
    if as_json:
        print(json.dumps(details, indent=2))
        return 0

    for key, value in details.items():
        if isinstance(value, dict):
            print(f"{key}:")
            for sub_key, sub_value in value.items():
                print(f"  {sub_key}: {sub_value}")
        else:
            print(f"{key}: {value}")
    return 0


def _install_cancel_handler(loop: asyncio.AbstractEventLoop, cancel_event: asyncio.Event) -> None:
    def handle_signal(sig: signal.Signals) -> None:
        logger.info("Received signal, canceling poll", extra={"signal": sig.name})
        cancel_event.set()

    if sys.platform == "win32":
        logger.debug("Signal handlers not supported on Windows, using KeyboardInterrupt")
        return

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))


async def run_poll(config: ClientConfiguration, location: str) -> int:
    if isinstance(config.credentials, AnonymousCredentials):
        print(f"{TOKEN_ENV_VAR} is not set, polling without authentication", file=sys.stderr)

    cancel_event = asyncio.Event()
    _install_cancel_handler(asyncio.get_running_loop(), cancel_event)

    async with ConnectorClient(configuration=config) as client:
        handle = OperationHandle(location=location)
        try:
            result = await client.wait_for_operation(handle, cancel_event=cancel_event)
        except OperationCanceledError as e:
            print(f"Canceled after {handle.poll_count} polls: {e}", file=sys.stderr)
            return 130 if e.by_caller else 1

    print(json.dumps({"status": handle.state.value, "result": result}, indent=2, default=str))
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv(PROJECT_ROOT / ".env")
    args = parse_args(argv)
    setup_logging(level=args.log_level, json_format=args.json_logs, stream=sys.stderr)

    try:
        config = _build_configuration(args)
        if args.command == "poll" and args.timeout is not None:
            config = config.with_changes(long_running_operation_timeout=args.timeout)

        if args.command == "info":
            return run_info(config, args.json)
        return asyncio.run(run_poll(config, args.location))
    except (ConnectorError, ValueError, FileNotFoundError) as e:
        logger.error("Command failed", extra={"error_type": type(e).__name__})
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
