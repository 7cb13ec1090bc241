"""Entry point for the Satellite Config MCP server.

Options given on the command line override SATCON_MCP_* environment
variables and the .env file. Credentials are deliberately not accepted as
plain arguments: the API key comes from the environment or from a file.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from satcon_mcp import __version__
from satcon_mcp.config import LogLevel, OperationTimeouts, SatconConfig, TransportMode
from satcon_mcp.utils.errors import SatconError

OPERATIONS = ("create", "read", "update", "delete")


def setup_logging(level: LogLevel) -> None:
    """Log to stderr; stdout carries the stdio transport."""
    logging.basicConfig(
        level=level.value,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def _positive_seconds(value: str) -> float:
    seconds = float(value)
    if seconds <= 0:
        raise argparse.ArgumentTypeError(f"timeout must be positive, got {value}")
    return seconds


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="satcon-mcp",
        description="MCP server for IBM Cloud Satellite Config cluster groups",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--check-credentials",
        action="store_true",
        help="Resolve the IAM session, print the account ID and exit",
    )
    parser.add_argument("--log-level", choices=[level.value for level in LogLevel])

    serving = parser.add_argument_group("serving")
    serving.add_argument("--transport", choices=[mode.value for mode in TransportMode])
    serving.add_argument("--host", help="Bind address for HTTP transports")
    serving.add_argument("--port", type=int, help="Bind port for HTTP transports")

    account = parser.add_argument_group("IBM Cloud account")
    account.add_argument("--satcon-url", help="Satellite Config GraphQL endpoint")
    account.add_argument("--iam-url", help="IAM token endpoint")
    account.add_argument(
        "--api-key-file",
        type=Path,
        help="File holding the IBM Cloud API key (instead of SATCON_MCP_API_KEY)",
    )
    account.add_argument(
        "--account-id", help="Account that owns the cluster groups (default: from the token)"
    )

    safety = parser.add_argument_group("safety")
    safety.add_argument("--read-only", action="store_true", help="Refuse create/update/delete")
    safety.add_argument(
        "--enable-dangerous", action="store_true", help="Allow deleting cluster groups"
    )

    timeouts = parser.add_argument_group("timeouts (seconds)")
    timeouts.add_argument(
        "--timeout",
        type=_positive_seconds,
        help="Ceiling for every operation; per-operation options take precedence",
    )
    for operation in OPERATIONS:
        timeouts.add_argument(
            f"--{operation}-timeout",
            type=_positive_seconds,
            dest=f"{operation}_timeout",
            help=f"Ceiling for {operation} (default: 300)",
        )

    return parser.parse_args(argv)


def _timeout_overrides(args: argparse.Namespace) -> dict[str, float]:
    overrides: dict[str, float] = {}
    for operation in OPERATIONS:
        value = getattr(args, f"{operation}_timeout") or args.timeout
        if value is not None:
            overrides[operation] = value
    return overrides


def build_config(args: argparse.Namespace) -> SatconConfig:
    """Layer command line options over the environment-derived settings.

    Raises:
        ValueError: If the API key file cannot be read or is empty.
    """
    base = SatconConfig()
    overrides: dict[str, Any] = {
        key: value
        for key, value in {
            "transport": args.transport and TransportMode(args.transport),
            "host": args.host,
            "port": args.port,
            "satcon_url": args.satcon_url,
            "iam_url": args.iam_url,
            "account_id": args.account_id,
            "log_level": args.log_level and LogLevel(args.log_level),
            "read_only_mode": args.read_only or None,
            "enable_dangerous_operations": args.enable_dangerous or None,
        }.items()
        if value
    }

    if args.api_key_file is not None:
        try:
            api_key = args.api_key_file.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise ValueError(f"Cannot read API key file {args.api_key_file}: {e}") from e
        if not api_key:
            raise ValueError(f"API key file {args.api_key_file} is empty")
        overrides["api_key"] = api_key

    timeouts = _timeout_overrides(args)
    if timeouts:
        overrides["timeouts"] = OperationTimeouts(**{**base.timeouts.model_dump(), **timeouts})

    return base.model_copy(update=overrides)


def check_credentials(config: SatconConfig) -> int:
    """Resolve one session against IAM and report the account it belongs to."""
    from satcon_mcp.clients.session import create_session_provider

    logger = logging.getLogger(__name__)
    try:
        account = create_session_provider(config).resolve_session(
            timeout=config.timeouts.read
        )
    except SatconError as e:
        logger.error(f"Credential check failed: {e}")
        return 1
    print(f"Credentials valid for account {account.account_id}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logger = logging.getLogger(__name__)

    try:
        config = build_config(args)
        setup_logging(config.log_level)
        for warning in config.validate_auth_config():
            logger.warning(warning)
    except ValueError as e:
        setup_logging(LogLevel.ERROR)
        logger.error(f"Configuration error: {e}")
        return 1

    if args.check_credentials:
        return check_credentials(config)

    from satcon_mcp.server import create_server

    logger.info(
        f"Starting satcon-mcp v{__version__} ({config.transport.value}, "
        f"read_only={config.read_only_mode}, delete={config.enable_dangerous_operations})"
    )
    mcp = create_server(config)
    mcp.run(transport=config.transport.value)
    return 0


if __name__ == "__main__":
    sys.exit(main())
