"""Command line entry point for the fsnetwork client.

This module contains the BackendApp class, which wires configuration, the
auth token store and a NetworkQueue together, and the `fsnetwork` command
that drives sign-up, sign-in, sign-out and arbitrary requests.

Exit Codes:
    0: Normal successful termination
    1: Configuration failures (TOML parse errors, unknown keys, validation
       failures, missing configuration file) or a failed request
"""

import argparse
import asyncio
import json
import logging
import sys
import tomllib
from pathlib import Path
from typing import Any

from fsnetwork.api.auth import BackendAuth, JsonFileStore
from fsnetwork.api.exceptions import BackendError
from fsnetwork.api.protocols import KeyValueStore
from fsnetwork.api.request import HTTPMethod, RequestDescriptor
from fsnetwork.config import BackendConfig
from fsnetwork.operations.auth import SignInOperation, SignUpOperation
from fsnetwork.operations.queue import NetworkQueue
from fsnetwork.operations.service import RequestOperation, ServiceOperation

DEFAULT_CONFIG_FILE = "./fsnetwork.toml"


class BackendApp:
    """Application runner owning the configuration, auth store and queue.

    Every component receives the configuration explicitly from here; nothing
    is read from process-wide state.
    """

    def __init__(self, config: BackendConfig, store: KeyValueStore | None = None) -> None:
        """Initialize the BackendApp instance.

        Args:
            config: Backend configuration instance.
            store: Key-value store for the auth token; defaults to the JSON
                file named by the configuration.
        """
        self.config = config
        self._setup_logging()
        if store is None:
            store = JsonFileStore(config.resolved_token_store_path)
        self.auth = BackendAuth(store)
        self.queue = NetworkQueue()

    def _setup_logging(self) -> None:
        """Configure logging to stderr so stdout only carries command output."""
        log_level = getattr(logging, self.config.log_level)
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
            stream=sys.stderr,
        )

    async def run_operation(self, operation: ServiceOperation) -> Any:
        """Enqueue an operation and wait for its outcome.

        Returns:
            Any: Value passed to the operation's success callback, or None
            when the operation was cancelled.

        Raises:
            BackendError: The error passed to the failure callback, or a new
                one when the operation finished without reporting an outcome.
        """
        outcome: dict[str, Any] = {}
        operation.success = lambda value: outcome.update(result=value)
        operation.failure = lambda error: outcome.update(error=error)

        self.queue.add_operation(operation)
        await self.queue.wait_until_all_operations_are_finished()

        if "error" in outcome:
            raise outcome["error"]
        if "result" in outcome or operation.is_cancelled:
            return outcome.get("result")
        msg = f"Operation '{operation.name}' finished without a result"
        raise BackendError(msg)

    async def sign_up(self, first_name: str, last_name: str, email: str, password: str) -> Any:
        operation = SignUpOperation(self.config, self.auth, first_name, last_name, email, password)
        return await self.run_operation(operation)

    async def sign_in(self, email: str, password: str) -> dict[str, str]:
        operation = SignInOperation(self.config, self.auth, email, password, store_token=True)
        await self.run_operation(operation)
        return {"status": "signed_in"}

    def sign_out(self) -> dict[str, str]:
        self.auth.delete_token()
        return {"status": "signed_out"}

    async def send(self, request: RequestDescriptor) -> Any:
        return await self.run_operation(RequestOperation(self.config, self.auth, request))

    async def execute(self, args: argparse.Namespace) -> Any:
        """Run the subcommand selected on the command line."""
        if args.command == "sign-up":
            return await self.sign_up(args.first_name, args.last_name, args.email, args.password)
        if args.command == "sign-in":
            return await self.sign_in(args.email, args.password)
        if args.command == "sign-out":
            return self.sign_out()
        request = RequestDescriptor(
            endpoint=args.endpoint,
            method=HTTPMethod(args.method.upper()),
            parameters=args.data,
            headers={"Content-Type": "application/json"} if args.data is not None else None,
        )
        return await self.send(request)


def _get_known_config_fields() -> set[str]:
    """Get the set of known configuration field names.

    Returns:
        set[str]: Set of valid configuration field names for TOML validation.
    """
    return {
        "base_url",
        "timeout_seconds",
        "follow_redirects",
        "log_level",
        "token_store_path",
        "http_user_agent",
    }


def _load_config_from_file(config_file: str) -> dict[str, Any]:
    """Load configuration from TOML file with validation.

    Args:
        config_file: Path to the configuration file.

    Returns:
        dict[str, Any]: Configuration data loaded from file.

    Raises:
        SystemExit: On file parsing errors or unknown configuration keys.
    """
    config_data: dict[str, Any] = {}
    logger = logging.getLogger(__name__)
    config_path = Path(config_file)

    if config_path.exists():
        try:
            with config_path.open("rb") as f:
                file_config = tomllib.load(f)

            unknown_keys = set(file_config.keys()) - _get_known_config_fields()
            if unknown_keys:
                logger.error(
                    "Unknown configuration keys in %s: %s",
                    config_path,
                    ", ".join(sorted(unknown_keys)),
                )
                sys.exit(1)

            config_data.update(file_config)
            logger.info("Loaded configuration from %s", config_path)
        except tomllib.TOMLDecodeError:
            logger.exception("Failed to parse TOML configuration file %s", config_path)
            sys.exit(1)
        except OSError:
            logger.exception("Failed to read configuration file %s", config_path)
            sys.exit(1)

    return config_data


def _apply_cli_overrides(config_data: dict[str, Any], args: argparse.Namespace) -> None:
    """Apply CLI argument overrides to configuration data.

    Args:
        config_data: Configuration data dictionary to modify.
        args: Parsed command-line arguments.
    """
    if getattr(args, "base_url", None) is not None:
        config_data["base_url"] = args.base_url
    if getattr(args, "log_level", None) is not None:
        config_data["log_level"] = args.log_level
    if getattr(args, "timeout", None) is not None:
        config_data["timeout_seconds"] = args.timeout
    if getattr(args, "token_store", None) is not None:
        config_data["token_store_path"] = args.token_store


def _create_validated_config(config_data: dict[str, Any]) -> BackendConfig:
    """Create and validate BackendConfig from configuration data.

    Raises:
        SystemExit: On configuration validation errors.
    """
    logger = logging.getLogger(__name__)

    try:
        config = BackendConfig(**config_data)
    except Exception:
        logger.exception("Configuration validation failed")
        sys.exit(1)
    else:
        logger.info("Effective configuration: %s", config.to_log_dict())
        return config


def load_configuration(args: argparse.Namespace) -> BackendConfig:
    """Load configuration from defaults, file, and CLI arguments.

    Precedence order (CLI > file > defaults).

    Args:
        args: Parsed command-line arguments.

    Returns:
        BackendConfig: Loaded and validated configuration.

    Raises:
        SystemExit: On configuration validation errors or file parsing errors.
    """
    logger = logging.getLogger(__name__)

    config_file = args.config_file or DEFAULT_CONFIG_FILE

    if args.config_file and not Path(config_file).exists():
        logger.error("Configuration file not found: %s", config_file)
        sys.exit(1)

    config_data = _load_config_from_file(config_file)
    _apply_cli_overrides(config_data, args)
    config_data["config_file"] = config_file

    return _create_validated_config(config_data)


def _json_object(value: str) -> dict[str, Any]:
    try:
        data = json.loads(value)
    except json.JSONDecodeError as error:
        msg = f"invalid JSON: {error.msg}"
        raise argparse.ArgumentTypeError(msg) from error
    if not isinstance(data, dict):
        msg = "request data must be a JSON object"
        raise argparse.ArgumentTypeError(msg)
    return data


def parse_cli_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        prog="fsnetwork",
        description="fsnetwork backend client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--config-file",
        type=str,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument("--base-url", type=str, help="Override backend base URL")
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level",
    )
    parser.add_argument("--timeout", type=float, help="Override request timeout in seconds")
    parser.add_argument("--token-store", type=str, help="Override auth token store path")

    subparsers = parser.add_subparsers(dest="command", required=True)

    sign_up = subparsers.add_parser("sign-up", help="Create a user account")
    sign_up.add_argument("--first-name", required=True)
    sign_up.add_argument("--last-name", required=True)
    sign_up.add_argument("--email", required=True)
    sign_up.add_argument("--password", required=True)

    sign_in = subparsers.add_parser("sign-in", help="Sign in and store the auth token")
    sign_in.add_argument("--email", required=True)
    sign_in.add_argument("--password", required=True)

    subparsers.add_parser("sign-out", help="Delete the stored auth token")

    request = subparsers.add_parser("request", help="Send an authenticated request")
    request.add_argument("method", choices=[method.value for method in HTTPMethod], type=str.upper)
    request.add_argument("endpoint", help="Endpoint path joined to the base URL")
    request.add_argument("--data", type=_json_object, help="JSON object sent as request body")

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the fsnetwork command.

    Decoded responses are printed to stdout as JSON; all logging goes to
    stderr.
    """
    logger = logging.getLogger(__name__)

    try:
        args = parse_cli_args(argv)
        config = load_configuration(args)
        app = BackendApp(config)
        result = asyncio.run(app.execute(args))
    except BackendError as error:
        logger.error("Request failed: %s", error)  # noqa: TRY400 - traceback adds nothing here
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return
    except Exception:
        logger.exception("Unhandled exception")
        sys.exit(1)

    if result is not None:
        print(json.dumps(result, indent=2))  # noqa: T201 - command output


if __name__ == "__main__":
    main()
