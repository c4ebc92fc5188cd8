# ruff: noqa: S105, S106, PLR2004
"""Tests for configuration loading, the BackendApp runner and the CLI."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from io import StringIO
from pathlib import Path

import httpx
import pytest
from pydantic import HttpUrl
from pytest_mock import AsyncMockType, MockerFixture

from fsnetwork.api.auth import AUTH_TOKEN_KEY, InMemoryStore, JsonFileStore
from fsnetwork.api.exceptions import BackendError, BackendStatusError
from fsnetwork.api.transport import NetworkService
from fsnetwork.config import BackendConfig
from fsnetwork.main import BackendApp, load_configuration, main, parse_cli_args
from fsnetwork.operations.service import ServiceOperation
from tests.test_backend_common import HTTP_BAD_REQUEST, HTTP_OK, make_response

BASE_URL = "https://api.example.com/v1"


class SilentOperation(ServiceOperation):
    """Finishes without reporting through either callback."""

    async def main(self) -> None:
        self.finish()


def _patch_all_transports(mocker: MockerFixture, status_code: int, body: bytes) -> AsyncMockType:
    http_client = mocker.Mock(spec=httpx.AsyncClient)
    http_client.request = mocker.AsyncMock(return_value=make_response(mocker, status_code, body))
    mocker.patch.object(NetworkService, "_get_http_client", return_value=http_client)
    return http_client.request


def _args(**overrides: object) -> argparse.Namespace:
    values: dict[str, object] = {
        "config_file": None,
        "base_url": None,
        "log_level": None,
        "timeout": None,
        "token_store": None,
    }
    values.update(overrides)
    return argparse.Namespace(**values)


class TestLoadConfiguration:
    """Configuration precedence: CLI > file > defaults."""

    def test_file_values_loaded(self, tmp_path: Path) -> None:
        config_file = tmp_path / "fsnetwork.toml"
        config_file.write_text(
            f'base_url = "{BASE_URL}"\ntimeout_seconds = 3.0\nlog_level = "DEBUG"\n',
            encoding="utf-8",
        )

        config = load_configuration(_args(config_file=str(config_file)))

        assert config.base_url_string == BASE_URL
        assert config.timeout_seconds == 3.0
        assert config.log_level == "DEBUG"
        assert config.config_file == str(config_file)

    def test_cli_overrides_file(self, tmp_path: Path) -> None:
        config_file = tmp_path / "fsnetwork.toml"
        config_file.write_text(
            f'base_url = "{BASE_URL}"\ntimeout_seconds = 3.0\n', encoding="utf-8"
        )

        config = load_configuration(
            _args(
                config_file=str(config_file),
                base_url="https://other.example.com",
                timeout=7.5,
                log_level="ERROR",
                token_store=str(tmp_path / "t.json"),
            )
        )

        assert config.base_url_string == "https://other.example.com"
        assert config.timeout_seconds == 7.5
        assert config.log_level == "ERROR"
        assert config.token_store_path == str(tmp_path / "t.json")

    def test_defaults_without_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)

        config = load_configuration(_args(base_url=BASE_URL))

        assert config.timeout_seconds == 10.0
        assert config.config_file == "./fsnetwork.toml"

    def test_missing_explicit_file_exits(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            load_configuration(_args(config_file=str(tmp_path / "missing.toml")))

        assert exc_info.value.code == 1

    def test_unknown_keys_exit(self, tmp_path: Path) -> None:
        config_file = tmp_path / "fsnetwork.toml"
        config_file.write_text(f'base_url = "{BASE_URL}"\nretries = 3\n', encoding="utf-8")

        with pytest.raises(SystemExit) as exc_info:
            load_configuration(_args(config_file=str(config_file)))

        assert exc_info.value.code == 1

    def test_invalid_toml_exits(self, tmp_path: Path) -> None:
        config_file = tmp_path / "fsnetwork.toml"
        config_file.write_text("base_url = ", encoding="utf-8")

        with pytest.raises(SystemExit) as exc_info:
            load_configuration(_args(config_file=str(config_file)))

        assert exc_info.value.code == 1

    def test_validation_failure_exits(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)

        with pytest.raises(SystemExit) as exc_info:
            load_configuration(_args())

        assert exc_info.value.code == 1


class TestParseCliArgs:
    def test_request_command(self) -> None:
        args = parse_cli_args(["request", "post", "/items", "--data", '{"a": 1}'])

        assert args.command == "request"
        assert args.method == "POST"
        assert args.endpoint == "/items"
        assert args.data == {"a": 1}

    @pytest.mark.parametrize("data", ["{bad", "[1, 2]"])
    def test_request_data_must_be_json_object(self, data: str) -> None:
        with pytest.raises(SystemExit):
            parse_cli_args(["request", "POST", "/items", "--data", data])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_cli_args([])

    def test_global_options(self) -> None:
        args = parse_cli_args(
            ["--base-url", BASE_URL, "--timeout", "2", "--log-level", "DEBUG", "sign-out"]
        )

        assert args.base_url == BASE_URL
        assert args.timeout == 2.0
        assert args.log_level == "DEBUG"
        assert args.command == "sign-out"


class TestBackendApp:
    @pytest.fixture
    def app(self) -> BackendApp:
        config = BackendConfig(base_url=HttpUrl(BASE_URL))
        return BackendApp(config, store=InMemoryStore())

    @pytest.mark.asyncio
    async def test_sign_in_then_request_then_sign_out(
        self, mocker: MockerFixture, app: BackendApp
    ) -> None:
        request_mock = _patch_all_transports(mocker, HTTP_OK, b'{"token": "abc123"}')

        assert await app.sign_in("jane@x.com", "p") == {"status": "signed_in"}
        assert app.auth.token == "abc123"

        args = parse_cli_args(["request", "GET", "/me"])
        await app.execute(args)
        assert request_mock.call_args.kwargs["headers"]["X-Api-Auth-Token"] == "abc123"

        assert app.sign_out() == {"status": "signed_out"}
        assert app.auth.token is None
        assert app.queue.operations == []

    @pytest.mark.asyncio
    async def test_sign_up(self, mocker: MockerFixture, app: BackendApp) -> None:
        request_mock = _patch_all_transports(mocker, HTTP_OK, b'{"id": 9}')

        result = await app.sign_up("Jane", "Doe", "jane@x.com", "p")

        assert result == {"id": 9}
        assert request_mock.call_args.args == ("POST", f"{BASE_URL}/users")

    @pytest.mark.asyncio
    async def test_failure_raises(self, mocker: MockerFixture, app: BackendApp) -> None:
        _patch_all_transports(mocker, HTTP_BAD_REQUEST, b"{}")

        with pytest.raises(BackendStatusError):
            await app.execute(parse_cli_args(["request", "DELETE", "/items/1"]))

    @pytest.mark.asyncio
    async def test_sign_in_fails_when_token_cannot_be_stored(
        self, mocker: MockerFixture, tmp_path: Path
    ) -> None:
        _patch_all_transports(mocker, HTTP_OK, b'{"token": "abc123"}')
        # A directory cannot be replaced by the token file
        app = BackendApp(BackendConfig(base_url=HttpUrl(BASE_URL)), store=JsonFileStore(tmp_path))

        with pytest.raises(BackendError, match="Sign In Operation"):
            await app.sign_in("jane@x.com", "p")

        assert app.auth.token is None

    @pytest.mark.asyncio
    async def test_operation_without_outcome_raises(self, app: BackendApp) -> None:
        operation = SilentOperation(app.config, app.auth)

        with pytest.raises(BackendError, match="finished without a result"):
            await app.run_operation(operation)

    @pytest.mark.asyncio
    async def test_cancelled_operation_returns_none(self, app: BackendApp) -> None:
        operation = SilentOperation(app.config, app.auth)
        operation.cancel()

        assert await app.run_operation(operation) is None

    @pytest.mark.asyncio
    async def test_request_data_sent_as_json(
        self, mocker: MockerFixture, app: BackendApp
    ) -> None:
        request_mock = _patch_all_transports(mocker, HTTP_OK, b"")

        result = await app.execute(
            parse_cli_args(["request", "PUT", "/items/1", "--data", '{"done": true}'])
        )

        assert result is None
        kwargs = request_mock.call_args.kwargs
        assert kwargs["content"] == b'{"done":true}'
        assert kwargs["headers"]["Content-Type"] == "application/json"


class TestMain:
    def test_sign_out_prints_status(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.chdir(tmp_path)
        token_store = tmp_path / "auth.json"
        token_store.write_text(json.dumps({AUTH_TOKEN_KEY: "abc123"}), encoding="utf-8")

        main(["--base-url", BASE_URL, "--token-store", str(token_store), "sign-out"])

        assert json.loads(capsys.readouterr().out) == {"status": "signed_out"}
        assert json.loads(token_store.read_text(encoding="utf-8")) == {}

    def test_failed_request_exits_with_error(
        self,
        mocker: MockerFixture,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.chdir(tmp_path)
        _patch_all_transports(mocker, HTTP_BAD_REQUEST, b"{}")

        with pytest.raises(SystemExit) as exc_info:
            main(
                [
                    "--base-url",
                    BASE_URL,
                    "--token-store",
                    str(tmp_path / "auth.json"),
                    "request",
                    "GET",
                    "/items",
                ]
            )

        assert exc_info.value.code == 1
        assert capsys.readouterr().out == ""


class TestLoggingConfiguration:
    def test_logging_configured_to_stderr(self, mocker: MockerFixture) -> None:
        root_logger = logging.getLogger()
        original_handlers = root_logger.handlers[:]
        root_logger.handlers.clear()

        try:
            captured_stderr = StringIO()
            mocker.patch.object(sys, "stderr", captured_stderr)

            BackendApp(BackendConfig(base_url=HttpUrl(BASE_URL)), store=InMemoryStore())

            logging.getLogger("test_format").warning("Format test message")

            output = captured_stderr.getvalue()
            assert "WARNING" in output
            assert "test_format" in output
            assert "Format test message" in output
        finally:
            root_logger.handlers.clear()
            root_logger.handlers.extend(original_handlers)
