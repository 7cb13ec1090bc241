"""Tests for the command line entry point."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from satcon_mcp.__main__ import build_config, main, parse_args
from satcon_mcp.config import LogLevel, TransportMode
from satcon_mcp.utils.errors import AuthenticationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    for name in ("API_KEY", "IAM_TOKEN", "ACCOUNT_ID", "TIMEOUTS__DELETE"):
        monkeypatch.delenv(f"SATCON_MCP_{name}", raising=False)


class TestBuildConfig:
    """Test layering of command line options over the environment."""

    def test_serving_and_safety_options(self) -> None:
        args = parse_args(
            [
                "--transport",
                "streamable-http",
                "--port",
                "9000",
                "--account-id",
                "acct-1",
                "--read-only",
                "--log-level",
                "DEBUG",
            ]
        )

        config = build_config(args)

        assert config.transport == TransportMode.STREAMABLE_HTTP
        assert config.port == 9000
        assert config.account_id == "acct-1"
        assert config.read_only_mode is True
        assert config.log_level == LogLevel.DEBUG

    def test_environment_kept_when_option_absent(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SATCON_MCP_ACCOUNT_ID", "acct-env")

        config = build_config(parse_args(["--port", "9001"]))

        assert config.account_id == "acct-env"
        assert config.port == 9001

    def test_global_timeout_with_override(self) -> None:
        config = build_config(parse_args(["--timeout", "60", "--delete-timeout", "600"]))

        assert config.timeouts.create == 60
        assert config.timeouts.read == 60
        assert config.timeouts.update == 60
        assert config.timeouts.delete == 600

    def test_single_timeout_keeps_environment_defaults(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SATCON_MCP_TIMEOUTS__DELETE", "900")

        config = build_config(parse_args(["--create-timeout", "30"]))

        assert config.timeouts.create == 30
        assert config.timeouts.delete == 900
        assert config.timeouts.read == 300

    def test_non_positive_timeout_rejected(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["--update-timeout", "0"])

    def test_api_key_file(self, tmp_path: Path) -> None:
        key_file = tmp_path / "apikey"
        key_file.write_text("secret-key\n")

        config = build_config(parse_args(["--api-key-file", str(key_file)]))

        assert config.api_key == "secret-key"

    def test_empty_api_key_file(self, tmp_path: Path) -> None:
        key_file = tmp_path / "apikey"
        key_file.write_text("  \n")

        with pytest.raises(ValueError, match="empty"):
            build_config(parse_args(["--api-key-file", str(key_file)]))

    def test_missing_api_key_file(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Cannot read"):
            build_config(parse_args(["--api-key-file", str(tmp_path / "nope")]))


class TestMain:
    """Test the main entry point."""

    def test_fails_without_credentials(self) -> None:
        with patch("satcon_mcp.__main__.setup_logging"):
            assert main([]) == 1

    def test_fails_on_unreadable_key_file(self, tmp_path: Path) -> None:
        with patch("satcon_mcp.__main__.setup_logging"):
            assert main(["--api-key-file", str(tmp_path / "nope")]) == 1

    def test_runs_configured_transport(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SATCON_MCP_IAM_TOKEN", "tok")
        mock_mcp = MagicMock()

        with (
            patch("satcon_mcp.__main__.setup_logging"),
            patch("satcon_mcp.server.create_server", return_value=mock_mcp) as mock_create,
        ):
            assert main(["--account-id", "acct-1", "--delete-timeout", "120"]) == 0

        mock_mcp.run.assert_called_once_with(transport="stdio")
        config = mock_create.call_args.args[0]
        assert config.timeouts.delete == 120

    def test_check_credentials(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setenv("SATCON_MCP_IAM_TOKEN", "tok")

        with (
            patch("satcon_mcp.__main__.setup_logging"),
            patch("satcon_mcp.server.create_server") as mock_create,
        ):
            assert main(["--check-credentials", "--account-id", "acct-1"]) == 0

        assert "acct-1" in capsys.readouterr().out
        mock_create.assert_not_called()

    def test_check_credentials_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SATCON_MCP_API_KEY", "bad")
        provider = MagicMock()
        provider.resolve_session.side_effect = AuthenticationError("invalid apikey")

        with (
            patch("satcon_mcp.__main__.setup_logging"),
            patch(
                "satcon_mcp.clients.session.create_session_provider", return_value=provider
            ),
        ):
            assert main(["--check-credentials"]) == 1

        provider.resolve_session.assert_called_once_with(timeout=300.0)
