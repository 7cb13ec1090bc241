"""Tests for SatconConfig."""

import pytest

from satcon_mcp.config import OperationTimeouts, SatconConfig, TransportMode


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Isolate tests from the caller's environment and .env file."""
    monkeypatch.chdir(tmp_path)
    for var in (
        "SATCON_MCP_API_KEY",
        "SATCON_MCP_IAM_TOKEN",
        "SATCON_MCP_ACCOUNT_ID",
        "SATCON_MCP_READ_ONLY_MODE",
        "SATCON_MCP_ENABLE_DANGEROUS_OPERATIONS",
    ):
        monkeypatch.delenv(var, raising=False)


class TestDefaults:
    """Test default configuration values."""

    def test_defaults(self) -> None:
        config = SatconConfig()

        assert config.satcon_url == "https://config.satellite.cloud.ibm.com/graphql"
        assert config.transport == TransportMode.STDIO
        assert config.timeouts == OperationTimeouts()
        assert config.timeouts.create == 300.0

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SATCON_MCP_ACCOUNT_ID", "acct-env")
        monkeypatch.setenv("SATCON_MCP_TIMEOUTS__UPDATE", "45")

        config = SatconConfig()

        assert config.account_id == "acct-env"
        assert config.timeouts.update == 45.0
        assert config.timeouts.read == 300.0


class TestOperationTimeouts:
    """Test OperationTimeouts."""

    def test_for_operation(self) -> None:
        timeouts = OperationTimeouts(delete=12)
        assert timeouts.for_operation("delete") == 12.0

    def test_rejects_non_positive(self) -> None:
        with pytest.raises(ValueError):
            OperationTimeouts(create=0)


class TestValidateAuthConfig:
    """Test validate_auth_config."""

    def test_no_credentials(self) -> None:
        with pytest.raises(ValueError):
            SatconConfig().validate_auth_config()

    def test_api_key_without_account(self) -> None:
        warnings = SatconConfig(api_key="k").validate_auth_config()
        assert any("account ID" in w for w in warnings)

    def test_both_credentials(self) -> None:
        warnings = SatconConfig(
            api_key="k", iam_token="t", account_id="a"
        ).validate_auth_config()
        assert warnings == ["Both API key and IAM token are set; the API key takes precedence"]


class TestIsOperationAllowed:
    """Test is_operation_allowed."""

    def test_read_always_allowed(self) -> None:
        config = SatconConfig(read_only_mode=True)
        assert config.is_operation_allowed("read") == (True, None)

    def test_read_only_blocks_writes(self) -> None:
        config = SatconConfig(read_only_mode=True)
        allowed, reason = config.is_operation_allowed("update")
        assert not allowed
        assert "read-only" in (reason or "")

    def test_delete_needs_dangerous(self) -> None:
        allowed, _ = SatconConfig().is_operation_allowed("delete")
        assert not allowed

        allowed, _ = SatconConfig(enable_dangerous_operations=True).is_operation_allowed("delete")
        assert allowed

    def test_create_allowed_by_default(self) -> None:
        assert SatconConfig().is_operation_allowed("create") == (True, None)
