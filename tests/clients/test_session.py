"""Tests for session providers."""

import base64
import json
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import pytest

from satcon_mcp.clients.session import (
    IAM_APIKEY_GRANT_TYPE,
    AccountContext,
    IAMSessionProvider,
    StaticSessionProvider,
    account_id_from_token,
    create_session_provider,
)
from satcon_mcp.utils.errors import AuthenticationError, OperationTimeoutError

IAM_URL = "https://iam.example.com/identity/token"


def make_token(claims: dict[str, Any]) -> str:
    payload = base64.urlsafe_b64encode(json.dumps(claims).encode()).decode().rstrip("=")
    return f"eyJhbGciOiJSUzI1NiJ9.{payload}.signature"


class TestAccountIdFromToken:
    """Test account_id_from_token."""

    def test_reads_bss_claim(self) -> None:
        token = make_token({"account": {"bss": "acct-from-token"}})
        assert account_id_from_token(token) == "acct-from-token"

    def test_bearer_prefix(self) -> None:
        token = make_token({"account": {"bss": "acct-1"}})
        assert account_id_from_token(f"Bearer {token}") == "acct-1"

    def test_not_a_jwt(self) -> None:
        assert account_id_from_token("opaque-token") is None

    def test_missing_claim(self) -> None:
        assert account_id_from_token(make_token({"sub": "someone"})) is None


class TestAccountContext:
    """Test AccountContext."""

    def test_authorization_adds_bearer(self) -> None:
        ctx = AccountContext(account_id="a", access_token="tok")
        assert ctx.authorization == "Bearer tok"

    def test_authorization_keeps_existing_bearer(self) -> None:
        ctx = AccountContext(account_id="a", access_token="Bearer tok")
        assert ctx.authorization == "Bearer tok"


class TestStaticSessionProvider:
    """Test StaticSessionProvider."""

    def test_resolves(self) -> None:
        ctx = StaticSessionProvider("acct-1", "tok").resolve_session()
        assert ctx == AccountContext(account_id="acct-1", access_token="tok")

    def test_no_token(self) -> None:
        with pytest.raises(AuthenticationError):
            StaticSessionProvider("acct-1", None).resolve_session()

    def test_account_from_token(self) -> None:
        token = make_token({"account": {"bss": "acct-2"}})
        ctx = StaticSessionProvider(None, token).resolve_session()
        assert ctx.account_id == "acct-2"

    def test_no_account(self) -> None:
        with pytest.raises(AuthenticationError):
            StaticSessionProvider(None, "opaque").resolve_session()


class TestIAMSessionProvider:
    """Test IAMSessionProvider."""

    def make_provider(
        self, response: httpx.Response, calls: list[httpx.Request], account_id: str | None = None
    ) -> IAMSessionProvider:
        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return response

        http = httpx.Client(transport=httpx.MockTransport(handler))
        return IAMSessionProvider("my-api-key", IAM_URL, account_id=account_id, http=http)

    def test_exchanges_api_key(self) -> None:
        calls: list[httpx.Request] = []
        token = make_token({"account": {"bss": "acct-9"}})
        provider = self.make_provider(
            httpx.Response(200, json={"access_token": token, "expires_in": 3600}), calls
        )

        ctx = provider.resolve_session()

        assert ctx.account_id == "acct-9"
        assert ctx.access_token == token
        form = calls[0].content.decode()
        assert "apikey=my-api-key" in form
        assert f"grant_type={IAM_APIKEY_GRANT_TYPE}".replace(":", "%3A") in form

    def test_caches_token_until_expiry(self) -> None:
        calls: list[httpx.Request] = []
        provider = self.make_provider(
            httpx.Response(200, json={"access_token": "tok", "expires_in": 3600}),
            calls,
            account_id="acct-1",
        )

        with patch("satcon_mcp.clients.session.time.monotonic", return_value=1000.0):
            provider.resolve_session()
            provider.resolve_session()
        assert len(calls) == 1

        with patch("satcon_mcp.clients.session.time.monotonic", return_value=5000.0):
            provider.resolve_session()
        assert len(calls) == 2

    def test_http_error_status(self) -> None:
        provider = self.make_provider(httpx.Response(400, text="invalid apikey"), [])

        with pytest.raises(AuthenticationError) as exc_info:
            provider.resolve_session()

        assert "400" in str(exc_info.value)

    def test_missing_token(self) -> None:
        provider = self.make_provider(httpx.Response(200, json={}), [])

        with pytest.raises(AuthenticationError):
            provider.resolve_session()

    def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable")

        http = httpx.Client(transport=httpx.MockTransport(handler))
        provider = IAMSessionProvider("key", IAM_URL, account_id="a", http=http)

        with pytest.raises(AuthenticationError):
            provider.resolve_session()

    def test_timeout_bounds_token_request(self) -> None:
        calls: list[httpx.Request] = []
        provider = self.make_provider(
            httpx.Response(200, json={"access_token": "tok", "expires_in": 3600}),
            calls,
            account_id="acct-1",
        )

        provider.resolve_session(timeout=12.5)

        assert calls[0].extensions["timeout"]["read"] == 12.5

    def test_token_request_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        http = httpx.Client(transport=httpx.MockTransport(handler))
        provider = IAMSessionProvider("key", IAM_URL, account_id="a", http=http)

        with pytest.raises(OperationTimeoutError) as exc_info:
            provider.resolve_session(timeout=1)

        assert exc_info.value.operation == "resolve_session"

    def test_non_json_response(self) -> None:
        provider = self.make_provider(httpx.Response(200, text="<html>login</html>"), [])

        with pytest.raises(AuthenticationError):
            provider.resolve_session()


class TestCreateSessionProvider:
    """Test create_session_provider."""

    def test_api_key_selects_iam(self) -> None:
        config = MagicMock(api_key="k", iam_url=IAM_URL, account_id="a", iam_token=None)
        assert isinstance(create_session_provider(config), IAMSessionProvider)

    def test_token_selects_static(self) -> None:
        config = MagicMock(api_key=None, account_id="a", iam_token="tok")
        assert isinstance(create_session_provider(config), StaticSessionProvider)
