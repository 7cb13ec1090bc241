"""Session providers yielding the account context for Satellite Config calls.

Every remote group call is scoped to an IBM Cloud account and authenticated
with an IAM bearer token. A session provider resolves both. When running with
an API key, the token is obtained from the IAM token endpoint and reused until
shortly before it expires.
"""

from __future__ import annotations

import base64
import json
import logging
import time
from typing import TYPE_CHECKING, Any, Protocol

import httpx
from pydantic import BaseModel, Field

from satcon_mcp.utils.errors import AuthenticationError, OperationTimeoutError

if TYPE_CHECKING:
    from satcon_mcp.config import SatconConfig

logger = logging.getLogger(__name__)

IAM_APIKEY_GRANT_TYPE = "urn:ibm:params:oauth:grant-type:apikey"

# Refresh tokens this many seconds before IAM reports them expired
TOKEN_EXPIRY_MARGIN = 60


class AccountContext(BaseModel):
    """Account and credential context required by every remote call."""

    account_id: str = Field(..., description="IBM Cloud account ID (Satellite Config orgId)")
    access_token: str = Field(..., description="IAM bearer token")

    @property
    def authorization(self) -> str:
        if self.access_token.lower().startswith("bearer "):
            return self.access_token
        return f"Bearer {self.access_token}"


class SessionProvider(Protocol):
    """Supplies the account context for remote group calls."""

    def resolve_session(self, timeout: float | None = None) -> AccountContext:
        """Resolve the current account context.

        Args:
            timeout: Seconds left for any remote call made while resolving.

        Raises:
            OperationTimeoutError: If resolving needs longer than ``timeout``.
            AuthenticationError: If no usable session can be established.
        """
        ...


class StaticSessionProvider:
    """Session provider for an explicitly supplied token and account."""

    def __init__(self, account_id: str | None, access_token: str | None) -> None:
        self._account_id = account_id
        self._access_token = access_token

    def resolve_session(self, timeout: float | None = None) -> AccountContext:
        if not self._access_token:
            raise AuthenticationError("No IAM token configured", operation="resolve_session")
        account_id = self._account_id or account_id_from_token(self._access_token)
        if not account_id:
            raise AuthenticationError(
                "No account ID configured and none found in the IAM token",
                operation="resolve_session",
            )
        return AccountContext(account_id=account_id, access_token=self._access_token)


class IAMSessionProvider:
    """Session provider exchanging an IBM Cloud API key for an IAM token."""

    def __init__(
        self,
        api_key: str,
        iam_url: str,
        account_id: str | None = None,
        http: httpx.Client | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._iam_url = iam_url
        self._account_id = account_id
        self._http = http or httpx.Client(timeout=timeout)
        self._owns_http = http is None
        self._cached: AccountContext | None = None
        self._expires_at = 0.0

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def resolve_session(self, timeout: float | None = None) -> AccountContext:
        if self._cached is not None and time.monotonic() < self._expires_at:
            return self._cached

        token, expires_in = self._request_token(timeout)
        account_id = self._account_id or account_id_from_token(token)
        if not account_id:
            raise AuthenticationError(
                "IAM token does not identify an account; set an account ID explicitly",
                operation="resolve_session",
            )

        self._cached = AccountContext(account_id=account_id, access_token=token)
        self._expires_at = time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN, 0)
        logger.debug(f"Resolved IAM session for account {account_id}")
        return self._cached

    def _request_token(self, timeout: float | None) -> tuple[str, int]:
        try:
            response = self._http.post(
                self._iam_url,
                data={"grant_type": IAM_APIKEY_GRANT_TYPE, "apikey": self._api_key},
                headers={"Accept": "application/json"},
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.TimeoutException as e:
            raise OperationTimeoutError(
                f"IAM token request timed out: {e}", operation="resolve_session"
            ) from e
        except httpx.HTTPError as e:
            raise AuthenticationError(
                f"IAM token request failed: {e}", operation="resolve_session"
            ) from e

        if response.status_code != 200:
            raise AuthenticationError(
                f"IAM token request returned HTTP {response.status_code}: {response.text}",
                operation="resolve_session",
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise AuthenticationError(
                "IAM token response is not JSON", operation="resolve_session"
            ) from e
        token = payload.get("access_token") if isinstance(payload, dict) else None
        if not token:
            raise AuthenticationError(
                "IAM token response did not include an access token",
                operation="resolve_session",
            )
        return token, int(payload.get("expires_in", 0))


def account_id_from_token(token: str) -> str | None:
    """Read the BSS account ID from an IAM access token's claims.

    The token signature is not verified; the claim is only used to scope
    requests the remote service authenticates itself.
    """
    raw = token.split(" ", 1)[-1]
    parts = raw.split(".")
    if len(parts) < 2:
        return None
    padded = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims: dict[str, Any] = json.loads(base64.urlsafe_b64decode(padded))
    except (ValueError, TypeError):
        return None
    account = claims.get("account") or {}
    bss = account.get("bss") if isinstance(account, dict) else None
    return bss or None


def create_session_provider(
    config: SatconConfig, http: httpx.Client | None = None
) -> SessionProvider:
    """Build the session provider matching the configured credentials."""
    if config.api_key:
        return IAMSessionProvider(
            api_key=config.api_key,
            iam_url=config.iam_url,
            account_id=config.account_id,
            http=http,
        )
    return StaticSessionProvider(account_id=config.account_id, access_token=config.iam_token)
