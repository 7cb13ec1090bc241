"""Configuration for the Satellite Config MCP server."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TransportMode(str, Enum):
    """MCP transport mode."""

    STDIO = "stdio"
    SSE = "sse"
    STREAMABLE_HTTP = "streamable-http"


class LogLevel(str, Enum):
    """Logging level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class OperationTimeouts(BaseModel):
    """Upper bound, in seconds, on each lifecycle operation."""

    create: float = Field(default=300.0, gt=0, description="Create timeout in seconds")
    read: float = Field(default=300.0, gt=0, description="Read timeout in seconds")
    update: float = Field(default=300.0, gt=0, description="Update timeout in seconds")
    delete: float = Field(default=300.0, gt=0, description="Delete timeout in seconds")

    def for_operation(self, operation: str) -> float:
        return float(getattr(self, operation))


class SatconConfig(BaseSettings):
    """Configuration for the Satellite Config MCP server.

    Loaded from environment variables with SATCON_MCP_ prefix or from a
    .env file. Nested timeouts use a double underscore, e.g.
    SATCON_MCP_TIMEOUTS__CREATE=120.
    """

    model_config = SettingsConfigDict(
        env_prefix="SATCON_MCP_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # Remote endpoints
    satcon_url: str = Field(
        default="https://config.satellite.cloud.ibm.com/graphql",
        description="Satellite Config GraphQL endpoint",
    )
    iam_url: str = Field(
        default="https://iam.cloud.ibm.com/identity/token",
        description="IBM Cloud IAM token endpoint",
    )

    # Credentials
    api_key: str | None = Field(
        default=None,
        description="IBM Cloud API key exchanged for IAM tokens",
    )
    iam_token: str | None = Field(
        default=None,
        description="Pre-issued IAM bearer token (used when no API key is set)",
    )
    account_id: str | None = Field(
        default=None,
        description="IBM Cloud account ID; read from the IAM token when unset",
    )

    # Operation ceilings
    timeouts: OperationTimeouts = Field(
        default_factory=OperationTimeouts,
        description="Per-operation timeouts",
    )

    # Server settings
    transport: TransportMode = Field(
        default=TransportMode.STDIO,
        description="MCP transport mode",
    )
    host: str = Field(default="127.0.0.1", description="Host to bind HTTP transports to")
    port: int = Field(default=8000, ge=1, le=65535, description="Port to bind HTTP transports to")

    # Safety settings
    read_only_mode: bool = Field(
        default=False,
        description="Disable all write operations",
    )
    enable_dangerous_operations: bool = Field(
        default=False,
        description="Enable destructive operations such as group deletion",
    )

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")

    def validate_auth_config(self) -> list[str]:
        """Validate credential settings.

        Returns:
            List of warnings for usable but incomplete configurations.

        Raises:
            ValueError: If no credentials are configured at all.
        """
        warnings: list[str] = []
        if not self.api_key and not self.iam_token:
            raise ValueError(
                "No credentials configured: set SATCON_MCP_API_KEY or SATCON_MCP_IAM_TOKEN"
            )
        if self.api_key and self.iam_token:
            warnings.append("Both API key and IAM token are set; the API key takes precedence")
        if not self.account_id:
            warnings.append("No account ID set; it will be read from the IAM token")
        return warnings

    def is_operation_allowed(self, operation: str) -> tuple[bool, str | None]:
        """Check whether an operation type is permitted by the safety settings.

        Args:
            operation: One of "read", "create", "update", "delete".

        Returns:
            Tuple of (allowed, reason when not allowed).
        """
        if operation == "read":
            return True, None
        if self.read_only_mode:
            return False, "Server is running in read-only mode"
        if operation == "delete" and not self.enable_dangerous_operations:
            return (
                False,
                "Delete operations are disabled. Set SATCON_MCP_ENABLE_DANGEROUS_OPERATIONS=true",
            )
        return True, None


@lru_cache
def get_config() -> SatconConfig:
    """Get the cached configuration instance."""
    return SatconConfig()
