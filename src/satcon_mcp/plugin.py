"""Plugin interface for Satellite Config MCP components.

This module defines the plugin base class and metadata that plugins use to
integrate with the server via pluggy hooks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from satcon_mcp.hooks import hookimpl

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from satcon_mcp.server import SatconServer


@dataclass
class PluginMetadata:
    """Metadata describing a Satellite Config MCP plugin."""

    name: str
    """Unique plugin name, e.g., 'clustergroups'."""

    version: str
    """Plugin version following semver, e.g., '1.0.0'."""

    description: str
    """Human-readable description of what this plugin provides."""

    maintainer: str
    """Maintainer email or team."""

    requires_session: bool = True
    """Whether the plugin needs a resolvable account session to function."""


class BasePlugin:
    """Base implementation of a plugin with default hook implementations."""

    def __init__(self, metadata: PluginMetadata) -> None:
        self._metadata = metadata

    @property
    def metadata(self) -> PluginMetadata:
        return self._metadata

    @hookimpl
    def satcon_get_plugin_metadata(self) -> PluginMetadata:
        """Return plugin metadata."""
        return self._metadata

    @hookimpl
    def satcon_register_tools(self, mcp: FastMCP, server: SatconServer) -> None:
        """Register MCP tools. Override in subclass."""
        pass

    @hookimpl
    def satcon_register_resources(self, mcp: FastMCP, server: SatconServer) -> None:
        """Register MCP resources. Override in subclass."""
        pass

    @hookimpl
    def satcon_health_check(self, server: SatconServer) -> tuple[bool, str]:
        """Check plugin health by verifying an account session resolves."""
        if not self._metadata.requires_session:
            return True, "No session requirements"

        try:
            account = server.sessions.resolve_session()
        except Exception as e:
            return False, f"Session unavailable: {e}"

        return True, f"Session resolved for account {account.account_id}"
