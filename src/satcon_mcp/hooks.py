"""Hook specifications for Satellite Config MCP plugins."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pluggy

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from satcon_mcp.plugin import PluginMetadata
    from satcon_mcp.server import SatconServer

PROJECT_NAME = "satcon_mcp"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class SatconMCPHookSpec:
    """Hooks every plugin may implement."""

    @hookspec
    def satcon_get_plugin_metadata(self) -> PluginMetadata:  # type: ignore[empty-body]
        """Return metadata identifying the plugin."""

    @hookspec
    def satcon_register_tools(self, mcp: FastMCP, server: SatconServer) -> None:
        """Register MCP tools provided by the plugin."""

    @hookspec
    def satcon_register_resources(self, mcp: FastMCP, server: SatconServer) -> None:
        """Register MCP resources provided by the plugin."""

    @hookspec
    def satcon_health_check(self, server: SatconServer) -> tuple[bool, str]:  # type: ignore[empty-body]
        """Report whether the plugin can serve requests, with a reason."""
