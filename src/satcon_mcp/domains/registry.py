"""Plugin registry for core domain modules."""

from __future__ import annotations

from typing import TYPE_CHECKING

from satcon_mcp import __version__
from satcon_mcp.hooks import hookimpl
from satcon_mcp.plugin import BasePlugin, PluginMetadata

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from satcon_mcp.server import SatconServer


class ClusterGroupsPlugin(BasePlugin):
    """Plugin for Satellite Config cluster group management.

    Provides tools to create, inspect, reconcile and delete cluster groups.
    """

    def __init__(self) -> None:
        super().__init__(
            PluginMetadata(
                name="clustergroups",
                version=__version__,
                description="Satellite Config cluster group membership management",
                maintainer="satcon-mcp maintainers",
                requires_session=True,
            )
        )

    @hookimpl
    def satcon_register_tools(self, mcp: FastMCP, server: SatconServer) -> None:
        from satcon_mcp.domains.clustergroups.tools import register_tools

        register_tools(mcp, server)


def get_core_plugins() -> list[BasePlugin]:
    """Return all core domain plugin instances."""
    return [ClusterGroupsPlugin()]
