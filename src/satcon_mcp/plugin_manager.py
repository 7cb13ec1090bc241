"""pluggy wiring for the Satellite Config MCP server.

Core domain plugins contribute MCP tools and resources through hooks, and
report at startup whether the account session they depend on resolves.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pluggy

from satcon_mcp.hooks import PROJECT_NAME, SatconMCPHookSpec

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from satcon_mcp.plugin import BasePlugin, PluginMetadata
    from satcon_mcp.server import SatconServer

logger = logging.getLogger(__name__)


@dataclass
class Readiness:
    """Outcome of the startup health checks across all plugins."""

    ready: bool = False
    messages: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"ready": self.ready, "messages": list(self.messages)}


class PluginManager:
    """Registers domain plugins and fans hook calls out to them."""

    def __init__(self, plugins: Iterable[BasePlugin] | None = None) -> None:
        if plugins is None:
            from satcon_mcp.domains.registry import get_core_plugins

            plugins = get_core_plugins()

        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(SatconMCPHookSpec)
        for plugin in plugins:
            self._pm.register(plugin, name=plugin.metadata.name)
        self._readiness = Readiness()

    @property
    def plugin_names(self) -> list[str]:
        return [name for name, _plugin in self._pm.list_name_plugin()]

    @property
    def readiness(self) -> Readiness:
        """Result of the last ``check_readiness`` call."""
        return self._readiness

    def get_all_metadata(self) -> list[PluginMetadata]:
        return [meta for meta in self._pm.hook.satcon_get_plugin_metadata() if meta is not None]

    def register_all_tools(self, mcp: FastMCP, server: SatconServer) -> None:
        self._pm.hook.satcon_register_tools(mcp=mcp, server=server)

    def register_all_resources(self, mcp: FastMCP, server: SatconServer) -> None:
        self._pm.hook.satcon_register_resources(mcp=mcp, server=server)

    def check_readiness(self, server: SatconServer) -> Readiness:
        """Run every plugin's health check.

        The server is ready only when all plugins report healthy. Failing
        checks are logged but never stop the server from starting; tools
        report their own errors per call.
        """
        results: list[tuple[bool, str]] = self._pm.hook.satcon_health_check(server=server)
        self._readiness = Readiness(
            ready=all(ok for ok, _message in results),
            messages=[message for _ok, message in results],
        )
        if self._readiness.ready:
            logger.info(f"Server ready: {'; '.join(self._readiness.messages)}")
        else:
            logger.warning(f"Server not ready: {'; '.join(self._readiness.messages)}")
        return self._readiness
