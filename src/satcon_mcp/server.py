"""FastMCP server definition for Satellite Config with plugin discovery."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

import httpx
from mcp.server.fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from satcon_mcp.clients.satcon import GroupService, SatconGroupService
from satcon_mcp.clients.session import SessionProvider, create_session_provider
from satcon_mcp.config import SatconConfig, get_config
from satcon_mcp.domains.clustergroups.lifecycle import ClusterGroupController
from satcon_mcp.plugin_manager import PluginManager

logger = logging.getLogger(__name__)


class SatconServer:
    """Satellite Config MCP server with plugin discovery."""

    def __init__(self, config: SatconConfig | None = None) -> None:
        self._config = config or get_config()
        self._http: httpx.Client | None = None
        self._sessions: SessionProvider | None = None
        self._groups: GroupService | None = None
        self._controller: ClusterGroupController | None = None
        self._mcp: FastMCP | None = None
        self._plugin_manager: PluginManager | None = None

    @property
    def config(self) -> SatconConfig:
        """Get server configuration."""
        return self._config

    @property
    def sessions(self) -> SessionProvider:
        """Get the session provider.

        Raises:
            RuntimeError: If server is not running.
        """
        if self._sessions is None:
            raise RuntimeError("Server not running. Session provider not available.")
        return self._sessions

    @property
    def controller(self) -> ClusterGroupController:
        """Get the cluster group lifecycle controller.

        Raises:
            RuntimeError: If server is not running.
        """
        if self._controller is None:
            raise RuntimeError("Server not running. Controller not available.")
        return self._controller

    @property
    def mcp(self) -> FastMCP:
        """Get the MCP server instance.

        Raises:
            RuntimeError: If server is not initialized.
        """
        if self._mcp is None:
            raise RuntimeError("Server not initialized.")
        return self._mcp

    @property
    def plugin_manager(self) -> PluginManager | None:
        return self._plugin_manager

    @property
    def is_running(self) -> bool:
        return self._controller is not None

    def startup(self) -> None:
        """Build the remote clients and run plugin health checks.

        Collaborators injected before startup are kept.
        """
        if self._http is None and (self._sessions is None or self._groups is None):
            self._http = httpx.Client(timeout=60.0)
        if self._sessions is None:
            self._sessions = create_session_provider(self._config, http=self._http)
        if self._groups is None:
            self._groups = SatconGroupService(self._config.satcon_url, http=self._http)
        if self._controller is None:
            self._controller = ClusterGroupController(
                self._sessions, self._groups, timeouts=self._config.timeouts
            )

        if self._plugin_manager is not None:
            self._plugin_manager.check_readiness(self)

    def shutdown(self) -> None:
        """Close the HTTP client and drop remote collaborators."""
        if self._http is not None:
            self._http.close()
        self._http = None
        self._sessions = None
        self._groups = None
        self._controller = None

    def _create_lifespan(self) -> Callable[[Any], AbstractAsyncContextManager[None]]:
        """Create the lifespan context manager for the MCP server."""
        server_self = self

        @asynccontextmanager
        async def lifespan(_app: Any) -> AsyncIterator[None]:
            logger.info("Starting Satellite Config MCP server...")
            server_self.startup()
            try:
                yield
            finally:
                logger.info("Shutting down Satellite Config MCP server...")
                server_self.shutdown()
                logger.info("Satellite Config MCP server shut down")

        return lifespan

    def create_mcp(self) -> FastMCP:
        """Create and configure the FastMCP server."""
        mcp = FastMCP(
            name="satcon-mcp",
            instructions="MCP server for IBM Cloud Satellite Config - manages cluster "
            "groups and converges their membership to a declared set of clusters.",
            lifespan=self._create_lifespan(),
            host=self._config.host,
            port=self._config.port,
        )
        self._mcp = mcp

        pm = PluginManager()
        self._plugin_manager = pm

        pm.register_all_tools(mcp, self)
        pm.register_all_resources(mcp, self)

        self._register_core_resources(mcp)
        self._register_health_endpoint(mcp)
        return mcp

    def _register_core_resources(self, mcp: FastMCP) -> None:
        """Register core MCP resources describing the server."""

        @mcp.resource("satcon://server/status")
        def server_status() -> dict:
            """Get the endpoint, safety settings, timeouts and readiness of the server."""
            config = self._config
            pm = self._plugin_manager
            return {
                "satcon_url": config.satcon_url,
                "account_id": config.account_id,
                "read_only_mode": config.read_only_mode,
                "dangerous_operations_enabled": config.enable_dangerous_operations,
                "timeouts": config.timeouts.model_dump(),
                "plugins": [
                    {"name": meta.name, "version": meta.version, "description": meta.description}
                    for meta in (pm.get_all_metadata() if pm else [])
                ],
                "readiness": pm.readiness.to_dict() if pm else None,
            }

    def _register_health_endpoint(self, mcp: FastMCP) -> None:
        """Register the /health route for HTTP transports.

        Returns 200 while the server is running. ``ready`` tells whether the
        account session resolved during startup.
        """

        @mcp.custom_route("/health", methods=["GET"])
        async def health(_request: Request) -> JSONResponse:
            pm = self._plugin_manager
            running = self.is_running
            readiness = pm.readiness.to_dict() if pm else {"ready": False, "messages": []}

            body = {
                "status": "healthy" if running else "unhealthy",
                "running": running,
                **readiness,
            }
            return JSONResponse(body, status_code=200 if running else 503)


def create_server(config: SatconConfig | None = None) -> FastMCP:
    """Create the FastMCP server for the given configuration."""
    return SatconServer(config).create_mcp()
