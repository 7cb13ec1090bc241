"""Clients for Satellite Config and IBM Cloud IAM."""

from satcon_mcp.clients.satcon import GroupService, SatconGroupService
from satcon_mcp.clients.session import (
    AccountContext,
    IAMSessionProvider,
    SessionProvider,
    StaticSessionProvider,
    create_session_provider,
)

__all__ = [
    "AccountContext",
    "GroupService",
    "IAMSessionProvider",
    "SatconGroupService",
    "SessionProvider",
    "StaticSessionProvider",
    "create_session_provider",
]
