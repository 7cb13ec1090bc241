"""Pytest fixtures for cluster group domain tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from satcon_mcp.clients.session import AccountContext
from satcon_mcp.config import OperationTimeouts
from satcon_mcp.domains.clustergroups.lifecycle import ClusterGroupController
from satcon_mcp.domains.clustergroups.models import ClusterGroup, ClusterRef, GroupAllocation


@pytest.fixture
def account() -> AccountContext:
    """Sample resolved account context."""
    return AccountContext(account_id="acct-123", access_token="token-abc")


@pytest.fixture
def mock_sessions(account: AccountContext) -> MagicMock:
    """Session provider that always resolves the sample account."""
    sessions = MagicMock()
    sessions.resolve_session.return_value = account
    return sessions


@pytest.fixture
def mock_groups() -> MagicMock:
    """Remote group service with successful default responses."""
    groups = MagicMock()
    groups.allocate_group.return_value = GroupAllocation(
        uuid="u1", created="2024-03-01T12:00:00Z"
    )
    groups.fetch_group_by_name.return_value = ClusterGroup(
        name="g1",
        uuid="u1",
        created="2024-03-01T12:00:00Z",
        members=[
            ClusterRef(cluster_id="c1", name="cluster-one"),
            ClusterRef(cluster_id="c2", name="cluster-two"),
        ],
    )
    groups.remove_group_by_name.return_value = "u1"
    return groups


@pytest.fixture
def controller(mock_sessions: MagicMock, mock_groups: MagicMock) -> ClusterGroupController:
    """Controller wired to mocked collaborators."""
    return ClusterGroupController(mock_sessions, mock_groups, timeouts=OperationTimeouts())


@pytest.fixture
def mock_mcp() -> MagicMock:
    """Create a mock FastMCP that captures tool registrations."""
    mock = MagicMock()
    registered_tools: dict[str, Any] = {}

    def capture_tool() -> Any:
        def decorator(func: Any) -> Any:
            registered_tools[func.__name__] = func
            return func

        return decorator

    mock.tool = capture_tool
    mock._registered_tools = registered_tools
    return mock
