"""Satellite Config group service client.

Wraps the Satellite Config (Razee) GraphQL API operations that manage cluster
groups: allocation, lookup by name, membership attach/detach, and removal.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any, Protocol

import httpx
from pydantic import ValidationError

from satcon_mcp.domains.clustergroups.models import ClusterGroup, GroupAllocation
from satcon_mcp.utils.errors import (
    NotFoundError,
    OperationTimeoutError,
    RemoteOperationError,
)

if TYPE_CHECKING:
    from satcon_mcp.clients.session import AccountContext

logger = logging.getLogger(__name__)


ADD_GROUP = """
mutation addGroup($orgId: String!, $name: String!) {
  addGroup(orgId: $orgId, name: $name) {
    uuid
  }
}
"""

GROUP_BY_NAME = """
query groupByName($orgId: String!, $name: String!) {
  groupByName(orgId: $orgId, name: $name) {
    uuid
    name
    created
    clusters {
      clusterId
      name
    }
  }
}
"""

GROUP_CLUSTERS = """
mutation groupClusters($orgId: String!, $uuid: String!, $clusters: [String!]!) {
  groupClusters(orgId: $orgId, uuid: $uuid, clusters: $clusters) {
    modified
  }
}
"""

UNGROUP_CLUSTERS = """
mutation unGroupClusters($orgId: String!, $uuid: String!, $clusters: [String!]!) {
  unGroupClusters(orgId: $orgId, uuid: $uuid, clusters: $clusters) {
    modified
  }
}
"""

REMOVE_GROUP_BY_NAME = """
mutation removeGroupByName($orgId: String!, $name: String!) {
  removeGroupByName(orgId: $orgId, name: $name) {
    uuid
    success
  }
}
"""

NOT_FOUND_CODES = {"NOT_FOUND", "NOT_FOUND_ERROR"}
NOT_FOUND_PHRASES = ("not found", "could not find", "could not locate")

# Operations addressed by group name, where a missing group is reported as an error
NAME_LOOKUP_OPERATIONS = {"groupByName", "removeGroupByName"}


class GroupService(Protocol):
    """Remote group operations consumed by the lifecycle controller."""

    def allocate_group(
        self, account: AccountContext, name: str, timeout: float | None = None
    ) -> GroupAllocation: ...

    def fetch_group_by_name(
        self, account: AccountContext, name: str, timeout: float | None = None
    ) -> ClusterGroup: ...

    def attach_members(
        self,
        account: AccountContext,
        uuid: str,
        cluster_ids: list[str],
        timeout: float | None = None,
    ) -> None: ...

    def detach_members(
        self,
        account: AccountContext,
        uuid: str,
        cluster_ids: list[str],
        timeout: float | None = None,
    ) -> None: ...

    def remove_group_by_name(
        self, account: AccountContext, name: str, timeout: float | None = None
    ) -> str: ...


def _is_not_found(errors: list[Any], group: str) -> bool:
    """Whether the errors report that ``group`` itself does not exist.

    An explicit not-found extension code counts. A free-text message counts
    only when it also names the group, so a missing organization or API key
    is not mistaken for a missing group.
    """
    names_group = re.compile(rf"(?<![\w-]){re.escape(group.lower())}(?![\w-])")
    for error in errors:
        if not isinstance(error, dict):
            continue
        code = (error.get("extensions") or {}).get("code")
        if code in NOT_FOUND_CODES:
            return True
        message = str(error.get("message", "")).lower()
        if any(p in message for p in NOT_FOUND_PHRASES) and names_group.search(message):
            return True
    return False


class SatconGroupService:
    """Client for Satellite Config cluster group operations."""

    def __init__(self, url: str, http: httpx.Client | None = None, timeout: float = 60.0) -> None:
        """Initialize with the GraphQL endpoint URL.

        Args:
            url: Satellite Config GraphQL endpoint.
            http: Optional pre-built httpx client (shared or test transport).
            timeout: Default per-request timeout when no operation budget is given.
        """
        self._url = url
        self._http = http or httpx.Client(timeout=timeout)
        self._owns_http = http is None

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    # -------------------------------------------------------------------------
    # Group Operations
    # -------------------------------------------------------------------------

    def allocate_group(
        self, account: AccountContext, name: str, timeout: float | None = None
    ) -> GroupAllocation:
        """Allocate a new cluster group.

        Returns:
            GroupAllocation with the UUID assigned by the service.
        """
        data = self._execute(
            "addGroup",
            ADD_GROUP,
            {"orgId": account.account_id, "name": name},
            account,
            group=name,
            timeout=timeout,
        )
        result = data.get("addGroup") or {}
        if not result.get("uuid"):
            raise RemoteOperationError(
                "Satellite Config did not return a UUID for the new group",
                operation="addGroup",
                group=name,
            )
        return GroupAllocation(uuid=result["uuid"], created=result.get("created"))

    def fetch_group_by_name(
        self, account: AccountContext, name: str, timeout: float | None = None
    ) -> ClusterGroup:
        """Get a cluster group and its members by name.

        Raises:
            NotFoundError: If no group with this name exists in the account.
        """
        data = self._execute(
            "groupByName",
            GROUP_BY_NAME,
            {"orgId": account.account_id, "name": name},
            account,
            group=name,
            timeout=timeout,
        )
        result = data.get("groupByName")
        if result is None:
            raise NotFoundError(name, operation="groupByName")
        try:
            return ClusterGroup.from_api(result)
        except ValidationError as e:
            raise RemoteOperationError(
                f"Unexpected group payload: {e}", operation="groupByName", group=name
            ) from e

    def attach_members(
        self,
        account: AccountContext,
        uuid: str,
        cluster_ids: list[str],
        timeout: float | None = None,
    ) -> None:
        """Add clusters to the group identified by ``uuid``."""
        self._execute(
            "groupClusters",
            GROUP_CLUSTERS,
            {"orgId": account.account_id, "uuid": uuid, "clusters": cluster_ids},
            account,
            group=uuid,
            timeout=timeout,
        )

    def detach_members(
        self,
        account: AccountContext,
        uuid: str,
        cluster_ids: list[str],
        timeout: float | None = None,
    ) -> None:
        """Remove clusters from the group identified by ``uuid``."""
        self._execute(
            "unGroupClusters",
            UNGROUP_CLUSTERS,
            {"orgId": account.account_id, "uuid": uuid, "clusters": cluster_ids},
            account,
            group=uuid,
            timeout=timeout,
        )

    def remove_group_by_name(
        self, account: AccountContext, name: str, timeout: float | None = None
    ) -> str:
        """Remove a cluster group by name.

        Returns:
            UUID of the removed group.
        """
        data = self._execute(
            "removeGroupByName",
            REMOVE_GROUP_BY_NAME,
            {"orgId": account.account_id, "name": name},
            account,
            group=name,
            timeout=timeout,
        )
        result = data.get("removeGroupByName") or {}
        if result.get("success") is False:
            raise RemoteOperationError(
                "Satellite Config reported the group was not removed",
                operation="removeGroupByName",
                group=name,
            )
        return str(result.get("uuid") or "")

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _execute(
        self,
        operation: str,
        query: str,
        variables: dict[str, Any],
        account: AccountContext,
        group: str | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Run a GraphQL operation and return its ``data`` payload.

        Raises:
            NotFoundError: If the service reports the group does not exist.
            OperationTimeoutError: If the request timed out.
            RemoteOperationError: On any other transport or GraphQL failure.
        """
        logger.debug(f"Satellite Config {operation}: {variables}")
        try:
            response = self._http.post(
                self._url,
                json={"operationName": operation, "query": query, "variables": variables},
                headers={
                    "Authorization": account.authorization,
                    "Content-Type": "application/json",
                },
                timeout=timeout if timeout is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.TimeoutException as e:
            raise OperationTimeoutError(
                f"Request timed out: {e}", operation=operation, group=group
            ) from e
        except httpx.HTTPError as e:
            raise RemoteOperationError(
                f"Request failed: {e}", operation=operation, group=group
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise RemoteOperationError(
                f"HTTP {response.status_code}: response is not JSON: {response.text[:200]}",
                operation=operation,
                group=group,
            ) from e

        if not isinstance(payload, dict):
            raise RemoteOperationError(
                f"HTTP {response.status_code}: expected a JSON object, "
                f"got {type(payload).__name__}",
                operation=operation,
                group=group,
            )

        errors = payload.get("errors") or []
        if errors:
            if not isinstance(errors, list):
                errors = [errors]
            if operation in NAME_LOOKUP_OPERATIONS and group and _is_not_found(errors, group):
                raise NotFoundError(group, operation=operation)
            messages = "; ".join(
                str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors
            )
            raise RemoteOperationError(messages, operation=operation, group=group)

        if response.status_code >= 400:
            raise RemoteOperationError(
                f"HTTP {response.status_code}: {response.text}",
                operation=operation,
                group=group,
            )

        data = payload.get("data")
        if not isinstance(data, dict):
            raise RemoteOperationError(
                "Response carries no data payload", operation=operation, group=group
            )
        return data
