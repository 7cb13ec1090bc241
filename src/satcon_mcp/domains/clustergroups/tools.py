"""MCP Tools for Satellite Config cluster group operations."""

from typing import TYPE_CHECKING, Any

from satcon_mcp.domains.clustergroups.models import parse_members
from satcon_mcp.domains.clustergroups.reconcile import diff
from satcon_mcp.utils.errors import NotFoundError, SatconError

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from satcon_mcp.server import SatconServer


def register_tools(mcp: "FastMCP", server: "SatconServer") -> None:
    """Register cluster group tools with the MCP server."""

    @mcp.tool()
    def create_cluster_group(
        name: str,
        clusters: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """Create a Satellite Config cluster group.

        Args:
            name: Cluster group name. Renaming later requires delete and re-create.
            clusters: Initial members, each {"cluster_id": "...", "name": "..."}.
                The name is informational.

        Returns:
            The created group's state.
        """
        allowed, reason = server.config.is_operation_allowed("create")
        if not allowed:
            return {"error": reason}

        try:
            group = server.controller.create(name, clusters)
        except SatconError as e:
            return {"error": str(e)}

        return {
            **group.to_state(),
            "message": f"Cluster group '{name}' created successfully",
        }

    @mcp.tool()
    def get_cluster_group(name: str) -> dict[str, Any]:
        """Get a cluster group and its member clusters.

        Args:
            name: Cluster group name.

        Returns:
            The group's current state, or an error with "absent": true when
            the group no longer exists.
        """
        try:
            group = server.controller.read(name)
        except NotFoundError as e:
            return {"error": str(e), "absent": True}
        except SatconError as e:
            return {"error": str(e)}

        return group.to_state()

    @mcp.tool()
    def import_cluster_group(name: str) -> dict[str, Any]:
        """Adopt an existing cluster group by name.

        Args:
            name: Cluster group name.

        Returns:
            The group's state to track from now on.
        """
        try:
            group = server.controller.import_group(name)
        except NotFoundError as e:
            return {"error": str(e), "absent": True}
        except SatconError as e:
            return {"error": str(e)}

        return {
            **group.to_state(),
            "message": f"Cluster group '{name}' imported",
        }

    @mcp.tool()
    def plan_cluster_group_membership(
        current_clusters: list[dict[str, Any]],
        desired_clusters: list[dict[str, Any]],
    ) -> dict[str, Any]:
        """Preview which clusters an update would attach and detach.

        Makes no remote calls.

        Args:
            current_clusters: Membership as last observed.
            desired_clusters: Membership to converge to.

        Returns:
            Cluster IDs to attach and to detach.
        """
        try:
            observed = parse_members(current_clusters)
            desired = parse_members(desired_clusters)
        except SatconError as e:
            return {"error": str(e)}

        plan = diff(observed, desired)
        return {**plan.to_dict(), "changed": not plan.is_empty}

    @mcp.tool()
    def update_cluster_group(
        name: str,
        clusters: list[dict[str, Any]],
        uuid: str | None = None,
        current_clusters: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        """Converge a cluster group's membership to the given clusters.

        Args:
            name: Cluster group name.
            clusters: Desired members, each {"cluster_id": "...", "name": "..."}.
            uuid: Group UUID, when already known.
            current_clusters: Membership as last observed. When omitted, the
                group is read from Satellite Config first.

        Returns:
            Cluster IDs attached and detached.
        """
        allowed, reason = server.config.is_operation_allowed("update")
        if not allowed:
            return {"error": reason}

        try:
            if current_clusters is None or not uuid:
                current = server.controller.read(name)
                uuid = uuid or current.uuid
                if current_clusters is None:
                    current_clusters = [m.to_state() for m in current.members]
            plan = server.controller.update(name, uuid or "", current_clusters, clusters)
        except SatconError as e:
            return {"error": str(e)}

        if plan.is_empty:
            message = f"Cluster group '{name}' already up to date"
        else:
            message = f"Cluster group '{name}' updated"
        return {
            "name": name,
            "uuid": uuid,
            "attached": plan.attach_ids,
            "detached": plan.detach_ids,
            "message": message,
        }

    @mcp.tool()
    def delete_cluster_group(name: str, confirm: bool = False) -> dict[str, Any]:
        """Delete a cluster group.

        Member clusters are released from the group; the clusters themselves
        are not affected.

        Args:
            name: Cluster group name.
            confirm: Must be True to actually delete.

        Returns:
            Confirmation of deletion.
        """
        allowed, reason = server.config.is_operation_allowed("delete")
        if not allowed:
            return {"error": reason}

        if not confirm:
            return {
                "error": "Deletion not confirmed",
                "message": f"To delete cluster group '{name}', set confirm=True.",
            }

        try:
            uuid = server.controller.delete(name)
        except NotFoundError as e:
            return {"error": str(e), "absent": True}
        except SatconError as e:
            return {"error": str(e)}

        return {
            "name": name,
            "uuid": uuid,
            "deleted": True,
            "message": f"Cluster group '{name}' deleted",
        }
