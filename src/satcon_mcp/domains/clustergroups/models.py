"""Pydantic models for Satellite Config cluster groups."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from satcon_mcp.utils.errors import ConfigurationError


class ClusterRef(BaseModel):
    """A member cluster of a cluster group.

    Identity is ``cluster_id`` alone. ``name`` is informational and never
    participates in comparisons made by the reconciliation engine.
    """

    model_config = ConfigDict(frozen=True)

    cluster_id: str = Field(..., description="ID of the cluster")
    name: str | None = Field(None, description="Name of the cluster")

    @field_validator("cluster_id")
    @classmethod
    def _cluster_id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("cluster_id must not be empty")
        return value

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> ClusterRef:
        """Create from a Satellite Config ``clusters`` entry."""
        return cls(
            cluster_id=data.get("clusterId") or data.get("id") or "",
            name=data.get("name"),
        )

    def to_state(self) -> dict[str, Any]:
        return {"cluster_id": self.cluster_id, "name": self.name}


class GroupAllocation(BaseModel):
    """Identity assigned by the remote service when a group is allocated."""

    uuid: str = Field(..., description="Cluster group UUID")
    created: str | None = Field(None, description="Creation time of the cluster group")


class ClusterGroup(BaseModel):
    """Cluster group representation.

    This is both the shape returned from the remote service and the local
    mirror a host runtime persists between invocations.
    """

    name: str = Field(..., description="Name of the cluster group")
    uuid: str | None = Field(None, description="ID of the cluster group")
    created: str | None = Field(None, description="Creation time of the cluster group")
    members: list[ClusterRef] = Field(default_factory=list, description="Member clusters")

    @property
    def cluster_ids(self) -> list[str]:
        return [m.cluster_id for m in self.members]

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> ClusterGroup:
        """Create from a Satellite Config ``groupByName`` response."""
        clusters = data.get("clusters") or []
        return cls(
            name=data.get("name") or "",
            uuid=data.get("uuid"),
            created=data.get("created"),
            members=dedupe_members(ClusterRef.from_api(c) for c in clusters),
        )

    def to_state(self) -> dict[str, Any]:
        """Return the persisted-state representation handed to the host.

        Member order is preserved for the host's diffing convenience; it has
        no meaning to reconciliation.
        """
        return {
            "uuid": self.uuid,
            "name": self.name,
            "created": self.created,
            "members": [m.to_state() for m in self.members],
        }

    @classmethod
    def from_state(cls, state: Mapping[str, Any]) -> ClusterGroup:
        """Rebuild a group from its persisted-state representation."""
        return cls(
            name=state.get("name") or "",
            uuid=state.get("uuid"),
            created=state.get("created"),
            members=parse_members(state.get("members") or []),
        )


def dedupe_members(members: Iterable[ClusterRef]) -> list[ClusterRef]:
    """Collapse members sharing a cluster_id, keeping the first occurrence."""
    seen: dict[str, ClusterRef] = {}
    for member in members:
        seen.setdefault(member.cluster_id, member)
    return list(seen.values())


def parse_members(raw: Iterable[ClusterRef | Mapping[str, Any]] | None) -> list[ClusterRef]:
    """Validate caller-supplied members once, at the boundary.

    Accepts ``ClusterRef`` instances or mappings with ``cluster_id`` and an
    optional ``name``. Duplicate cluster IDs collapse to a single member.

    Raises:
        ConfigurationError: If any entry is malformed or has a blank cluster_id.
    """
    if raw is None:
        return []

    members: list[ClusterRef] = []
    for index, item in enumerate(raw):
        if isinstance(item, ClusterRef):
            members.append(item)
            continue
        try:
            members.append(ClusterRef.model_validate(item))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid cluster entry at index {index}: {e}") from e
    return dedupe_members(members)
