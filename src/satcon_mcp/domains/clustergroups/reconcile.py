"""Membership reconciliation for cluster groups.

Given the membership last observed on the remote service and the membership a
caller now declares, compute the attach and detach batches that converge one
onto the other. Identity is ``cluster_id`` only; the optional cluster name is
descriptive and never causes a detach/attach cycle on its own.

Everything here is pure: no remote calls, no state between calls.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from satcon_mcp.domains.clustergroups.models import ClusterRef
from satcon_mcp.utils.errors import ConfigurationError


@dataclass(frozen=True)
class MembershipDiff:
    """Attach/detach batches produced by :func:`diff`."""

    to_attach: tuple[ClusterRef, ...] = field(default_factory=tuple)
    to_detach: tuple[ClusterRef, ...] = field(default_factory=tuple)

    @property
    def attach_ids(self) -> list[str]:
        return [m.cluster_id for m in self.to_attach]

    @property
    def detach_ids(self) -> list[str]:
        return [m.cluster_id for m in self.to_detach]

    @property
    def is_empty(self) -> bool:
        return not self.to_attach and not self.to_detach

    def to_dict(self) -> dict[str, list[str]]:
        return {"attach": self.attach_ids, "detach": self.detach_ids}


def _index(members: Iterable[ClusterRef]) -> dict[str, ClusterRef]:
    # First occurrence wins so duplicate IDs count as one member.
    index: dict[str, ClusterRef] = {}
    for member in members:
        index.setdefault(member.cluster_id, member)
    return index


def require_cluster_ids(members: Iterable[ClusterRef], group: str | None = None) -> None:
    """Reject members with a blank cluster_id before they reach :func:`diff`.

    Raises:
        ConfigurationError: If any member's cluster_id is empty or whitespace.
    """
    for member in members:
        if not member.cluster_id or not member.cluster_id.strip():
            raise ConfigurationError(
                f"Cluster entry has an empty cluster_id: {member!r}",
                group=group,
            )


def diff(observed: Iterable[ClusterRef], desired: Iterable[ClusterRef]) -> MembershipDiff:
    """Compute the membership diff from ``observed`` to ``desired``.

    Args:
        observed: Membership currently believed to exist remotely.
        desired: Membership the caller declares.

    Returns:
        MembershipDiff whose ``to_attach`` holds desired members missing from
        observed and whose ``to_detach`` holds observed members missing from
        desired. Each batch keeps the input order of its side.
    """
    observed_index = _index(observed)
    desired_index = _index(desired)

    to_attach = tuple(m for cid, m in desired_index.items() if cid not in observed_index)
    to_detach = tuple(m for cid, m in observed_index.items() if cid not in desired_index)
    return MembershipDiff(to_attach=to_attach, to_detach=to_detach)


def same_membership(a: Iterable[ClusterRef], b: Iterable[ClusterRef]) -> bool:
    """Whether two memberships are set-equal by cluster_id."""
    return set(_index(a)) == set(_index(b))
