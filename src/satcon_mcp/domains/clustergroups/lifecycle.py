"""Lifecycle controller for Satellite Config cluster groups.

The controller sequences create, read, update and delete calls against the
remote group service, applying membership changes computed by the
reconciliation engine. It keeps no state between operations: the host that
invokes it persists the group record and passes back what it last observed.

No operation is retried here. A failure leaves the group in a well-defined
partial state, and re-invoking the same operation converges it.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from satcon_mcp.config import OperationTimeouts
from satcon_mcp.domains.clustergroups.models import ClusterGroup, ClusterRef, parse_members
from satcon_mcp.domains.clustergroups.reconcile import (
    MembershipDiff,
    diff,
    require_cluster_ids,
    same_membership,
)
from satcon_mcp.utils.errors import (
    AuthenticationError,
    ConfigurationError,
    LifecycleError,
    NotFoundError,
    OperationTimeoutError,
    SatconError,
)

if TYPE_CHECKING:
    from satcon_mcp.clients.satcon import GroupService
    from satcon_mcp.clients.session import AccountContext, SessionProvider

logger = logging.getLogger(__name__)

MemberInput = Iterable[ClusterRef | Mapping[str, Any]] | None


class LifecycleState(str, Enum):
    """States a cluster group moves through across lifecycle operations."""

    ABSENT = "Absent"
    CREATING = "Creating"
    PRESENT = "Present"
    RECONCILING = "Reconciling"
    DELETING = "Deleting"
    FAILED = "Failed"


# Failed ends a single attempt; the caller may re-invoke any operation.
TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    LifecycleState.ABSENT: frozenset({LifecycleState.CREATING, LifecycleState.PRESENT}),
    LifecycleState.CREATING: frozenset({LifecycleState.PRESENT, LifecycleState.FAILED}),
    LifecycleState.PRESENT: frozenset(
        {
            LifecycleState.PRESENT,
            LifecycleState.RECONCILING,
            LifecycleState.DELETING,
            LifecycleState.ABSENT,
            LifecycleState.FAILED,
        }
    ),
    LifecycleState.RECONCILING: frozenset({LifecycleState.PRESENT, LifecycleState.FAILED}),
    LifecycleState.DELETING: frozenset({LifecycleState.ABSENT, LifecycleState.FAILED}),
    LifecycleState.FAILED: frozenset(
        {
            LifecycleState.CREATING,
            LifecycleState.PRESENT,
            LifecycleState.RECONCILING,
            LifecycleState.DELETING,
            LifecycleState.ABSENT,
        }
    ),
}


@dataclass
class GroupLifecycle:
    """Tracks a cluster group's lifecycle state as operations run against it."""

    name: str
    state: LifecycleState = LifecycleState.ABSENT
    history: list[LifecycleState] = field(default_factory=list)

    def can_transition(self, target: LifecycleState) -> bool:
        return target in TRANSITIONS[self.state]

    def transition(self, target: LifecycleState) -> None:
        """Move to ``target``.

        Raises:
            LifecycleError: If the transition is not allowed from the current state.
        """
        if not self.can_transition(target):
            raise LifecycleError(
                f"Illegal transition {self.state.value} -> {target.value}",
                group=self.name,
            )
        logger.debug(f"Cluster group {self.name}: {self.state.value} -> {target.value}")
        self.history.append(self.state)
        self.state = target


class Deadline:
    """Time budget for one lifecycle operation."""

    def __init__(
        self,
        operation: str,
        group: str,
        seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.operation = operation
        self.group = group
        self.seconds = seconds
        self._clock = clock
        self._expires_at = clock() + seconds

    def remaining(self) -> float:
        """Seconds left in the budget.

        Raises:
            OperationTimeoutError: If the budget is exhausted.
        """
        left = self._expires_at - self._clock()
        if left <= 0:
            raise OperationTimeoutError(
                f"Exceeded {self.seconds:g}s timeout",
                operation=self.operation,
                group=self.group,
            )
        return left


def _require(value: str | None, field_name: str, operation: str, group: str | None) -> str:
    if not value or not value.strip():
        raise ConfigurationError(
            f"Cluster group {field_name} is empty",
            operation=operation,
            group=group or None,
        )
    return value


class ClusterGroupController:
    """Create, read, update and delete cluster groups on Satellite Config."""

    def __init__(
        self,
        sessions: SessionProvider,
        groups: GroupService,
        timeouts: OperationTimeouts | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize with the collaborators every operation needs.

        Args:
            sessions: Resolves the account context for remote calls.
            groups: Remote group service.
            timeouts: Per-operation time ceilings.
            clock: Monotonic clock used for deadlines.
        """
        self._sessions = sessions
        self._groups = groups
        self._timeouts = timeouts or OperationTimeouts()
        self._clock = clock

    # -------------------------------------------------------------------------
    # Lifecycle Operations
    # -------------------------------------------------------------------------

    def create(
        self,
        name: str,
        members: MemberInput = None,
        lifecycle: GroupLifecycle | None = None,
    ) -> ClusterGroup:
        """Allocate a cluster group and attach its initial members.

        If attaching fails the group stays allocated and the error is raised;
        a later update against an empty observed membership converges it.

        Args:
            name: Group name.
            members: Initial members (ClusterRef or mappings).
            lifecycle: Optional host-held lifecycle to advance.

        Returns:
            The created group, with the UUID assigned by the service.
        """
        name = _require(name, "name", "create", name)
        desired = self._validate_members(members, "create", name)
        lifecycle = lifecycle or GroupLifecycle(name, LifecycleState.ABSENT)
        deadline = self._deadline("create", name)

        lifecycle.transition(LifecycleState.CREATING)
        try:
            account = self._resolve_session("create", name, deadline)
            logger.debug(f"Create cluster group {name} in account {account.account_id}")
            allocation = self._groups.allocate_group(account, name, timeout=deadline.remaining())

            plan = diff([], desired)
            if plan.to_attach:
                self._groups.attach_members(
                    account, allocation.uuid, plan.attach_ids, timeout=deadline.remaining()
                )
        except SatconError as e:
            self._fail(lifecycle, "create", e)
            raise

        lifecycle.transition(LifecycleState.PRESENT)
        logger.info(
            f"Created cluster group {name} ({allocation.uuid}) with {len(desired)} clusters"
        )
        return ClusterGroup(
            name=name,
            uuid=allocation.uuid,
            created=allocation.created,
            members=desired,
        )

    def read(self, name: str, lifecycle: GroupLifecycle | None = None) -> ClusterGroup:
        """Fetch the group's current remote state.

        The returned group replaces the caller's record wholesale.

        Raises:
            NotFoundError: If the group no longer exists remotely.
        """
        name = _require(name, "name", "read", None)
        lifecycle = lifecycle or GroupLifecycle(name, LifecycleState.PRESENT)
        return self._fetch("read", name, lifecycle)

    def import_group(self, name: str) -> ClusterGroup:
        """Adopt an existing remote group by name."""
        name = _require(name, "name", "import", None)
        return self._fetch("import", name, GroupLifecycle(name, LifecycleState.ABSENT))

    def update(
        self,
        name: str,
        uuid: str,
        old_members: MemberInput,
        new_members: MemberInput,
        lifecycle: GroupLifecycle | None = None,
    ) -> MembershipDiff:
        """Converge membership from ``old_members`` to ``new_members``.

        Attaches are issued before detaches. When the two memberships are
        set-equal by cluster_id nothing is sent to the remote service.

        Returns:
            The membership diff that was applied (empty when nothing changed).
        """
        name = _require(name, "name", "update", None)
        uuid = _require(uuid, "uuid", "update", name)
        observed = self._validate_members(old_members, "update", name)
        desired = self._validate_members(new_members, "update", name)

        if same_membership(observed, desired):
            logger.debug(f"No membership change for cluster group {name}")
            return MembershipDiff()

        lifecycle = lifecycle or GroupLifecycle(name, LifecycleState.PRESENT)
        deadline = self._deadline("update", name)
        plan = diff(observed, desired)

        lifecycle.transition(LifecycleState.RECONCILING)
        try:
            account = self._resolve_session("update", name, deadline)
            if plan.to_attach:
                logger.debug(f"Attach {plan.attach_ids} to cluster group {name}")
                self._groups.attach_members(
                    account, uuid, plan.attach_ids, timeout=deadline.remaining()
                )
            if plan.to_detach:
                logger.debug(f"Detach {plan.detach_ids} from cluster group {name}")
                self._groups.detach_members(
                    account, uuid, plan.detach_ids, timeout=deadline.remaining()
                )
        except SatconError as e:
            self._fail(lifecycle, "update", e)
            raise

        lifecycle.transition(LifecycleState.PRESENT)
        logger.info(
            f"Updated cluster group {name}: attached {len(plan.to_attach)}, "
            f"detached {len(plan.to_detach)}"
        )
        return plan

    def delete(self, name: str, lifecycle: GroupLifecycle | None = None) -> str:
        """Remove the group by name.

        Membership is released by the service along with the group.

        Returns:
            UUID of the removed group.
        """
        name = _require(name, "name", "delete", None)
        lifecycle = lifecycle or GroupLifecycle(name, LifecycleState.PRESENT)
        deadline = self._deadline("delete", name)

        lifecycle.transition(LifecycleState.DELETING)
        try:
            account = self._resolve_session("delete", name, deadline)
            logger.debug(f"Remove cluster group {name} in account {account.account_id}")
            uuid = self._groups.remove_group_by_name(account, name, timeout=deadline.remaining())
        except SatconError as e:
            self._fail(lifecycle, "delete", e)
            raise

        lifecycle.transition(LifecycleState.ABSENT)
        logger.info(f"Removed cluster group {name} ({uuid})")
        return uuid

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _fetch(self, operation: str, name: str, lifecycle: GroupLifecycle) -> ClusterGroup:
        deadline = self._deadline("read", name)
        if not lifecycle.can_transition(LifecycleState.PRESENT):
            raise LifecycleError(
                f"Cannot {operation} a group in state {lifecycle.state.value}",
                operation=operation,
                group=name,
            )
        try:
            account = self._resolve_session(operation, name, deadline)
            logger.debug(f"Get cluster group {name} in account {account.account_id}")
            group = self._groups.fetch_group_by_name(account, name, timeout=deadline.remaining())
        except NotFoundError:
            logger.info(f"Cluster group {name} not found")
            if lifecycle.can_transition(LifecycleState.ABSENT):
                lifecycle.transition(LifecycleState.ABSENT)
            raise
        except SatconError as e:
            self._fail(lifecycle, operation, e)
            raise

        lifecycle.transition(LifecycleState.PRESENT)
        return group

    def _resolve_session(self, operation: str, name: str, deadline: Deadline) -> AccountContext:
        try:
            return self._sessions.resolve_session(timeout=deadline.remaining())
        except SatconError:
            raise
        except Exception as e:
            raise AuthenticationError(
                f"Could not resolve session: {e}", operation=operation, group=name
            ) from e

    def _validate_members(
        self, members: MemberInput, operation: str, name: str
    ) -> list[ClusterRef]:
        try:
            parsed = parse_members(members)
            require_cluster_ids(parsed, group=name)
        except ConfigurationError as e:
            raise ConfigurationError(e.message, operation=operation, group=name) from e
        return parsed

    def _deadline(self, operation: str, name: str) -> Deadline:
        return Deadline(operation, name, self._timeouts.for_operation(operation), self._clock)

    def _fail(self, lifecycle: GroupLifecycle, operation: str, error: SatconError) -> None:
        logger.warning(f"Cluster group {lifecycle.name} {operation} failed: {error}")
        if lifecycle.can_transition(LifecycleState.FAILED):
            lifecycle.transition(LifecycleState.FAILED)
