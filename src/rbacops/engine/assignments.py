"""Constrained user-role assignment store.

Users receive their roles in one shot: a user already present in the store
cannot be given more roles.  Every assignment must name known roles only and
must satisfy the SSD constraint set; a refused assignment leaves the store
untouched.  :meth:`UserRoleAssignmentStore.load_assignments` applies a whole
batch and, on the first refusal, clears the store so the source can be
corrected and replayed from the start.
"""
from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from rbacops.domain.value_objects import RoleId, UserId
from rbacops.engine.constraints import SsdConstraintSet

logger = structlog.get_logger(__name__)


class AssignmentStatus(str, enum.Enum):
    """Outcome of a single :meth:`UserRoleAssignmentStore.give_roles_to_user`."""

    ASSIGNED = "assigned"
    ALREADY_ASSIGNED = "already_assigned"
    UNKNOWN_ROLE = "unknown_role"
    CONSTRAINT_VIOLATED = "constraint_violated"


@dataclass(frozen=True, slots=True)
class AssignmentResult:
    """Tagged result of an assignment attempt; truthy only when committed.

    Attributes:
        status: What happened.
        user: The user the attempt was for.
        roles: The requested roles.
        constraint_index: 0-based index of the first broken constraint when
            ``status`` is ``CONSTRAINT_VIOLATED``, otherwise -1.
        unknown_roles: Requested roles outside the known role set.
    """

    status: AssignmentStatus
    user: UserId
    roles: frozenset[RoleId] = field(default_factory=frozenset)
    constraint_index: int = -1
    unknown_roles: frozenset[RoleId] = field(default_factory=frozenset)

    def __bool__(self) -> bool:
        return self.status is AssignmentStatus.ASSIGNED

    def describe(self) -> str:
        """Human-readable cause, numbering constraints from 1."""
        if self.status is AssignmentStatus.CONSTRAINT_VIOLATED:
            return f"constraint #{self.constraint_index + 1}"
        if self.status is AssignmentStatus.ALREADY_ASSIGNED:
            return f"duplicated user {self.user}"
        if self.status is AssignmentStatus.UNKNOWN_ROLE:
            names = ", ".join(str(r) for r in sorted(self.unknown_roles))
            return f"unknown role(s) {names}"
        return f"roles assigned to {self.user}"


@dataclass(frozen=True, slots=True)
class BatchAssignmentResult:
    """Result of :meth:`UserRoleAssignmentStore.load_assignments`.

    Attributes:
        assigned: Users committed before the batch ended.  Zero after a
            failure, since the store is cleared.
        failed_position: 0-based position of the refused pair, or -1.
        failure: The refusal, when there was one.
    """

    assigned: int
    failed_position: int = -1
    failure: AssignmentResult | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def __bool__(self) -> bool:
        return self.ok


class UserRoleAssignmentStore:
    """Forward (user -> roles) and inverse (role -> users) assignment maps."""

    def __init__(self, constraints: SsdConstraintSet, known_roles: Iterable[RoleId]) -> None:
        self._constraints = constraints
        self._known_roles: frozenset[RoleId] = frozenset(known_roles)
        self._roles_by_user: dict[UserId, set[RoleId]] = {}
        self._users_by_role: dict[RoleId, set[UserId]] = {}

    # -- mutation -----------------------------------------------------------

    def give_roles_to_user(self, user: UserId, roles: Iterable[RoleId]) -> AssignmentResult:
        """Assign *roles* to *user*, all or nothing."""
        requested = frozenset(roles)

        if user in self._roles_by_user:
            return self._reject(AssignmentResult(AssignmentStatus.ALREADY_ASSIGNED, user, requested))

        unknown = requested - self._known_roles
        if unknown:
            return self._reject(
                AssignmentResult(AssignmentStatus.UNKNOWN_ROLE, user, requested, unknown_roles=unknown)
            )

        broken = self._constraints.index_of_first_broken_constraint(requested)
        if broken != -1:
            return self._reject(
                AssignmentResult(AssignmentStatus.CONSTRAINT_VIOLATED, user, requested, constraint_index=broken)
            )

        self._roles_by_user[user] = set(requested)
        for role in requested:
            self._users_by_role.setdefault(role, set()).add(user)
        logger.debug("roles_assigned", user=str(user), roles=sorted(str(r) for r in requested))
        return AssignmentResult(AssignmentStatus.ASSIGNED, user, requested)

    def _reject(self, result: AssignmentResult) -> AssignmentResult:
        logger.info(
            "assignment_rejected",
            user=str(result.user),
            status=result.status.value,
            constraint_index=result.constraint_index,
        )
        return result

    def load_assignments(
        self, pairs: Iterable[tuple[UserId, Iterable[RoleId]]]
    ) -> BatchAssignmentResult:
        """Apply ``(user, roles)`` pairs in order; clear everything on first refusal."""
        assigned = 0
        for position, (user, roles) in enumerate(pairs):
            result = self.give_roles_to_user(user, roles)
            if not result:
                self.clear_users()
                logger.warning(
                    "assignment_batch_aborted",
                    position=position,
                    user=str(user),
                    reason=result.describe(),
                )
                return BatchAssignmentResult(assigned=0, failed_position=position, failure=result)
            assigned += 1
        logger.info("assignment_batch_loaded", users=assigned)
        return BatchAssignmentResult(assigned=assigned)

    def clear_users(self) -> None:
        """Drop every assignment."""
        self._roles_by_user.clear()
        self._users_by_role.clear()

    # -- queries ------------------------------------------------------------

    def has_user(self, user: UserId) -> bool:
        return user in self._roles_by_user

    def get_users(self) -> set[UserId]:
        return set(self._roles_by_user)

    def get_roles(self, user: UserId) -> frozenset[RoleId]:
        """Return the roles of *user* (empty for an unknown user)."""
        return frozenset(self._roles_by_user.get(user, ()))

    def get_users_for_role(self, role: RoleId) -> frozenset[UserId]:
        return frozenset(self._users_by_role.get(role, ()))

    def get_constraint_set(self) -> SsdConstraintSet:
        return self._constraints

    def get_known_roles(self) -> frozenset[RoleId]:
        return self._known_roles

    def __len__(self) -> int:
        return len(self._roles_by_user)
