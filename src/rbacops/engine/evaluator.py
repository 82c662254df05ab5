"""Access query evaluator.

Answers "can user U exercise permission P on object O?" by unioning, per
examined object, the permissions of every role assigned to the user.  With
no object every tracked object is examined and a named permission must be
present on all of them.  With no permission the query enumerates the
user's non-empty permission sets instead.
"""
from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field

import structlog

from rbacops.domain.value_objects import ObjectId, PermissionId, UserId
from rbacops.engine.assignments import UserRoleAssignmentStore
from rbacops.engine.matrix import PermissionMatrix

logger = structlog.get_logger(__name__)


class QueryStatus(str, enum.Enum):
    """Outcome of :meth:`AccessQueryEvaluator.evaluate`."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    LISTED = "listed"
    INVALID_USER = "invalid_user"
    INVALID_OBJECT = "invalid_object"

    @property
    def is_error(self) -> bool:
        return self in {QueryStatus.INVALID_USER, QueryStatus.INVALID_OBJECT}


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Answer to one access query.

    Truthy for ``ACCEPTED`` and ``LISTED``.  In enumeration mode that only
    means no hard error occurred; ``grants`` carries the actual answer.
    """

    status: QueryStatus
    user: UserId
    obj: ObjectId | None = None
    permission: PermissionId | None = None
    grants: Mapping[ObjectId, frozenset[PermissionId]] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.status in {QueryStatus.ACCEPTED, QueryStatus.LISTED}

    @property
    def accepted(self) -> bool:
        return self.status is QueryStatus.ACCEPTED


class AccessQueryEvaluator:
    """Read-only composition of a permission matrix and an assignment store."""

    def __init__(self, matrix: PermissionMatrix, assignments: UserRoleAssignmentStore) -> None:
        self._matrix = matrix
        self._assignments = assignments

    def effective_permissions(self, user: UserId, obj: ObjectId) -> frozenset[PermissionId]:
        """Union of the permissions every role of *user* holds on *obj*."""
        permissions: set[PermissionId] = set()
        for role in self._assignments.get_roles(user):
            permissions.update(self._matrix.get_object_permissions_for_role(role, obj))
        return frozenset(permissions)

    def evaluate(
        self,
        user: UserId,
        obj: ObjectId | None = None,
        permission: PermissionId | None = None,
    ) -> QueryResult:
        if not self._assignments.has_user(user):
            logger.warning("query_invalid_user", user=str(user))
            return QueryResult(QueryStatus.INVALID_USER, user, obj, permission)

        if obj is None:
            examined = sorted(self._matrix.get_objects())
        elif self._matrix.object_exists(obj):
            examined = [obj]
        else:
            logger.warning("query_invalid_object", user=str(user), object=str(obj))
            return QueryResult(QueryStatus.INVALID_OBJECT, user, obj, permission)

        grants = {target: self.effective_permissions(user, target) for target in examined}

        if permission is not None:
            granted = all(permission in held for held in grants.values())
            status = QueryStatus.ACCEPTED if granted else QueryStatus.REJECTED
            result = QueryResult(status, user, obj, permission, grants)
        else:
            listed = {target: held for target, held in grants.items() if held}
            result = QueryResult(QueryStatus.LISTED, user, obj, None, listed)

        logger.debug(
            "query_evaluated",
            user=str(user),
            object=str(obj) if obj is not None else "*",
            permission=str(permission) if permission is not None else "*",
            status=result.status.value,
        )
        return result

    def query(
        self,
        user: UserId,
        obj: ObjectId | None = None,
        permission: PermissionId | None = None,
    ) -> bool:
        """Boolean form of :meth:`evaluate`."""
        return bool(self.evaluate(user, obj, permission))
