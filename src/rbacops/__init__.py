"""eco-rbacops: RBAC96 policy evaluation engine.

The authorization kernel lives in :mod:`rbacops.engine`; policy files are
read by :mod:`rbacops.sources` and rendered or queried from the command line
through :mod:`rbacops.presentation`.
"""
from rbacops.domain.value_objects import ObjectId, PermissionId, RoleId, UserId
from rbacops.engine.assignments import (
    AssignmentResult,
    AssignmentStatus,
    BatchAssignmentResult,
    UserRoleAssignmentStore,
)
from rbacops.engine.constraints import SsdConstraint, SsdConstraintSet
from rbacops.engine.evaluator import AccessQueryEvaluator, QueryResult, QueryStatus
from rbacops.engine.hierarchy import RelationshipConflict, RoleHierarchy
from rbacops.engine.matrix import PermissionMatrix

__version__ = "0.1.0"

__all__ = [
    "AccessQueryEvaluator",
    "AssignmentResult",
    "AssignmentStatus",
    "BatchAssignmentResult",
    "ObjectId",
    "PermissionId",
    "PermissionMatrix",
    "QueryResult",
    "QueryStatus",
    "RelationshipConflict",
    "RoleHierarchy",
    "RoleId",
    "SsdConstraint",
    "SsdConstraintSet",
    "UserId",
    "UserRoleAssignmentStore",
]
