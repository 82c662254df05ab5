"""Authorization kernel: hierarchy, matrix, SSD constraints, assignments, queries."""
from rbacops.engine.assignments import (
    AssignmentResult,
    AssignmentStatus,
    BatchAssignmentResult,
    UserRoleAssignmentStore,
)
from rbacops.engine.constraints import SsdConstraint, SsdConstraintSet
from rbacops.engine.evaluator import AccessQueryEvaluator, QueryResult, QueryStatus
from rbacops.engine.hierarchy import RelationshipConflict, RoleHierarchy
from rbacops.engine.matrix import CONTROL, OWN, PermissionMatrix

__all__ = [
    "CONTROL",
    "OWN",
    "AccessQueryEvaluator",
    "AssignmentResult",
    "AssignmentStatus",
    "BatchAssignmentResult",
    "PermissionMatrix",
    "QueryResult",
    "QueryStatus",
    "RelationshipConflict",
    "RoleHierarchy",
    "SsdConstraint",
    "SsdConstraintSet",
    "UserRoleAssignmentStore",
]
