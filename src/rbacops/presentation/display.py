"""Plain-text rendering of policy state and query answers.

Every function returns a string; printing is left to the caller.  Roles,
objects and permissions are always listed in identifier order (prefix, then
ordinal) so output is stable across runs.
"""
from __future__ import annotations

from collections.abc import Iterable

from rbacops.domain.value_objects import Identifier
from rbacops.engine.assignments import UserRoleAssignmentStore
from rbacops.engine.constraints import SsdConstraintSet
from rbacops.engine.evaluator import QueryResult, QueryStatus
from rbacops.engine.hierarchy import RoleHierarchy
from rbacops.engine.matrix import PermissionMatrix

CORNER = "\\"
ASSIGNED_MARK = "X"


def join_sorted(identifiers: Iterable[Identifier]) -> str:
    """``"a, b, c"`` in identifier order."""
    return ", ".join(str(i) for i in sorted(identifiers))


def render_hierarchy(hierarchy: RoleHierarchy) -> str:
    """One ``DESCENDANT ---> ASCENDANT, ...`` line per role with ascendants.

    Lines run level by level, starting from the roles with no descendant.
    """
    lines = []
    for row in hierarchy.levels():
        for role, ascendants in row:
            lines.append(f"{role} ---> {join_sorted(ascendants)}")
    return "\n".join(lines)


def render_matrix(matrix: PermissionMatrix, columns: int = 5, term_width: int = 80) -> str:
    """Render the role x object matrix as stacked sub-matrices.

    Each sub-matrix holds at most *columns* object columns; every cell is
    right-aligned to ``term_width // (columns + 1)`` characters, widened when
    a cell needs more room.
    """
    if columns < 1:
        raise ValueError(f"columns must be >= 1, got {columns}")
    objects = sorted(matrix.get_objects())
    roles = sorted(matrix.get_roles())
    width = term_width // (columns + 1)

    blocks = []
    for start in range(0, max(len(objects), 1), columns):
        chunk = objects[start:start + columns]
        rows = [[CORNER] + [str(obj) for obj in chunk]]
        for role in roles:
            cells = [join_sorted(matrix.get_object_permissions_for_role(role, obj)) for obj in chunk]
            rows.append([str(role)] + cells)
        cell_width = max([width] + [len(cell) for row in rows for cell in row])
        blocks.append("\n".join(" ".join(cell.rjust(cell_width) for cell in row) for row in rows))
    return "\n\n".join(blocks)


def render_constraints(constraints: SsdConstraintSet) -> str:
    """``Constraint k, n = N, set of roles = {R1, R2}``, numbered from 1."""
    return "\n".join(
        f"Constraint {number}, n = {constraint.n}, set of roles = {{{join_sorted(constraint.roles)}}}"
        for number, constraint in enumerate(constraints, start=1)
    )


def render_user_roles(store: UserRoleAssignmentStore) -> str:
    """Users x known roles grid, marking held roles with ``X``."""
    roles = sorted(store.get_known_roles())
    users = sorted(store.get_users())
    labels = [str(r) for r in roles] + [str(u) for u in users]
    width = max([len(label) for label in labels] + [1])

    lines = [" ".join([" " * width] + [str(role).rjust(width) for role in roles])]
    for user in users:
        held = store.get_roles(user)
        marks = [(ASSIGNED_MARK if role in held else "").rjust(width) for role in roles]
        lines.append(" ".join([str(user).rjust(width)] + marks))
    return "\n".join(line.rstrip() for line in lines)


def render_query_result(result: QueryResult) -> str:
    """Operator-facing answer to a query."""
    if result.status is QueryStatus.INVALID_USER:
        return "Invalid user."
    if result.status is QueryStatus.INVALID_OBJECT:
        return "Invalid object."
    if result.status is QueryStatus.ACCEPTED:
        return "Accepted"
    if result.status is QueryStatus.REJECTED:
        return "Rejected"
    return "\n".join(
        f"{obj}\t{join_sorted(permissions)}"
        for obj, permissions in sorted(result.grants.items())
    )


__all__ = [
    "join_sorted",
    "render_constraints",
    "render_hierarchy",
    "render_matrix",
    "render_query_result",
    "render_user_roles",
]
