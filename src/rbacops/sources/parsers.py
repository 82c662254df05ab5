"""Readers for the flat-text policy source formats.

Each source is a whitespace-separated text file, one record per line.  Blank
lines and lines starting with ``#`` are ignored; line numbers reported in
errors are 1-based and count every physical line.

=====================  ==========================  =========================
source                 line format                 on a bad line
=====================  ==========================  =========================
role hierarchy         ``ASCENDANT DESCENDANT``    raise, whole file retried
resource objects       ``OBJ OBJ ...``             raise, whole file retried
permissions            ``ROLE PERMISSION OBJECT``  skip and report
SSD constraints        ``N ROLE ROLE ...``         raise, whole file retried
user roles             ``USER ROLE ROLE ...``      clear store, raise
=====================  ==========================  =========================
"""
from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

from rbacops.domain.value_objects import Identifier, ObjectId, PermissionId, RoleId, UserId
from rbacops.engine.assignments import BatchAssignmentResult, UserRoleAssignmentStore
from rbacops.engine.constraints import SsdConstraintSet
from rbacops.engine.hierarchy import RoleHierarchy
from rbacops.engine.matrix import PermissionMatrix
from rbacops.shared.exceptions import (
    AssignmentRejectedError,
    ConstraintCardinalityError,
    DuplicateObjectError,
    InvalidIdentifierError,
    InvalidSourceLineError,
    SourceNotFoundError,
)

logger = structlog.get_logger(__name__)


class SourceDiagnostic(BaseModel):
    """A skipped line of a source that is applied best-effort."""

    source: str
    line: int
    reason: str
    tokens: list[str] = Field(default_factory=list)


class UserRoleLine(BaseModel):
    """One parsed line of the user-role source."""

    line: int
    user: str
    roles: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Line iteration
# ---------------------------------------------------------------------------


def iter_records(path: str | Path, description: str) -> Iterator[tuple[int, list[str]]]:
    """Yield ``(line_number, tokens)`` for every meaningful line of *path*.

    Raises:
        SourceNotFoundError: If *path* does not exist.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except FileNotFoundError as exc:
        raise SourceNotFoundError(str(path), description) from exc

    for number, raw in enumerate(lines, start=1):
        text = raw.strip()
        if not text or text.startswith("#"):
            continue
        yield number, text.split()


def _parse(kind: type[Identifier], token: str, source: str, line: int) -> Identifier:
    try:
        return kind.parse(token)
    except InvalidIdentifierError as exc:
        raise InvalidSourceLineError(source, line, exc.message) from exc


# ---------------------------------------------------------------------------
# Role hierarchy
# ---------------------------------------------------------------------------


def read_hierarchy(path: str | Path) -> RoleHierarchy:
    """Build a :class:`RoleHierarchy` from ``ASCENDANT DESCENDANT`` lines."""
    source = str(path)
    hierarchy = RoleHierarchy()
    for line, tokens in iter_records(path, "role hierarchy"):
        if len(tokens) != 2:
            raise InvalidSourceLineError(source, line, f"expected 2 roles, found {len(tokens)}")
        ascendant = _parse(RoleId, tokens[0], source, line)
        descendant = _parse(RoleId, tokens[1], source, line)
        conflict = hierarchy.relationship_conflict(ascendant, descendant)
        if conflict is not None:
            raise InvalidSourceLineError(source, line, conflict.describe(ascendant, descendant))
        hierarchy.add_relationship(ascendant, descendant)
    logger.info("hierarchy_source_read", source=source, roles=len(hierarchy))
    return hierarchy


# ---------------------------------------------------------------------------
# Resource objects
# ---------------------------------------------------------------------------


def read_objects(path: str | Path) -> set[ObjectId]:
    """Read the resource object set, refusing repeated identifiers."""
    source = str(path)
    objects: set[ObjectId] = set()
    for line, tokens in iter_records(path, "resource objects"):
        for token in tokens:
            obj = _parse(ObjectId, token, source, line)
            if obj in objects:
                raise DuplicateObjectError(source, line, token)
            objects.add(obj)
    logger.info("objects_source_read", source=source, objects=len(objects))
    return objects


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------


def apply_permissions(path: str | Path, matrix: PermissionMatrix) -> list[SourceDiagnostic]:
    """Apply ``ROLE PERMISSION OBJECT`` grants in order.

    Malformed lines and grants naming an unknown role or object are skipped
    and returned as diagnostics; the remaining lines are still applied.
    """
    source = str(path)
    diagnostics: list[SourceDiagnostic] = []
    granted = 0
    for line, tokens in iter_records(path, "permissions"):
        if len(tokens) != 3:
            diagnostics.append(SourceDiagnostic(
                source=source,
                line=line,
                reason=f"expected ROLE PERMISSION OBJECT, found {len(tokens)} token(s)",
                tokens=tokens,
            ))
            continue
        try:
            role = RoleId.parse(tokens[0])
            permission = PermissionId.parse(tokens[1])
            obj = ObjectId.parse(tokens[2])
        except InvalidIdentifierError as exc:
            diagnostics.append(SourceDiagnostic(source=source, line=line, reason=exc.message, tokens=tokens))
            continue

        if not matrix.role_exists(role):
            reason = f"unknown role {role}"
        elif not matrix.object_exists(obj):
            reason = f"unknown object {obj}"
        else:
            matrix.add_permission(role, obj, permission)
            granted += 1
            continue
        diagnostics.append(SourceDiagnostic(source=source, line=line, reason=reason, tokens=tokens))

    for diagnostic in diagnostics:
        logger.warning(
            "permission_line_skipped",
            source=source,
            line=diagnostic.line,
            reason=diagnostic.reason,
        )
    logger.info("permissions_source_applied", source=source, granted=granted, skipped=len(diagnostics))
    return diagnostics


# ---------------------------------------------------------------------------
# SSD constraints
# ---------------------------------------------------------------------------


def read_constraints(path: str | Path) -> SsdConstraintSet:
    """Read ``N ROLE ROLE ...`` lines into an ordered constraint set."""
    source = str(path)
    constraints = SsdConstraintSet()
    for line, tokens in iter_records(path, "SSD constraints"):
        try:
            n = int(tokens[0])
        except ValueError:
            raise InvalidSourceLineError(source, line, f"cardinality {tokens[0]!r} is not an integer") from None
        if len(tokens) < 2:
            raise InvalidSourceLineError(source, line, "constraint names no roles")
        roles = {_parse(RoleId, token, source, line) for token in tokens[1:]}
        try:
            constraints.add_constraint(n, roles)
        except ConstraintCardinalityError as exc:
            raise InvalidSourceLineError(source, line, exc.message) from exc
    logger.info("constraints_source_read", source=source, constraints=len(constraints))
    return constraints


# ---------------------------------------------------------------------------
# User roles
# ---------------------------------------------------------------------------


def read_user_roles(path: str | Path) -> list[UserRoleLine]:
    """Parse ``USER ROLE ROLE ...`` lines without applying them."""
    return [
        UserRoleLine(line=line, user=tokens[0], roles=tokens[1:])
        for line, tokens in iter_records(path, "user roles")
    ]


def load_user_roles(path: str | Path, store: UserRoleAssignmentStore) -> BatchAssignmentResult:
    """Batch-load a user-role source into *store*.

    Raises:
        InvalidSourceLineError: On an unparsable identifier; the store is
            left empty.
        AssignmentRejectedError: On the first refused assignment; the store
            has been cleared.
    """
    source = str(path)
    records = read_user_roles(path)
    pairs = []
    for record in records:
        try:
            user = UserId.parse(record.user)
            roles = {RoleId.parse(token) for token in record.roles}
        except InvalidIdentifierError as exc:
            store.clear_users()
            raise InvalidSourceLineError(source, record.line, exc.message) from exc
        pairs.append((user, roles))

    result = store.load_assignments(pairs)
    if result.failure is not None:
        raise AssignmentRejectedError(source, records[result.failed_position].line, result.failure)
    logger.info("user_roles_source_loaded", source=source, users=result.assigned)
    return result


__all__ = [
    "SourceDiagnostic",
    "UserRoleLine",
    "apply_permissions",
    "iter_records",
    "load_user_roles",
    "read_constraints",
    "read_hierarchy",
    "read_objects",
    "read_user_roles",
]
