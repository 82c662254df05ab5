"""Assemble a ready-to-query policy kernel from the flat-text sources.

Stages run in dependency order: hierarchy, objects, matrix (administrative
grants then explicit permissions), SSD constraints, user roles.  Every stage
except the permissions file is wrapped in the configured retry policy and
re-reads its file from scratch on each attempt.
"""
from __future__ import annotations

import enum
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from rbacops.config import Settings
from rbacops.domain.value_objects import ObjectId, RoleId
from rbacops.engine.assignments import UserRoleAssignmentStore
from rbacops.engine.constraints import SsdConstraintSet
from rbacops.engine.evaluator import AccessQueryEvaluator
from rbacops.engine.hierarchy import RoleHierarchy
from rbacops.engine.matrix import PermissionMatrix
from rbacops.sources import parsers
from rbacops.sources.parsers import SourceDiagnostic
from rbacops.sources.retry import InteractiveRetryPolicy, RetryPolicy

logger = structlog.get_logger(__name__)


class LoadStage(str, enum.Enum):
    """Checkpoints reported to a :class:`PolicyLoader` observer."""

    HIERARCHY = "hierarchy"
    INITIAL_MATRIX = "initial_matrix"
    MATRIX = "matrix"
    CONSTRAINTS = "constraints"
    ASSIGNMENTS = "assignments"


StageObserver = Callable[[LoadStage, Any], None]


@dataclass
class PolicyKernel:
    """Every populated component of one loaded policy."""

    hierarchy: RoleHierarchy
    matrix: PermissionMatrix
    constraints: SsdConstraintSet
    assignments: UserRoleAssignmentStore
    evaluator: AccessQueryEvaluator
    diagnostics: list[SourceDiagnostic] = field(default_factory=list)


def default_retry_policy(settings: Settings) -> RetryPolicy:
    """Interactive retry unless the settings bound the number of attempts."""
    if settings.max_load_attempts is None:
        return InteractiveRetryPolicy(delay_seconds=settings.retry_delay_seconds)
    return RetryPolicy(
        max_attempts=settings.max_load_attempts,
        delay_seconds=settings.retry_delay_seconds,
    )


class PolicyLoader:
    """Reads the five policy sources named by :class:`Settings`.

    Usage::

        loader = PolicyLoader(settings, RetryPolicy(max_attempts=1))
        kernel = loader.load()
        kernel.evaluator.query(UserId.parse("U1"), None, PermissionId.parse("read"))
    """

    def __init__(
        self,
        settings: Settings,
        retry_policy: RetryPolicy | None = None,
        observer: StageObserver | None = None,
    ) -> None:
        self._settings = settings
        self._retry = retry_policy or default_retry_policy(settings)
        self._observer = observer

    def _notify(self, stage: LoadStage, value: Any) -> None:
        if self._observer is not None:
            self._observer(stage, value)

    # -- stages -------------------------------------------------------------

    def load_hierarchy(self) -> RoleHierarchy:
        path = self._settings.path_for(self._settings.hierarchy_file)
        hierarchy = self._retry.run("role hierarchy", lambda: parsers.read_hierarchy(path))
        self._notify(LoadStage.HIERARCHY, hierarchy)
        return hierarchy

    def load_objects(self) -> set[ObjectId]:
        path = self._settings.path_for(self._settings.objects_file)
        return self._retry.run("resource objects", lambda: parsers.read_objects(path))

    def build_matrix(self, hierarchy: RoleHierarchy, objects: set[ObjectId]) -> tuple[PermissionMatrix, list[SourceDiagnostic]]:
        """Create the matrix, grant administrative then explicit permissions."""
        matrix = PermissionMatrix(hierarchy, objects)
        self._notify(LoadStage.INITIAL_MATRIX, matrix)
        matrix.apply_hierarchy_permissions()
        # Permission files are applied best-effort and never retried.
        path = self._settings.path_for(self._settings.permissions_file)
        diagnostics = parsers.apply_permissions(path, matrix)
        self._notify(LoadStage.MATRIX, matrix)
        return matrix, diagnostics

    def load_constraints(self) -> SsdConstraintSet:
        path = self._settings.path_for(self._settings.constraints_file)
        constraints = self._retry.run("SSD constraints", lambda: parsers.read_constraints(path))
        self._notify(LoadStage.CONSTRAINTS, constraints)
        return constraints

    def load_assignments(self, constraints: SsdConstraintSet, roles: set[RoleId]) -> UserRoleAssignmentStore:
        path = self._settings.path_for(self._settings.users_file)
        store = UserRoleAssignmentStore(constraints, roles)
        self._retry.run("user roles", lambda: parsers.load_user_roles(path, store))
        self._notify(LoadStage.ASSIGNMENTS, store)
        return store

    # -- full load ----------------------------------------------------------

    def load(self) -> PolicyKernel:
        """Run every stage and return the assembled kernel.

        Raises:
            SourceNotFoundError: If the permissions file is missing.
            RetryExhaustedError: If a retried stage is given up on.
        """
        hierarchy = self.load_hierarchy()
        objects = self.load_objects()
        matrix, diagnostics = self.build_matrix(hierarchy, objects)
        constraints = self.load_constraints()
        assignments = self.load_assignments(constraints, matrix.get_roles())
        kernel = PolicyKernel(
            hierarchy=hierarchy,
            matrix=matrix,
            constraints=constraints,
            assignments=assignments,
            evaluator=AccessQueryEvaluator(matrix, assignments),
            diagnostics=diagnostics,
        )
        logger.info(
            "policy_loaded",
            roles=len(matrix.get_roles()),
            objects=len(matrix.get_objects()),
            constraints=len(constraints),
            users=len(assignments),
            skipped_permissions=len(diagnostics),
        )
        return kernel


__all__ = ["LoadStage", "PolicyKernel", "PolicyLoader", "StageObserver", "default_retry_policy"]
