"""Static separation-of-duty (SSD) cardinality constraints.

A constraint ``(n, roles)`` is satisfied by a candidate role set when fewer
than ``n`` of the candidate's roles belong to ``roles``.  ``n = 2`` is plain
mutual exclusion.  A :class:`SsdConstraintSet` keeps constraints in
insertion order so the first broken one can be reported deterministically.
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

import structlog

from rbacops.domain.value_objects import RoleId
from rbacops.shared.exceptions import ConstraintCardinalityError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SsdConstraint:
    """Immutable cardinality rule over a set of roles.

    Attributes:
        n: Number of roles from *roles* at which the constraint breaks.
        roles: The conflicting role set.
    """

    n: int
    roles: frozenset[RoleId] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        if self.n < 2:
            raise ConstraintCardinalityError(self.n)
        if not isinstance(self.roles, frozenset):
            object.__setattr__(self, "roles", frozenset(self.roles))

    def overlap(self, candidate: Iterable[RoleId]) -> frozenset[RoleId]:
        """Return the members of *candidate* that this constraint governs."""
        return self.roles.intersection(candidate)

    def test(self, candidate: Iterable[RoleId]) -> bool:
        """Return True if *candidate* holds fewer than ``n`` governed roles."""
        return len(self.overlap(candidate)) < self.n


class SsdConstraintSet:
    """Ordered, duplicate-free collection of SSD constraints."""

    def __init__(self, constraints: Iterable[SsdConstraint] = ()) -> None:
        self._constraints: list[SsdConstraint] = []
        for constraint in constraints:
            self.add_constraint(constraint)

    def add_constraint(
        self,
        constraint: SsdConstraint | int,
        roles: Iterable[RoleId] | None = None,
    ) -> bool:
        """Add a constraint, given either as an instance or as ``(n, roles)``.

        Returns:
            False if a structurally identical constraint is already present.

        Raises:
            ConstraintCardinalityError: When built from ``n < 2``.
        """
        if not isinstance(constraint, SsdConstraint):
            constraint = SsdConstraint(constraint, frozenset(roles or ()))
        if constraint in self._constraints:
            logger.debug("ssd_constraint_duplicate", n=constraint.n, roles=len(constraint.roles))
            return False
        self._constraints.append(constraint)
        logger.debug("ssd_constraint_added", n=constraint.n, roles=sorted(str(r) for r in constraint.roles))
        return True

    def test_against_all(self, candidate: Iterable[RoleId]) -> bool:
        """Return True if *candidate* satisfies every constraint."""
        return self.index_of_first_broken_constraint(candidate) == -1

    def index_of_first_broken_constraint(self, candidate: Iterable[RoleId]) -> int:
        """Return the 0-based position of the first failing constraint, or -1."""
        roles = frozenset(candidate)
        for index, constraint in enumerate(self._constraints):
            if not constraint.test(roles):
                return index
        return -1

    def __iter__(self) -> Iterator[SsdConstraint]:
        return iter(self._constraints)

    def __len__(self) -> int:
        return len(self._constraints)

    def __getitem__(self, index: int) -> SsdConstraint:
        return self._constraints[index]

    def __repr__(self) -> str:
        return f"SsdConstraintSet(constraints={len(self._constraints)})"
