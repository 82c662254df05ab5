"""Role hierarchy: a forest of roles converging on their descendants.

An edge ``ascendant -> descendant`` means every permission granted to the
ascendant is also granted to the descendant.  A role has at most one
descendant but any number of ascendants, so the graph is a forest of
in-trees whose sinks are the roles with no descendant.

The forest is stored as two index maps over role identifiers rather than
linked nodes, which keeps :meth:`RoleHierarchy.get_copy` a cheap structural
clone.  Edges that would give a role a second descendant, or that would
close a cycle, are refused.
"""
from __future__ import annotations

from collections.abc import Iterator
from enum import Enum

import structlog

from rbacops.domain.value_objects import RoleId

logger = structlog.get_logger(__name__)


class RelationshipConflict(str, Enum):
    """Why an ``ascendant -> descendant`` edge was refused."""

    DESCENDANT_EXISTS = "descendant_exists"
    CYCLE = "cycle"

    def describe(self, ascendant: RoleId, descendant: RoleId) -> str:
        if self is RelationshipConflict.DESCENDANT_EXISTS:
            return f"{ascendant} already has a descendant"
        return f"{ascendant} -> {descendant} would close a cycle"


class RoleHierarchy:
    """Single-descendant role forest.

    Usage::

        hierarchy = RoleHierarchy()
        hierarchy.add_relationship(RoleId.parse("R2"), RoleId.parse("R1"))
        hierarchy.get_descendant(RoleId.parse("R2"))  # RoleId("R", 1)
    """

    def __init__(self) -> None:
        self._roles: set[RoleId] = set()
        self._descendants: dict[RoleId, RoleId] = {}
        self._ascendants: dict[RoleId, set[RoleId]] = {}

    # -- construction -------------------------------------------------------

    def relationship_conflict(
        self, ascendant: RoleId, descendant: RoleId
    ) -> RelationshipConflict | None:
        """Return why ``ascendant -> descendant`` would be refused, or ``None``."""
        if ascendant in self._descendants:
            return RelationshipConflict.DESCENDANT_EXISTS
        # Each role has at most one descendant, so the only path leaving
        # *descendant* is its chain; the edge closes a cycle iff that chain
        # reaches *ascendant*.
        for role in self.descendant_chain(descendant):
            if role == ascendant:
                return RelationshipConflict.CYCLE
        return None

    def add_relationship(self, ascendant: RoleId, descendant: RoleId) -> bool:
        """Register ``ascendant -> descendant``.

        Returns:
            True if the edge was recorded.  False, without modification, if
            *ascendant* already has a descendant or the edge would close a
            cycle.
        """
        conflict = self.relationship_conflict(ascendant, descendant)
        if conflict is not None:
            logger.warning(
                "role_relationship_rejected",
                ascendant=str(ascendant),
                descendant=str(descendant),
                reason=conflict.value,
            )
            return False

        self._descendants[ascendant] = descendant
        self._ascendants.setdefault(descendant, set()).add(ascendant)
        self._roles.add(ascendant)
        self._roles.add(descendant)
        logger.debug(
            "role_relationship_added",
            ascendant=str(ascendant),
            descendant=str(descendant),
        )
        return True

    def get_copy(self) -> RoleHierarchy:
        """Return a new hierarchy with identical edges."""
        copy = RoleHierarchy()
        copy._roles = set(self._roles)
        copy._descendants = dict(self._descendants)
        copy._ascendants = {role: set(ups) for role, ups in self._ascendants.items()}
        return copy

    # -- queries ------------------------------------------------------------

    def get_descendant(self, role: RoleId) -> RoleId | None:
        """Return the descendant of *role*, or ``None``."""
        return self._descendants.get(role)

    def get_ascendants(self, role: RoleId) -> frozenset[RoleId]:
        """Return the direct ascendants of *role*."""
        return frozenset(self._ascendants.get(role, ()))

    def get_all_roles(self) -> set[RoleId]:
        """Return every role that appears in at least one relationship."""
        return set(self._roles)

    def descendant_chain(self, role: RoleId) -> Iterator[RoleId]:
        """Yield *role* followed by each transitive descendant."""
        current: RoleId | None = role
        while current is not None:
            yield current
            current = self._descendants.get(current)

    def root_roles(self) -> set[RoleId]:
        """Return the sinks of the forest: roles without a descendant."""
        return {role for role in self._roles if role not in self._descendants}

    def levels(self) -> list[list[tuple[RoleId, list[RoleId]]]]:
        """Breadth-first display rows, starting from the sinks.

        Each row lists ``(role, sorted ascendants)`` for every role of that
        depth that has ascendants.  The next row is made of those ascendants.
        """
        rows: list[list[tuple[RoleId, list[RoleId]]]] = []
        current = sorted(self.root_roles())
        while current:
            row: list[tuple[RoleId, list[RoleId]]] = []
            upcoming: list[RoleId] = []
            for role in current:
                ascendants = sorted(self._ascendants.get(role, ()))
                if ascendants:
                    row.append((role, ascendants))
                    upcoming.extend(ascendants)
            if row:
                rows.append(row)
            current = sorted(upcoming)
        return rows

    def __contains__(self, role: object) -> bool:
        return role in self._roles

    def __len__(self) -> int:
        return len(self._roles)

    def __repr__(self) -> str:
        return f"RoleHierarchy(roles={len(self._roles)}, edges={len(self._descendants)})"
