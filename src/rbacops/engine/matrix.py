"""Role x object permission matrix with provenance-tracked propagation.

Each cell maps a permission to the set of *originating* roles whose explicit
grant put it there.  Recording the origin rather than a bare flag is what
makes re-propagating the same grant a no-op while still letting one
permission reach a cell from several independent ascendants.

The matrix is built over a private snapshot of a :class:`RoleHierarchy`, so
later changes to the caller's hierarchy cannot leak into an in-use matrix.
"""
from __future__ import annotations

from collections.abc import Iterable

import structlog

from rbacops.domain.value_objects import ObjectId, PermissionId, RoleId
from rbacops.engine.hierarchy import RoleHierarchy

logger = structlog.get_logger(__name__)

# Administrative permissions derived from the hierarchy itself.
CONTROL = PermissionId.parse("control")
OWN = PermissionId.parse("own")

Cell = dict[PermissionId, set[RoleId]]


class PermissionMatrix:
    """Access matrix giving roles their rights on objects.

    Invariant: every role of the hierarchy snapshot has a row and every
    tracked object has a (possibly empty) cell in every row.
    """

    def __init__(self, hierarchy: RoleHierarchy, objects: Iterable[ObjectId]) -> None:
        self._hierarchy = hierarchy.get_copy()
        self._objects: set[ObjectId] = set(objects)
        self._matrix: dict[RoleId, dict[ObjectId, Cell]] = {
            role: {obj: {} for obj in self._objects}
            for role in self._hierarchy.get_all_roles()
        }
        logger.info(
            "permission_matrix_init",
            roles=len(self._matrix),
            objects=len(self._objects),
        )

    # -- mutation -----------------------------------------------------------

    def add_object(self, obj: ObjectId) -> bool:
        """Add a column with no permissions; False if *obj* already exists."""
        if obj in self._objects:
            return False
        self._objects.add(obj)
        for row in self._matrix.values():
            row[obj] = {}
        logger.debug("matrix_object_added", object=str(obj))
        return True

    def add_permission(self, role: RoleId, obj: ObjectId, permission: PermissionId) -> bool:
        """Grant *permission* on *obj* to *role* and its descendants.

        Returns:
            True if the grant was newly recorded in at least one cell.  False
            if the role or object is unknown, or if every cell along the
            descendant chain already lists *role* as a source.
        """
        if role not in self._matrix or obj not in self._objects:
            logger.warning(
                "permission_grant_unknown_reference",
                role=str(role),
                object=str(obj),
                permission=str(permission),
                role_known=role in self._matrix,
                object_known=obj in self._objects,
            )
            return False

        added = self._propagate(role, obj, permission, source=role)
        logger.debug(
            "permission_granted",
            role=str(role),
            object=str(obj),
            permission=str(permission),
            added=added,
        )
        return added

    def _propagate(
        self,
        role: RoleId,
        obj: ObjectId,
        permission: PermissionId,
        source: RoleId,
    ) -> bool:
        added = False
        # Propagation continues past cells that already hold the source so a
        # chain that was partially populated is still completed.
        for target in self._hierarchy.descendant_chain(role):
            sources = self._matrix[target][obj].setdefault(permission, set())
            if source not in sources:
                sources.add(source)
                added = True
        return added

    def apply_hierarchy_permissions(self) -> None:
        """Grant the administrative permissions implied by the hierarchy.

        Every role controls its own role-as-object; the descendant of a role
        owns that role's object.  Call once, after the hierarchy is fixed and
        before explicit grants.
        """
        roles = sorted(self._matrix)
        for role in roles:
            role_object = ObjectId.from_role(role)
            self.add_object(role_object)
            self.add_permission(role, role_object, CONTROL)
        for role in roles:
            descendant = self._hierarchy.get_descendant(role)
            if descendant is not None:
                self.add_permission(descendant, ObjectId.from_role(role), OWN)
        logger.info("hierarchy_permissions_applied", roles=len(roles))

    # -- queries ------------------------------------------------------------

    def get_object_permissions_for_role(self, role: RoleId, obj: ObjectId) -> frozenset[PermissionId]:
        """Return the permissions *role* holds on *obj* (provenance dropped)."""
        cell = self._matrix.get(role, {}).get(obj)
        if cell is None:
            return frozenset()
        return frozenset(cell)

    def get_permission_sources(
        self, role: RoleId, obj: ObjectId, permission: PermissionId
    ) -> frozenset[RoleId]:
        """Return the originating roles that contributed *permission* to a cell."""
        cell = self._matrix.get(role, {}).get(obj, {})
        return frozenset(cell.get(permission, ()))

    def get_roles(self) -> set[RoleId]:
        return self._hierarchy.get_all_roles()

    def get_objects(self) -> set[ObjectId]:
        return set(self._objects)

    def get_role_hierarchy(self) -> RoleHierarchy:
        """Return a copy of the hierarchy snapshot backing this matrix."""
        return self._hierarchy.get_copy()

    def role_exists(self, role: RoleId) -> bool:
        return role in self._matrix

    def object_exists(self, obj: ObjectId) -> bool:
        return obj in self._objects

    def __repr__(self) -> str:
        return f"PermissionMatrix(roles={len(self._matrix)}, objects={len(self._objects)})"
