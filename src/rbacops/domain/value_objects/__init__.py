"""Domain value objects: immutable, identity-less types."""
from rbacops.domain.value_objects.identifier import (
    NO_ORDINAL,
    Identifier,
    ObjectId,
    PermissionId,
    RoleId,
    UserId,
)

__all__ = ["NO_ORDINAL", "Identifier", "ObjectId", "PermissionId", "RoleId", "UserId"]
