"""Typed identifier value objects for roles, objects, permissions and users.

Every policy element is named by a token such as ``R12`` or ``read``: a
case-sensitive letter prefix (the kind tag) optionally followed by a
non-negative integer (the ordinal).  A token without digits carries the
ordinal ``-1`` and is distinct from any token that has one.

Identifiers of one concrete kind compare equal when prefix and ordinal
match; identifiers of different kinds never compare equal, so ``RoleId("R1")``
and the role-as-object ``ObjectId("R1")`` can live side by side in the same
mapping.  Ordering (prefix, then ordinal numerically) exists for display
only and is never consulted by authorization logic.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar, TypeVar

from rbacops.shared.exceptions import InvalidIdentifierError

_TOKEN_RE = re.compile(r"^(?P<prefix>[A-Za-z][A-Za-z_]*)(?P<ordinal>[0-9]*)$")
_PREFIX_RE = re.compile(r"^[A-Za-z][A-Za-z_]*$")

NO_ORDINAL = -1

_I = TypeVar("_I", bound="Identifier")


@dataclass(frozen=True, order=True, slots=True)
class Identifier:
    """Immutable ``prefix`` + ``ordinal`` pair.

    Attributes:
        prefix: Letter prefix, compared case-sensitively.
        ordinal: Non-negative suffix, or ``-1`` when the token has none.
    """

    prefix: str
    ordinal: int = NO_ORDINAL

    kind: ClassVar[str] = "identifier"

    def __post_init__(self) -> None:
        if not _PREFIX_RE.match(self.prefix):
            raise InvalidIdentifierError(self.prefix, self.kind)
        if self.ordinal < NO_ORDINAL:
            raise InvalidIdentifierError(f"{self.prefix}{self.ordinal}", self.kind)

    @classmethod
    def parse(cls: type[_I], raw: str) -> _I:
        """Parse a token such as ``"R3"`` or ``"read"``.

        Raises:
            InvalidIdentifierError: If the token is not letters optionally
                followed by digits.
        """
        token = raw.strip()
        match = _TOKEN_RE.match(token)
        if match is None:
            raise InvalidIdentifierError(raw, cls.kind)
        digits = match.group("ordinal")
        ordinal = int(digits) if digits else NO_ORDINAL
        return cls(match.group("prefix"), ordinal)

    @property
    def has_ordinal(self) -> bool:
        return self.ordinal != NO_ORDINAL

    def __str__(self) -> str:
        return self.prefix if self.ordinal < 0 else f"{self.prefix}{self.ordinal}"


class RoleId(Identifier):
    """Identifier of a role."""

    __slots__ = ()
    kind: ClassVar[str] = "role"


class ObjectId(Identifier):
    """Identifier of a protected object."""

    __slots__ = ()
    kind: ClassVar[str] = "object"

    @classmethod
    def from_role(cls, role: RoleId) -> ObjectId:
        """Return the object that stands for *role* itself (role-as-object)."""
        return cls(role.prefix, role.ordinal)


class PermissionId(Identifier):
    """Identifier of a right exercisable on an object."""

    __slots__ = ()
    kind: ClassVar[str] = "permission"


class UserId(Identifier):
    """Identifier of a user holding roles."""

    __slots__ = ()
    kind: ClassVar[str] = "user"


__all__ = [
    "NO_ORDINAL",
    "Identifier",
    "ObjectId",
    "PermissionId",
    "RoleId",
    "UserId",
]
