"""Unit tests for the flat-text policy source readers."""
from __future__ import annotations

from pathlib import Path

import pytest

from rbacops.domain.value_objects import ObjectId, PermissionId, RoleId, UserId
from rbacops.engine.assignments import AssignmentStatus, UserRoleAssignmentStore
from rbacops.engine.constraints import SsdConstraint, SsdConstraintSet
from rbacops.engine.hierarchy import RoleHierarchy
from rbacops.engine.matrix import PermissionMatrix
from rbacops.shared.exceptions import (
    AssignmentRejectedError,
    DuplicateObjectError,
    InvalidSourceLineError,
    SourceNotFoundError,
)
from rbacops.sources import parsers

R1, R2, R3 = (RoleId("R", i) for i in range(1, 4))
O1, O2 = ObjectId("O", 1), ObjectId("O", 2)
READ = PermissionId.parse("read")


def write(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


class TestIterRecords:
    def test_skips_blank_and_comment_lines(self, tmp_path):
        path = write(tmp_path, "src.txt", "# header\nR2 R1\n\n   \nR3  R1\n")
        assert list(parsers.iter_records(path, "test")) == [(2, ["R2", "R1"]), (5, ["R3", "R1"])]

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceNotFoundError) as exc_info:
            list(parsers.iter_records(tmp_path / "absent.txt", "role hierarchy"))
        assert exc_info.value.message.startswith("The role hierarchy file,")


class TestReadHierarchy:
    def test_reads_edges(self, tmp_path):
        h = parsers.read_hierarchy(write(tmp_path, "h.txt", "R2 R1\nR3 R1\n"))
        assert h.get_ascendants(R1) == frozenset({R2, R3})

    def test_wrong_token_count(self, tmp_path):
        with pytest.raises(InvalidSourceLineError) as exc_info:
            parsers.read_hierarchy(write(tmp_path, "h.txt", "R2 R1\nR3\n"))
        assert exc_info.value.line == 2
        assert exc_info.value.reason == "expected 2 roles, found 1"

    def test_second_descendant(self, tmp_path):
        with pytest.raises(InvalidSourceLineError) as exc_info:
            parsers.read_hierarchy(write(tmp_path, "h.txt", "R2 R1\nR2 R3\n"))
        assert exc_info.value.reason == "R2 already has a descendant"

    def test_cycle(self, tmp_path):
        with pytest.raises(InvalidSourceLineError) as exc_info:
            parsers.read_hierarchy(write(tmp_path, "h.txt", "R2 R1\nR3 R2\nR1 R3\n"))
        assert exc_info.value.line == 3
        assert "cycle" in exc_info.value.reason

    def test_bad_identifier(self, tmp_path):
        with pytest.raises(InvalidSourceLineError) as exc_info:
            parsers.read_hierarchy(write(tmp_path, "h.txt", "R2 1R\n"))
        assert exc_info.value.line == 1


class TestReadObjects:
    def test_reads_multiple_lines(self, tmp_path):
        objects = parsers.read_objects(write(tmp_path, "o.txt", "O1 O2\nO3\n"))
        assert objects == {O1, O2, ObjectId("O", 3)}

    def test_duplicate(self, tmp_path):
        with pytest.raises(DuplicateObjectError) as exc_info:
            parsers.read_objects(write(tmp_path, "o.txt", "O1 O2\nO3 O1\n"))
        assert exc_info.value.line == 2
        assert exc_info.value.object_name == "O1"


class TestApplyPermissions:
    @pytest.fixture
    def matrix(self) -> PermissionMatrix:
        h = RoleHierarchy()
        h.add_relationship(R2, R1)
        return PermissionMatrix(h, {O1, O2})

    def test_applies_grants(self, tmp_path, matrix):
        diagnostics = parsers.apply_permissions(write(tmp_path, "p.txt", "R2 read O1\n"), matrix)
        assert diagnostics == []
        assert READ in matrix.get_object_permissions_for_role(R1, O1)

    def test_bad_lines_skipped_not_fatal(self, tmp_path, matrix):
        content = "R9 read O1\nR2 read O9\nR2 read\nR2 re-ad O1\nR2 read O2\n"
        diagnostics = parsers.apply_permissions(write(tmp_path, "p.txt", content), matrix)
        assert [d.line for d in diagnostics] == [1, 2, 3, 4]
        assert diagnostics[0].reason == "unknown role R9"
        assert diagnostics[1].reason == "unknown object O9"
        assert diagnostics[2].tokens == ["R2", "read"]
        assert READ in matrix.get_object_permissions_for_role(R2, O2)

    def test_missing_file(self, tmp_path, matrix):
        with pytest.raises(SourceNotFoundError):
            parsers.apply_permissions(tmp_path / "absent.txt", matrix)


class TestReadConstraints:
    def test_reads_in_order(self, tmp_path):
        constraints = parsers.read_constraints(write(tmp_path, "c.txt", "2 R1 R2\n3 R1 R2 R3\n"))
        assert list(constraints) == [
            SsdConstraint(2, frozenset({R1, R2})),
            SsdConstraint(3, frozenset({R1, R2, R3})),
        ]

    @pytest.mark.parametrize(
        "content, fragment",
        [
            ("two R1 R2\n", "not an integer"),
            ("1 R1 R2\n", "greater than or equal to 2"),
            ("2\n", "names no roles"),
        ],
    )
    def test_invalid_lines(self, tmp_path, content, fragment):
        with pytest.raises(InvalidSourceLineError) as exc_info:
            parsers.read_constraints(write(tmp_path, "c.txt", content))
        assert fragment in exc_info.value.reason


class TestUserRoles:
    @pytest.fixture
    def store(self) -> UserRoleAssignmentStore:
        constraints = SsdConstraintSet()
        constraints.add_constraint(2, {R1, R2})
        return UserRoleAssignmentStore(constraints, {R1, R2, R3})

    def test_read_user_roles(self, tmp_path):
        records = parsers.read_user_roles(write(tmp_path, "u.txt", "U1 R1 R3\nU2\n"))
        assert [(r.line, r.user, r.roles) for r in records] == [(1, "U1", ["R1", "R3"]), (2, "U2", [])]

    def test_load_success(self, tmp_path, store):
        result = parsers.load_user_roles(write(tmp_path, "u.txt", "U1 R1 R3\nU2 R2\n"), store)
        assert result.assigned == 2
        assert store.get_roles(UserId("U", 1)) == frozenset({R1, R3})

    def test_rejection_names_physical_line(self, tmp_path, store):
        path = write(tmp_path, "u.txt", "# users\nU1 R1\n\nU2 R1 R2\n")
        with pytest.raises(AssignmentRejectedError) as exc_info:
            parsers.load_user_roles(path, store)
        assert exc_info.value.line == 4
        assert exc_info.value.result.status is AssignmentStatus.CONSTRAINT_VIOLATED
        assert exc_info.value.message.endswith("on line 4 due to constraint #1.")
        assert len(store) == 0

    def test_duplicate_user(self, tmp_path, store):
        with pytest.raises(AssignmentRejectedError) as exc_info:
            parsers.load_user_roles(write(tmp_path, "u.txt", "U1 R1\nU1 R3\n"), store)
        assert exc_info.value.reason == "duplicated user U1"

    def test_parse_error_clears_store(self, tmp_path, store):
        store.give_roles_to_user(UserId("U", 7), {R3})
        with pytest.raises(InvalidSourceLineError) as exc_info:
            parsers.load_user_roles(write(tmp_path, "u.txt", "U1 R1\nU-2 R2\n"), store)
        assert exc_info.value.line == 2
        assert len(store) == 0
