"""Shared fixtures: a small policy written out as flat-text sources.

Hierarchy (ascendant -> descendant)::

    R4 -> R2 -> R1 <- R3

Grants: R4 read O1, R3 write O2, R2 execute O3.  One SSD constraint
``(2, {R3, R4})``.  Users: U1 holds R1, U2 holds R4, U3 holds R2 and R3.
"""
from __future__ import annotations

from pathlib import Path

import pytest

from rbacops.config import Settings

POLICY_FILES = {
    "roleHierarchy.txt": "R2 R1\nR3 R1\nR4 R2\n",
    "resourceObjects.txt": "O1 O2 O3\n",
    "permissionsToRoles.txt": "R4 read O1\nR3 write O2\nR2 execute O3\n",
    "roleSetsSSD.txt": "2 R3 R4\n",
    "userRoles.txt": "U1 R1\nU2 R4\nU3 R2 R3\n",
}


def write_policy(directory: Path) -> Path:
    """Write the default policy sources into *directory*."""
    for name, content in POLICY_FILES.items():
        (directory / name).write_text(content, encoding="utf-8")
    return directory


@pytest.fixture
def policy_files() -> dict[str, str]:
    """Default source contents by file name."""
    return dict(POLICY_FILES)


@pytest.fixture
def policy_dir(tmp_path: Path) -> Path:
    return write_policy(tmp_path)


@pytest.fixture
def policy_settings(policy_dir: Path) -> Settings:
    """Settings reading the default policy, giving up after one attempt."""
    return Settings(_env_file=None, data_dir=policy_dir, max_load_attempts=1)
