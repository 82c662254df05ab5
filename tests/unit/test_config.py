"""Unit tests for engine settings."""
from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from rbacops import config
from rbacops.config import Settings
from rbacops.shared.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("RBACOPS_DATA_DIR", "RBACOPS_LOG_LEVEL", "RBACOPS_MATRIX_COLUMNS", "RBACOPS_MAX_LOAD_ATTEMPTS"):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.environment == "development"
        assert s.log_level == "info"
        assert s.json_logs is False
        assert s.log_file is None
        assert s.data_dir == Path(".")
        assert s.hierarchy_file == "roleHierarchy.txt"
        assert s.objects_file == "resourceObjects.txt"
        assert s.permissions_file == "permissionsToRoles.txt"
        assert s.constraints_file == "roleSetsSSD.txt"
        assert s.users_file == "userRoles.txt"
        assert s.matrix_columns == 5
        assert s.term_width == 80
        assert s.max_load_attempts is None
        assert s.retry_delay_seconds == 0.0

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("RBACOPS_MATRIX_COLUMNS", "3")
        monkeypatch.setenv("RBACOPS_MAX_LOAD_ATTEMPTS", "2")
        s = Settings(_env_file=None)
        assert s.matrix_columns == 3
        assert s.max_load_attempts == 2


class TestValidation:
    def test_log_level_normalised(self):
        assert Settings(_env_file=None, log_level="DEBUG").log_level == "debug"

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="verbose")

    @pytest.mark.parametrize(
        "field, value",
        [("matrix_columns", 0), ("term_width", 10), ("max_load_attempts", 0), ("retry_delay_seconds", -1.0)],
    )
    def test_bounds(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})


class TestPathFor:
    def test_relative_resolved_against_data_dir(self, tmp_path):
        s = Settings(_env_file=None, data_dir=tmp_path)
        assert s.path_for(s.users_file) == tmp_path / "userRoles.txt"

    def test_absolute_kept(self, tmp_path):
        absolute = tmp_path / "elsewhere" / "users.txt"
        s = Settings(_env_file=None, data_dir=tmp_path / "policy")
        assert s.path_for(str(absolute)) == absolute


class TestFromYaml:
    def test_loads_mapping(self, tmp_path):
        config = tmp_path / "rbacops.yaml"
        config.write_text("data_dir: policy\nmatrix_columns: 4\nlog_level: WARNING\n", encoding="utf-8")
        s = Settings.from_yaml(config)
        assert s.data_dir == tmp_path / "policy"
        assert s.matrix_columns == 4
        assert s.log_level == "warning"

    def test_overrides_win(self, tmp_path):
        config = tmp_path / "rbacops.yaml"
        config.write_text("matrix_columns: 4\n", encoding="utf-8")
        assert Settings.from_yaml(config, matrix_columns=2).matrix_columns == 2

    def test_empty_file_gives_defaults(self, tmp_path):
        config = tmp_path / "empty.yaml"
        config.write_text("", encoding="utf-8")
        assert Settings.from_yaml(config).matrix_columns == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings.from_yaml(tmp_path / "absent.yaml")
        assert exc_info.value.error_code == "RBAC_CONFIG_NOT_FOUND"

    def test_non_mapping(self, tmp_path):
        config = tmp_path / "list.yaml"
        config.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError) as exc_info:
            Settings.from_yaml(config)
        assert exc_info.value.error_code == "RBAC_CONFIG_INVALID"


class TestModule:
    def test_no_settings_built_at_import(self):
        assert not any(isinstance(value, Settings) for value in vars(config).values())
