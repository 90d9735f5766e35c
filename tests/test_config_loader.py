"""Tests for pin_mirror.config_loader: YAML discovery, interpolation and merge."""

import textwrap

import pytest
import yaml

from pin_mirror.config_loader import (
    _interpolate_recursive,
    _load_yaml,
    discover_config_files,
    ensure_config,
    interpolate_env_vars,
    load_hierarchical_config,
)


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """CWD and HOME inside tmp_path, no explicit config path."""
    monkeypatch.delenv("PIN_MIRROR_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text))
    return path


# -------------------------------------------------------------------------
# Env var interpolation
# -------------------------------------------------------------------------


class TestInterpolateEnvVars:
    def test_set_var(self, monkeypatch):
        monkeypatch.setenv("PIN_TEST_TOKEN", "abc")
        assert interpolate_env_vars("Bearer ${PIN_TEST_TOKEN}") == "Bearer abc"

    def test_unset_var_is_empty(self, monkeypatch):
        monkeypatch.delenv("PIN_TEST_UNSET", raising=False)
        assert interpolate_env_vars("[${PIN_TEST_UNSET}]") == "[]"

    def test_default_for_unset_or_empty(self, monkeypatch):
        monkeypatch.setenv("PIN_TEST_EMPTY", "")
        monkeypatch.delenv("PIN_TEST_UNSET", raising=False)
        assert interpolate_env_vars("${PIN_TEST_EMPTY:-3000}") == "3000"
        assert interpolate_env_vars("${PIN_TEST_UNSET:-/srv}") == "/srv"

    def test_unterminated_left_alone(self):
        assert interpolate_env_vars("cost: ${oops") == "cost: ${oops"

    def test_nested_structures(self, monkeypatch):
        monkeypatch.setenv("PIN_TEST_DIR", "/data")
        data = {"sync": {"watch_directory": "${PIN_TEST_DIR}", "groups": ["${PIN_TEST_DIR}/a", 3]}}
        assert _interpolate_recursive(data) == {
            "sync": {"watch_directory": "/data", "groups": ["/data/a", 3]}
        }


# -------------------------------------------------------------------------
# YAML reading
# -------------------------------------------------------------------------


class TestYamlReading:
    def test_reads_mapping(self, tmp_path):
        cfg = _write(tmp_path / "config.yml", "pinata:\n  jwt: secret\n")

        assert _load_yaml(cfg) == {"pinata": {"jwt": "secret"}}

    def test_custom_tags_rejected(self, isolated):
        _write(isolated / ".pin_mirror" / "config.yml", "pinata: !include pinata.yml\n")

        with pytest.raises(yaml.YAMLError):
            load_hierarchical_config()


# -------------------------------------------------------------------------
# Discovery
# -------------------------------------------------------------------------


class TestDiscoverConfigFiles:
    def test_nothing_found(self, isolated):
        assert discover_config_files() == []

    def test_precedence_order(self, isolated, monkeypatch):
        explicit = _write(isolated / "elsewhere" / "pm.yml", "{}\n")
        project = _write(isolated / ".pin_mirror" / "config.yml", "{}\n")
        alt = _write(isolated / ".pin_mirror" / "config.yaml", "{}\n")
        global_cfg = _write(isolated / ".config" / "pin_mirror" / "config.yml", "{}\n")
        monkeypatch.setenv("PIN_MIRROR_CONFIG", str(explicit))

        found = discover_config_files()

        assert found == [explicit.resolve(), project, alt, global_cfg]

    def test_explicit_path_must_exist(self, isolated, monkeypatch):
        monkeypatch.setenv("PIN_MIRROR_CONFIG", str(isolated / "missing.yml"))
        assert discover_config_files() == []


# -------------------------------------------------------------------------
# Hierarchical merge
# -------------------------------------------------------------------------


class TestLoadHierarchicalConfig:
    def test_zero_config(self, isolated):
        assert load_hierarchical_config() == {}

    def test_project_replaces_global_sections(self, isolated):
        _write(
            isolated / ".config" / "pin_mirror" / "config.yml",
            """\
            pinata:
              jwt: global-jwt
              page_limit: 100
            server:
              port: 3000
            """,
        )
        _write(
            isolated / ".pin_mirror" / "config.yml",
            """\
            pinata:
              jwt: project-jwt
            """,
        )

        result = load_hierarchical_config()

        assert result["pinata"] == {"jwt": "project-jwt"}
        assert result["server"] == {"port": 3000}

    def test_interpolation_after_merge(self, isolated, monkeypatch):
        monkeypatch.setenv("PIN_TEST_JWT", "from-env")
        _write(
            isolated / ".pin_mirror" / "config.yml",
            """\
            pinata:
              jwt: ${PIN_TEST_JWT}
            """,
        )

        assert load_hierarchical_config()["pinata"]["jwt"] == "from-env"

    def test_non_dict_root_skipped(self, isolated):
        _write(isolated / ".pin_mirror" / "config.yml", "- just\n- a list\n")
        assert load_hierarchical_config() == {}


# -------------------------------------------------------------------------
# Starter file
# -------------------------------------------------------------------------


class TestEnsureConfig:
    def test_writes_starter(self, isolated):
        path = ensure_config()

        assert path == isolated / ".pin_mirror" / "config.yml"
        assert "PINATA_JWT" in path.read_text()
        # the starter is fully commented out
        assert yaml.safe_load(path.read_text()) is None

    def test_existing_file_kept(self, isolated):
        existing = _write(isolated / ".pin_mirror" / "config.yml", "sync: {}\n")

        assert ensure_config() == existing
        assert existing.read_text() == "sync: {}\n"
