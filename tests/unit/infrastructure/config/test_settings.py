from pathlib import Path

import pytest
import yaml

from objcache.infrastructure.config.settings import (
    CacheSettings,
    ConfigurationError,
    find_dotenv_path,
    load_settings,
)


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "cache": {
            "store_path": str(tmp_path / "from-yaml"),
            "non_persistent_groups": ["counts", "transient"],
            "max_ttl": 120,
            "audit_enabled": True,
        }
    }), encoding="utf-8")
    return path


def test_defaults_without_any_source():
    settings = load_settings(environ={})
    assert settings == CacheSettings()
    assert settings.global_groups == []
    assert settings.non_persistent_groups == []
    assert settings.max_ttl == 0
    assert settings.audit_enabled is False
    assert settings.log_level == "WARNING"


def test_yaml_cache_section(config_file: Path, tmp_path: Path):
    settings = load_settings(config_file=config_file, environ={})
    assert settings.store_path == tmp_path / "from-yaml"
    assert settings.non_persistent_groups == ["counts", "transient"]
    assert settings.max_ttl == 120
    assert settings.audit_enabled is True


def test_yaml_flat_keys(tmp_path: Path):
    path = tmp_path / "flat.yaml"
    path.write_text("namespace_prefix: site1_\nglobal_groups: users, site-options\n", encoding="utf-8")
    settings = load_settings(config_file=path, environ={})
    assert settings.namespace_prefix == "site1_"
    assert settings.global_groups == ["users", "site-options"]


def test_unknown_yaml_key_is_ignored_with_warning(tmp_path: Path, caplog):
    path = tmp_path / "config.yaml"
    path.write_text("cache:\n  bogus: 1\n  max_ttl: 5\n", encoding="utf-8")
    settings = load_settings(config_file=path, environ={})
    assert settings.max_ttl == 5
    assert "bogus" in caplog.text


def test_environment_overrides_yaml(config_file: Path):
    settings = load_settings(
        config_file=config_file,
        environ={"OBJCACHE_MAX_TTL": "30", "OBJCACHE_AUDIT_ENABLED": "no", "UNRELATED": "x"},
    )
    assert settings.max_ttl == 30
    assert settings.audit_enabled is False
    assert settings.non_persistent_groups == ["counts", "transient"]


def test_dotenv_between_yaml_and_environment(config_file: Path, tmp_path: Path):
    env_file = tmp_path / ".env"
    env_file.write_text("OBJCACHE_MAX_TTL=45\nOBJCACHE_NAMESPACE_PREFIX=dotenv_\n", encoding="utf-8")

    settings = load_settings(config_file=config_file, env_file=env_file, environ={"OBJCACHE_MAX_TTL": "10"})

    assert settings.max_ttl == 10
    assert settings.namespace_prefix == "dotenv_"


def test_dotenv_is_found_in_working_directory(tmp_path: Path):
    (tmp_path / ".env").write_text("OBJCACHE_LOG_LEVEL=DEBUG\n", encoding="utf-8")
    assert find_dotenv_path() == tmp_path / ".env"
    assert load_settings(environ={}).log_level == "DEBUG"


def test_overrides_win_and_none_is_skipped(config_file: Path, tmp_path: Path):
    store = tmp_path / "cli-store"
    settings = load_settings(config_file=config_file, environ={}, store_path=store, max_ttl=None)
    assert settings.store_path == store
    assert settings.max_ttl == 120


def test_unknown_override_rejected():
    with pytest.raises(ConfigurationError):
        load_settings(environ={}, not_a_setting=1)


@pytest.mark.parametrize("env", [
    {"OBJCACHE_MAX_TTL": "soon"},
    {"OBJCACHE_MAX_TTL": "-1"},
    {"OBJCACHE_AUDIT_ENABLED": "maybe"},
    {"OBJCACHE_AUDIT_MAX_BYTES": "0"},
    {"OBJCACHE_STORE_PATH": "/"},
])
def test_invalid_values_rejected(env):
    with pytest.raises(ConfigurationError):
        load_settings(environ=env)


def test_malformed_yaml_rejected(tmp_path: Path):
    path = tmp_path / "broken.yaml"
    path.write_text("cache: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_settings(config_file=path, environ={})


def test_non_mapping_yaml_rejected(tmp_path: Path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_settings(config_file=path, environ={})


def test_store_path_expands_user(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("HOME", str(tmp_path))
    settings = load_settings(environ={"OBJCACHE_STORE_PATH": "~/cache"})
    assert settings.store_path == tmp_path / "cache"
