"""Tests for configuration loading."""

from pathlib import Path

import pytest
import yaml

from calliope.config import (
    ConfigParser,
    ConnectionPoolConfig,
    DatabaseType,
    EnvironmentSettings,
    create_sample_config,
    create_sample_queries,
    load_query_descriptors,
)
from calliope.db.descriptors import QueryType, to_descriptor
from calliope.exceptions import ConfigurationError


def write_yaml(path: Path, data) -> Path:
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


class TestLoadConfig:
    """YAML configuration files."""

    def test_env_interpolation(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("APP_DB_PASSWORD", "secret")
        config_file = write_yaml(tmp_path / "calliope.yaml", {
            "databases": {
                "main": {
                    "driver": "postgresql",
                    "host": "${APP_DB_HOST:-db.internal}",
                    "database": "app",
                    "username": "app",
                    "password": "${APP_DB_PASSWORD}",
                },
            },
        })

        config = ConfigParser().load_config(config_file)
        main = config.databases["main"]
        assert main.type == DatabaseType.POSTGRESQL
        assert main.host == "db.internal"
        assert main.password == "secret"
        assert config.default_database == "main"

    def test_missing_env_var(self, tmp_path, monkeypatch) -> None:
        monkeypatch.delenv("CALLIOPE_TEST_UNSET", raising=False)
        config_file = write_yaml(tmp_path / "calliope.yaml", {
            "databases": {"main": {"type": "sqlite", "path": "${CALLIOPE_TEST_UNSET}"}},
        })
        with pytest.raises(ConfigurationError, match="CALLIOPE_TEST_UNSET"):
            ConfigParser().load_config(config_file)

    def test_queries_path_is_relative_to_config(self, tmp_path) -> None:
        config_file = write_yaml(tmp_path / "calliope.yaml", {
            "databases": {"main": {"type": "sqlite", "path": "app.db"}},
            "queries": "queries.yaml",
        })
        config = ConfigParser().load_config(config_file)
        assert config.queries == str(tmp_path / "queries.yaml")

    def test_invalid_database(self, tmp_path) -> None:
        config_file = write_yaml(tmp_path / "calliope.yaml", {
            "databases": {"main": {"type": "mysql", "host": "localhost"}},
        })
        with pytest.raises(ConfigurationError, match="validation failed"):
            ConfigParser().load_config(config_file)

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            ConfigParser().load_config(tmp_path / "nope.yaml")

    def test_empty_file(self, tmp_path) -> None:
        config_file = tmp_path / "calliope.yaml"
        config_file.write_text("", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="empty"):
            ConfigParser().load_config(config_file)

    def test_default_location(self, tmp_path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("CALLIOPE_CONFIG_FILE", raising=False)
        write_yaml(tmp_path / "calliope.yaml", {
            "databases": {"main": {"type": "sqlite", "path": "app.db"}},
        })
        assert "main" in ConfigParser().load_config().databases

    def test_config_file_from_environment(self, tmp_path, monkeypatch) -> None:
        config_file = write_yaml(tmp_path / "elsewhere.yaml", {
            "databases": {"env": {"type": "sqlite", "path": "app.db"}},
        })
        monkeypatch.setenv("CALLIOPE_CONFIG_FILE", str(config_file))
        assert "env" in ConfigParser().load_config().databases

    def test_sample_config_round_trip(self, tmp_path) -> None:
        sample = tmp_path / "sample.yaml"
        create_sample_config(sample)
        config = ConfigParser().load_config(sample)
        assert config.default_database == "local"
        assert config.databases["dev"].log_sql is True


class TestQueryDescriptorFile:
    """Descriptor files."""

    def test_list_of_queries(self, tmp_path) -> None:
        path = write_yaml(tmp_path / "queries.yaml", [
            {"name": "getTbl1", "sql": "SELECT * FROM tbl1"},
            {"name": "addRow", "type": "INSERT", "table": "tbl1", "columns": {"one": True}},
        ])
        descriptors = load_query_descriptors(path)
        assert [d["name"] for d in descriptors] == ["getTbl1", "addRow"]

    def test_mapping_with_queries_key(self, tmp_path) -> None:
        path = write_yaml(tmp_path / "queries.yaml", {"queries": [{"name": "tbl1"}]})
        assert load_query_descriptors(path) == [{"name": "tbl1"}]

    def test_entry_without_name(self, tmp_path) -> None:
        path = write_yaml(tmp_path / "queries.yaml", [{"sql": "SELECT 1"}])
        with pytest.raises(ConfigurationError, match="Descriptor #1"):
            load_query_descriptors(path)

    def test_not_a_list(self, tmp_path) -> None:
        path = write_yaml(tmp_path / "queries.yaml", {"name": "tbl1"})
        with pytest.raises(ConfigurationError, match="list of queries"):
            load_query_descriptors(path)

    def test_sample_queries_are_valid_descriptors(self, tmp_path) -> None:
        path = tmp_path / "queries.yaml"
        create_sample_queries(path)
        descriptors = [to_descriptor(entry) for entry in load_query_descriptors(path)]
        assert [d.type for d in descriptors] == [
            QueryType.SELECT, QueryType.SELECT, QueryType.INSERT, QueryType.UPDATE,
        ]


class TestModels:
    """Model defaults and validation."""

    def test_overflow_capped_at_pool_size(self) -> None:
        pool = ConnectionPoolConfig(max_connections=2, max_overflow=5)
        assert pool.max_overflow == 2

    def test_environment_settings(self, monkeypatch) -> None:
        monkeypatch.setenv("CALLIOPE_LOG_LEVEL", "debug")
        assert EnvironmentSettings().log_level == "debug"
