"""Unit tests for Config loading and logging setup."""

import logging
from pathlib import Path

import pytest

from sdcat.config import Config, LoggingConfig, configure_logging


class TestConfigDefaults:
    def test_paths_derive_from_data_dir(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv("SDCAT_DATABASE__URL", raising=False)
        monkeypatch.setenv("SDCAT_DATA_DIR", str(tmp_path))

        config = Config()

        assert config.database.url == f"sqlite+aiosqlite:///{tmp_path / 'sdcat.db'}"
        assert config.blob_store.path == str(tmp_path / "files")

    def test_graph_defaults(self):
        config = Config()

        assert config.graph.uri == "bolt://localhost:7687"
        assert config.graph.query_timeout == 5.0
        assert config.graph.has_uri_predicate == "http://w3id.org/gaia-x/participant#hasURI"
        assert config.lifecycle.lock_timeout == 1.0
        assert config.sweep.cron == "*/15 * * * *"


class TestConfigSources:
    def test_nested_env_override(self, monkeypatch):
        monkeypatch.setenv("SDCAT_GRAPH__QUERY_TIMEOUT", "2.5")
        monkeypatch.setenv("SDCAT_DATABASE__URL", "postgresql+asyncpg://u:p@db/sdcat")

        config = Config()

        assert config.graph.query_timeout == 2.5
        assert config.database.url == "postgresql+asyncpg://u:p@db/sdcat"

    def test_yaml_file(self, tmp_path: Path, monkeypatch):
        config_file = tmp_path / "sdcat.yaml"
        config_file.write_text(
            "graph:\n  uri: bolt://graph:7687\nlifecycle:\n  sweep_batch_size: 10\n"
        )
        monkeypatch.setenv("SDCAT_CONFIG_FILE", str(config_file))

        config = Config()

        assert config.graph.uri == "bolt://graph:7687"
        assert config.lifecycle.sweep_batch_size == 10

    def test_env_beats_yaml(self, tmp_path: Path, monkeypatch):
        config_file = tmp_path / "sdcat.yaml"
        config_file.write_text("graph:\n  user: from-yaml\n")
        monkeypatch.setenv("SDCAT_CONFIG_FILE", str(config_file))
        monkeypatch.setenv("SDCAT_GRAPH__USER", "from-env")

        assert Config().graph.user == "from-env"

    def test_non_positive_timeout_is_rejected(self, monkeypatch):
        monkeypatch.setenv("SDCAT_GRAPH__QUERY_TIMEOUT", "0")

        with pytest.raises(ValueError):
            Config()


class TestConfigureLogging:
    def test_log_file(self, tmp_path: Path, monkeypatch):
        log_file = tmp_path / "logs" / "sdcat.log"
        monkeypatch.setenv("SDCAT_LOG_FILE", str(log_file))
        root = logging.getLogger()
        saved = root.handlers[:], root.level

        try:
            configure_logging(LoggingConfig(level="INFO"))
            logging.getLogger("sdcat.test").info("hello")

            assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
            assert logging.getLogger("neo4j").level == logging.WARNING
        finally:
            for handler in root.handlers[:]:
                root.removeHandler(handler)
                handler.close()
            root.handlers[:], root.level = saved

        assert "hello" in log_file.read_text()
