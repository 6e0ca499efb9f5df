import logging
import os
import sys
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource
from typing_extensions import Self

from sdcat.domain.graph.service.codec import DEFAULT_HAS_URI_PREDICATE


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Load settings from YAML file specified by SDCAT_CONFIG_FILE env var."""

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        yaml_data = self._load_yaml_config()
        field_value = yaml_data.get(field_name)
        return field_value, field_name, False

    def __call__(self) -> dict[str, Any]:
        return self._load_yaml_config()

    def _load_yaml_config(self) -> dict[str, Any]:
        config_file = os.environ.get("SDCAT_CONFIG_FILE")
        if config_file:
            path = Path(config_file)
            if path.exists():
                return yaml.safe_load(path.read_text()) or {}
        return {}


class DatabaseConfig(BaseModel):
    """Metadata store configuration.

    An empty url means "SQLite file under data_dir", resolved in Config's
    model_validator. Set SDCAT_DATABASE__URL to point at PostgreSQL.
    """

    url: str = ""
    echo: bool = False


class GraphConfig(BaseModel):
    """Neo4j connection with the neosemantics (n10s) plugin installed."""

    uri: str = "bolt://localhost:7687"
    user: str = "neo4j"
    password: str = "neo4j"
    database: str | None = None  # None = server default database
    query_timeout: float = Field(default=5.0, gt=0)  # seconds
    has_uri_predicate: str = DEFAULT_HAS_URI_PREDICATE


class BlobStoreConfig(BaseModel):
    path: str = ""  # Empty string = <data_dir>/files


class LifecycleConfig(BaseModel):
    lock_timeout: float = Field(default=1.0, gt=0)  # seconds to wait for a subject lock
    sweep_batch_size: int = Field(default=100, gt=0)


class SweepConfig(BaseModel):
    """Expiration sweep schedule."""

    cron: str = "*/15 * * * *"
    enabled: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration (nested in Config, uses env_nested_delimiter)."""

    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"

    @property
    def file(self) -> str | None:
        """Get log file path from SDCAT_LOG_FILE env var."""
        return os.environ.get("SDCAT_LOG_FILE")


class Config(BaseSettings):
    data_dir: Path = Path("~/.sdcat")
    database: DatabaseConfig = DatabaseConfig()
    graph: GraphConfig = GraphConfig()
    blob_store: BlobStoreConfig = BlobStoreConfig()
    lifecycle: LifecycleConfig = LifecycleConfig()
    sweep: SweepConfig = SweepConfig()
    logging: LoggingConfig = LoggingConfig()

    model_config = {
        "env_prefix": "SDCAT_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_nested_delimiter": "__",  # Allows SDCAT_DATABASE__URL override
    }

    @model_validator(mode="after")
    def derive_paths(self) -> Self:
        """Fill in the database url and blob store path from data_dir when unset."""
        data_dir = self.data_dir.expanduser()
        if not self.database.url:
            self.database = DatabaseConfig(
                url=f"sqlite+aiosqlite:///{data_dir / 'sdcat.db'}",
                echo=self.database.echo,
            )
        if not self.blob_store.path:
            self.blob_store = BlobStoreConfig(path=str(data_dir / "files"))
        return self

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to include YAML config.

        Priority (highest to lowest):
        1. init_settings - values passed to Config()
        2. env_settings - environment variables
        3. dotenv_settings - .env file
        4. yaml_settings - SDCAT_CONFIG_FILE yaml
        5. file_secret_settings - secrets from files
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def configure_logging(config: LoggingConfig) -> None:
    """Configure Python logging based on config.

    Should be called early in application startup so every module logger
    picks up the root handlers.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(config.level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(config.format, datefmt=config.date_format)

    if config.file:
        log_path = Path(config.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(config.level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(config.level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("neo4j").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)  # Suppress job completion spam
    logging.getLogger("rdflib").setLevel(logging.WARNING)

    logging.debug("Logging configured: level=%s, file=%s", config.level, config.file)
