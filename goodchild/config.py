"""Configuration management for goodchild.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a Config object. Property getters provide access with defaults
for the command registry, the event flag database, logging, and the
operational check scripts.

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Singleton accessor for the global Config instance.
"""

import os
from pathlib import Path
from typing import List, Optional

import structlog
import yaml
from dotenv import load_dotenv
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from .exceptions import ConfigError

logger = structlog.get_logger("goodchild")

DEFAULT_COMMAND_PREFIX = "."


class Config:
    """Central configuration manager for goodchild.

    Loads settings.yaml and .env from the config directory. Nothing is
    mutated after __init__.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``<repo_root>/config/``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path(__file__).parent.parent / "config"
        self.config_dir = config_dir

        env_file = config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML configuration file."""
        filepath = self.config_dir / filename
        if filepath.exists():
            with open(filepath, "r") as f:
                return yaml.safe_load(f) or {}
        return {}

    def _section(self, name: str) -> dict:
        """A top-level settings mapping. A section holding only comments loads as None."""
        section = self.settings.get(name)
        return section if isinstance(section, dict) else {}

    def validate(self):
        """Validate critical settings at startup.

        A missing or malformed database URL raises ConfigError since the
        event flag store cannot run without it. Everything else is logged
        and the bot keeps its defaults.
        """
        url = self.database_url
        logger.info("config_database_configured", backend=make_url(url).get_backend_name())

        prefix = self.settings.get("command_prefix")
        if prefix is not None and (not isinstance(prefix, str) or not prefix.strip()):
            logger.error("config_invalid_value", key="command_prefix", value=prefix)

        manifest = self._section("commands").get("manifest")
        if manifest is not None and not isinstance(manifest, list):
            logger.error(
                "config_invalid_value",
                key="commands.manifest",
                type=type(manifest).__name__,
            )

        pool_size = self.database_pool_size
        if pool_size < 1:
            logger.error("config_invalid_value", key="database.pool_size", value=pool_size)

    # Database configuration
    @property
    def database_url(self) -> str:
        """Get the event flag database URL.

        Env var DATABASE_URL takes precedence over ``database.url`` in
        settings.yaml. There is no fallback: a missing or unparsable URL
        raises ConfigError.
        """
        url = os.environ.get("DATABASE_URL") or self._section("database").get("url")
        if not url:
            raise ConfigError(
                "DATABASE_URL is not set; configure it in config/.env "
                "or database.url in settings.yaml"
            )
        try:
            make_url(url)
        except ArgumentError as e:
            raise ConfigError("DATABASE_URL could not be parsed", reason=str(e)) from e
        return url

    @property
    def database_pool_size(self) -> int:
        """Connections kept open in the pool (default 5)."""
        db_config = self._section("database")
        try:
            return int(db_config.get("pool_size", 5))
        except (ValueError, TypeError):
            logger.warning("config_invalid_pool_size", value=db_config.get("pool_size"))
            return 5

    @property
    def database_max_overflow(self) -> int:
        """Extra connections allowed beyond pool_size (default 10)."""
        db_config = self._section("database")
        return db_config.get("max_overflow", 10)

    @property
    def database_pool_timeout(self) -> float:
        """Seconds to wait for a free pooled connection (default 30)."""
        db_config = self._section("database")
        return float(db_config.get("pool_timeout", 30))

    # Command registry configuration
    @property
    def command_prefix(self) -> str:
        """Prefix that marks a chat message as a command (default ".")."""
        prefix = self.settings.get("command_prefix")
        if isinstance(prefix, str) and prefix.strip():
            return prefix.strip()
        return DEFAULT_COMMAND_PREFIX

    @property
    def handlers_dir(self) -> Path:
        """Get the directory scanned for handler modules."""
        configured = self._section("commands").get("handlers_dir")
        if configured:
            return Path(configured).expanduser()
        return Path(self.config_dir).parent / "handlers"

    @property
    def command_manifest(self) -> Optional[List[str]]:
        """Dotted module paths to load instead of scanning handlers_dir.

        None when no manifest is configured.
        """
        manifest = self._section("commands").get("manifest")
        if manifest is None:
            return None
        if not isinstance(manifest, list):
            return None
        return [str(m) for m in manifest]

    # Logging configuration
    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(configured).expanduser()
        return Path(__file__).parent.parent / "logs"

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Controls console and combined file."""
        log_config = self._section("logging")
        return log_config.get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"events": "DEBUG"}."""
        log_config = self._section("logging")
        return log_config.get("subsystem_levels", {})

    @property
    def logging_max_file_size_mb(self) -> int:
        """Max size per log file in MB before rotation (default 10)."""
        log_config = self._section("logging")
        return log_config.get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Number of rotated log files to keep (default 5)."""
        log_config = self._section("logging")
        return log_config.get("backup_count", 5)

    # Operational checks
    @property
    def deploy_required_files(self) -> Optional[List[str]]:
        """Override for the deploy check's required file list."""
        return self._section("checks").get("required_files")

    @property
    def security_excluded_dirs(self) -> Optional[List[str]]:
        """Override for directories skipped by the security scan."""
        return self._section("checks").get("excluded_dirs")


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
