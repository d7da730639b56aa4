"""Configuration management for the session ledger.

Configuration follows a priority hierarchy:
1. Environment variables (SESSION_LEDGER_*)
2. Config file (YAML, under the 'session_ledger' key)
3. Hardcoded defaults in this module
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from session_ledger.constants import (
    CONFIG_SECTION_KEY,
    DEFAULT_BUSY_TIMEOUT_SECONDS,
    DEFAULT_DATA_DIR,
    DEFAULT_DB_FILENAME,
    DEFAULT_LOG_BACKUP_COUNT,
    DEFAULT_LOG_MAX_SIZE_MB,
    DEFAULT_LOG_ROTATION_ENABLED,
    DEFAULT_NAMING_BASE_URL,
    DEFAULT_NAMING_MODEL,
    DEFAULT_NAMING_TIMEOUT,
    ENV_DATA_DIR,
    ENV_DEBUG,
    ENV_LOG_LEVEL,
    LOG_LEVEL_DEBUG,
    LOG_LEVEL_INFO,
    MAX_BUSY_TIMEOUT_SECONDS,
    MAX_LOG_BACKUP_COUNT,
    MAX_LOG_MAX_SIZE_MB,
    MIN_BUSY_TIMEOUT_SECONDS,
    MIN_LOG_MAX_SIZE_MB,
    MSG_COUNT_FOR_SESSION_NAME_GENERATION,
    VALID_LOG_LEVELS,
)
from session_ledger.exceptions import ValidationError

logger = logging.getLogger(__name__)


def _resolve_env_reference(value: str | None) -> str | None:
    """Resolve ``${ENV_VAR}`` syntax to the variable's value."""
    if value and value.startswith("${") and value.endswith("}"):
        return os.environ.get(value[2:-1])
    return value


@dataclass
class LogRotationConfig:
    """Configuration for log file rotation.

    Attributes:
        enabled: Whether to enable log rotation.
        max_size_mb: Maximum log file size in megabytes before rotation.
        backup_count: Number of backup files to keep.
    """

    enabled: bool = DEFAULT_LOG_ROTATION_ENABLED
    max_size_mb: int = DEFAULT_LOG_MAX_SIZE_MB
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self) -> None:
        if not MIN_LOG_MAX_SIZE_MB <= self.max_size_mb <= MAX_LOG_MAX_SIZE_MB:
            raise ValidationError(
                f"max_size_mb must be between {MIN_LOG_MAX_SIZE_MB} and {MAX_LOG_MAX_SIZE_MB}",
                field="max_size_mb",
                value=self.max_size_mb,
                expected=f"{MIN_LOG_MAX_SIZE_MB}..{MAX_LOG_MAX_SIZE_MB}",
            )
        if not 0 <= self.backup_count <= MAX_LOG_BACKUP_COUNT:
            raise ValidationError(
                f"backup_count must be between 0 and {MAX_LOG_BACKUP_COUNT}",
                field="backup_count",
                value=self.backup_count,
                expected=f"0..{MAX_LOG_BACKUP_COUNT}",
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogRotationConfig":
        """Create config from dictionary."""
        return cls(
            enabled=data.get("enabled", DEFAULT_LOG_ROTATION_ENABLED),
            max_size_mb=data.get("max_size_mb", DEFAULT_LOG_MAX_SIZE_MB),
            backup_count=data.get("backup_count", DEFAULT_LOG_BACKUP_COUNT),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "enabled": self.enabled,
            "max_size_mb": self.max_size_mb,
            "backup_count": self.backup_count,
        }

    def get_max_bytes(self) -> int:
        """Get maximum log file size in bytes."""
        return self.max_size_mb * 1024 * 1024


@dataclass
class NamingConfig:
    """Configuration for LLM-generated session names.

    Attributes:
        enabled: Whether sessions are renamed automatically.
        base_url: Base URL of an OpenAI-compatible API.
        model: Model name/identifier.
        api_key: API key (supports ${ENV_VAR} syntax).
        timeout: Request timeout in seconds.
        max_user_turns: Names are regenerated while a session has at most
            this many user messages.
    """

    enabled: bool = False
    base_url: str = DEFAULT_NAMING_BASE_URL
    model: str = DEFAULT_NAMING_MODEL
    api_key: str | None = None
    timeout: float = DEFAULT_NAMING_TIMEOUT
    max_user_turns: int = MSG_COUNT_FOR_SESSION_NAME_GENERATION

    def __post_init__(self) -> None:
        """Validate configuration after initialization.

        The hardcoded-key check sees the raw value; ${ENV_VAR} references are
        resolved afterwards.
        """
        self._validate()
        self.api_key = _resolve_env_reference(self.api_key)

    def _validate(self) -> None:
        if not self._is_valid_url(self.base_url):
            raise ValidationError(
                f"Invalid base URL: {self.base_url}",
                field="base_url",
                value=self.base_url,
                expected="valid HTTP(S) URL",
            )
        if self.timeout <= 0:
            raise ValidationError(
                "Timeout must be positive",
                field="timeout",
                value=self.timeout,
                expected="positive number",
            )
        if self.max_user_turns < 1:
            raise ValidationError(
                "max_user_turns must be at least 1",
                field="max_user_turns",
                value=self.max_user_turns,
                expected=">= 1",
            )
        if self.api_key and not self.api_key.startswith("${"):
            logger.warning(
                "API key appears to be hardcoded in config. "
                "For security, use ${ENV_VAR_NAME} syntax instead."
            )

    @staticmethod
    def _is_valid_url(url: str) -> bool:
        """Check if URL is valid HTTP(S) URL."""
        if not url:
            return False
        url_pattern = re.compile(
            r"^https?://" r"[a-zA-Z0-9.-]+" r"(:\d+)?" r"(/.*)?$",
            re.IGNORECASE,
        )
        return bool(url_pattern.match(url))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NamingConfig":
        """Create config from dictionary."""
        return cls(
            enabled=data.get("enabled", False),
            base_url=data.get("base_url", DEFAULT_NAMING_BASE_URL),
            model=data.get("model", DEFAULT_NAMING_MODEL),
            api_key=data.get("api_key"),
            timeout=data.get("timeout", DEFAULT_NAMING_TIMEOUT),
            max_user_turns=data.get("max_user_turns", MSG_COUNT_FOR_SESSION_NAME_GENERATION),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "enabled": self.enabled,
            "base_url": self.base_url,
            "model": self.model,
            "api_key": self.api_key,
            "timeout": self.timeout,
            "max_user_turns": self.max_user_turns,
        }


@dataclass
class StoreConfig:
    """Top-level session ledger configuration.

    Attributes:
        data_dir: Directory holding the database (and legacy session files).
        db_filename: Database file name inside data_dir.
        busy_timeout_seconds: How long a writer waits on a locked database.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional log file; logs go to stderr when unset.
        log_rotation: Log rotation settings for log_file.
        naming: Session-name provider settings.
    """

    data_dir: Path = field(default_factory=lambda: DEFAULT_DATA_DIR)
    db_filename: str = DEFAULT_DB_FILENAME
    busy_timeout_seconds: float = DEFAULT_BUSY_TIMEOUT_SECONDS
    log_level: str = LOG_LEVEL_INFO
    log_file: Path | None = None
    log_rotation: LogRotationConfig = field(default_factory=LogRotationConfig)
    naming: NamingConfig = field(default_factory=NamingConfig)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.data_dir = Path(self.data_dir).expanduser()
        if self.log_file is not None:
            self.log_file = Path(self.log_file).expanduser()
        self._validate()

    def _validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValidationError: If any configuration value is invalid.
        """
        if self.log_level.upper() not in VALID_LOG_LEVELS:
            raise ValidationError(
                f"Invalid log level: {self.log_level}",
                field="log_level",
                value=self.log_level,
                expected=f"one of {VALID_LOG_LEVELS}",
            )
        if not self.db_filename or Path(self.db_filename).name != self.db_filename:
            raise ValidationError(
                "db_filename must be a bare file name",
                field="db_filename",
                value=self.db_filename,
                expected="file name without directories",
            )
        if not MIN_BUSY_TIMEOUT_SECONDS <= self.busy_timeout_seconds <= MAX_BUSY_TIMEOUT_SECONDS:
            raise ValidationError(
                "busy_timeout_seconds out of range",
                field="busy_timeout_seconds",
                value=self.busy_timeout_seconds,
                expected=f"{MIN_BUSY_TIMEOUT_SECONDS}..{MAX_BUSY_TIMEOUT_SECONDS}",
            )

    @property
    def db_path(self) -> Path:
        """Full path of the SQLite database file."""
        return self.data_dir / self.db_filename

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoreConfig":
        """Create config from dictionary.

        Raises:
            ValidationError: If configuration values are invalid.
        """
        log_file = data.get("log_file")
        return cls(
            data_dir=Path(data.get("data_dir", DEFAULT_DATA_DIR)),
            db_filename=data.get("db_filename", DEFAULT_DB_FILENAME),
            busy_timeout_seconds=data.get("busy_timeout_seconds", DEFAULT_BUSY_TIMEOUT_SECONDS),
            log_level=data.get("log_level", LOG_LEVEL_INFO),
            log_file=Path(log_file) if log_file else None,
            log_rotation=LogRotationConfig.from_dict(data.get("log_rotation", {})),
            naming=NamingConfig.from_dict(data.get("naming", {})),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "data_dir": str(self.data_dir),
            "db_filename": self.db_filename,
            "busy_timeout_seconds": self.busy_timeout_seconds,
            "log_level": self.log_level,
            "log_file": str(self.log_file) if self.log_file else None,
            "log_rotation": self.log_rotation.to_dict(),
            "naming": self.naming.to_dict(),
        }

    def get_effective_log_level(self) -> str:
        """Get effective log level, considering environment variable overrides.

        Priority (highest to lowest):
        1. SESSION_LEDGER_DEBUG=1 -> DEBUG
        2. SESSION_LEDGER_LOG_LEVEL environment variable
        3. Config file log_level setting
        """
        if os.environ.get(ENV_DEBUG, "").lower() in ("1", "true", "yes"):
            return LOG_LEVEL_DEBUG

        env_level = os.environ.get(ENV_LOG_LEVEL, "").upper()
        if env_level in VALID_LOG_LEVELS:
            return env_level

        return self.log_level.upper()


def _apply_env_overrides(config: StoreConfig) -> StoreConfig:
    data_dir = os.environ.get(ENV_DATA_DIR)
    if data_dir:
        config.data_dir = Path(data_dir).expanduser()
    return config


def load_config(config_file: Path | None = None) -> StoreConfig:
    """Load session ledger configuration.

    Reads the 'session_ledger' section of a YAML file, then applies
    environment overrides.

    Args:
        config_file: Optional YAML file. Defaults are used when omitted.

    Returns:
        StoreConfig with settings (defaults if not configured).

    Note:
        Returns defaults on error rather than raising, so a broken config
        file never prevents the store from opening.
    """
    if config_file is None or not config_file.exists():
        if config_file is not None:
            logger.debug(f"No config file at {config_file}, using defaults")
        return _apply_env_overrides(StoreConfig())

    try:
        with open(config_file, encoding="utf-8") as f:
            config_data = yaml.safe_load(f) or {}
        section = config_data.get(CONFIG_SECTION_KEY, {}) or {}
        config = StoreConfig.from_dict(section)
        logger.debug(f"Loaded config from {config_file}: data_dir={config.data_dir}")
        return _apply_env_overrides(config)

    except ValidationError as e:
        logger.warning(f"Invalid config in {config_file}: {e}")
        logger.info("Using default configuration")
        return _apply_env_overrides(StoreConfig())

    except yaml.YAMLError as e:
        logger.warning(f"Failed to parse config YAML from {config_file}: {e}")
        return _apply_env_overrides(StoreConfig())

    except OSError as e:
        logger.warning(f"Failed to read config from {config_file}: {e}")
        return _apply_env_overrides(StoreConfig())


def ensure_session_dir(config: StoreConfig) -> Path:
    """Create the session data directory if needed and return it."""
    config.data_dir.mkdir(parents=True, exist_ok=True)
    return config.data_dir
