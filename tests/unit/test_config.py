"""Tests for configuration loading and validation."""

import logging
from pathlib import Path

import pytest

from session_ledger.config import (
    LogRotationConfig,
    NamingConfig,
    StoreConfig,
    ensure_session_dir,
    load_config,
)
from session_ledger.constants import (
    DEFAULT_BUSY_TIMEOUT_SECONDS,
    DEFAULT_DATA_DIR,
    DEFAULT_DB_FILENAME,
    ENV_DATA_DIR,
    ENV_DEBUG,
    ENV_LOG_LEVEL,
)
from session_ledger.exceptions import ValidationError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the caller's environment out of config tests."""
    for name in (ENV_DATA_DIR, ENV_DEBUG, ENV_LOG_LEVEL):
        monkeypatch.delenv(name, raising=False)


def _write_config(path: Path, body: str) -> Path:
    path.write_text(body, encoding="utf-8")
    return path


class TestStoreConfig:
    """Tests for StoreConfig."""

    def test_defaults(self) -> None:
        """Defaults point at the shared data directory."""
        config = StoreConfig()

        assert config.data_dir == DEFAULT_DATA_DIR
        assert config.db_filename == DEFAULT_DB_FILENAME
        assert config.db_path == DEFAULT_DATA_DIR / DEFAULT_DB_FILENAME
        assert config.busy_timeout_seconds == DEFAULT_BUSY_TIMEOUT_SECONDS
        assert config.log_level == "INFO"
        assert config.log_file is None
        assert config.naming.enabled is False

    def test_expands_user_paths(self) -> None:
        """~ in paths is expanded."""
        config = StoreConfig(data_dir=Path("~/ledger"), log_file=Path("~/ledger.log"))

        assert config.data_dir == Path.home() / "ledger"
        assert config.log_file == Path.home() / "ledger.log"

    @pytest.mark.parametrize(
        ("kwargs", "field"),
        [
            ({"log_level": "VERBOSE"}, "log_level"),
            ({"db_filename": "nested/sessions.db"}, "db_filename"),
            ({"db_filename": ""}, "db_filename"),
            ({"busy_timeout_seconds": 0}, "busy_timeout_seconds"),
            ({"busy_timeout_seconds": 301}, "busy_timeout_seconds"),
        ],
    )
    def test_invalid_values(self, kwargs: dict, field: str) -> None:
        """Invalid values raise ValidationError naming the field."""
        with pytest.raises(ValidationError) as exc_info:
            StoreConfig(**kwargs)
        assert exc_info.value.field == field

    def test_dict_round_trip(self, tmp_path: Path) -> None:
        """to_dict() output is accepted by from_dict()."""
        config = StoreConfig(
            data_dir=tmp_path,
            db_filename="ledger.db",
            busy_timeout_seconds=2.5,
            log_level="DEBUG",
            log_file=tmp_path / "ledger.log",
            log_rotation=LogRotationConfig(enabled=False, max_size_mb=5, backup_count=1),
            naming=NamingConfig(enabled=True, model="llama3", timeout=12.0),
        )

        assert StoreConfig.from_dict(config.to_dict()) == config


class TestEffectiveLogLevel:
    """Tests for environment log-level overrides."""

    def test_config_value(self) -> None:
        assert StoreConfig(log_level="warning").get_effective_log_level() == "WARNING"

    def test_env_level_overrides_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_LOG_LEVEL, "error")
        assert StoreConfig(log_level="INFO").get_effective_log_level() == "ERROR"

    def test_invalid_env_level_is_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_LOG_LEVEL, "LOUD")
        assert StoreConfig(log_level="INFO").get_effective_log_level() == "INFO"

    def test_debug_flag_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_DEBUG, "1")
        monkeypatch.setenv(ENV_LOG_LEVEL, "ERROR")
        assert StoreConfig().get_effective_log_level() == "DEBUG"


class TestLogRotationConfig:
    """Tests for LogRotationConfig."""

    def test_max_bytes(self) -> None:
        assert LogRotationConfig(max_size_mb=2).get_max_bytes() == 2 * 1024 * 1024

    @pytest.mark.parametrize(
        "kwargs", [{"max_size_mb": 0}, {"max_size_mb": 101}, {"backup_count": 11}]
    )
    def test_out_of_range(self, kwargs: dict) -> None:
        with pytest.raises(ValidationError):
            LogRotationConfig(**kwargs)


class TestNamingConfig:
    """Tests for NamingConfig."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"base_url": "localhost:11434"},
            {"base_url": ""},
            {"timeout": 0},
            {"max_user_turns": 0},
        ],
    )
    def test_invalid_values(self, kwargs: dict) -> None:
        with pytest.raises(ValidationError):
            NamingConfig(**kwargs)

    def test_env_reference_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """${VAR} api keys are resolved when loaded from a dict."""
        monkeypatch.setenv("NAMING_KEY", "sk-from-env")

        config = NamingConfig.from_dict({"api_key": "${NAMING_KEY}"})

        assert config.api_key == "sk-from-env"

    def test_missing_env_reference_resolves_to_none(self) -> None:
        assert NamingConfig.from_dict({"api_key": "${UNSET_NAMING_KEY_FOR_TESTS}"}).api_key is None

    def test_hardcoded_key_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="session_ledger"):
            NamingConfig(api_key="sk-literal")
        assert "hardcoded" in caplog.text

    def test_env_reference_key_does_not_warn(
        self, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A resolved ${VAR} key is not reported as hardcoded."""
        monkeypatch.setenv("NAMING_KEY", "sk-from-env")

        with caplog.at_level(logging.WARNING, logger="session_ledger"):
            from_dict = NamingConfig.from_dict({"api_key": "${NAMING_KEY}"})
            direct = NamingConfig(api_key="${NAMING_KEY}")

        assert from_dict.api_key == "sk-from-env"
        assert direct.api_key == "sk-from-env"
        assert "hardcoded" not in caplog.text


class TestLoadConfig:
    """Tests for load_config()."""

    def test_no_file_returns_defaults(self) -> None:
        assert load_config() == StoreConfig()

    def test_missing_file_returns_defaults(self, tmp_path: Path) -> None:
        assert load_config(tmp_path / "absent.yaml") == StoreConfig()

    def test_reads_section(self, tmp_path: Path) -> None:
        """Only the session_ledger section is read."""
        path = _write_config(
            tmp_path / "config.yaml",
            f"""
other_tool:
  data_dir: /elsewhere
session_ledger:
  data_dir: {tmp_path / "data"}
  busy_timeout_seconds: 10
  log_level: DEBUG
  naming:
    enabled: true
    model: qwen2.5
""",
        )

        config = load_config(path)

        assert config.data_dir == tmp_path / "data"
        assert config.busy_timeout_seconds == 10
        assert config.log_level == "DEBUG"
        assert config.naming.enabled is True
        assert config.naming.model == "qwen2.5"

    def test_empty_file_returns_defaults(self, tmp_path: Path) -> None:
        assert load_config(_write_config(tmp_path / "config.yaml", "")) == StoreConfig()

    def test_invalid_yaml_returns_defaults(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = _write_config(tmp_path / "config.yaml", "session_ledger: [unclosed\n")

        with caplog.at_level(logging.WARNING, logger="session_ledger"):
            config = load_config(path)

        assert config == StoreConfig()
        assert "Failed to parse config YAML" in caplog.text

    def test_invalid_values_return_defaults(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        path = _write_config(tmp_path / "config.yaml", "session_ledger:\n  log_level: LOUD\n")

        with caplog.at_level(logging.WARNING, logger="session_ledger"):
            config = load_config(path)

        assert config == StoreConfig()
        assert "Invalid config" in caplog.text

    def test_env_data_dir_overrides_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = _write_config(
            tmp_path / "config.yaml", f"session_ledger:\n  data_dir: {tmp_path / 'file'}\n"
        )
        monkeypatch.setenv(ENV_DATA_DIR, str(tmp_path / "env"))

        assert load_config(path).data_dir == tmp_path / "env"


class TestEnsureSessionDir:
    """Tests for ensure_session_dir()."""

    def test_creates_directory(self, tmp_path: Path) -> None:
        config = StoreConfig(data_dir=tmp_path / "a" / "b")

        assert ensure_session_dir(config) == tmp_path / "a" / "b"
        assert (tmp_path / "a" / "b").is_dir()

    def test_existing_directory_is_fine(self, tmp_path: Path) -> None:
        assert ensure_session_dir(StoreConfig(data_dir=tmp_path)) == tmp_path
