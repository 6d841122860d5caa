"""
Tests for configuration loading.
"""

import os

import pytest
import yaml

from stockfolio.config import (
    ConfigurationError,
    load_app_config,
    write_config,
)
from stockfolio.models import AppConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep real STOCKFOLIO_* variables out of the tests."""
    for key in list(os.environ):
        if key.startswith("STOCKFOLIO_"):
            monkeypatch.delenv(key)


@pytest.fixture
def no_env_file(tmp_path):
    return tmp_path / "missing.env"


class TestLoadAppConfig:
    """Tests for layered configuration."""

    def test_defaults(self, no_env_file):
        """Test defaults with no file and no environment."""
        config = load_app_config(env_file=no_env_file)

        assert config == AppConfig()

    def test_yaml_file(self, tmp_path, no_env_file):
        """Test values read from YAML."""
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({
            "data_dir": "state",
            "quote_source": "YFinance",
            "quote_timeout_seconds": 2.5,
            "insight_cooldown_minutes": 30,
            "portfolio_id": "P1",
        }))

        config = load_app_config(path, env_file=no_env_file)

        assert config.data_dir == "state"
        assert config.quote_source == "yfinance"
        assert config.quote_timeout_seconds == 2.5
        assert config.insight_cooldown_minutes == 30
        assert config.portfolio_id == "P1"

    def test_env_file_overrides_yaml(self, tmp_path):
        """Test that .env values win over YAML."""
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"portfolio_id": "FROM_YAML", "log_level": "DEBUG"}))
        env_file = tmp_path / ".env"
        env_file.write_text("STOCKFOLIO_PORTFOLIO_ID=FROM_DOTENV\n")

        config = load_app_config(path, env_file=env_file)

        assert config.portfolio_id == "FROM_DOTENV"
        assert config.log_level == "DEBUG"

    def test_environment_overrides_everything(self, tmp_path, monkeypatch):
        """Test that process environment has the highest priority."""
        env_file = tmp_path / ".env"
        env_file.write_text("STOCKFOLIO_QUOTE_TIMEOUT_SECONDS=1\n")
        monkeypatch.setenv("STOCKFOLIO_QUOTE_TIMEOUT_SECONDS", "9")
        monkeypatch.setenv("STOCKFOLIO_LOG_LEVEL", "warning")

        config = load_app_config(env_file=env_file)

        assert config.quote_timeout_seconds == 9.0
        assert config.log_level == "WARNING"

    def test_missing_file_raises(self, tmp_path, no_env_file):
        """Test that an explicit missing file is an error."""
        with pytest.raises(ConfigurationError, match="not found"):
            load_app_config(tmp_path / "nope.yaml", env_file=no_env_file)

    def test_invalid_yaml_raises(self, tmp_path, no_env_file):
        """Test malformed YAML."""
        path = tmp_path / "bad.yaml"
        path.write_text("data_dir: [unclosed\n")

        with pytest.raises(ConfigurationError):
            load_app_config(path, env_file=no_env_file)

    def test_non_mapping_yaml_raises(self, tmp_path, no_env_file):
        """Test YAML that is not a mapping."""
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_app_config(path, env_file=no_env_file)

    @pytest.mark.parametrize(
        "key,value",
        [
            ("QUOTE_SOURCE", "bloomberg"),
            ("LOG_LEVEL", "LOUD"),
            ("QUOTE_TIMEOUT_SECONDS", "-1"),
            ("QUOTE_TIMEOUT_SECONDS", "soon"),
            ("INSIGHT_COOLDOWN_MINUTES", "-5"),
        ],
    )
    def test_invalid_values_raise(self, monkeypatch, no_env_file, key, value):
        """Test validation of individual settings."""
        monkeypatch.setenv(f"STOCKFOLIO_{key}", value)

        with pytest.raises(ConfigurationError):
            load_app_config(env_file=no_env_file)

    def test_empty_portfolio_id_raises(self, tmp_path, no_env_file):
        """Test that an explicitly empty portfolio id is refused."""
        path = tmp_path / "config.yaml"
        path.write_text("portfolio_id: ''\n")

        with pytest.raises(ConfigurationError, match="portfolio_id"):
            load_app_config(path, env_file=no_env_file)


class TestWriteConfig:
    """Tests for writing configuration."""

    def test_write_then_load(self, tmp_path, no_env_file):
        """Test that a written config loads back unchanged."""
        config = AppConfig(
            data_dir="state",
            quote_source="yfinance",
            quote_timeout_seconds=3.0,
            insight_cooldown_minutes=15,
            portfolio_id="P9",
        )
        path = tmp_path / "out" / "config.yaml"

        write_config(config, path)

        assert load_app_config(path, env_file=no_env_file) == config
