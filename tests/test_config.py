"""Tests for configuration management."""

from datetime import time
from pathlib import Path

import pytest

from harvest_kimai_sync.config import Config
from harvest_kimai_sync.exceptions import ConfigurationError

FULL_ENV = {
    "HARVEST_ACCESS_TOKEN": "harvest-token",
    "HARVEST_ACCOUNT_ID": "12345",
    "KIMAI_URL": "https://kimai.example.com/",
    "KIMAI_API_TOKEN": "kimai-token",
}


class TestConfig:
    """Test Config functionality."""

    def test_credentials_from_environment(self, temp_config_dir: Path) -> None:
        """Test that credentials are read from the environment."""
        config = Config(temp_config_dir, environ=FULL_ENV)

        harvest = config.harvest_credentials()
        kimai = config.kimai_credentials()

        assert harvest.access_token == "harvest-token"
        assert harvest.account_id == "12345"
        assert kimai.url == "https://kimai.example.com"
        assert kimai.token == "kimai-token"

    def test_credentials_from_token_store(self, config: Config) -> None:
        """Test that stored tokens are used when the environment is empty."""
        config.storage.set_token("HARVEST_ACCESS_TOKEN", "stored-token")
        config.storage.set_token("HARVEST_ACCOUNT_ID", "999")

        harvest = config.harvest_credentials()

        assert harvest.access_token == "stored-token"
        assert harvest.account_id == "999"

    def test_environment_wins_over_token_store(self, temp_config_dir: Path) -> None:
        """Test that the environment overrides stored tokens."""
        config = Config(temp_config_dir, environ=FULL_ENV)
        config.storage.set_token("HARVEST_ACCESS_TOKEN", "stored-token")

        assert config.get("HARVEST_ACCESS_TOKEN") == "harvest-token"

    def test_missing_harvest_credentials(self, config: Config) -> None:
        """Test that missing Harvest credentials raise ConfigurationError."""
        config.storage.set_token("HARVEST_ACCESS_TOKEN", "stored-token")

        with pytest.raises(ConfigurationError, match="HARVEST_ACCOUNT_ID"):
            config.harvest_credentials()

    def test_missing_kimai_credentials(self, config: Config) -> None:
        """Test that missing Kimai credentials name every missing key."""
        with pytest.raises(ConfigurationError) as exc_info:
            config.kimai_credentials()

        assert "KIMAI_URL" in str(exc_info.value)
        assert "KIMAI_API_TOKEN" in str(exc_info.value)

    def test_empty_value_counts_as_missing(self, temp_config_dir: Path) -> None:
        """Test that blank environment values are treated as missing."""
        config = Config(temp_config_dir, environ={**FULL_ENV, "KIMAI_API_TOKEN": ""})

        with pytest.raises(ConfigurationError, match="KIMAI_API_TOKEN"):
            config.kimai_credentials()

    def test_default_database_url(self, config: Config, temp_config_dir: Path) -> None:
        """Test that the database defaults to a SQLite file in the config dir."""
        assert config.database_url == f"sqlite+aiosqlite:///{temp_config_dir / 'time_entries.db'}"

    def test_database_url_from_settings(self, temp_config_dir: Path) -> None:
        """Test that settings.yaml can set the database URL."""
        Config(temp_config_dir, environ={}).storage.save_settings({"database_url": "sqlite+aiosqlite:///other.db"})

        config = Config(temp_config_dir, environ={})

        assert config.database_url == "sqlite+aiosqlite:///other.db"

    def test_database_url_from_environment(self, temp_config_dir: Path) -> None:
        """Test that DATABASE_URL overrides settings.yaml."""
        Config(temp_config_dir, environ={}).storage.save_settings({"database_url": "sqlite+aiosqlite:///other.db"})

        config = Config(temp_config_dir, environ={"DATABASE_URL": "sqlite+aiosqlite:///env.db"})

        assert config.database_url == "sqlite+aiosqlite:///env.db"

    def test_default_day_start(self, config: Config) -> None:
        """Test that the day starts at 09:00 by default."""
        assert config.day_start == time(9, 0)

    def test_day_start_from_settings(self, temp_config_dir: Path) -> None:
        """Test that day_start can be configured."""
        (temp_config_dir / "settings.yaml").write_text('day_start: "08:30"\n')

        assert Config(temp_config_dir, environ={}).day_start == time(8, 30)

    def test_day_start_unquoted_yaml(self, temp_config_dir: Path) -> None:
        """Test that an unquoted H:MM value is understood."""
        (temp_config_dir / "settings.yaml").write_text("day_start: 8:30\n")

        assert Config(temp_config_dir, environ={}).day_start == time(8, 30)

    def test_invalid_day_start(self, temp_config_dir: Path) -> None:
        """Test that an invalid day_start raises ConfigurationError."""
        (temp_config_dir / "settings.yaml").write_text('day_start: "noon"\n')

        with pytest.raises(ConfigurationError):
            Config(temp_config_dir, environ={}).day_start
