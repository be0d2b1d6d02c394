"""Configuration management for harvest-kimai-sync."""

import os
from collections.abc import Mapping
from datetime import time
from pathlib import Path

from pydantic import BaseModel

from harvest_kimai_sync.exceptions import ConfigurationError
from harvest_kimai_sync.utils.storage import StorageManager

HARVEST_KEYS = ("HARVEST_ACCESS_TOKEN", "HARVEST_ACCOUNT_ID")
KIMAI_KEYS = ("KIMAI_URL", "KIMAI_API_TOKEN")
DEFAULT_DAY_START = "09:00"


class HarvestCredentials(BaseModel):
    """Credentials for the Harvest v2 API."""

    access_token: str
    account_id: str


class KimaiCredentials(BaseModel):
    """Credentials for the Kimai API."""

    url: str
    token: str


class Config:
    """Resolves credentials and settings from the environment and the config directory."""

    def __init__(
        self,
        config_dir: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize configuration.

        Args:
            config_dir: Directory holding settings, state, and stored credentials.
            environ: Environment to read from. Defaults to os.environ.
        """
        self.storage = StorageManager(config_dir)
        self.environ = os.environ if environ is None else environ
        self._settings = self.storage.load_settings()

    def get(self, key: str) -> str | None:
        """Look up a credential, preferring the environment over stored tokens.

        Args:
            key: Credential name, e.g. "KIMAI_URL".

        Returns:
            The value, or None if it is not set anywhere.
        """
        value = self.environ.get(key) or self.storage.get_token(key)
        return value or None

    def _require(self, keys: tuple[str, ...], service: str) -> dict[str, str]:
        values = {key: self.get(key) for key in keys}
        missing = [key for key, value in values.items() if not value]
        if missing:
            raise ConfigurationError(
                f"Missing {service} credentials: {', '.join(missing)}. "
                "Set them in the environment or run 'harvest-kimai configure'."
            )
        return values

    def harvest_credentials(self) -> HarvestCredentials:
        """Get Harvest credentials.

        Raises:
            ConfigurationError: If the token or account ID is missing.
        """
        values = self._require(HARVEST_KEYS, "Harvest")
        return HarvestCredentials(
            access_token=values["HARVEST_ACCESS_TOKEN"],
            account_id=values["HARVEST_ACCOUNT_ID"],
        )

    def kimai_credentials(self) -> KimaiCredentials:
        """Get Kimai credentials.

        Raises:
            ConfigurationError: If the URL or token is missing.
        """
        values = self._require(KIMAI_KEYS, "Kimai")
        return KimaiCredentials(
            url=values["KIMAI_URL"].rstrip("/"),
            token=values["KIMAI_API_TOKEN"],
        )

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL of the local store."""
        url = self.environ.get("DATABASE_URL") or self._settings.get("database_url")
        if url:
            return url
        return f"sqlite+aiosqlite:///{self.storage.config_dir / 'time_entries.db'}"

    @property
    def day_start(self) -> time:
        """Default begin time for the first entry of a day.

        Raises:
            ConfigurationError: If settings.yaml holds a value that is not HH:MM.
        """
        raw = self._settings.get("day_start", DEFAULT_DAY_START)
        if isinstance(raw, int) and 0 <= raw < 24 * 60:
            # unquoted 9:30 is read by YAML as base-60 minutes
            return time(raw // 60, raw % 60)
        raw = str(raw)
        try:
            return time.fromisoformat(raw)
        except ValueError as e:
            raise ConfigurationError(f"Invalid day_start '{raw}', expected HH:MM") from e
