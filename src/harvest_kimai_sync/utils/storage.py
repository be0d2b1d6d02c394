"""Files kept in the configuration directory: settings, run state, credentials."""

import json
import os
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_DIR = Path.home() / ".harvest-kimai-sync"


def _read_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path) as f:
        return json.load(f)


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


class StorageManager:
    """Reads and writes the files under one configuration directory.

    settings.yaml holds user settings (database_url, day_start), state.json
    records the last extraction and import, and tokens.json holds
    credentials entered through ``harvest-kimai configure``.
    """

    def __init__(self, config_dir: Path | None = None) -> None:
        self.config_dir = config_dir or DEFAULT_CONFIG_DIR
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.settings_file = self.config_dir / "settings.yaml"
        self.state_file = self.config_dir / "state.json"
        self.tokens_file = self.config_dir / "tokens.json"

    def load_settings(self) -> dict[str, Any]:
        return _read_yaml(self.settings_file)

    def save_settings(self, settings: dict[str, Any]) -> None:
        with open(self.settings_file, "w") as f:
            yaml.safe_dump(settings, f, default_flow_style=False, sort_keys=False)

    def load_state(self) -> dict[str, Any]:
        return _read_json(self.state_file)

    def save_state(self, state: dict[str, Any]) -> None:
        with open(self.state_file, "w") as f:
            json.dump(state, f, indent=2)

    def _record(self, key: str, details: dict[str, Any]) -> None:
        state = self.load_state()
        state[key] = {"at": datetime.now(timezone.utc).isoformat(), **details}
        self.save_state(state)

    def record_extraction(self, from_date: date, to_date: date, counts: dict[str, int]) -> None:
        """Remember the range and counts of the latest entry extraction.

        Args:
            from_date: First extracted day.
            to_date: Last extracted day.
            counts: Reconciliation counts for the run.
        """
        self._record(
            "last_extraction",
            {"from": from_date.isoformat(), "to": to_date.isoformat(), **counts},
        )

    def record_import(self, imported: int) -> None:
        """Remember how many entries the latest import pushed to Kimai."""
        self._record("last_import", {"imported": imported})

    def load_tokens(self) -> dict[str, str]:
        return _read_json(self.tokens_file)

    def save_tokens(self, tokens: dict[str, str]) -> None:
        """Write credentials readable by the owner only.

        Args:
            tokens: Credential names mapped to values.
        """
        fd = os.open(self.tokens_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(tokens, f)
        # pre-existing files keep their old mode through os.open
        self.tokens_file.chmod(0o600)

    def get_token(self, name: str) -> str | None:
        """Look up one credential, e.g. "HARVEST_ACCESS_TOKEN"."""
        return self.load_tokens().get(name)

    def set_token(self, name: str, value: str) -> None:
        tokens = self.load_tokens()
        tokens[name] = value
        self.save_tokens(tokens)
