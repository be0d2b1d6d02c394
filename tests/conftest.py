"""Pytest configuration and fixtures."""

import tempfile
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from harvest_kimai_sync.config import Config
from harvest_kimai_sync.db import LocalStore
from harvest_kimai_sync.harvest import HarvestTask, HarvestTimeEntry
from harvest_kimai_sync.kimai import KimaiActivity
from harvest_kimai_sync.utils import StorageManager


@pytest.fixture
def temp_config_dir() -> Path:
    """Create a temporary configuration directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def storage_manager(temp_config_dir: Path) -> StorageManager:
    """Create a storage manager with temporary directory."""
    return StorageManager(temp_config_dir)


@pytest.fixture
def config(temp_config_dir: Path) -> Config:
    """Create a config instance with temporary directory and an empty environment."""
    return Config(temp_config_dir, environ={})


@pytest_asyncio.fixture
async def store(temp_config_dir: Path) -> LocalStore:
    """Create an initialized local store backed by a temporary SQLite file."""
    local_store = LocalStore(f"sqlite+aiosqlite:///{temp_config_dir / 'test.db'}")
    await local_store.init()
    yield local_store
    await local_store.close()


def make_entry(entry_id: int = 1001, **overrides: Any) -> HarvestTimeEntry:
    """Build a Harvest time entry as the API would return it."""
    data: dict[str, Any] = {
        "id": entry_id,
        "spent_date": "2025-03-10",
        "hours": 1.5,
        "notes": "Reviewed pull requests",
        "started_time": None,
        "ended_time": None,
        "created_at": "2025-03-10T14:00:00Z",
        "client": {"id": 1, "name": "Acme"},
        "project": {"id": 2, "name": "Website"},
        "task": {"id": 3, "name": "Design Review"},
    }
    data.update(overrides)
    return HarvestTimeEntry.model_validate(data)


@pytest.fixture
def sample_entries() -> list[HarvestTimeEntry]:
    """Three entries over two days."""
    return [
        make_entry(1001),
        make_entry(1002, spent_date="2025-03-11", hours=2.0, created_at="2025-03-12T08:00:00Z"),
        make_entry(1003, spent_date="2025-03-11", hours=0.5, notes=None, created_at=None),
    ]


@pytest.fixture
def sample_harvest_tasks() -> list[HarvestTask]:
    """Create sample Harvest tasks."""
    return [
        HarvestTask(id=3, name=" Design Review ", is_active=True),
        HarvestTask(id=4, name="Development", is_active=True),
        HarvestTask(id=5, name="Meetings", is_active=False),
    ]


@pytest.fixture
def sample_kimai_activities() -> list[KimaiActivity]:
    """Create sample Kimai activities."""
    return [
        KimaiActivity.model_validate({"id": 10, "name": "design review", "parentTitle": None, "project": 7}),
        KimaiActivity.model_validate({"id": 11, "name": "Development", "parentTitle": "Website", "project": 7}),
        KimaiActivity.model_validate({"id": 12, "name": "Support", "parentTitle": None, "project": 8}),
    ]


@pytest.fixture
def entry_factory():
    """Return a builder for Harvest time entries."""
    return make_entry
