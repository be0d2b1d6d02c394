"""Tests for the entry reconciler."""

from datetime import date, datetime, timezone
from unittest.mock import patch

import pytest

from harvest_kimai_sync.db import LocalStore
from harvest_kimai_sync.exceptions import StorageError
from harvest_kimai_sync.harvest import HarvestTimeEntry
from harvest_kimai_sync.sync import EntryReconciler


class TestEntryReconciler:
    """Test EntryReconciler functionality."""

    @pytest.mark.asyncio
    async def test_empty_batch(self, store: LocalStore) -> None:
        """Test that an empty batch is a no-op."""
        result = await EntryReconciler(store).reconcile([])

        assert result.as_dict() == {"inserted": 0, "updated": 0, "unchanged": 0, "failed": 0}

    @pytest.mark.asyncio
    async def test_new_entries_inserted(self, store: LocalStore, sample_entries: list[HarvestTimeEntry]) -> None:
        """Test that unknown entries are inserted as pending."""
        result = await EntryReconciler(store).reconcile(sample_entries)

        assert result.inserted == 3
        assert result.total == len(sample_entries)

        rows = await store.get_entries(["1001", "1002", "1003"])
        assert rows["1001"].task == "Design Review"
        assert rows["1001"].created_at == "2025-03-10T14:00:00+00:00"
        assert rows["1003"].notes == ""
        assert all(row.imported is False for row in rows.values())

    @pytest.mark.asyncio
    async def test_missing_created_at_uses_current_time(self, store: LocalStore, entry_factory) -> None:
        """Test that entries without created_at get the current time."""
        before = datetime.now(timezone.utc)
        await EntryReconciler(store).reconcile([entry_factory(1, created_at=None)])

        stored = datetime.fromisoformat((await store.get_entries(["1"]))["1"].created_at)
        assert stored >= before

    @pytest.mark.asyncio
    async def test_missing_nested_objects(self, store: LocalStore) -> None:
        """Test that entries without client/project/task are stored with empty names."""
        entry = HarvestTimeEntry.model_validate({"id": 7, "spent_date": "2025-03-10", "hours": 1.0})

        result = await EntryReconciler(store).reconcile([entry])

        row = (await store.get_entries(["7"]))["7"]
        assert result.inserted == 1
        assert (row.client, row.project, row.task) == ("", "", "")

    @pytest.mark.asyncio
    async def test_rerun_is_unchanged(self, store: LocalStore, sample_entries: list[HarvestTimeEntry]) -> None:
        """Test that reconciling the same batch twice changes nothing."""
        reconciler = EntryReconciler(store)
        await reconciler.reconcile(sample_entries)

        with patch.object(store, "insert_entry") as insert, patch.object(store, "update_entry") as update:
            result = await reconciler.reconcile(sample_entries)

        assert result.unchanged == len(sample_entries)
        assert result.inserted == 0
        assert result.updated == 0
        insert.assert_not_called()
        update.assert_not_called()

    @pytest.mark.asyncio
    async def test_changed_entry_updated(self, store: LocalStore, entry_factory) -> None:
        """Test that a changed field triggers an update."""
        reconciler = EntryReconciler(store)
        await reconciler.reconcile([entry_factory(1), entry_factory(2)])

        result = await reconciler.reconcile(
            [entry_factory(1, hours=3.0, started_time="9:00am"), entry_factory(2)]
        )

        assert result.updated == 1
        assert result.unchanged == 1
        row = (await store.get_entries(["1"]))["1"]
        assert row.hours == 3.0
        assert row.started_time == "9:00am"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "change",
        [
            {"spent_date": "2025-03-12"},
            {"client": {"name": "Other"}},
            {"project": {"name": "Other"}},
            {"task": {"name": "Other"}},
            {"notes": "different"},
            {"hours": 1.75},
            {"started_time": "1:00pm"},
            {"ended_time": "2:00pm"},
        ],
    )
    async def test_every_compared_field(self, store: LocalStore, entry_factory, change: dict) -> None:
        """Test that each compared field is detected as a change."""
        reconciler = EntryReconciler(store)
        await reconciler.reconcile([entry_factory(1)])

        result = await reconciler.reconcile([entry_factory(1, **change)])

        assert result.updated == 1

    @pytest.mark.asyncio
    async def test_created_at_is_not_compared(self, store: LocalStore, entry_factory) -> None:
        """Test that a different created_at alone is not a change."""
        reconciler = EntryReconciler(store)
        await reconciler.reconcile([entry_factory(1)])

        result = await reconciler.reconcile([entry_factory(1, created_at="2025-01-01T00:00:00Z")])

        assert result.unchanged == 1

    @pytest.mark.asyncio
    async def test_change_keeps_import_status(self, store: LocalStore, entry_factory) -> None:
        """Test that updating an imported entry does not reset imported."""
        reconciler = EntryReconciler(store)
        await reconciler.reconcile([entry_factory(1)])
        await store.mark_imported("1", "555")

        result = await reconciler.reconcile([entry_factory(1, notes="edited after import")])

        row = (await store.get_entries(["1"]))["1"]
        assert result.updated == 1
        assert row.notes == "edited after import"
        assert row.imported is True
        assert row.kimai_id == "555"

    @pytest.mark.asyncio
    async def test_row_failure_does_not_abort_batch(self, store: LocalStore, entry_factory) -> None:
        """Test that one failing insert is counted and the rest are stored."""
        original_insert = store.insert_entry

        async def flaky_insert(values: dict) -> None:
            if values["harvest_id"] == "2":
                raise StorageError("disk full")
            await original_insert(values)

        entries = [entry_factory(1), entry_factory(2), entry_factory(3)]
        with patch.object(store, "insert_entry", side_effect=flaky_insert):
            result = await EntryReconciler(store).reconcile(entries)

        assert result.inserted == 2
        assert result.failed == 1
        assert result.errors == ["disk full"]
        assert result.total == len(entries)
        assert set(await store.get_entries(["1", "2", "3"])) == {"1", "3"}

    @pytest.mark.asyncio
    async def test_update_failure_counted(self, store: LocalStore, entry_factory) -> None:
        """Test that a failing update is counted without raising."""
        reconciler = EntryReconciler(store)
        await reconciler.reconcile([entry_factory(1)])

        with patch.object(store, "update_entry", side_effect=StorageError("locked")):
            result = await reconciler.reconcile([entry_factory(1, hours=9.0)])

        assert result.failed == 1
        assert result.updated == 0

    @pytest.mark.asyncio
    async def test_duplicate_ids_in_batch(self, store: LocalStore, entry_factory) -> None:
        """Test that a repeated ID within one batch is stored once."""
        result = await EntryReconciler(store).reconcile([entry_factory(1), entry_factory(1, hours=4.0)])

        assert result.inserted == 1
        assert result.total == 2
        assert (await store.get_entries(["1"]))["1"].hours == 1.5
        assert (await store.get_entries(["1"]))["1"].date == date(2025, 3, 10)
