"""Tests for the state store and snapshot ledger."""

from phaseline.orchestration.state import SnapshotLedger, StateStore


class TestStateStore:
    """Tests for StateStore."""

    def test_empty_by_default(self):
        store = StateStore()

        assert store.snapshot() == {}
        assert store.version == 0

    def test_snapshot_is_deep_copy(self):
        """Test mutating a snapshot never touches the store."""
        store = StateStore({"items": [1]})

        snap = store.snapshot()
        snap["items"].append(2)

        assert store.snapshot() == {"items": [1]}

    def test_commit_bumps_version(self):
        store = StateStore()

        assert store.commit({"a": 1}) == 1
        assert store.commit({"a": 2}) == 2
        assert store.snapshot() == {"a": 2}

    def test_restore(self):
        """Test restore replaces data and keeps versions moving forward."""
        store = StateStore({"a": 1})
        store.commit({"a": 2})

        store.restore({"a": 1})

        assert store.snapshot() == {"a": 1}
        assert store.version == 2

    def test_restore_with_explicit_version(self):
        store = StateStore()

        store.restore({"a": 1}, version=7)

        assert store.version == 7


class TestSnapshotLedger:
    """Tests for SnapshotLedger."""

    def test_record_and_get(self):
        ledger = SnapshotLedger()
        ledger.record(0, {"a": 1})

        assert ledger.get(0) == {"a": 1}
        assert ledger.get(1) is None
        assert 0 in ledger
        assert len(ledger) == 1

    def test_entries_are_isolated(self):
        """Test neither the recorded source nor returned copies alias the entry."""
        ledger = SnapshotLedger()
        source = {"items": [1]}
        ledger.record(0, source)
        source["items"].append(2)
        ledger.get(0)["items"].append(3)

        assert ledger.get(0) == {"items": [1]}

    def test_truncate(self):
        ledger = SnapshotLedger()
        for i in range(4):
            ledger.record(i, {"i": i})

        ledger.truncate(2)

        assert ledger.to_dict() == {0: {"i": 0}, 1: {"i": 1}}

    def test_items_sorted(self):
        ledger = SnapshotLedger()
        ledger.record(2, {})
        ledger.record(0, {})

        assert [i for i, _ in ledger.items()] == [0, 2]

    def test_clear(self):
        ledger = SnapshotLedger()
        ledger.record(0, {})

        ledger.clear()

        assert len(ledger) == 0
