"""Unit tests for SnapshotReader."""
from meetup.errors import StoreError
from meetup.schemas import RegistrationSubmission
from meetup.snapshot import SnapshotReader, to_entry
from meetup.store import RegistrationStore


class BrokenStore:
    """Store stand-in whose reads always fail."""

    def __init__(self, error):
        self.error = error

    def list_all(self):
        raise self.error

    def list_speakers(self):
        raise self.error


class TestToEntry:
    """Test row conversion."""

    def test_full_row(self):
        row = {
            "id": 1, "timestamp": "2024-10-22 18:00:00", "name": "Ana", "email": "a@x.com",
            "is_speaker": 1, "topic": "Parsers", "profile_pic": None,
        }
        assert to_entry(row) == {**row, "is_speaker": True}

    def test_legacy_row_omits_optional_fields(self):
        row = {"id": 1, "timestamp": "2024-10-22 18:00:00", "name": "Ana", "email": "a@x.com"}
        assert to_entry(row) == row

    def test_null_is_speaker_reads_as_false(self):
        row = {"id": 1, "timestamp": "t", "name": "Ana", "email": "a@x.com", "is_speaker": None}
        assert to_entry(row)["is_speaker"] is False

    def test_unreadable_is_speaker_is_dropped(self):
        row = {"id": 1, "timestamp": "t", "name": "Ana", "email": "a@x.com", "is_speaker": "maybe", "topic": "x"}
        entry = to_entry(row)
        assert "is_speaker" not in entry
        assert entry["topic"] == "x"


class TestSnapshot:
    """Test snapshot and speakers."""

    def test_snapshot_lists_registrations(self, store):
        store.insert(RegistrationSubmission(name="Ana", email="a@x.com"))
        store.insert(RegistrationSubmission(name="Sam", email="s@x.com", is_speaker=True, topic="Parsers"))

        snapshot = SnapshotReader(store).snapshot()

        assert list(snapshot) == ["registrations"]
        assert [r["name"] for r in snapshot["registrations"]] == ["Sam", "Ana"]
        assert snapshot["registrations"][0]["is_speaker"] is True

    def test_snapshot_on_legacy_schema(self, legacy_engine):
        """Test a pre-speaker table still produces a snapshot."""
        snapshot = SnapshotReader(RegistrationStore(legacy_engine)).snapshot()

        assert [r["name"] for r in snapshot["registrations"]] == ["Early Bird"]
        assert "is_speaker" not in snapshot["registrations"][0]

    def test_snapshot_never_raises_on_store_error(self):
        reader = SnapshotReader(BrokenStore(StoreError("database is down")))
        assert reader.snapshot() == {"registrations": []}
        assert reader.speakers() == []

    def test_snapshot_never_raises_on_unexpected_error(self):
        reader = SnapshotReader(BrokenStore(RuntimeError("boom")))
        assert reader.snapshot() == {"registrations": []}

    def test_snapshot_without_table_is_empty(self, engine):
        assert SnapshotReader(RegistrationStore(engine)).snapshot() == {"registrations": []}

    def test_speakers(self, store):
        store.insert(RegistrationSubmission(name="Ana", email="a@x.com"))
        store.insert(RegistrationSubmission(name="Sam", email="s@x.com", is_speaker=True, topic="Parsers"))

        speakers = SnapshotReader(store).speakers()

        assert [s["name"] for s in speakers] == ["Sam"]
        assert speakers[0]["topic"] == "Parsers"
