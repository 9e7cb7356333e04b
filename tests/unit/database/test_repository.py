"""Tests for ScriptRepository."""

import sqlite3
from datetime import datetime, timedelta

import pytest

from scriptsearch.database import ScriptRecord, ScriptRepository
from scriptsearch.exceptions import InvalidIdError, StoreError, ValidationError


class TestSchema:
    """Test schema management."""

    def test_initialize_is_idempotent(self, repository, make_record):
        """Creating the schema twice keeps existing rows."""
        repository.create(make_record())
        repository.initialize_schema()
        assert repository.count() == 1

    def test_drop_schema_removes_rows(self, repository, make_record):
        """Dropping and recreating empties the store."""
        repository.create(make_record())
        repository.drop_schema()
        repository.initialize_schema()
        assert repository.count() == 0

    def test_missing_table_raises_store_error(self, db_connection):
        """Underlying sqlite errors are wrapped, with the cause kept."""
        repo = ScriptRepository(db_connection)
        with pytest.raises(StoreError) as exc_info:
            repo.count()
        assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)


class TestCreate:
    """Test record creation."""

    def test_round_trip_by_id(self, repository, make_record):
        """Lists and vectors come back exactly as written."""
        record = make_record(
            tags=["pipewire", "audio", "alsa"],
            dependencies=["b.ts", "a.ts"],
            embedding=[0.25, -0.5, 0.125],
        )
        record_id = repository.create(record)

        stored = repository.get_by_id(record_id)

        assert stored is not None
        assert stored.id == record_id
        assert stored.tags == ["pipewire", "audio", "alsa"]
        assert stored.dependencies == ["b.ts", "a.ts"]
        assert stored.embedding == [0.25, -0.5, 0.125]
        assert stored.tokens == 7
        assert stored.created_at is not None
        assert stored.updated_at is not None

    def test_round_trip_by_path(self, repository, make_record):
        """Records can be looked up by their natural key."""
        repository.create(make_record("fix-mic"))
        stored = repository.get_by_path("/opt/scripts/audio/fix-mic.ts")
        assert stored is not None
        assert stored.name == "fix-mic"

    def test_ids_are_positive_and_increasing(self, repository, make_record):
        first = repository.create(make_record("a"))
        second = repository.create(make_record("b"))
        assert 0 < first < second

    def test_empty_name_rejected_without_write(self, repository, make_record):
        """Validation happens before the store is touched."""
        with pytest.raises(ValidationError, match="name is required"):
            repository.create(make_record(name=""))
        assert repository.count() == 0

    @pytest.mark.parametrize("field", ["path", "category"])
    def test_required_fields(self, repository, make_record, field):
        with pytest.raises(ValidationError, match=f"{field} is required"):
            repository.create(make_record(**{field: "  "}))
        assert repository.count() == 0

    def test_negative_tokens_rejected(self, repository, make_record):
        with pytest.raises(ValidationError, match="tokens"):
            repository.create(make_record(tokens=-1))

    def test_duplicate_path_is_store_error(self, repository, make_record):
        repository.create(make_record())
        with pytest.raises(StoreError) as exc_info:
            repository.create(make_record())
        assert isinstance(exc_info.value.__cause__, sqlite3.IntegrityError)

    def test_unembedded_differs_from_zero_vector(self, repository, make_record):
        """None stays None; a zero vector stays a zero vector."""
        missing_id = repository.create(make_record("missing", embedding=None))
        zero_id = repository.create(make_record("zero", embedding=[0.0, 0.0, 0.0]))

        assert repository.get_by_id(missing_id).embedding is None
        assert repository.get_by_id(zero_id).embedding == [0.0, 0.0, 0.0]

    def test_dimension_mismatch_rejected(self, repository, make_record):
        """All vectors in one store share a length."""
        repository.create(make_record("three", embedding=[1.0, 0.0, 0.0]))
        with pytest.raises(ValidationError, match="dimension"):
            repository.create(make_record("two", embedding=[1.0, 0.0]))
        assert repository.count() == 1

    def test_missing_record_is_none(self, repository):
        assert repository.get_by_id(999) is None
        assert repository.get_by_path("/nowhere.ts") is None


class TestUpsert:
    """Test insert-or-replace keyed by path."""

    def test_upsert_inserts_then_replaces(self, repository, make_record):
        """A second upsert for the same path updates the existing row."""
        first_id = repository.upsert(make_record(description="old", tokens=3))
        second_id = repository.upsert(make_record(description="new", tokens=9))

        assert first_id == second_id
        assert repository.count() == 1
        stored = repository.get_by_id(first_id)
        assert stored.description == "new"
        assert stored.tokens == 9

    def test_upsert_keeps_created_at(self, repository, make_record):
        record_id = repository.upsert(make_record())
        created = repository.get_by_id(record_id).created_at
        repository.upsert(make_record(description="changed"))
        assert repository.get_by_id(record_id).created_at == created

    def test_upsert_refreshes_updated_at(self, repository, make_record):
        """Back-to-back upserts of one path each move updated_at forward."""
        record_id = repository.upsert(make_record())
        first = repository.get_by_id(record_id)
        repository.upsert(make_record())
        second = repository.get_by_id(record_id)
        repository.upsert(make_record())
        third = repository.get_by_id(record_id)

        assert first.updated_at < second.updated_at < third.updated_at
        assert third.created_at == first.created_at

    def test_timestamps_are_iso_utc(self, repository, make_record):
        stored = repository.get_by_id(repository.create(make_record()))
        created = datetime.fromisoformat(stored.created_at)
        assert created.tzinfo is not None
        assert created.utcoffset() == timedelta(0)
        assert stored.updated_at == stored.created_at

    def test_upsert_writes_with_one_statement(
        self, repository, db_connection, make_record
    ):
        """Only the dimension check reads before the single write."""
        repository.upsert(make_record())
        statements: list[str] = []
        with db_connection.get_connection() as conn:
            conn.set_trace_callback(statements.append)
            try:
                repository.upsert(make_record(description="changed"))
            finally:
                conn.set_trace_callback(None)

        verbs = [s.split()[0].upper() for s in statements if s.strip()]
        writes = [v for v in verbs if v in ("INSERT", "UPDATE", "DELETE")]
        assert writes == ["INSERT"]
        assert set(verbs) <= {"SELECT", "INSERT", "BEGIN", "COMMIT"}

    def test_upsert_may_change_own_dimension(self, repository, make_record):
        """Replacing the only vector is not a mismatch."""
        record_id = repository.upsert(make_record(embedding=[1.0, 0.0, 0.0]))
        repository.upsert(make_record(embedding=[1.0, 0.0]))
        assert repository.get_by_id(record_id).embedding == [1.0, 0.0]

    def test_upsert_validates(self, repository, make_record):
        with pytest.raises(ValidationError, match="name is required"):
            repository.upsert(make_record(name=""))


class TestUpdateAndDelete:
    """Test update and delete by id."""

    def test_update_fields(self, repository, make_record):
        record_id = repository.create(make_record())
        repository.update(record_id, description="Updated", tags=["video"])

        stored = repository.get_by_id(record_id)
        assert stored.description == "Updated"
        assert stored.tags == ["video"]
        assert stored.category == "audio"

    def test_update_refreshes_updated_at(self, repository, make_record):
        record_id = repository.create(make_record())
        before = repository.get_by_id(record_id).updated_at
        repository.update(record_id, description="Updated")
        assert repository.get_by_id(record_id).updated_at > before

    def test_update_embedding_to_none(self, repository, make_record):
        record_id = repository.create(make_record())
        repository.update(record_id, embedding=None)
        assert repository.get_by_id(record_id).embedding is None

    def test_update_without_fields_is_noop(self, repository, make_record):
        record_id = repository.create(make_record())
        repository.update(record_id)
        assert repository.get_by_id(record_id).description == "Description of fix-audio"

    @pytest.mark.parametrize("bad_id", [0, -1, -100])
    def test_update_invalid_id(self, repository, bad_id):
        with pytest.raises(InvalidIdError, match="must be positive"):
            repository.update(bad_id, name="x")

    def test_update_unknown_field(self, repository, make_record):
        record_id = repository.create(make_record())
        with pytest.raises(ValidationError, match="Cannot update"):
            repository.update(record_id, path="/elsewhere.ts")

    def test_update_rejects_blank_name(self, repository, make_record):
        record_id = repository.create(make_record())
        with pytest.raises(ValidationError, match="name is required"):
            repository.update(record_id, name="")

    def test_update_rejects_other_dimension(self, repository, make_record):
        repository.create(make_record("a"))
        other = repository.create(make_record("b"))
        with pytest.raises(ValidationError, match="dimension"):
            repository.update(other, embedding=[1.0])

    def test_delete(self, repository, make_record):
        record_id = repository.create(make_record())
        repository.delete(record_id)
        assert repository.get_by_id(record_id) is None
        assert repository.count() == 0

    @pytest.mark.parametrize("bad_id", [0, -3])
    def test_delete_invalid_id(self, repository, bad_id):
        with pytest.raises(InvalidIdError):
            repository.delete(bad_id)


class TestListing:
    """Test filtered and paginated listing."""

    @pytest.fixture
    def populated(self, repository, make_record) -> ScriptRepository:
        categories = ["audio", "system", "audio", "dev", "system"]
        for index, category in enumerate(categories):
            repository.create(
                make_record(
                    f"script-{index}",
                    path=f"/opt/scripts/{category}/script-{index}.ts",
                    category=category,
                )
            )
        return repository

    def test_default_order_is_insertion(self, populated):
        names = [r.name for r in populated.list()]
        assert names == [f"script-{i}" for i in range(5)]

    def test_pagination(self, populated):
        first = populated.list(limit=2, offset=0)
        second = populated.list(limit=2, offset=2)
        third = populated.list(limit=2, offset=4)
        assert [r.name for r in first] == ["script-0", "script-1"]
        assert [r.name for r in second] == ["script-2", "script-3"]
        assert [r.name for r in third] == ["script-4"]

    def test_unbounded_listing(self, populated):
        assert len(populated.list(limit=None)) == 5

    def test_category_filter(self, populated):
        audio = populated.list(category="audio")
        assert [r.name for r in audio] == ["script-0", "script-2"]
        assert populated.list(category="missing") == []

    def test_count(self, populated):
        assert populated.count() == 5
        assert populated.count(category="system") == 2
        assert populated.count(category="missing") == 0

    def test_list_categories_sorted_distinct(self, populated):
        assert populated.list_categories() == ["audio", "dev", "system"]

    @pytest.mark.parametrize("limit", [0, -1])
    def test_invalid_limit(self, populated, limit):
        with pytest.raises(ValidationError, match="limit"):
            populated.list(limit=limit)

    def test_invalid_offset(self, populated):
        with pytest.raises(ValidationError, match="offset"):
            populated.list(offset=-1)


class TestStats:
    """Test aggregate statistics."""

    def test_empty_store(self, repository):
        stats = repository.stats()
        assert stats.total_scripts == 0
        assert stats.total_categories == 0
        assert stats.avg_tokens == 0.0
        assert stats.categories == {}

    def test_aggregates(self, repository, make_record):
        repository.create(make_record("a", tokens=10))
        repository.create(
            make_record("b", path="/s/system/b.ts", category="system", tokens=20)
        )
        repository.create(make_record("c", tokens=None))

        stats = repository.stats()

        assert stats.total_scripts == 3
        assert stats.total_categories == 2
        assert stats.avg_tokens == pytest.approx(15.0)
        assert stats.total_tokens == 30
        assert stats.categories == {"audio": 2, "system": 1}


class TestCorruptRows:
    """Test decoding failures surface as store errors."""

    def test_non_array_tags(self, repository, db_connection):
        db_connection.execute(
            "INSERT INTO scripts (name, path, category, tags) VALUES (?, ?, ?, ?)",
            ("bad", "/bad.ts", "other", '{"not": "a list"}'),
        )
        with pytest.raises(StoreError, match="does not hold an array"):
            repository.get_by_path("/bad.ts")

    def test_invalid_json_embedding(self, repository, db_connection):
        db_connection.execute(
            "INSERT INTO scripts (name, path, category, embedding) "
            "VALUES (?, ?, ?, ?)",
            ("bad", "/bad.ts", "other", "[1.0, 2.0"),
        )
        with pytest.raises(StoreError, match="Corrupt value"):
            repository.get_by_path("/bad.ts")


def test_record_defaults():
    """A bare record has empty lists and no vector."""
    record = ScriptRecord(name="x", path="/x.sh", category="other")
    assert record.tags == []
    assert record.dependencies == []
    assert record.embedding is None
    assert record.has_embedding is False


@pytest.mark.parametrize(
    ("embedding", "expected"),
    [(None, False), ([], False), ([0.0, 0.0], True), ([0.5], True)],
)
def test_has_embedding(embedding, expected):
    """A zero vector still counts as embedded; an empty one does not."""
    record = ScriptRecord(name="x", path="/x.sh", category="other", embedding=embedding)
    assert record.has_embedding is expected
