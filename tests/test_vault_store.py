"""Tests for VaultStore implementations (SQLAlchemy and in-memory)."""

import uuid
from unittest.mock import patch

import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import OperationalError

from envshare.errors import NotFound, SecretExpired, StorageError
from envshare.models.secret import Secret
from envshare.services.secret_record import SecretRecord
from envshare.services.vault_store import InMemoryVaultStore, SqlAlchemyVaultStore

NOW = 1_700_000_000


@pytest.fixture(params=["sql", "memory"])
def store(request, db_session):
    if request.param == "sql":
        return SqlAlchemyVaultStore(db_session)
    return InMemoryVaultStore()


def make_record(max_reads: int = 2, ttl_seconds: int = 60, now: int = NOW) -> SecretRecord:
    return SecretRecord.fresh(
        ciphertext="Y2lwaGVydGV4dA==",
        nonce="AAAAAAAAAAAAAAAA",
        max_reads=max_reads,
        ttl_seconds=ttl_seconds,
        now=now,
    )


class TestInsertFetch:
    def test_fetch_returns_inserted_record(self, store):
        record = make_record()
        store.insert(record)

        fetched = store.fetch(record.id)
        assert fetched == record

    def test_fetch_missing_raises_not_found(self, store):
        with pytest.raises(NotFound):
            store.fetch(uuid.uuid4())

    def test_duplicate_insert_raises_storage_error(self, store):
        record = make_record()
        store.insert(record)

        with pytest.raises(StorageError):
            store.insert(record)

        # The original row is untouched
        assert store.fetch(record.id).reads_left == record.reads_left


class TestUpdateDelete:
    def test_update_reads_left(self, store):
        record = make_record(max_reads=5)
        store.insert(record)

        store.update_reads_left(record.id, 3)
        assert store.fetch(record.id).reads_left == 3

    def test_update_missing_raises_storage_error(self, store):
        with pytest.raises(StorageError):
            store.update_reads_left(uuid.uuid4(), 1)

    def test_delete_is_idempotent(self, store):
        record = make_record()
        store.insert(record)

        store.delete(record.id)
        store.delete(record.id)
        store.delete(uuid.uuid4())

        with pytest.raises(NotFound):
            store.fetch(record.id)


class TestConsume:
    def test_consume_decrements(self, store):
        record = make_record(max_reads=3)
        store.insert(record)

        consumed = store.consume(record.id, NOW)
        assert consumed.reads_left == 2
        assert store.fetch(record.id).reads_left == 2

    def test_consume_last_read_deletes(self, store):
        record = make_record(max_reads=1)
        store.insert(record)

        consumed = store.consume(record.id, NOW)
        assert consumed.reads_left == 0
        assert consumed.ciphertext == record.ciphertext

        with pytest.raises(NotFound):
            store.fetch(record.id)

    def test_consume_missing_raises_not_found(self, store):
        with pytest.raises(NotFound):
            store.consume(uuid.uuid4(), NOW)

    def test_consume_time_expired_raises_and_does_not_mutate(self, store):
        record = make_record(max_reads=3, ttl_seconds=10)
        store.insert(record)

        with pytest.raises(SecretExpired):
            store.consume(record.id, NOW + 10)

        assert store.fetch(record.id).reads_left == 3

    def test_consume_zero_reads_raises_secret_expired(self, store):
        record = make_record(max_reads=3)
        store.insert(record)
        store.update_reads_left(record.id, 0)

        with pytest.raises(SecretExpired):
            store.consume(record.id, NOW)


class TestDeleteAllExpired:
    def test_sweep_removes_only_expired(self, store):
        expired = make_record(ttl_seconds=10)
        boundary = make_record(ttl_seconds=60)
        alive = make_record(ttl_seconds=61)
        for record in (expired, boundary, alive):
            store.insert(record)

        deleted = store.delete_all_expired(NOW + 60)

        assert deleted == 2
        with pytest.raises(NotFound):
            store.fetch(expired.id)
        with pytest.raises(NotFound):
            store.fetch(boundary.id)
        assert store.fetch(alive.id) == alive

    def test_sweep_ignores_reads_left(self, store):
        record = make_record(max_reads=100, ttl_seconds=5)
        store.insert(record)

        assert store.delete_all_expired(NOW + 5) == 1

    def test_sweep_on_empty_store(self, store):
        assert store.delete_all_expired(NOW) == 0


class TestSqlAlchemyStore:
    def test_row_holds_no_key_material(self, db_session):
        store = SqlAlchemyVaultStore(db_session)
        record = make_record()
        store.insert(record)

        row = db_session.execute(select(Secret).where(Secret.id == str(record.id))).scalar_one()
        assert set(Secret.__table__.columns.keys()) == {
            "id",
            "ciphertext",
            "nonce",
            "reads_left",
            "expires_at",
            "created_at",
        }
        assert row.expires_at == NOW + 60

    def test_database_failure_becomes_storage_error(self, db_session):
        store = SqlAlchemyVaultStore(db_session)

        with patch.object(
            db_session,
            "execute",
            side_effect=OperationalError("DELETE", {}, Exception("disk I/O error")),
        ):
            with pytest.raises(StorageError) as exc_info:
                store.delete_all_expired(NOW)

        assert "disk I/O error" not in str(exc_info.value)

    def test_storage_failure_keeps_ciphertext_out_of_logs(self, db_session):
        store = SqlAlchemyVaultStore(db_session)
        db_session.execute(text("DROP TABLE secrets"))
        db_session.commit()

        with patch("envshare.services.vault_store.logger") as mock_logger:
            with pytest.raises(StorageError):
                store.insert(make_record())

        logged = repr(mock_logger.mock_calls)
        assert "vault_storage_error" in logged
        assert "OperationalError" in logged
        assert "Y2lwaGVydGV4dA==" not in logged
