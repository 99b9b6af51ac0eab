"""
Persistence boundary for secret records.

consume() is the only path the engine uses to spend a read: it is one
conditional write ("decrement where reads_left > 0 and expires_at > now"),
so concurrent reveals of the same token can never spend more reads than
the record holds.
"""

import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import replace

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from envshare.errors import NotFound, SecretExpired, StorageError
from envshare.models.secret import Secret
from envshare.services.secret_record import SecretRecord

logger = structlog.get_logger()


class VaultStore(ABC):
    @abstractmethod
    def insert(self, record: SecretRecord) -> None:
        """Persist a new record, all or nothing."""

    @abstractmethod
    def fetch(self, secret_id: uuid.UUID) -> SecretRecord:
        """Return the record or raise NotFound."""

    @abstractmethod
    def update_reads_left(self, secret_id: uuid.UUID, reads_left: int) -> None:
        """Overwrite the counter; a missing id is a StorageError."""

    @abstractmethod
    def delete(self, secret_id: uuid.UUID) -> None:
        """Remove the record. Deleting a missing id is not an error."""

    @abstractmethod
    def delete_all_expired(self, now: int) -> int:
        """Delete every record with expires_at <= now and return how many went."""

    @abstractmethod
    def consume(self, secret_id: uuid.UUID, now: int) -> SecretRecord:
        """
        Atomically spend one read.

        Returns the record after the decrement. A record whose counter hits
        zero is deleted in the same operation. Raises NotFound when no record
        exists and SecretExpired when it exists but cannot be read.
        """


class SqlAlchemyVaultStore(VaultStore):
    """VaultStore over the secrets table, one session per request."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def _fail(self, operation: str, secret_id: uuid.UUID | None, error: SQLAlchemyError):
        self._db.rollback()
        logger.error(
            "vault_storage_error",
            operation=operation,
            secret_id=str(secret_id) if secret_id else None,
            error_type=type(error).__name__,
        )
        return StorageError(f"Storage failure during {operation}")

    def _write(self, statement):
        # Rows are read back through column selects, never through the identity map
        return self._db.execute(statement, execution_options={"synchronize_session": False})

    def _select_record(self, secret_id: uuid.UUID) -> SecretRecord | None:
        row = self._db.execute(
            select(
                Secret.id,
                Secret.ciphertext,
                Secret.nonce,
                Secret.reads_left,
                Secret.expires_at,
            ).where(Secret.id == str(secret_id))
        ).one_or_none()
        if row is None:
            return None
        return SecretRecord(
            id=uuid.UUID(row.id),
            ciphertext=row.ciphertext,
            nonce=row.nonce,
            reads_left=row.reads_left,
            expires_at=row.expires_at,
        )

    def insert(self, record: SecretRecord) -> None:
        try:
            self._db.add(
                Secret(
                    id=str(record.id),
                    ciphertext=record.ciphertext,
                    nonce=record.nonce,
                    reads_left=record.reads_left,
                    expires_at=record.expires_at,
                )
            )
            self._db.commit()
        except SQLAlchemyError as e:
            raise self._fail("insert", record.id, e) from e

    def fetch(self, secret_id: uuid.UUID) -> SecretRecord:
        try:
            record = self._select_record(secret_id)
            self._db.commit()
        except SQLAlchemyError as e:
            raise self._fail("fetch", secret_id, e) from e

        if record is None:
            raise NotFound(f"Secret {secret_id} not found")
        return record

    def update_reads_left(self, secret_id: uuid.UUID, reads_left: int) -> None:
        try:
            result = self._write(
                update(Secret).where(Secret.id == str(secret_id)).values(reads_left=reads_left)
            )
            if result.rowcount == 0:
                self._db.rollback()
                raise StorageError(f"Cannot update reads_left of missing secret {secret_id}")
            self._db.commit()
        except SQLAlchemyError as e:
            raise self._fail("update_reads_left", secret_id, e) from e

    def delete(self, secret_id: uuid.UUID) -> None:
        try:
            self._write(delete(Secret).where(Secret.id == str(secret_id)))
            self._db.commit()
        except SQLAlchemyError as e:
            raise self._fail("delete", secret_id, e) from e

    def delete_all_expired(self, now: int) -> int:
        try:
            result = self._write(delete(Secret).where(Secret.expires_at <= now))
            self._db.commit()
        except SQLAlchemyError as e:
            raise self._fail("delete_all_expired", None, e) from e
        return result.rowcount

    def consume(self, secret_id: uuid.UUID, now: int) -> SecretRecord:
        try:
            result = self._write(
                update(Secret)
                .where(
                    Secret.id == str(secret_id),
                    Secret.reads_left > 0,
                    Secret.expires_at > now,
                )
                .values(reads_left=Secret.reads_left - 1)
            )

            if result.rowcount == 0:
                # Nothing spent; work out why for the caller
                dead = self._select_record(secret_id)
                self._db.rollback()
                if dead is None:
                    raise NotFound(f"Secret {secret_id} not found")
                raise SecretExpired(f"Secret {secret_id} is {dead.state(now).value}")

            record = self._select_record(secret_id)
            if record.reads_left == 0:
                self._write(delete(Secret).where(Secret.id == str(secret_id)))
            self._db.commit()
        except SQLAlchemyError as e:
            raise self._fail("consume", secret_id, e) from e

        return record


class InMemoryVaultStore(VaultStore):
    """Dict-backed VaultStore guarded by a single lock."""

    def __init__(self) -> None:
        self._records: dict[uuid.UUID, SecretRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def insert(self, record: SecretRecord) -> None:
        with self._lock:
            if record.id in self._records:
                raise StorageError(f"Secret {record.id} already exists")
            self._records[record.id] = replace(record)

    def fetch(self, secret_id: uuid.UUID) -> SecretRecord:
        with self._lock:
            record = self._records.get(secret_id)
            if record is None:
                raise NotFound(f"Secret {secret_id} not found")
            return replace(record)

    def update_reads_left(self, secret_id: uuid.UUID, reads_left: int) -> None:
        with self._lock:
            record = self._records.get(secret_id)
            if record is None:
                raise StorageError(f"Cannot update reads_left of missing secret {secret_id}")
            record.reads_left = reads_left

    def delete(self, secret_id: uuid.UUID) -> None:
        with self._lock:
            self._records.pop(secret_id, None)

    def delete_all_expired(self, now: int) -> int:
        with self._lock:
            expired = [sid for sid, r in self._records.items() if r.expires_at <= now]
            for sid in expired:
                del self._records[sid]
            return len(expired)

    def consume(self, secret_id: uuid.UUID, now: int) -> SecretRecord:
        with self._lock:
            record = self._records.get(secret_id)
            if record is None:
                raise NotFound(f"Secret {secret_id} not found")
            record.consume(now)
            if record.reads_left == 0:
                del self._records[secret_id]
            return replace(record)
