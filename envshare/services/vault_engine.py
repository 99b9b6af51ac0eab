import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from envshare.errors import InvalidRequest, SecretExpired, StorageError
from envshare.services.access_token import decode_access_token, encode_access_token
from envshare.services.cipher import CipherCodec, decode_bytes, encode_bytes
from envshare.services.secret_record import SecretRecord
from envshare.services.vault_store import VaultStore

logger = structlog.get_logger()


def epoch_now() -> int:
    return int(time.time())


@dataclass(frozen=True, slots=True)
class CreatedSecret:
    token: str
    secret_id: uuid.UUID
    reads_left: int
    expires_at: int

    def __repr__(self) -> str:
        return f"CreatedSecret(secret_id={self.secret_id}, expires_at={self.expires_at})"


@dataclass(frozen=True, slots=True)
class RevealedSecret:
    secret_id: uuid.UUID
    content: str
    reads_left: int
    expires_at: int

    def __repr__(self) -> str:
        return f"RevealedSecret(secret_id={self.secret_id}, reads_left={self.reads_left})"


class VaultEngine:
    """
    Creates and reveals secrets.

    The engine holds no per-secret state. The cipher key exists only in
    local variables of create() and reveal() and in the access token handed
    back to the caller.
    """

    def __init__(
        self,
        store: VaultStore,
        cipher: CipherCodec | None = None,
        clock: Callable[[], int] | None = None,
        max_reads_limit: int | None = None,
        max_ttl_seconds: int | None = None,
        max_content_bytes: int | None = None,
    ) -> None:
        self._store = store
        self._cipher = cipher or CipherCodec()
        self._clock = clock or epoch_now
        self._max_reads_limit = max_reads_limit
        self._max_ttl_seconds = max_ttl_seconds
        self._max_content_bytes = max_content_bytes

    def _validate(self, plaintext: str, max_reads: int, ttl_seconds: int) -> None:
        if max_reads < 1:
            raise InvalidRequest("max_reads must be at least 1")
        if ttl_seconds < 1:
            raise InvalidRequest("ttl must be at least 1 second")
        if self._max_reads_limit is not None and max_reads > self._max_reads_limit:
            raise InvalidRequest(f"max_reads cannot exceed {self._max_reads_limit}")
        if self._max_ttl_seconds is not None and ttl_seconds > self._max_ttl_seconds:
            raise InvalidRequest(f"ttl cannot exceed {self._max_ttl_seconds} seconds")
        if not plaintext:
            raise InvalidRequest("content cannot be empty")
        try:
            size = len(plaintext.encode("utf-8"))
        except UnicodeEncodeError as e:
            raise InvalidRequest("content is not valid UTF-8 text") from e
        if self._max_content_bytes is not None and size > self._max_content_bytes:
            raise InvalidRequest(f"content exceeds {self._max_content_bytes} bytes")

    def create(self, plaintext: str, max_reads: int, ttl_seconds: int) -> CreatedSecret:
        """Encrypt plaintext, store the ciphertext, and mint the access token."""
        self._validate(plaintext, max_reads, ttl_seconds)

        sealed = self._cipher.seal(plaintext)
        record = SecretRecord.fresh(
            ciphertext=encode_bytes(sealed.ciphertext),
            nonce=encode_bytes(sealed.nonce),
            max_reads=max_reads,
            ttl_seconds=ttl_seconds,
            now=self._clock(),
        )
        self._store.insert(record)

        logger.info(
            "secret_created",
            secret_id=str(record.id),
            reads_left=record.reads_left,
            expires_at=record.expires_at,
        )

        return CreatedSecret(
            token=encode_access_token(sealed.key, record.id),
            secret_id=record.id,
            reads_left=record.reads_left,
            expires_at=record.expires_at,
        )

    def reveal(self, token: str) -> RevealedSecret:
        """
        Spend one read of the secret behind token and return its plaintext.

        The read is spent before decryption, so a token with a valid id but
        a wrong key still uses up a read.
        """
        key, secret_id = decode_access_token(token)
        now = self._clock()

        try:
            record = self._store.consume(secret_id, now)
        except SecretExpired:
            self._discard(secret_id)
            raise

        if record.reads_left == 0:
            logger.info("secret_exhausted", secret_id=str(secret_id))

        content = self._cipher.open(
            key, decode_bytes(record.nonce), decode_bytes(record.ciphertext)
        )

        logger.info("secret_revealed", secret_id=str(secret_id), reads_left=record.reads_left)

        return RevealedSecret(
            secret_id=record.id,
            content=content,
            reads_left=record.reads_left,
            expires_at=record.expires_at,
        )

    def _discard(self, secret_id: uuid.UUID) -> None:
        """Best-effort removal of a dead record ahead of the sweep."""
        try:
            self._store.delete(secret_id)
        except StorageError:
            logger.warning("expired_secret_delete_failed", secret_id=str(secret_id))

    def sweep(self) -> int:
        """Delete every time-expired record."""
        deleted = self._store.delete_all_expired(self._clock())
        logger.info("expired_secrets_swept", count=deleted)
        return deleted
