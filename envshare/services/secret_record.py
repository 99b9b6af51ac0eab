import uuid
from dataclasses import dataclass, field
from enum import Enum

from envshare.errors import SecretExpired


class SecretState(str, Enum):
    READABLE = "readable"
    EXHAUSTED = "exhausted"
    EXPIRED = "expired"


@dataclass(slots=True)
class SecretRecord:
    """
    Stored form of one secret plus its expiry state machine.

    Only reads_left changes after creation. A record whose counter reaches
    zero must be removed from the store.
    """

    ciphertext: str
    nonce: str
    reads_left: int
    expires_at: int
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @classmethod
    def fresh(
        cls,
        ciphertext: str,
        nonce: str,
        max_reads: int,
        ttl_seconds: int,
        now: int,
    ) -> "SecretRecord":
        return cls(
            ciphertext=ciphertext,
            nonce=nonce,
            reads_left=max_reads,
            expires_at=now + ttl_seconds,
        )

    def state(self, now: int) -> SecretState:
        if self.reads_left == 0:
            return SecretState.EXHAUSTED
        if now >= self.expires_at:
            return SecretState.EXPIRED
        return SecretState.READABLE

    def is_expired(self, now: int) -> bool:
        return now >= self.expires_at or self.reads_left == 0

    def consume(self, now: int) -> None:
        """Spend one read, or raise SecretExpired without touching the record."""
        if self.is_expired(now):
            raise SecretExpired(f"Secret {self.id} is {self.state(now).value}")
        self.reads_left -= 1
