from fastapi import Depends, Header
from sqlalchemy.orm import Session

from envshare.config import settings
from envshare.database import get_db
from envshare.models.api_key import ApiKey
from envshare.services.api_key_service import authorize
from envshare.services.vault_engine import VaultEngine
from envshare.services.vault_store import SqlAlchemyVaultStore


def require_api_key(
    authorization: str | None = Header(None),
    db: Session = Depends(get_db),
) -> ApiKey:
    """Authorization guard; the engine is never reached when this raises."""
    return authorize(db, authorization)


def get_vault_engine(db: Session = Depends(get_db)) -> VaultEngine:
    return VaultEngine(
        SqlAlchemyVaultStore(db),
        max_reads_limit=settings.max_reads_limit,
        max_ttl_seconds=settings.max_ttl_seconds,
        max_content_bytes=settings.max_content_bytes,
    )
