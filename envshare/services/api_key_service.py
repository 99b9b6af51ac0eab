import secrets

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from envshare.errors import AuthBackendError, InvalidCredential, MissingCredential
from envshare.models.api_key import ApiKey

logger = structlog.get_logger()

BEARER_PREFIX = "Bearer "


def authorize(db: Session, authorization: str | None) -> ApiKey:
    """
    Check an Authorization header against the api_keys table.

    The key itself is never logged.
    """
    if authorization is None:
        raise MissingCredential("Authorization header is missing")
    if not authorization.startswith(BEARER_PREFIX):
        raise InvalidCredential("Invalid authorization header format")

    key = authorization[len(BEARER_PREFIX) :]
    if not key:
        raise InvalidCredential("Empty API key")

    try:
        api_key = db.execute(select(ApiKey).where(ApiKey.key == key)).scalar_one_or_none()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("api_key_lookup_failed", error_type=type(e).__name__)
        raise AuthBackendError("API key lookup failed") from e

    if api_key is None:
        raise InvalidCredential("Unknown API key")
    return api_key


def issue_api_key(db: Session) -> str:
    """Create and store a new random API key. Returns the raw key."""
    raw_key = secrets.token_urlsafe(32)
    db.add(ApiKey(key=raw_key))
    db.commit()
    logger.info("api_key_issued")
    return raw_key
