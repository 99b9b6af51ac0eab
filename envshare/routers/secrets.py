from fastapi import APIRouter, Depends, Request

from envshare.config import settings
from envshare.dependencies import get_vault_engine, require_api_key
from envshare.middleware.rate_limit import limiter
from envshare.schemas.secret import (
    ErrorResponse,
    SecretCreate,
    SecretCreateResponse,
    SecretRevealResponse,
)
from envshare.services.vault_engine import VaultEngine

router = APIRouter(dependencies=[Depends(require_api_key)])

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.post(
    "/secret",
    response_model=SecretCreateResponse,
    status_code=201,
    responses=_ERRORS,
)
@limiter.limit(settings.rate_limit_creates)
async def create_secret(
    request: Request,
    secret_data: SecretCreate,
    engine: VaultEngine = Depends(get_vault_engine),
):
    """
    Encrypt and store a new secret.

    The returned token is the only way to read the secret back; the server
    keeps no copy of the key it carries.
    """
    created = engine.create(
        plaintext=secret_data.content,
        max_reads=secret_data.max_reads,
        ttl_seconds=secret_data.ttl,
    )

    return SecretCreateResponse(
        token=created.token,
        reads_left=created.reads_left,
        expires_at=created.expires_at,
    )


@router.get("/secret/{token}", response_model=SecretRevealResponse, responses=_ERRORS)
@limiter.limit(settings.rate_limit_reveals)
async def reveal_secret(
    request: Request,
    token: str,
    engine: VaultEngine = Depends(get_vault_engine),
):
    """
    Reveal a secret and spend one of its reads.

    The secret is deleted once its last read is spent or it expires.
    """
    revealed = engine.reveal(token)

    return SecretRevealResponse(
        id=revealed.secret_id,
        content=revealed.content,
        reads_left=revealed.reads_left,
        expires_at=revealed.expires_at,
    )
