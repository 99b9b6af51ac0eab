from fastapi import APIRouter, Depends

from envshare.dependencies import get_vault_engine
from envshare.schemas.secret import HealthcheckResponse
from envshare.services.vault_engine import VaultEngine

router = APIRouter()


@router.get("/_healthcheck", response_model=HealthcheckResponse)
async def healthcheck(engine: VaultEngine = Depends(get_vault_engine)):
    """
    Health check that also sweeps expired secrets.

    A storage failure during the sweep surfaces as a 500.
    """
    swept = engine.sweep()
    return HealthcheckResponse(status="healthy", swept=swept)
