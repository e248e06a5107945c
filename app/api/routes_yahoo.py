# app/api/routes_yahoo.py
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from app.core.errors import AuthExpired, CredentialExchangeError, YahooApiError
from app.deps import get_yahoo_client
from app.services.yahoo.client import YahooApiClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/yahoo", tags=["yahoo"])


@router.get("/validate")
async def validate_credentials(client: YahooApiClient = Depends(get_yahoo_client)) -> Dict[str, Any]:
    """
    Checks the configured credential by running league discovery.
    401 when Yahoo refuses it, 502 when Yahoo cannot be reached.
    """
    try:
        return await client.validate()
    except CredentialExchangeError as e:
        logger.warning("[YAHOO] Credential validation failed: %s", e)
        raise HTTPException(status_code=401, detail="Yahoo credential is invalid or expired")
    except YahooApiError as e:
        if isinstance(getattr(e, "last_error", None), AuthExpired):
            raise HTTPException(status_code=401, detail="Yahoo credential is invalid or expired")
        logger.warning("[YAHOO] Validation request failed: %s", e)
        raise HTTPException(status_code=502, detail=f"Yahoo request failed: {e}")
