from fastapi import Header, HTTPException, Security
from fastapi.security import APIKeyHeader

from src.core.config import settings

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(
    api_key: str | None = Security(api_key_header),
):
    """Require X-API-Key header when API_KEY is configured."""
    if not settings.API_KEY:
        return  # auth disabled
    if api_key != settings.API_KEY:
        raise HTTPException(status_code=403, detail="Invalid or missing API key")


async def verify_cron_secret(
    x_cron_secret: str | None = Header(default=None),
):
    """Require the shared cron secret on the processing trigger."""
    if x_cron_secret != settings.CRON_SECRET:
        raise HTTPException(status_code=401, detail="Unauthorized")
