from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from src.core.database import get_db
from src.core.security import verify_api_key
from src.dtos.scraper_settings_dto import ScraperSettingsRead, ScraperSettingsUpdate
from src.services.scraper_settings_service import ScraperSettingsService

router = APIRouter(prefix="/api/scraper-settings", tags=["settings"])


@router.get("", response_model=ScraperSettingsRead, response_model_by_alias=True)
async def get_settings(db: Session = Depends(get_db)):
    return ScraperSettingsService(db).get()


@router.patch("", response_model=ScraperSettingsRead, response_model_by_alias=True)
async def update_settings(
    body: ScraperSettingsUpdate,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    return ScraperSettingsService(db).update(body)
