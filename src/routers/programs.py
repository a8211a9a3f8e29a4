from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from src.core.database import get_db
from src.core.security import verify_api_key
from src.services.csv_import_service import CsvImportService

router = APIRouter(prefix="/api/programs", tags=["programs"])


@router.post("/import")
async def import_programs(
    request: Request,
    db: Session = Depends(get_db),
    _: None = Depends(verify_api_key),
):
    """Import programs from a CSV body (raw text or a multipart ``file`` field)."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("file")
        if upload is None or isinstance(upload, str):
            raise HTTPException(status_code=400, detail="No file provided")
        raw = await upload.read()
    else:
        raw = await request.body()

    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV must be UTF-8 encoded")

    try:
        return CsvImportService(db).import_csv(text)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
