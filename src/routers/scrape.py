from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from src.core.database import get_db
from src.core.security import verify_api_key, verify_cron_secret
from src.dtos.scrape_job_dto import ScrapeBatchRequest
from src.services.dispatcher import Dispatcher
from src.services.scrape_job_service import JobPublisher, ScrapeJobService

router = APIRouter(prefix="/api/scrape", tags=["scrape"])


def get_job_publisher() -> JobPublisher | None:
    """Queue publisher for submitted jobs; None when work is driven by the timer."""
    return None


@router.post("/batch")
async def submit_batch(
    body: ScrapeBatchRequest,
    db: Session = Depends(get_db),
    publisher: JobPublisher | None = Depends(get_job_publisher),
    _: None = Depends(verify_api_key),
):
    svc = ScrapeJobService(db, publisher=publisher)
    try:
        return svc.submit(body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/process")
async def process_jobs(
    db: Session = Depends(get_db),
    _: None = Depends(verify_cron_secret),
):
    result = await Dispatcher(db).run_cycle()
    return {"success": True, **result.to_dict()}


@router.get("/jobs")
async def list_jobs(
    status: str | None = None,
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return ScrapeJobService(db).list_jobs(status=status, limit=limit)


@router.get("/{job_id}")
async def get_job(job_id: int, db: Session = Depends(get_db)):
    result = ScrapeJobService(db).get_job_status(job_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return result
