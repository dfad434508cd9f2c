from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from ..infrastructure.database import get_db
from ..infrastructure.storage import StorageService, StorageError
from ..core.exceptions import NotFoundError, InvalidDateFormatError
from ..domain.models import (
    DefaultWithRecency, EvidenceUploadUrl, ImageUrlsRequest, ReportCreate, ReportResponse,
)
from ..domain.services.evaluation_service import EvaluationService
from ..domain.services.report_service import to_report_response
from .deps import get_storage

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/defaults", response_model=List[DefaultWithRecency])
def get_defaults_for_area(
    area_id: int = Query(..., ge=1),
    standard_date: Optional[str] = Query(None, description="Comparison date, defaults to the last workday"),
    db: Session = Depends(get_db)
):
    """
    Canned messages for one area, flagged with whether each was already
    reported today and how many consecutive days it has been reported.
    """
    try:
        return EvaluationService(db).get_defaults_with_recency(area_id, standard_date=standard_date)
    except InvalidDateFormatError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except Exception as e:
        logger.error(f"Error loading defaults for area {area_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to load defaults")


@router.get("/evidence-upload-urls", response_model=List[EvidenceUploadUrl])
def get_evidence_upload_urls(
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage)
):
    """Presigned PUT URLs for evidence photos (valid for one hour)."""
    try:
        return EvaluationService(db).create_upload_urls(storage)
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.post("/image-urls", response_model=List[str])
def get_image_urls(
    request: ImageUrlsRequest,
    storage: StorageService = Depends(get_storage)
):
    """Presigned GET URLs for uploaded evidence, in request order."""
    try:
        return EvaluationService.get_image_urls(storage, request.paths)
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.post("/reports", response_model=ReportResponse)
def submit_report(report: ReportCreate, db: Session = Depends(get_db)):
    try:
        new_report = EvaluationService(db).submit_report(report)
        return to_report_response(new_report)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except Exception as e:
        logger.error(f"Database error creating report: {e}")
        raise HTTPException(status_code=500, detail="Failed to create report")
