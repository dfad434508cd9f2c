from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from typing import List
import logging

from ..infrastructure.database import get_db
from ..infrastructure.storage import StorageService, StorageError
from ..core.exceptions import NotFoundError, InvalidDateFormatError
from ..domain.models import ClassReports, ReportDownloadItem, MessageResponse
from ..domain.services.report_service import ReportService
from ..utils.dates import validate_date_string
from .deps import get_storage

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/reports", response_model=List[ClassReports])
def get_reports_sorted_by_class(
    date: str = Query(..., min_length=1),
    interleaved: bool = Query(False, description="Reorder classes for duplex slip printing"),
    db: Session = Depends(get_db)
):
    """
    Every class with its reports for the given date, in class id order
    (or interleaved for printing).
    """
    try:
        validate_date_string(date)
        return ReportService(db).list_reports_by_class(date, interleaved=interleaved)
    except InvalidDateFormatError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Error listing reports for {date}: {e}")
        raise HTTPException(status_code=500, detail="Failed to list reports")


@router.get("/reports/download", response_model=List[ReportDownloadItem])
def download_reports(
    date: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage)
):
    """All reports of a day with evidence download links, for zip export."""
    try:
        validate_date_string(date)
        return ReportService(db).download_reports(date, storage)
    except InvalidDateFormatError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Error preparing download for {date}: {e}")
        raise HTTPException(status_code=500, detail="Failed to prepare download")


@router.delete("/reports/{report_id}", response_model=MessageResponse)
def delete_report(
    report_id: int,
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage)
):
    """Delete a report and its evidence photos."""
    try:
        ReportService(db).delete_report(report_id, storage)
        return MessageResponse(message="Report deleted successfully")
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StorageError as e:
        logger.error(f"Report {report_id} deleted but evidence cleanup failed: {e}")
        raise HTTPException(status_code=502, detail="Report deleted, but evidence cleanup failed")
    except Exception as e:
        logger.error(f"Error deleting report {report_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete report")
