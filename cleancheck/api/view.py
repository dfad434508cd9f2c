from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from typing import List
import logging

from ..infrastructure.database import get_db
from ..infrastructure.storage import StorageService, StorageError
from ..core.exceptions import InvalidDateFormatError
from ..domain.models import PublicRecord
from ..domain.services.report_service import ReportService
from ..utils.dates import validate_date_string
from .deps import get_storage

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/records", response_model=List[PublicRecord])
def get_records(
    date: str = Query(...),
    class_name: str = Query(..., min_length=1, max_length=10),
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage)
):
    """
    Public page behind the QR code on a notification slip.
    No authentication required.
    """
    try:
        validate_date_string(date)
        return ReportService(db).get_public_records(date, class_name, storage)
    except InvalidDateFormatError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except Exception as e:
        logger.error(f"Error loading records for {class_name} on {date}: {e}")
        raise HTTPException(status_code=500, detail="Failed to load records")
