from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from typing import List
import logging

from ..infrastructure.database import get_db
from ..core.exceptions import InvalidDateFormatError
from ..domain.models import AnalyticsBucket, AnalyticsDefault
from ..domain.services.analytics_service import AnalyticsService
from ..utils.dates import validate_date_string

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/defaults", response_model=List[AnalyticsDefault])
def get_defaults(db: Session = Depends(get_db)):
    """Chart legend: id, text and shorthand of every canned message."""
    try:
        return AnalyticsService(db).get_defaults()
    except Exception as e:
        logger.error(f"Error loading defaults: {e}")
        raise HTTPException(status_code=500, detail="Failed to load defaults")


@router.get("/by-area", response_model=List[AnalyticsBucket])
def get_reports_in_range_by_area(
    start_date: str = Query(...),
    end_date: str = Query(...),
    db: Session = Depends(get_db)
):
    try:
        validate_date_string(start_date)
        validate_date_string(end_date)
        return AnalyticsService(db).reports_by_area(start_date, end_date)
    except InvalidDateFormatError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Error aggregating reports by area: {e}")
        raise HTTPException(status_code=500, detail="Failed to aggregate reports")


@router.get("/by-class", response_model=List[AnalyticsBucket])
def get_reports_in_range_by_class(
    start_date: str = Query(...),
    end_date: str = Query(...),
    db: Session = Depends(get_db)
):
    try:
        validate_date_string(start_date)
        validate_date_string(end_date)
        return AnalyticsService(db).reports_by_class(start_date, end_date)
    except InvalidDateFormatError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Error aggregating reports by class: {e}")
        raise HTTPException(status_code=500, detail="Failed to aggregate reports")
