from sqlalchemy.orm import Session, joinedload
from typing import Callable, List
import logging

from ...infrastructure import models
from ..models import AnalyticsBucket, AnalyticsDefault

logger = logging.getLogger(__name__)

# Counts for report text that matches no canned message
FREE_TEXT_KEY = 0


class AnalyticsService:
    """
    Deficiency counts over a date range, grouped by area or by class and
    broken down by canned message.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_defaults(self) -> List[AnalyticsDefault]:
        defaults = self.db.query(models.Default).order_by(models.Default.rank.asc()).all()
        return [AnalyticsDefault.model_validate(d) for d in defaults]

    def _reports_between(self, start_date: str, end_date: str) -> List[models.Report]:
        # YYYY-MM-DD strings sort chronologically
        return (
            self.db.query(models.Report)
            .options(joinedload(models.Report.area).joinedload(models.Area.school_class))
            .filter(models.Report.date >= start_date, models.Report.date <= end_date)
            .order_by(models.Report.id.asc())
            .all()
        )

    def _count(self, start_date: str, end_date: str, key_of: Callable[[models.Report], str]) -> List[AnalyticsBucket]:
        default_ids = {d.text: d.id for d in self.db.query(models.Default).all()}
        buckets = {}
        for report in self._reports_between(start_date, end_date):
            counts = buckets.setdefault(key_of(report), {})
            default_id = default_ids.get(report.text, FREE_TEXT_KEY)
            counts[default_id] = counts.get(default_id, 0) + 1
        return [AnalyticsBucket(key=key, counts=counts) for key, counts in buckets.items()]

    def reports_by_area(self, start_date: str, end_date: str) -> List[AnalyticsBucket]:
        return self._count(start_date, end_date, lambda r: r.area.name)

    def reports_by_class(self, start_date: str, end_date: str) -> List[AnalyticsBucket]:
        return self._count(start_date, end_date, lambda r: r.area.school_class.name)
