from sqlalchemy.orm import Session
from typing import List, Optional, Dict
from datetime import date
import json
import logging

from ...infrastructure import models
from ...infrastructure.storage import StorageService, generate_evidence_path
from ...core.config import settings
from ...core.exceptions import NotFoundError
from ...utils.dates import last_workday, today_string, validate_date_string
from ..models import DefaultWithRecency, EvidenceUploadUrl, ReportCreate

logger = logging.getLogger(__name__)


def _first_by_text(reports: List[models.Report]) -> Dict[str, models.Report]:
    """Index reports by exact text; the lowest id wins when texts repeat."""
    index = {}
    for report in reports:
        index.setdefault(report.text, report)
    return index


class EvaluationService:
    """
    Inspector-side operations: which canned messages were already reported
    for an area, how long a deficiency streak is, and report submission.
    """

    def __init__(self, db: Session):
        self.db = db

    def _reports_for(self, area_id: int, day: str) -> List[models.Report]:
        return (
            self.db.query(models.Report)
            .filter(models.Report.area_id == area_id, models.Report.date == day)
            .order_by(models.Report.id.asc())
            .all()
        )

    def get_defaults_with_recency(
        self,
        area_id: int,
        standard_date: Optional[str] = None,
        today: Optional[date] = None
    ) -> List[DefaultWithRecency]:
        """
        Annotate every Default (in rank order) for one area.

        reported_today: a report with the same text exists today
        repeated_today: that report's ``repeated`` + 1 if the same text was
            reported on the standard date, else 0

        The standard date defaults to the last workday before today.
        Text matching is exact and case-sensitive.
        """
        today_str = today_string(today)
        if standard_date is None:
            standard_date = last_workday(today_str)
        else:
            validate_date_string(standard_date)

        area = self.db.query(models.Area).filter(models.Area.id == area_id).first()
        if not area:
            raise NotFoundError("Area not found")

        defaults = (
            self.db.query(models.Default)
            .order_by(models.Default.rank.asc(), models.Default.id.asc())
            .all()
        )
        reported_today = _first_by_text(self._reports_for(area_id, today_str))
        reported_before = _first_by_text(self._reports_for(area_id, standard_date))

        result = []
        for default in defaults:
            previous = reported_before.get(default.text)
            result.append(DefaultWithRecency(
                id=default.id,
                shorthand=default.shorthand,
                text=default.text,
                rank=default.rank,
                reported_today=default.text in reported_today,
                repeated_today=(previous.repeated + 1) if previous else 0,
            ))
        return result

    def create_upload_urls(self, storage: StorageService, count: Optional[int] = None) -> List[EvidenceUploadUrl]:
        """Fresh evidence paths, each with a presigned PUT URL."""
        count = count or settings.EVIDENCE_UPLOAD_URL_COUNT
        urls = []
        for _ in range(count):
            path = generate_evidence_path()
            urls.append(EvidenceUploadUrl(
                path=path,
                url=storage.presigned_put_url(path, settings.EVIDENCE_UPLOAD_EXPIRE_SECONDS),
            ))
        return urls

    @staticmethod
    def get_image_urls(storage: StorageService, paths: List[str]) -> List[str]:
        return [storage.presigned_get_url(path, settings.EVIDENCE_VIEW_EXPIRE_SECONDS) for path in paths]

    def submit_report(self, report: ReportCreate) -> models.Report:
        """Persist a report. The area must exist."""
        area = self.db.query(models.Area).filter(models.Area.id == report.area_id).first()
        if not area:
            raise NotFoundError("Area not found")

        new_report = models.Report(
            date=report.date,
            text=report.text,
            repeated=report.repeated,
            area_id=report.area_id,
            evidence=json.dumps(report.evidence) if report.evidence is not None else None,
            comment=report.comment,
        )
        try:
            self.db.add(new_report)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(new_report)

        logger.info(f"Report created: {new_report.id} (area {area.id}, {new_report.date}, repeated {new_report.repeated})")
        return new_report
