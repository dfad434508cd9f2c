"""
Report listing for the admin home page, the printable notification slips
and the public per-class view.
"""
from sqlalchemy.orm import Session, joinedload
from typing import List, Sequence, TypeVar
from urllib.parse import quote
import logging
import math

from ...infrastructure import models
from ...infrastructure.storage import StorageService
from ...core.config import settings
from ...core.exceptions import NotFoundError
from ..models import ReportResponse, ClassReports, ReportDownloadItem, PublicRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


def interleave(items: Sequence[T]) -> List[T]:
    """
    Reorder a list for duplex printing of two slips per sheet.

    The first ceil(N/2) items alternate with the remaining ones:
    [A, B, C, D, E] -> [A, D, B, E, C]. Stacking and cutting the printed
    sheets then yields the original order.
    """
    half_length = math.ceil(len(items) / 2)
    first_half = items[:half_length]
    second_half = items[half_length:]

    result = []
    for i in range(half_length):
        result.append(first_half[i])
        if i < len(second_half):
            result.append(second_half[i])

    if len(result) != len(items):
        raise AssertionError(f"Interleave produced {len(result)} items from {len(items)}")
    return result


def build_view_url(date: str, class_name: str) -> str:
    """Public page for one class and date, encoded into the slip's QR code."""
    return f"{settings.FRONTEND_URL.rstrip('/')}/view/{date}/{quote(class_name)}"


def to_report_response(report: models.Report) -> ReportResponse:
    return ReportResponse(
        id=report.id,
        date=report.date,
        text=report.text,
        repeated=report.repeated,
        evidence=report.evidence_paths,
        comment=report.comment,
        area_id=report.area_id,
        area_name=report.area.name,
        created_at=report.created_at,
    )


class ReportService:

    def __init__(self, db: Session):
        self.db = db

    def _reports_on(self, date: str):
        return (
            self.db.query(models.Report)
            .join(models.Area, models.Report.area_id == models.Area.id)
            .options(joinedload(models.Report.area).joinedload(models.Area.school_class))
            .filter(models.Report.date == date)
        )

    def list_reports_by_class(self, date: str, interleaved: bool = False) -> List[ClassReports]:
        """
        Every class (id ascending) with its reports for ``date``. Classes
        without reports are included with an empty list.
        """
        classes = self.db.query(models.SchoolClass).order_by(models.SchoolClass.id.asc()).all()
        reports = self._reports_on(date).order_by(models.Report.id.asc()).all()

        by_class = {c.id: [] for c in classes}
        for report in reports:
            by_class.setdefault(report.area.class_id, []).append(to_report_response(report))

        result = [
            ClassReports(
                id=c.id,
                name=c.name,
                view_url=build_view_url(date, c.name),
                reports=by_class[c.id],
            )
            for c in classes
        ]
        return interleave(result) if interleaved else result

    def delete_report(self, report_id: int, storage: StorageService) -> None:
        """Delete a report, then remove its evidence objects from storage."""
        report = self.db.query(models.Report).filter(models.Report.id == report_id).first()
        if not report:
            raise NotFoundError("Report not found")

        paths = report.evidence_paths
        try:
            self.db.delete(report)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Report deleted: {report_id}")

        if paths:
            storage.remove_objects(paths)

    def download_reports(self, date: str, storage: StorageService) -> List[ReportDownloadItem]:
        """Flat list of a day's reports with presigned evidence URLs, for zip export."""
        reports = (
            self._reports_on(date)
            .join(models.SchoolClass, models.Area.class_id == models.SchoolClass.id)
            .order_by(models.SchoolClass.id.asc(), models.Report.id.asc())
            .all()
        )
        items = []
        for report in reports:
            base = to_report_response(report)
            items.append(ReportDownloadItem(
                **base.model_dump(),
                class_name=report.area.school_class.name,
                evidence_urls=[
                    storage.presigned_get_url(path, settings.EVIDENCE_VIEW_EXPIRE_SECONDS)
                    for path in base.evidence
                ],
            ))
        return items

    def get_public_records(self, date: str, class_name: str, storage: StorageService) -> List[PublicRecord]:
        """Read-only records for one class on one date, evidence as presigned URLs."""
        reports = (
            self._reports_on(date)
            .join(models.SchoolClass, models.Area.class_id == models.SchoolClass.id)
            .filter(models.SchoolClass.name == class_name)
            .order_by(models.Report.id.asc())
            .all()
        )
        return [
            PublicRecord(
                id=report.id,
                area_name=report.area.name,
                repeated=report.repeated,
                text=report.text,
                comment=report.comment,
                created_at=report.created_at,
                evidence=[
                    storage.presigned_get_url(path, settings.EVIDENCE_VIEW_EXPIRE_SECONDS)
                    for path in report.evidence_paths
                ],
            )
            for report in reports
        ]
