from sqlalchemy.orm import Session, joinedload
from typing import List, Optional
import logging

from ...infrastructure import models
from ...infrastructure.storage import StorageService
from ...core.exceptions import NotFoundError
from ..models import (
    ClassCreate, ClassUpdate, AreaCreate, AreaUpdate, AreaResponse,
    DefaultCreate, DefaultUpdate, AccountCreate,
)
from .ranking_service import RankingService

logger = logging.getLogger(__name__)


def to_area_response(area: models.Area) -> AreaResponse:
    return AreaResponse(
        id=area.id,
        name=area.name,
        rank=area.rank,
        class_id=area.class_id,
        class_name=area.school_class.name,
    )


class SettingsService:
    """
    Administration of classes, cleaning areas, canned messages and the
    administrator allow-list.
    """

    def __init__(self, db: Session):
        self.db = db
        self.areas = RankingService(db, models.Area)
        self.defaults = RankingService(db, models.Default)

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _get(self, model, record_id):
        record = self.db.query(model).filter(model.id == record_id).first()
        if not record:
            raise NotFoundError(f"{model.__name__} not found")
        return record

    def _remove_evidence(self, paths: List[str], storage: Optional[StorageService]) -> None:
        if not paths:
            return
        if storage is None:
            logger.warning(f"Storage not configured, {len(paths)} evidence object(s) left behind")
            return
        storage.remove_objects(paths)

    # =========================================================================
    # Classes
    # =========================================================================

    def list_classes(self) -> List[models.SchoolClass]:
        return self.db.query(models.SchoolClass).order_by(models.SchoolClass.id.asc()).all()

    def create_class(self, data: ClassCreate) -> models.SchoolClass:
        school_class = models.SchoolClass(name=data.name)
        self.db.add(school_class)
        self._commit()
        self.db.refresh(school_class)
        logger.info(f"Class created: {school_class.id} ({school_class.name})")
        return school_class

    def update_class(self, class_id: int, data: ClassUpdate) -> models.SchoolClass:
        school_class = self._get(models.SchoolClass, class_id)
        school_class.name = data.name
        self._commit()
        self.db.refresh(school_class)
        return school_class

    def delete_class(self, class_id: int, storage: Optional[StorageService] = None) -> None:
        """
        Delete a class with its areas and their reports. Area ranks are
        renumbered in the same transaction; evidence is removed afterwards.
        """
        school_class = self._get(models.SchoolClass, class_id)
        paths = [
            path
            for area in school_class.areas
            for report in area.reports
            for path in report.evidence_paths
        ]
        try:
            self.db.delete(school_class)
            self.db.flush()
            self.areas.renumber()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Class deleted: {class_id}")
        self._remove_evidence(paths, storage)

    # =========================================================================
    # Areas
    # =========================================================================

    def list_areas(self) -> List[AreaResponse]:
        areas = (
            self.db.query(models.Area)
            .options(joinedload(models.Area.school_class))
            .order_by(models.Area.rank.asc(), models.Area.id.asc())
            .all()
        )
        return [to_area_response(a) for a in areas]

    def create_area(self, data: AreaCreate) -> AreaResponse:
        self._get(models.SchoolClass, data.class_id)
        area = self.areas.create_append(name=data.name, class_id=data.class_id)
        return to_area_response(area)

    def update_area(self, area_id: int, data: AreaUpdate) -> AreaResponse:
        area = self._get(models.Area, area_id)
        self._get(models.SchoolClass, data.class_id)
        area.name = data.name
        area.class_id = data.class_id
        self._commit()
        self.db.refresh(area)
        return to_area_response(area)

    def delete_area(self, area_id: int, storage: Optional[StorageService] = None) -> None:
        area = self._get(models.Area, area_id)
        paths = [path for report in area.reports for path in report.evidence_paths]
        self.areas.delete(area_id)
        self._remove_evidence(paths, storage)

    # =========================================================================
    # Canned messages
    # =========================================================================

    def list_defaults(self) -> List[models.Default]:
        return self.defaults.ordered()

    def create_default(self, data: DefaultCreate) -> models.Default:
        return self.defaults.create_append(shorthand=data.shorthand, text=data.text)

    def update_default(self, default_id: int, data: DefaultUpdate) -> models.Default:
        # Reports keep their own copy of the text; streaks do not follow a rename
        default = self._get(models.Default, default_id)
        default.shorthand = data.shorthand
        default.text = data.text
        self._commit()
        self.db.refresh(default)
        return default

    def delete_default(self, default_id: int) -> None:
        self.defaults.delete(default_id)

    # =========================================================================
    # Accounts
    # =========================================================================

    def list_accounts(self) -> List[models.User]:
        return self.db.query(models.User).order_by(models.User.created_at.asc()).all()

    def create_account(self, data: AccountCreate) -> models.User:
        user = models.User(email=data.email.lower())
        self.db.add(user)
        self._commit()
        self.db.refresh(user)
        logger.info(f"Administrator added: {user.email}")
        return user

    def delete_account(self, user_id: str) -> None:
        user = self._get(models.User, user_id)
        self.db.delete(user)
        self._commit()
        logger.info(f"Administrator removed: {user_id}")
