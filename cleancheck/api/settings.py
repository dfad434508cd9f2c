from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from ..infrastructure.database import get_db
from ..infrastructure.storage import StorageService, StorageError
from ..core.exceptions import NotFoundError, AlreadyAtTopError, AlreadyAtBottomError
from ..domain.models import (
    ClassCreate, ClassUpdate, ClassResponse,
    AreaCreate, AreaUpdate, AreaResponse,
    DefaultCreate, DefaultUpdate, DefaultResponse,
    AccountCreate, AccountResponse,
    RankUpdate, MessageResponse,
)
from ..domain.services.settings_service import SettingsService
from .deps import get_optional_storage

router = APIRouter()
logger = logging.getLogger(__name__)


# =============================================================================
# Classes
# =============================================================================

@router.get("/classes", response_model=List[ClassResponse])
def list_classes(db: Session = Depends(get_db)):
    try:
        return SettingsService(db).list_classes()
    except Exception as e:
        logger.error(f"Error listing classes: {e}")
        raise HTTPException(status_code=500, detail="Failed to list classes")


@router.post("/classes", response_model=ClassResponse)
def create_class(data: ClassCreate, db: Session = Depends(get_db)):
    try:
        return SettingsService(db).create_class(data)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="班級名稱已存在")
    except Exception as e:
        logger.error(f"Error creating class: {e}")
        raise HTTPException(status_code=500, detail="Failed to create class")


@router.patch("/classes/{class_id}", response_model=ClassResponse)
def update_class(class_id: int, data: ClassUpdate, db: Session = Depends(get_db)):
    try:
        return SettingsService(db).update_class(class_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="班級名稱已存在")
    except Exception as e:
        logger.error(f"Error updating class {class_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update class")


@router.delete("/classes/{class_id}", response_model=MessageResponse)
def delete_class(
    class_id: int,
    db: Session = Depends(get_db),
    storage: Optional[StorageService] = Depends(get_optional_storage)
):
    """
    Delete a class together with its areas and reports.
    """
    try:
        SettingsService(db).delete_class(class_id, storage)
        return MessageResponse(message="Class deleted successfully")
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StorageError as e:
        logger.error(f"Class {class_id} deleted but evidence cleanup failed: {e}")
        raise HTTPException(status_code=502, detail="Class deleted, but evidence cleanup failed")
    except Exception as e:
        logger.error(f"Error deleting class {class_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete class")


# =============================================================================
# Areas
# =============================================================================

@router.get("/areas", response_model=List[AreaResponse])
def list_areas(db: Session = Depends(get_db)):
    """Areas in display (rank) order."""
    try:
        return SettingsService(db).list_areas()
    except Exception as e:
        logger.error(f"Error listing areas: {e}")
        raise HTTPException(status_code=500, detail="Failed to list areas")


@router.post("/areas", response_model=AreaResponse)
def create_area(data: AreaCreate, db: Session = Depends(get_db)):
    """Create an area; it is ranked after every existing area."""
    try:
        return SettingsService(db).create_area(data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="掃區名稱已存在")
    except Exception as e:
        logger.error(f"Error creating area: {e}")
        raise HTTPException(status_code=500, detail="Failed to create area")


@router.patch("/areas/{area_id}", response_model=AreaResponse)
def update_area(area_id: int, data: AreaUpdate, db: Session = Depends(get_db)):
    try:
        return SettingsService(db).update_area(area_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="掃區名稱已存在")
    except Exception as e:
        logger.error(f"Error updating area {area_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update area")


@router.delete("/areas/{area_id}", response_model=MessageResponse)
def delete_area(
    area_id: int,
    db: Session = Depends(get_db),
    storage: Optional[StorageService] = Depends(get_optional_storage)
):
    try:
        SettingsService(db).delete_area(area_id, storage)
        return MessageResponse(message="Area deleted successfully")
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StorageError as e:
        logger.error(f"Area {area_id} deleted but evidence cleanup failed: {e}")
        raise HTTPException(status_code=502, detail="Area deleted, but evidence cleanup failed")
    except Exception as e:
        logger.error(f"Error deleting area {area_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete area")


@router.post("/areas/{area_id}/move-up", response_model=MessageResponse)
def move_area_up(area_id: int, db: Session = Depends(get_db)):
    return _move(SettingsService(db).areas.move_up, area_id, "area")


@router.post("/areas/{area_id}/move-down", response_model=MessageResponse)
def move_area_down(area_id: int, db: Session = Depends(get_db)):
    return _move(SettingsService(db).areas.move_down, area_id, "area")


@router.put("/areas/ranks", response_model=MessageResponse)
def update_area_ranks(updates: List[RankUpdate], db: Session = Depends(get_db)):
    """Write the ranks from a drag-and-drop reorder as given."""
    return _bulk_reorder(SettingsService(db).areas.bulk_reorder, updates, "area")


# =============================================================================
# Canned messages
# =============================================================================

@router.get("/defaults", response_model=List[DefaultResponse])
def list_defaults(db: Session = Depends(get_db)):
    try:
        return SettingsService(db).list_defaults()
    except Exception as e:
        logger.error(f"Error listing defaults: {e}")
        raise HTTPException(status_code=500, detail="Failed to list defaults")


@router.post("/defaults", response_model=DefaultResponse)
def create_default(data: DefaultCreate, db: Session = Depends(get_db)):
    try:
        return SettingsService(db).create_default(data)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="簡寫或訊息已存在")
    except Exception as e:
        logger.error(f"Error creating default: {e}")
        raise HTTPException(status_code=500, detail="Failed to create default")


@router.patch("/defaults/{default_id}", response_model=DefaultResponse)
def update_default(default_id: int, data: DefaultUpdate, db: Session = Depends(get_db)):
    try:
        return SettingsService(db).update_default(default_id, data)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="簡寫或訊息已存在")
    except Exception as e:
        logger.error(f"Error updating default {default_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update default")


@router.delete("/defaults/{default_id}", response_model=MessageResponse)
def delete_default(default_id: int, db: Session = Depends(get_db)):
    try:
        SettingsService(db).delete_default(default_id)
        return MessageResponse(message="Default deleted successfully")
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except Exception as e:
        logger.error(f"Error deleting default {default_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete default")


@router.post("/defaults/{default_id}/move-up", response_model=MessageResponse)
def move_default_up(default_id: int, db: Session = Depends(get_db)):
    return _move(SettingsService(db).defaults.move_up, default_id, "default")


@router.post("/defaults/{default_id}/move-down", response_model=MessageResponse)
def move_default_down(default_id: int, db: Session = Depends(get_db)):
    return _move(SettingsService(db).defaults.move_down, default_id, "default")


@router.put("/defaults/ranks", response_model=MessageResponse)
def update_default_ranks(updates: List[RankUpdate], db: Session = Depends(get_db)):
    return _bulk_reorder(SettingsService(db).defaults.bulk_reorder, updates, "default")


# =============================================================================
# Accounts (administrator allow-list)
# =============================================================================

@router.get("/accounts", response_model=List[AccountResponse])
def list_accounts(db: Session = Depends(get_db)):
    try:
        return SettingsService(db).list_accounts()
    except Exception as e:
        logger.error(f"Error listing accounts: {e}")
        raise HTTPException(status_code=500, detail="Failed to list accounts")


@router.post("/accounts", response_model=AccountResponse)
def create_account(data: AccountCreate, db: Session = Depends(get_db)):
    try:
        return SettingsService(db).create_account(data)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="此電子郵件已存在")
    except Exception as e:
        logger.error(f"Error creating account: {e}")
        raise HTTPException(status_code=500, detail="Failed to create account")


@router.delete("/accounts/{user_id}", response_model=MessageResponse)
def delete_account(user_id: str, db: Session = Depends(get_db)):
    try:
        SettingsService(db).delete_account(user_id)
        return MessageResponse(message="Account deleted successfully")
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except Exception as e:
        logger.error(f"Error deleting account {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete account")


# =============================================================================
# Helpers
# =============================================================================

def _move(operation, record_id: int, label: str) -> MessageResponse:
    try:
        operation(record_id)
        return MessageResponse(message=f"{label.capitalize()} moved")
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except (AlreadyAtTopError, AlreadyAtBottomError) as e:
        logger.warning(f"Rejected {label} move for {record_id}: {e.message}")
        raise HTTPException(status_code=400, detail=e.message)
    except Exception as e:
        logger.error(f"Error moving {label} {record_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to move {label}")


def _bulk_reorder(operation, updates: List[RankUpdate], label: str) -> MessageResponse:
    try:
        count = operation(updates)
        return MessageResponse(message=f"Updated {count} {label} rank(s)")
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="排序重複")
    except Exception as e:
        logger.error(f"Error reordering {label}s: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to update {label} ranks")
