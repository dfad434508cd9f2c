"""
Rank maintenance for ordered sibling lists (areas, canned messages).

Every row carries a unique integer ``rank``; together the ranks of a table
form the dense sequence 1..N. Single-step moves swap two neighbours through
a negative sentinel so the unique constraint on ``rank`` is never violated
mid-transaction, and each operation commits or rolls back as one unit.

Usage:
    ranking = RankingService(db, models.Area)
    area = ranking.create_append(name="走廊", class_id=1)
    ranking.move_up(area.id)
"""
from typing import Iterable, List, Type
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...core.exceptions import NotFoundError, AlreadyAtTopError, AlreadyAtBottomError
from ..models import RankUpdate

logger = logging.getLogger(__name__)


class RankingService:
    """Keeps ``model.rank`` unique and gap-free for one table."""

    SENTINEL_RANK = -1

    def __init__(self, db: Session, model: Type):
        self.db = db
        self.model = model

    @property
    def _name(self) -> str:
        return self.model.__name__

    def ordered(self) -> List:
        """All rows in display order. Id breaks ties if ranks were ever corrupted."""
        return self.db.query(self.model).order_by(self.model.rank.asc(), self.model.id.asc()).all()

    def next_rank(self) -> int:
        max_rank = self.db.query(func.max(self.model.rank)).scalar()
        return (max_rank or 0) + 1

    def create_append(self, **fields):
        """Insert a new row ranked after every existing one."""
        try:
            record = self.model(rank=self.next_rank(), **fields)
            self.db.add(record)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(record)
        logger.info(f"{self._name} {record.id} created at rank {record.rank}")
        return record

    def move_up(self, record_id: int) -> None:
        """
        Swap a row with its immediate predecessor.

        Raises:
            NotFoundError: No row with this id
            AlreadyAtTopError: Row already has the smallest rank
        """
        try:
            record = self._get_locked(record_id)
            upper = (
                self.db.query(self.model)
                .filter(self.model.rank < record.rank)
                .order_by(self.model.rank.desc())
                .with_for_update()
                .first()
            )
            if upper is None:
                raise AlreadyAtTopError()
            self._swap(record, upper)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"{self._name} {record_id} moved up")

    def move_down(self, record_id: int) -> None:
        """
        Swap a row with its immediate successor.

        Raises:
            NotFoundError: No row with this id
            AlreadyAtBottomError: Row already has the largest rank
        """
        try:
            record = self._get_locked(record_id)
            lower = (
                self.db.query(self.model)
                .filter(self.model.rank > record.rank)
                .order_by(self.model.rank.asc())
                .with_for_update()
                .first()
            )
            if lower is None:
                raise AlreadyAtBottomError()
            self._swap(lower, record)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"{self._name} {record_id} moved down")

    def bulk_reorder(self, updates: Iterable[RankUpdate]) -> int:
        """
        Write caller-supplied ranks verbatim in one transaction.

        Ranks are not re-derived or checked for uniqueness here; a colliding
        set is rejected by the database constraint and rolled back. Affected
        rows are first parked on distinct negative ranks so that a valid
        permutation never trips the constraint halfway through.

        Returns:
            Number of rows written
        """
        updates = list(updates)
        if not updates:
            return 0

        ids = [u.id for u in updates]
        try:
            found = {
                row_id for (row_id,) in
                self.db.query(self.model.id).filter(self.model.id.in_(ids)).with_for_update()
            }
            missing = [i for i in ids if i not in found]
            if missing:
                raise NotFoundError(f"{self._name} not found: {missing}")

            for offset, update in enumerate(updates, start=2):
                self._set_rank(update.id, -offset)
            for update in updates:
                self._set_rank(update.id, update.rank)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"{self._name} ranks rewritten for {len(updates)} row(s)")
        return len(updates)

    def delete(self, record_id: int) -> None:
        """Delete a row and shift every later row up to close the gap."""
        try:
            record = self._get_locked(record_id)
            removed_rank = record.rank
            self.db.delete(record)
            self.db.flush()
            self.renumber()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"{self._name} {record_id} deleted at rank {removed_rank}")

    def renumber(self) -> int:
        """
        Rewrite ranks to 1..N keeping the current order. Does not commit.

        Rows are visited in ascending rank order, so every target rank has
        already been vacated when it is written.

        Returns:
            Number of rows whose rank changed
        """
        rows = (
            self.db.query(self.model.id, self.model.rank)
            .order_by(self.model.rank.asc(), self.model.id.asc())
            .with_for_update()
            .all()
        )
        changed = 0
        for position, (row_id, rank) in enumerate(rows, start=1):
            if rank != position:
                self._set_rank(row_id, position)
                changed += 1
        return changed

    # =========================================================================
    # Helpers
    # =========================================================================

    def _get_locked(self, record_id: int):
        record = (
            self.db.query(self.model)
            .filter(self.model.id == record_id)
            .with_for_update()
            .first()
        )
        if record is None:
            raise NotFoundError(f"{self._name} not found")
        return record

    def _set_rank(self, record_id: int, rank: int) -> None:
        self.db.query(self.model).filter(self.model.id == record_id).update(
            {self.model.rank: rank}, synchronize_session=False
        )

    def _swap(self, first, second) -> None:
        """first -> sentinel, second -> first's rank, first -> second's rank."""
        first_rank, second_rank = first.rank, second.rank
        self._set_rank(first.id, self.SENTINEL_RANK)
        self._set_rank(second.id, first_rank)
        self._set_rank(first.id, second_rank)
