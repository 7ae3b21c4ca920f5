"""Bulk state changes across many tours."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import BookingConflictError
from ..core.observability import metrics_collector
from ..models.base import utcnow
from ..models.tour import Tour
from ..schemas.tour import BulkAction
from .tour_service import TourService

logger = logging.getLogger(__name__)


UPDATE_VALUES: Dict[BulkAction, Dict[str, Any]] = {
    BulkAction.ACTIVATE: {"is_active": True},
    BulkAction.DEACTIVATE: {"is_active": False},
    BulkAction.FEATURE: {"is_featured": True},
    BulkAction.UNFEATURE: {"is_featured": False},
    BulkAction.PROMOTE: {"is_promotion": True},
    BulkAction.UNPROMOTE: {"is_promotion": False, "promotion_price": None},
}

ACTION_MESSAGES: Dict[BulkAction, str] = {
    BulkAction.ACTIVATE: "activated",
    BulkAction.DEACTIVATE: "deactivated",
    BulkAction.FEATURE: "featured",
    BulkAction.UNFEATURE: "removed from featured",
    BulkAction.PROMOTE: "promoted",
    BulkAction.UNPROMOTE: "removed from promotions",
    BulkAction.DELETE: "deleted",
}


@dataclass
class BulkActionResult:
    """Outcome of a bulk action."""

    action: BulkAction
    affected: int

    @property
    def message(self) -> str:
        return f"{self.affected} tour(s) {ACTION_MESSAGES[self.action]} successfully"


class BulkActionService:
    """Applies one action to a set of tours in a single statement."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.tour_service = TourService(db)

    async def apply(self, action: BulkAction, tour_ids: List[UUID]) -> BulkActionResult:
        """
        Apply ``action`` to every tour in ``tour_ids``.

        Args:
            action: Action to apply
            tour_ids: Non-empty list of target tour IDs

        Returns:
            BulkActionResult with the number of affected tours

        Raises:
            BookingConflictError: On delete, if any target tour has bookings
        """
        if action is BulkAction.DELETE:
            result = await self._delete(tour_ids)
        else:
            result = await self._update(action, tour_ids)

        metrics_collector.record_bulk_action(action.value)
        logger.info(
            "Bulk action applied",
            extra={
                "action": action.value,
                "requested": len(tour_ids),
                "affected": result.affected
            }
        )
        return result

    async def _update(self, action: BulkAction, tour_ids: List[UUID]) -> BulkActionResult:
        values = dict(UPDATE_VALUES[action], updated_at=utcnow())
        stmt = (
            update(Tour)
            .where(Tour.id.in_(tour_ids))
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return BulkActionResult(action=action, affected=result.rowcount)

    async def _delete(self, tour_ids: List[UUID]) -> BulkActionResult:
        # Not atomic with the delete below; a booking created in between is refused
        # by the RESTRICT foreign key and surfaces as a server error.
        if await self.tour_service.has_bookings(tour_ids):
            logger.warning(
                "Bulk delete refused - bookings exist",
                extra={"tour_ids": [str(tour_id) for tour_id in tour_ids]}
            )
            raise BookingConflictError(tour_ids=[str(tour_id) for tour_id in tour_ids])

        stmt = (
            delete(Tour)
            .where(Tour.id.in_(tour_ids))
            .execution_options(synchronize_session="fetch")
        )
        await self.db.execute(stmt)
        await self.db.commit()
        metrics_collector.record_tours_deleted(len(tour_ids))
        return BulkActionResult(action=BulkAction.DELETE, affected=len(tour_ids))
