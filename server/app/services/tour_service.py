"""Tour service for business logic operations."""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import BookingConflictError, NotFoundError, ValidationError
from ..core.observability import metrics_collector
from ..models.booking import Booking
from ..models.tour import DEFAULT_CATEGORY, SHORT_DESCRIPTION_LENGTH, Tour
from ..schemas.tour import TourToggleRequest, TourWriteRequest
from .slug import generate_slug, unique_slug

logger = logging.getLogger(__name__)


def default_short_description(description: str, short_description: Optional[str] = None) -> str:
    """Return the teaser text, falling back to the head of the description."""
    if short_description and short_description.strip():
        return short_description.strip()
    return description[:SHORT_DESCRIPTION_LENGTH]


class TourService:
    """Service for tour-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_tours(self, active_only: bool = False) -> List[Tour]:
        """
        List tours, newest first.

        Args:
            active_only: Restrict to publicly visible tours

        Returns:
            Tours ordered by creation time descending
        """
        stmt = select(Tour).order_by(Tour.created_at.desc())
        if active_only:
            stmt = stmt.where(Tour.is_active.is_(True))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create_tour(self, request: TourWriteRequest) -> Tour:
        """
        Create a new tour.

        Args:
            request: Tour creation request

        Returns:
            Created tour entity

        Raises:
            ValidationError: If a tour with the same slug already exists
        """
        slug = generate_slug(request.name)

        existing_tour = await self.get_tour_by_slug(slug)
        if existing_tour:
            logger.warning(
                "Tour creation failed - slug already exists",
                extra={
                    "slug": slug,
                    "existing_tour_id": str(existing_tour.id)
                }
            )
            raise ValidationError(detail="A tour with this name already exists")

        tour = Tour(
            name=request.name,
            slug=slug,
            description=request.description,
            short_description=default_short_description(request.description, request.short_description),
            price=request.price,
            duration=request.duration,
            category=request.category or DEFAULT_CATEGORY,
            image_url=request.image_url or None,
            is_featured=request.is_featured,
            is_promotion=request.is_promotion,
            promotion_price=request.promotion_price if request.is_promotion else None,
            is_active=True if request.is_active is None else request.is_active,
        )

        self.db.add(tour)
        await self.db.commit()
        await self.db.refresh(tour)

        logger.info(
            "Tour created successfully",
            extra={
                "tour_id": str(tour.id),
                "slug": tour.slug,
                "tour_name": tour.name
            }
        )

        return tour

    async def update_tour(self, tour_id: UUID, request: TourWriteRequest) -> Tour:
        """
        Replace the editable fields of a tour.

        The slug is only recomputed when the name changes.

        Raises:
            NotFoundError: If tour not found
        """
        tour = await self.get_tour_by_id_or_raise(tour_id)

        if request.name != tour.name:
            tour.slug = await unique_slug(self.db, request.name, exclude_id=tour.id)

        tour.name = request.name
        tour.description = request.description
        tour.short_description = default_short_description(request.description, request.short_description)
        tour.price = request.price
        tour.duration = request.duration
        tour.category = request.category or DEFAULT_CATEGORY
        tour.image_url = request.image_url or None
        tour.is_featured = request.is_featured
        tour.is_promotion = request.is_promotion
        tour.promotion_price = request.promotion_price if request.is_promotion else None
        tour.is_active = True if request.is_active is None else request.is_active

        await self.db.commit()
        await self.db.refresh(tour)

        logger.info(
            "Tour updated",
            extra={"tour_id": str(tour.id), "slug": tour.slug}
        )
        return tour

    async def toggle_tour(self, tour_id: UUID, request: TourToggleRequest) -> Tour:
        """
        Flip visibility flags without touching any other field.

        Turning the promotion off also clears the promotional price.
        """
        tour = await self.get_tour_by_id_or_raise(tour_id)

        if request.is_active is not None:
            tour.is_active = request.is_active
        if request.is_featured is not None:
            tour.is_featured = request.is_featured
        if request.is_promotion is not None:
            tour.is_promotion = request.is_promotion
            if not request.is_promotion:
                tour.promotion_price = None

        await self.db.commit()
        await self.db.refresh(tour)

        logger.info(
            "Tour flags toggled",
            extra={
                "tour_id": str(tour.id),
                "flags": request.model_dump(exclude_none=True)
            }
        )
        return tour

    async def delete_tour(self, tour_id: UUID) -> Tour:
        """
        Physically delete a tour.

        Raises:
            NotFoundError: If tour not found
            BookingConflictError: If any booking references the tour
        """
        tour = await self.get_tour_by_id_or_raise(tour_id)

        if await self.has_bookings([tour_id]):
            logger.warning(
                "Tour deletion refused - bookings exist",
                extra={"tour_id": str(tour_id)}
            )
            raise BookingConflictError(tour_ids=[str(tour_id)])

        await self.db.execute(delete(Tour).where(Tour.id == tour_id))
        await self.db.commit()
        metrics_collector.record_tours_deleted(1)

        logger.info(
            "Tour deleted",
            extra={"tour_id": str(tour_id), "tour_name": tour.name}
        )
        return tour

    async def has_bookings(self, tour_ids: List[UUID]) -> bool:
        """Return True if at least one booking references any of the given tours."""
        stmt = select(Booking.id).where(Booking.tour_id.in_(tour_ids)).limit(1)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get_tour_by_id(self, tour_id: UUID) -> Optional[Tour]:
        """
        Get tour by ID.

        Args:
            tour_id: Tour ID to search for

        Returns:
            Tour if found, None otherwise
        """
        stmt = select(Tour).where(Tour.id == tour_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_tour_by_slug(self, slug: str) -> Optional[Tour]:
        """
        Get tour by slug.

        Args:
            slug: Tour slug to search for

        Returns:
            Tour if found, None otherwise
        """
        stmt = select(Tour).where(Tour.slug == slug)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_public_tour_by_slug(self, slug: str) -> Tour:
        """Get an active tour by slug or raise NotFoundError."""
        tour = await self.get_tour_by_slug(slug)
        if not tour or not tour.is_active:
            raise NotFoundError(resource_type="tour", detail="Tour not found")
        return tour

    async def get_tour_by_id_or_raise(self, tour_id: UUID) -> Tour:
        """
        Get tour by ID or raise NotFoundError.

        Args:
            tour_id: Tour ID to search for

        Returns:
            Tour entity

        Raises:
            NotFoundError: If tour not found
        """
        tour = await self.get_tour_by_id(tour_id)
        if not tour:
            logger.warning(
                "Tour not found",
                extra={"tour_id": str(tour_id)}
            )
            raise NotFoundError(
                resource_type="tour",
                resource_id=str(tour_id)
            )
        return tour
