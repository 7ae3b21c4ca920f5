"""Tour model definition."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Numeric, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base
from .base import utcnow

if TYPE_CHECKING:
    from .booking import Booking


DEFAULT_CATEGORY = "Tour"
SHORT_DESCRIPTION_LENGTH = 150


class Tour(Base):
    """Tour entity representing a catalog listing."""

    __tablename__ = "tours"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Content
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    short_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default=DEFAULT_CATEGORY)

    # Commerce
    price: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    duration: Mapped[float] = mapped_column(Numeric(6, 2, asdecimal=False), nullable=False)
    promotion_price: Mapped[float | None] = mapped_column(
        Numeric(10, 2, asdecimal=False),
        nullable=True
    )

    # Flags
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    is_promotion: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    # Media
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_tour_price_positive"),
        CheckConstraint("duration > 0", name="ck_tour_duration_positive"),
        CheckConstraint(
            "promotion_price IS NULL OR promotion_price > 0",
            name="ck_tour_promotion_price_positive"
        ),
    )

    # Relationships
    bookings: Mapped[list["Booking"]] = relationship(
        "Booking",
        back_populates="tour",
        passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Tour(id={self.id}, name='{self.name}', slug='{self.slug}')>"
