"""Tour-related Pydantic schemas."""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

TOGGLE_FIELDS = frozenset({"is_active", "is_featured", "is_promotion"})


class TourWriteRequest(BaseModel):
    """Request schema for creating a tour or replacing its editable fields."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255, description="Tour name")
    description: str = Field(..., min_length=1, description="Full tour description")
    price: float = Field(..., gt=0, description="Regular price")
    duration: float = Field(..., gt=0, description="Duration in hours")
    short_description: Optional[str] = Field(None, description="Teaser text; derived from the description when empty")
    category: Optional[str] = Field(None, max_length=100, description="Free-text category")
    image_url: Optional[str] = Field(None, max_length=500, description="Public image URL")
    is_featured: bool = Field(False, description="Show in featured listings")
    is_promotion: bool = Field(False, description="Tour is on promotion")
    promotion_price: Optional[float] = Field(None, gt=0, description="Promotional price, kept only while on promotion")
    is_active: Optional[bool] = Field(None, description="Publicly visible; defaults to true")

    @model_validator(mode="after")
    def check_promotion_price(self) -> "TourWriteRequest":
        if self.is_promotion and self.promotion_price is not None and self.promotion_price >= self.price:
            raise ValueError("Promotion price must be lower than the regular price")
        return self


class TourToggleRequest(BaseModel):
    """Request schema for flipping one or more visibility flags."""

    model_config = ConfigDict(extra="forbid")

    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None
    is_promotion: Optional[bool] = None

    @model_validator(mode="after")
    def check_not_empty(self) -> "TourToggleRequest":
        if self.is_active is None and self.is_featured is None and self.is_promotion is None:
            raise ValueError("At least one flag must be provided")
        return self


class Tour(BaseModel):
    """Tour response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Unique tour ID")
    name: str = Field(..., description="Tour name")
    slug: str = Field(..., description="URL-friendly slug")
    description: str = Field(..., description="Tour description")
    short_description: Optional[str] = None
    category: str
    price: float
    duration: float
    promotion_price: Optional[float] = None
    is_featured: bool
    is_promotion: bool
    is_active: bool
    image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BulkAction(str, Enum):
    """Actions accepted by the bulk endpoint."""
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    FEATURE = "feature"
    UNFEATURE = "unfeature"
    PROMOTE = "promote"
    UNPROMOTE = "unpromote"
    DELETE = "delete"


class BulkActionRequest(BaseModel):
    """Request schema for applying one action to many tours."""

    model_config = ConfigDict(populate_by_name=True)

    action: BulkAction = Field(..., description="Action to apply")
    tour_ids: List[UUID] = Field(..., alias="tourIds", min_length=1, description="Target tour IDs")


class BulkActionResponse(BaseModel):
    """Response schema for bulk actions."""

    message: str
    affected: int = Field(..., ge=0, description="Number of tours changed")


class SuggestionsRequest(BaseModel):
    """Request schema for popular-tour suggestions."""

    limit: int = Field(6, ge=1, le=50, description="Maximum number of suggestions")
