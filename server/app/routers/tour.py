"""Public tour catalog router."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..schemas.tour import SuggestionsRequest, Tour
from ..services.search_service import DEFAULT_SEARCH_LIMIT, SearchService
from ..services.tour_service import TourService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/tours", tags=["tours"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)


def serialize_tours(tours) -> list:
    """Convert tour models to JSON-ready dicts."""
    return [Tour.model_validate(tour).model_dump(mode="json") for tour in tours]


@router.get("", response_model=list[Tour])
async def list_active_tours(db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """List publicly visible tours, newest first."""
    tours = await TourService(db).list_tours(active_only=True)
    return JSONResponse(status_code=200, content=serialize_tours(tours))


@router.get("/search", response_model=list[Tour])
async def search_tours(
    q: Optional[str] = Query(None, description="Search text, at least two characters"),
    limit: int = Query(DEFAULT_SEARCH_LIMIT, ge=1, description="Maximum number of results"),
    db: AsyncSession = DB_DEPENDENCY,
) -> JSONResponse:
    """
    Autocomplete search over active tours.

    Short or missing queries yield an empty list rather than an error.
    """
    tours = await SearchService(db).search(q, limit)
    return JSONResponse(status_code=200, content=serialize_tours(tours))


@router.post("/suggestions", response_model=list[Tour])
async def tour_suggestions(
    request: SuggestionsRequest,
    db: AsyncSession = DB_DEPENDENCY,
) -> JSONResponse:
    """Popular tours for the empty search box."""
    tours = await SearchService(db).suggestions(request.limit)
    return JSONResponse(status_code=200, content=serialize_tours(tours))


@router.get("/{slug}", response_model=Tour)
async def get_tour_by_slug(slug: str, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Fetch one active tour for its public page."""
    tour = await TourService(db).get_public_tour_by_slug(slug)
    return JSONResponse(
        status_code=200,
        content=Tour.model_validate(tour).model_dump(mode="json")
    )
