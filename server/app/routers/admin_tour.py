"""Back-office router for tour management."""

import logging
from typing import Any, Dict
from uuid import UUID

import pydantic
from fastapi import APIRouter, Body, Depends, File, Query, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.dependencies import RequiredAdmin
from ..schemas.common import Problem
from ..schemas.tour import (
    TOGGLE_FIELDS,
    BulkActionRequest,
    BulkActionResponse,
    Tour,
    TourToggleRequest,
    TourWriteRequest,
)
from ..schemas.transfer import ImportResponse
from ..services.bulk_service import BulkActionService
from ..services.import_export import ImportExportService
from ..services.tour_service import TourService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/v1/admin/tours",
    tags=["admin"],
    dependencies=[RequiredAdmin],
    responses={400: {"model": Problem}, 401: {"model": Problem}, 404: {"model": Problem}},
)

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)
UPLOAD_DEPENDENCY = File(..., description="CSV or XLSX spreadsheet")


def _tour_json(tour) -> Dict[str, Any]:
    return Tour.model_validate(tour).model_dump(mode="json")


@router.get("")
async def list_tours(db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """List every tour, active or not, newest first."""
    tours = await TourService(db).list_tours()
    return JSONResponse(
        status_code=200,
        content={"tours": [_tour_json(tour) for tour in tours]}
    )


@router.post("", status_code=201)
async def create_tour(
    request: TourWriteRequest,
    db: AsyncSession = DB_DEPENDENCY,
) -> JSONResponse:
    """Create a tour; the slug is derived from the name."""
    tour = await TourService(db).create_tour(request)
    return JSONResponse(status_code=201, content={"tour": _tour_json(tour)})


@router.get("/export")
async def export_tours(
    format: str = Query("csv", description="csv or xlsx"),
    db: AsyncSession = DB_DEPENDENCY,
) -> Response:
    """Download the whole catalog as CSV or XLSX."""
    export = await ImportExportService(db).export_tours(format)
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export.filename}"'},
    )


@router.post("/import", response_model=ImportResponse)
async def import_tours(
    file: UploadFile = UPLOAD_DEPENDENCY,
    db: AsyncSession = DB_DEPENDENCY,
) -> JSONResponse:
    """
    Import tours from a spreadsheet.

    Any invalid row rejects the whole file with 400 and the full error list.
    Otherwise each row creates or updates the tour with the same slug.
    """
    payload = await file.read()
    results = await ImportExportService(db).import_tours(
        file.filename or "",
        file.content_type,
        payload,
    )
    response_data = ImportResponse(message="Import completed", results=results)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/bulk", response_model=BulkActionResponse)
async def bulk_action(
    request: BulkActionRequest,
    db: AsyncSession = DB_DEPENDENCY,
) -> JSONResponse:
    """Apply one action to a list of tours."""
    result = await BulkActionService(db).apply(request.action, request.tour_ids)
    response_data = BulkActionResponse(message=result.message, affected=result.affected)
    return JSONResponse(status_code=200, content=response_data.model_dump())


@router.get("/{tour_id}")
async def get_tour(tour_id: UUID, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Fetch one tour by ID."""
    tour = await TourService(db).get_tour_by_id_or_raise(tour_id)
    return JSONResponse(status_code=200, content={"tour": _tour_json(tour)})


@router.put("/{tour_id}")
async def update_tour(
    tour_id: UUID,
    body: Dict[str, Any] = Body(...),
    db: AsyncSession = DB_DEPENDENCY,
) -> JSONResponse:
    """
    Update a tour.

    A body made only of ``is_active``/``is_featured``/``is_promotion`` flips
    those flags; any other body is validated as a full update.
    """
    service = TourService(db)
    try:
        if body and set(body) <= TOGGLE_FIELDS:
            tour = await service.toggle_tour(tour_id, TourToggleRequest.model_validate(body))
        else:
            tour = await service.update_tour(tour_id, TourWriteRequest.model_validate(body))
    except pydantic.ValidationError as e:
        raise RequestValidationError(e.errors()) from e

    return JSONResponse(
        status_code=200,
        content={"message": "Tour updated successfully", "tour": _tour_json(tour)}
    )


@router.delete("/{tour_id}")
async def delete_tour(tour_id: UUID, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Delete a tour that has no bookings."""
    tour = await TourService(db).delete_tour(tour_id)
    return JSONResponse(
        status_code=200,
        content={"success": True, "message": f'Tour "{tour.name}" deleted successfully'}
    )
