"""Schemas for spreadsheet import results and image uploads."""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class RowError(BaseModel):
    """A single validation failure found in an import file."""

    row: int = Field(..., description="Spreadsheet row number, header counted as row 1")
    field: str = Field(..., description="Column label")
    message: str
    value: Any = None


class RowAction(str, Enum):
    """Outcome of committing one import row."""
    CREATED = "created"
    UPDATED = "updated"
    ERROR = "error"


class RowOutcome(BaseModel):
    """Per-row result of the commit phase."""

    row: int
    action: RowAction
    name: Any = None
    error: Optional[str] = None


class ImportResults(BaseModel):
    """Aggregate result of the commit phase."""

    success: int = 0
    errors: int = 0
    details: List[RowOutcome] = Field(default_factory=list)


class ImportResponse(BaseModel):
    """Response returned when an import passes validation."""

    message: str
    results: ImportResults


class UploadResponse(BaseModel):
    """Stored image metadata."""

    success: bool = True
    url: str
    file_name: str
    size: int
    type: str
