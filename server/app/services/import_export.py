"""Spreadsheet import and export of the tour catalog.

Import runs in two phases. Every row is validated first and a single invalid
row rejects the whole file without writing anything. Rows that pass are then
committed one at a time; a failure while writing a row is recorded against
that row and the remaining rows are still processed.
"""

import csv
import io
import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from openpyxl import Workbook, load_workbook
from openpyxl.utils import get_column_letter
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ValidationError
from ..core.observability import get_logger, metrics_collector
from ..models.tour import DEFAULT_CATEGORY, Tour
from ..schemas.transfer import ImportResults, RowAction, RowError, RowOutcome
from .slug import generate_slug
from .tour_service import TourService, default_short_description

logger = get_logger(__name__)


# Column labels, in export order
COL_NAME = "Nome"
COL_DESCRIPTION = "Descrição"
COL_SHORT_DESCRIPTION = "Descrição Curta"
COL_PRICE = "Preço (£)"
COL_DURATION = "Duração (horas)"
COL_CATEGORY = "Categoria"
COL_IMAGE_URL = "URL da Imagem"
COL_FEATURED = "Em Destaque"
COL_PROMOTION = "Em Promoção"
COL_PROMOTION_PRICE = "Preço Promocional (£)"
COL_ACTIVE = "Ativo"
COL_SLUG = "Slug"
COL_CREATED_AT = "Data de Criação"

EXPORT_COLUMNS = [
    (COL_NAME, 30),
    (COL_DESCRIPTION, 50),
    (COL_SHORT_DESCRIPTION, 30),
    (COL_PRICE, 12),
    (COL_DURATION, 15),
    (COL_CATEGORY, 15),
    (COL_IMAGE_URL, 40),
    (COL_FEATURED, 12),
    (COL_PROMOTION, 12),
    (COL_PROMOTION_PRICE, 18),
    (COL_ACTIVE, 8),
    (COL_SLUG, 25),
    (COL_CREATED_AT, 15),
]

YES = "sim"
NO = "não"

CSV_CONTENT_TYPE = "text/csv"
XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@dataclass
class ExportFile:
    """Serialized export ready to be sent as a download."""

    content: bytes
    media_type: str
    filename: str


def _is_blank(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def _parse_number(value: Any) -> Optional[float]:
    """Parse a spreadsheet cell as a finite number, or return None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def _parse_flag(value: Any, default: bool) -> bool:
    """Read a Sim/Não column; blank cells fall back to ``default``."""
    if _is_blank(value):
        return default
    text = str(value).strip().lower()
    if default:
        return text != NO
    return text == YES


def _format_number(value: Optional[float]) -> Any:
    if value is None:
        return ""
    return int(value) if float(value).is_integer() else value


def _json_safe(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def validate_row(row: Dict[str, Any], index: int) -> List[RowError]:
    """
    Validate one parsed row.

    Args:
        row: Column label to raw cell value
        index: Zero-based position among the data rows

    Returns:
        All errors found in the row; empty when the row is valid
    """
    errors: List[RowError] = []
    row_number = index + 2

    def add(field: str, message: str) -> None:
        errors.append(RowError(row=row_number, field=field, message=message, value=_json_safe(row.get(field))))

    if _is_blank(row.get(COL_NAME)):
        add(COL_NAME, "Name is required")

    if _is_blank(row.get(COL_DESCRIPTION)):
        add(COL_DESCRIPTION, "Description is required")

    price = _parse_number(row.get(COL_PRICE))
    if price is None or price <= 0:
        add(COL_PRICE, "Price must be a number greater than zero")

    duration = _parse_number(row.get(COL_DURATION))
    if duration is None or duration <= 0:
        add(COL_DURATION, "Duration must be a number greater than zero")

    if not _is_blank(row.get(COL_PROMOTION_PRICE)):
        promotion_price = _parse_number(row.get(COL_PROMOTION_PRICE))
        if promotion_price is None or promotion_price <= 0:
            add(COL_PROMOTION_PRICE, "Promotion price must be a number greater than zero")
        elif price is not None and promotion_price >= price:
            add(COL_PROMOTION_PRICE, "Promotion price must be lower than the regular price")

    return errors


def row_to_fields(row: Dict[str, Any]) -> Dict[str, Any]:
    """Map a validated row onto tour column values (slug excluded)."""
    name = str(row[COL_NAME]).strip()
    description = str(row[COL_DESCRIPTION]).strip()
    short_description = row.get(COL_SHORT_DESCRIPTION)
    is_promotion = _parse_flag(row.get(COL_PROMOTION), default=False)
    promotion_price = None
    if is_promotion and not _is_blank(row.get(COL_PROMOTION_PRICE)):
        promotion_price = _parse_number(row.get(COL_PROMOTION_PRICE))

    return {
        "name": name,
        "description": description,
        "short_description": default_short_description(
            description, None if _is_blank(short_description) else str(short_description)
        ),
        "price": _parse_number(row[COL_PRICE]),
        "duration": _parse_number(row[COL_DURATION]),
        "category": DEFAULT_CATEGORY if _is_blank(row.get(COL_CATEGORY)) else str(row[COL_CATEGORY]).strip(),
        "image_url": None if _is_blank(row.get(COL_IMAGE_URL)) else str(row[COL_IMAGE_URL]).strip(),
        "is_featured": _parse_flag(row.get(COL_FEATURED), default=False),
        "is_promotion": is_promotion,
        "promotion_price": promotion_price,
        "is_active": _parse_flag(row.get(COL_ACTIVE), default=True),
    }


def tour_to_row(tour: Tour) -> Dict[str, Any]:
    """Project a tour onto the localized export columns."""
    return {
        COL_NAME: tour.name or "",
        COL_DESCRIPTION: tour.description or "",
        COL_SHORT_DESCRIPTION: tour.short_description or "",
        COL_PRICE: _format_number(tour.price) or 0,
        COL_DURATION: _format_number(tour.duration) or 0,
        COL_CATEGORY: tour.category or "",
        COL_IMAGE_URL: tour.image_url or "",
        COL_FEATURED: "Sim" if tour.is_featured else "Não",
        COL_PROMOTION: "Sim" if tour.is_promotion else "Não",
        COL_PROMOTION_PRICE: _format_number(tour.promotion_price),
        COL_ACTIVE: "Não" if tour.is_active is False else "Sim",
        COL_SLUG: tour.slug or "",
        COL_CREATED_AT: tour.created_at.strftime("%d/%m/%Y") if tour.created_at else "",
    }


def parse_csv(payload: bytes) -> List[Dict[str, Any]]:
    """Parse a CSV upload with a header row, skipping blank lines."""
    text = payload.decode("utf-8-sig")
    reader = csv.reader(io.StringIO(text))
    header: Optional[List[str]] = None
    rows: List[Dict[str, Any]] = []
    for record in reader:
        if not any(cell.strip() for cell in record):
            continue
        if header is None:
            header = [cell.strip() for cell in record]
            continue
        rows.append({label: record[i] if i < len(record) else "" for i, label in enumerate(header)})
    return rows


def parse_xlsx(payload: bytes) -> List[Dict[str, Any]]:
    """Parse the first worksheet; row 1 is the header."""
    workbook = load_workbook(io.BytesIO(payload), read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        records = sheet.iter_rows(values_only=True)
        header_row = next(records, None)
        if header_row is None:
            return []
        header = ["" if cell is None else str(cell).strip() for cell in header_row]
        rows: List[Dict[str, Any]] = []
        for record in records:
            if all(_is_blank(cell) for cell in record):
                continue
            rows.append({
                label: "" if i >= len(record) or record[i] is None else record[i]
                for i, label in enumerate(header)
            })
        return rows
    finally:
        workbook.close()


def detect_format(filename: str, content_type: Optional[str]) -> str:
    """
    Return "csv" or "xlsx" for an uploaded file.

    Raises:
        ValidationError: For any other file type
    """
    lowered = (filename or "").lower()
    if lowered.endswith(".csv") or content_type == CSV_CONTENT_TYPE:
        return "csv"
    if lowered.endswith(".xlsx") or content_type == XLSX_CONTENT_TYPE:
        return "xlsx"
    raise ValidationError(detail="Unsupported file type. Use CSV or Excel (.xlsx)")


class ImportExportService:
    """Moves the tour catalog to and from CSV/XLSX spreadsheets."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.tour_service = TourService(db)

    async def export_tours(self, export_format: str = "csv") -> ExportFile:
        """
        Serialize every tour, newest first.

        Args:
            export_format: "xlsx" for a workbook; anything else yields CSV

        Returns:
            ExportFile with content, media type and download filename
        """
        tours = await self.tour_service.list_tours()
        rows = [tour_to_row(tour) for tour in tours]
        stamp = date.today().isoformat()

        if export_format == "xlsx":
            export = ExportFile(
                content=self._to_xlsx(rows),
                media_type=XLSX_CONTENT_TYPE,
                filename=f"tours_{stamp}.xlsx",
            )
        else:
            export_format = "csv"
            export = ExportFile(
                content=self._to_csv(rows).encode("utf-8"),
                media_type=f"{CSV_CONTENT_TYPE}; charset=utf-8",
                filename=f"tours_{stamp}.csv",
            )

        metrics_collector.record_export(export_format)
        logger.info("Tours exported", format=export_format, rows=len(rows))
        return export

    @staticmethod
    def _to_csv(rows: List[Dict[str, Any]]) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        labels = [label for label, _ in EXPORT_COLUMNS]
        writer.writerow(labels)
        for row in rows:
            writer.writerow([row[label] for label in labels])
        return buffer.getvalue().rstrip("\n")

    @staticmethod
    def _to_xlsx(rows: List[Dict[str, Any]]) -> bytes:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "Tours"
        labels = [label for label, _ in EXPORT_COLUMNS]
        sheet.append(labels)
        for row in rows:
            sheet.append([row[label] for label in labels])
        for position, (_, width) in enumerate(EXPORT_COLUMNS, start=1):
            sheet.column_dimensions[get_column_letter(position)].width = width

        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    def parse(self, filename: str, content_type: Optional[str], payload: bytes) -> List[Dict[str, Any]]:
        """
        Parse an uploaded spreadsheet into rows keyed by column label.

        Raises:
            ValidationError: On unsupported type, unreadable file or no data rows
        """
        file_format = detect_format(filename, content_type)
        try:
            rows = parse_csv(payload) if file_format == "csv" else parse_xlsx(payload)
        except Exception as e:
            logger.warning("Import file could not be parsed", filename=filename, error=str(e))
            raise ValidationError(detail="Could not read the file. Check the format and try again.") from e

        if not rows:
            raise ValidationError(detail="The file is empty or has no data rows")
        return rows

    async def import_tours(self, filename: str, content_type: Optional[str], payload: bytes) -> ImportResults:
        """
        Validate and commit an uploaded spreadsheet.

        Raises:
            ValidationError: If the file cannot be parsed or any row is invalid;
                nothing is written in that case
        """
        rows = self.parse(filename, content_type, payload)

        errors: List[RowError] = []
        for index, row in enumerate(rows):
            errors.extend(validate_row(row, index))

        if errors:
            metrics_collector.record_import_rejected()
            logger.warning("Import rejected by validation", filename=filename, rows=len(rows), errors=len(errors))
            raise ValidationError(
                detail="Validation errors found",
                errors=[error.model_dump() for error in errors],
                total_rows=len(rows),
            )

        results = ImportResults()
        for index, row in enumerate(rows):
            outcome = await self._commit_row(row, index + 2)
            results.details.append(outcome)
            if outcome.action is RowAction.ERROR:
                results.errors += 1
            else:
                results.success += 1
            metrics_collector.record_import_row(outcome.action.value)

        logger.info(
            "Import finished",
            filename=filename,
            rows=len(rows),
            success=results.success,
            errors=results.errors,
        )
        return results

    async def _commit_row(self, row: Dict[str, Any], row_number: int) -> RowOutcome:
        row_logger = logger.with_context(row=row_number)
        try:
            fields = row_to_fields(row)
            slug = generate_slug(fields["name"])
            existing = await self.tour_service.get_tour_by_slug(slug)

            if existing:
                for key, value in fields.items():
                    setattr(existing, key, value)
                action = RowAction.UPDATED
            else:
                self.db.add(Tour(slug=slug, **fields))
                action = RowAction.CREATED

            await self.db.commit()
            row_logger.debug("Import row committed", action=action.value, slug=slug)
            return RowOutcome(row=row_number, action=action, name=fields["name"])
        except Exception as e:
            await self.db.rollback()
            row_logger.error("Import row failed", error=str(e))
            return RowOutcome(
                row=row_number,
                action=RowAction.ERROR,
                name=_json_safe(row.get(COL_NAME)),
                error=str(e) or e.__class__.__name__,
            )
