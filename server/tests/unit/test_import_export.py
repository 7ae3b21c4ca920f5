"""Tests for spreadsheet import and export."""

import csv
import io

import pytest
from openpyxl import Workbook, load_workbook
from sqlalchemy import select

from app.core.exceptions import ValidationError
from app.models import Tour
from app.services.import_export import (
    COL_ACTIVE,
    COL_DESCRIPTION,
    COL_DURATION,
    COL_NAME,
    COL_PRICE,
    COL_PROMOTION,
    COL_PROMOTION_PRICE,
    EXPORT_COLUMNS,
    XLSX_CONTENT_TYPE,
    ImportExportService,
    detect_format,
    parse_csv,
    row_to_fields,
    validate_row,
)
from app.services.tour_service import TourService

HEADER = [COL_NAME, COL_DESCRIPTION, COL_PRICE, COL_DURATION, COL_PROMOTION, COL_PROMOTION_PRICE, COL_ACTIVE]


def make_csv(*rows) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(HEADER)
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue().encode("utf-8")


def make_xlsx(*rows) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(HEADER)
    for row in rows:
        sheet.append(list(row))
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def test_validate_row_reports_every_problem():
    """Test all failing columns of a row are reported with the sheet row number."""
    row = {COL_NAME: " ", COL_DESCRIPTION: "", COL_PRICE: "abc", COL_DURATION: "-1"}

    errors = validate_row(row, 0)

    assert [error.row for error in errors] == [2, 2, 2, 2]
    assert [error.message for error in errors] == [
        "Name is required",
        "Description is required",
        "Price must be a number greater than zero",
        "Duration must be a number greater than zero",
    ]
    assert errors[2].value == "abc"


def test_validate_row_promotion_price():
    """Test the promotional price must undercut the regular price."""
    row = {COL_NAME: "A", COL_DESCRIPTION: "B", COL_PRICE: "50", COL_DURATION: "2", COL_PROMOTION_PRICE: "50"}

    errors = validate_row(row, 3)

    assert len(errors) == 1
    assert errors[0].row == 5
    assert errors[0].field == COL_PROMOTION_PRICE
    assert errors[0].message == "Promotion price must be lower than the regular price"


def test_row_to_fields_flags_and_defaults():
    """Test Sim/Não flags and defaulted columns."""
    row = {
        COL_NAME: " Fado Night ",
        COL_DESCRIPTION: "Live music",
        COL_PRICE: "40",
        COL_DURATION: "3",
        COL_PROMOTION: "SIM",
        COL_PROMOTION_PRICE: "35",
        COL_ACTIVE: "",
    }

    fields = row_to_fields(row)

    assert fields["name"] == "Fado Night"
    assert fields["is_promotion"] is True
    assert fields["promotion_price"] == 35.0
    assert fields["is_active"] is True
    assert fields["is_featured"] is False
    assert fields["category"] == "Tour"
    assert fields["short_description"] == "Live music"


def test_row_to_fields_ignores_price_without_promotion():
    """Test a promotional price is dropped when the promotion flag is off."""
    row = {
        COL_NAME: "Tour",
        COL_DESCRIPTION: "Text",
        COL_PRICE: 40,
        COL_DURATION: 3,
        COL_PROMOTION: "Não",
        COL_PROMOTION_PRICE: 35,
        COL_ACTIVE: "não",
    }

    fields = row_to_fields(row)

    assert fields["is_promotion"] is False
    assert fields["promotion_price"] is None
    assert fields["is_active"] is False


def test_parse_csv_skips_blank_lines():
    """Test blank lines between records are ignored."""
    payload = "\ufeffNome,Preço (£)\n\nA,10\n,\nB,20\n".encode("utf-8")

    rows = parse_csv(payload)

    assert rows == [{"Nome": "A", "Preço (£)": "10"}, {"Nome": "B", "Preço (£)": "20"}]


def test_detect_format():
    """Test accepted and rejected file types."""
    assert detect_format("tours.CSV", None) == "csv"
    assert detect_format("upload", "text/csv") == "csv"
    assert detect_format("tours.xlsx", None) == "xlsx"

    with pytest.raises(ValidationError) as exc_info:
        detect_format("tours.xls", "application/vnd.ms-excel")
    assert exc_info.value.detail["error"] == "Unsupported file type. Use CSV or Excel (.xlsx)"


@pytest.mark.asyncio
async def test_import_rejects_file_with_invalid_row(test_session):
    """Test one invalid row rejects the file and nothing is written."""
    service = ImportExportService(test_session)
    payload = make_csv(
        ["Tour A", "Desc A", "100", "2", "", "", ""],
        ["Tour B", "", "50", "3", "", "", ""],
    )

    with pytest.raises(ValidationError) as exc_info:
        await service.import_tours("tours.csv", "text/csv", payload)

    problem = exc_info.value.detail
    assert problem["error"] == "Validation errors found"
    assert problem["total_rows"] == 2
    assert problem["errors"] == [
        {
            "row": 3,
            "field": COL_DESCRIPTION,
            "message": "Description is required",
            "value": "",
        }
    ]
    assert await TourService(test_session).list_tours() == []


@pytest.mark.asyncio
async def test_import_creates_and_updates_by_slug(test_session, make_tour):
    """Test rows update tours with a matching slug and create the rest."""
    existing = await make_tour("Sintra Palaces", price=70.0)
    service = ImportExportService(test_session)
    payload = make_csv(
        ["Sintra Palaces", "Pena and Regaleira", "85", "6", "", "", ""],
        ["Arrábida Kayak", "Paddle the coast", "45", "3", "Sim", "39.5", "Sim"],
    )

    results = await service.import_tours("tours.csv", "text/csv", payload)

    assert results.success == 2
    assert results.errors == 0
    assert [detail.action.value for detail in results.details] == ["updated", "created"]
    assert [detail.row for detail in results.details] == [2, 3]

    tour_service = TourService(test_session)
    updated = await tour_service.get_tour_by_id(existing.id)
    assert updated.price == 85
    assert updated.description == "Pena and Regaleira"

    created = await tour_service.get_tour_by_slug("arrabida-kayak")
    assert created is not None
    assert created.is_promotion is True
    assert created.promotion_price == 39.5


@pytest.mark.asyncio
async def test_import_xlsx(test_session):
    """Test importing an Excel workbook with numeric cells."""
    service = ImportExportService(test_session)
    payload = make_xlsx(["Cabo da Roca", "Westernmost point", 30, 2.5, None, None, None])

    results = await service.import_tours("tours.xlsx", XLSX_CONTENT_TYPE, payload)

    assert results.success == 1
    tour = await TourService(test_session).get_tour_by_slug("cabo-da-roca")
    assert tour.duration == 2.5
    assert tour.is_active is True


@pytest.mark.asyncio
async def test_import_empty_file(test_session):
    """Test a header-only file is rejected."""
    service = ImportExportService(test_session)

    with pytest.raises(ValidationError) as exc_info:
        await service.import_tours("tours.csv", "text/csv", make_csv())

    assert exc_info.value.detail["error"] == "The file is empty or has no data rows"


@pytest.mark.asyncio
async def test_import_unreadable_workbook(test_session):
    """Test garbage bytes posing as a workbook are reported as unreadable."""
    service = ImportExportService(test_session)

    with pytest.raises(ValidationError) as exc_info:
        await service.import_tours("tours.xlsx", None, b"not a zip file")

    assert exc_info.value.detail["error"] == "Could not read the file. Check the format and try again."


@pytest.mark.asyncio
async def test_export_csv(test_session, make_tour):
    """Test CSV export columns and localized flags."""
    await make_tour("Export Me", is_featured=True, price=12.5)
    export = await ImportExportService(test_session).export_tours("csv")

    assert export.filename.startswith("tours_")
    assert export.filename.endswith(".csv")
    assert export.media_type.startswith("text/csv")

    lines = export.content.decode("utf-8").split("\n")
    assert lines[0] == ",".join(f'"{label}"' for label, _ in EXPORT_COLUMNS)

    record = next(csv.DictReader(io.StringIO(export.content.decode("utf-8"))))
    assert record[COL_NAME] == "Export Me"
    assert record[COL_PRICE] == "12.5"
    assert record[COL_DURATION] == "4"
    assert record["Em Destaque"] == "Sim"
    assert record[COL_PROMOTION] == "Não"
    assert record[COL_ACTIVE] == "Sim"
    assert record["Slug"] == "export-me"


@pytest.mark.asyncio
async def test_export_xlsx(test_session, make_tour):
    """Test the workbook has a Tours sheet with the header row."""
    await make_tour("Sheet Tour")
    export = await ImportExportService(test_session).export_tours("xlsx")

    assert export.filename.endswith(".xlsx")
    workbook = load_workbook(io.BytesIO(export.content))
    sheet = workbook["Tours"]
    assert [cell.value for cell in sheet[1]] == [label for label, _ in EXPORT_COLUMNS]
    assert sheet["A2"].value == "Sheet Tour"
    assert sheet.column_dimensions["B"].width == 50


ROUND_TRIP_COLUMNS = (
    Tour.slug,
    Tour.name,
    Tour.description,
    Tour.short_description,
    Tour.price,
    Tour.duration,
    Tour.category,
    Tour.image_url,
    Tour.is_featured,
    Tour.is_promotion,
    Tour.promotion_price,
    Tour.is_active,
)


async def catalog_snapshot(session) -> dict:
    result = await session.execute(select(*ROUND_TRIP_COLUMNS))
    return {row[0]: tuple(row) for row in result.all()}


async def make_round_trip_catalog(make_tour):
    await make_tour("Round Trip One")
    await make_tour(
        "Round Trip Two",
        description="Tagus sunset, wine included",
        short_description="Sunset cruise",
        price=89.9,
        duration=2.5,
        category="Cruise",
        image_url="/uploads/1700000000000_cruise.jpg",
        is_featured=True,
        is_promotion=True,
        promotion_price=75.0,
        is_active=False,
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("export_format,content_type", [
    ("csv", "text/csv"),
    ("xlsx", XLSX_CONTENT_TYPE),
])
async def test_export_then_import_preserves_every_field(test_session, make_tour, export_format, content_type):
    """Test re-importing an export updates tours in place with identical values."""
    await make_round_trip_catalog(make_tour)
    before = await catalog_snapshot(test_session)
    service = ImportExportService(test_session)
    export = await service.export_tours(export_format)

    results = await service.import_tours(export.filename, content_type, export.content)

    assert results.success == 2
    assert results.errors == 0
    assert {detail.action.value for detail in results.details} == {"updated"}
    assert await catalog_snapshot(test_session) == before


@pytest.mark.asyncio
async def test_export_csv_doubles_embedded_quotes(test_session, make_tour):
    """Test quotes inside values are doubled and read back intact."""
    await make_tour('The "Best" Tour', description='Say "olá" to Lisbon')
    export = await ImportExportService(test_session).export_tours("csv")
    content = export.content.decode("utf-8")

    assert '"The ""Best"" Tour"' in content
    assert '"Say ""olá"" to Lisbon"' in content

    record = next(csv.DictReader(io.StringIO(content)))
    assert record[COL_NAME] == 'The "Best" Tour'
    assert record[COL_DESCRIPTION] == 'Say "olá" to Lisbon'


@pytest.mark.asyncio
async def test_import_row_write_failure_is_reported_and_others_continue(test_session, monkeypatch):
    """Test a failed commit marks that row as an error and later rows still land."""
    service = ImportExportService(test_session)
    payload = make_csv(
        ["Tour A", "Desc A", "10", "1", "", "", ""],
        ["Tour B", "Desc B", "20", "2", "", "", ""],
        ["Tour C", "Desc C", "30", "3", "", "", ""],
    )

    real_commit = test_session.commit
    calls = {"count": 0}

    async def flaky_commit():
        calls["count"] += 1
        if calls["count"] == 2:
            raise RuntimeError("write failed")
        await real_commit()

    monkeypatch.setattr(test_session, "commit", flaky_commit)

    results = await service.import_tours("tours.csv", "text/csv", payload)

    assert results.success == 2
    assert results.errors == 1
    assert [detail.action.value for detail in results.details] == ["created", "error", "created"]
    failed = results.details[1]
    assert failed.row == 3
    assert failed.name == "Tour B"
    assert failed.error == "write failed"

    names = (await test_session.execute(select(Tour.name).order_by(Tour.name))).scalars().all()
    assert names == ["Tour A", "Tour C"]


@pytest.mark.asyncio
async def test_import_endpoint(admin_client):
    """Test the import endpoint wraps the results."""
    payload = make_csv(["Endpoint Tour", "Imported over HTTP", "20", "1", "", "", ""])

    response = await admin_client.post(
        "/v1/admin/tours/import",
        files={"file": ("tours.csv", payload, "text/csv")}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Import completed"
    assert data["results"]["success"] == 1
    assert data["results"]["details"][0]["action"] == "created"


@pytest.mark.asyncio
async def test_import_endpoint_validation_errors(admin_client):
    """Test row errors are returned in the problem body."""
    payload = make_csv(["", "No name", "20", "1", "", "", ""])

    response = await admin_client.post(
        "/v1/admin/tours/import",
        files={"file": ("tours.csv", payload, "text/csv")}
    )

    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "Validation errors found"
    assert data["errors"][0]["row"] == 2
    assert data["errors"][0]["message"] == "Name is required"


@pytest.mark.asyncio
async def test_export_endpoint(admin_client, make_tour):
    """Test the export endpoint sends a CSV download."""
    await make_tour("Download Tour")

    response = await admin_client.get("/v1/admin/tours/export", params={"format": "csv"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="tours_')
    assert "Download Tour" in response.text
