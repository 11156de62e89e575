"""
Tests for export_service: catalog CSV and Excel generation.
"""

import csv
import io
from datetime import date
from io import BytesIO

import pytest
from openpyxl import load_workbook

from exceptions import CatalogExportError
from models.gemstone import CatalogFilter, GemstoneResponse, GemstoneType
from parsers.catalog_parser import parse_catalog_csv, parse_catalog_excel
from services.export_service import (
    EXPORT_HEADERS,
    ExportService,
    export_filename,
    safe_filename_part,
    serialize_catalog_csv,
)
from services.import_service import build_gemstone_create
from services.validation_service import validate_staged_record

from tests.factories import FakeCatalogStore, GemstoneFactory


def full_gemstone(**overrides) -> GemstoneResponse:
    row = GemstoneFactory.create(
        premium_price_amount=140000,
        premium_price_currency="EUR",
        internal_code="INT-7",
        origin_id="ceylon",
        promotional_text='Rare, "cornflower" blue',
    )
    row.update(overrides)
    return GemstoneResponse(**row)


class TestSerializeCatalogCsv:
    """Tests for serialize_catalog_csv()"""

    def test_header_matches_import_columns(self):
        text = serialize_catalog_csv([])
        assert text.splitlines() == [",".join(EXPORT_HEADERS)]

    def test_value_formats(self):
        gemstone = full_gemstone(price_amount=12500, in_stock=False)
        rows = list(csv.DictReader(io.StringIO(serialize_catalog_csv([gemstone]))))

        assert rows[0]["price"] == "125.00"
        assert rows[0]["premium_price"] == "1400.00"
        assert rows[0]["in_stock"] == "no"
        assert rows[0]["type"] == "sapphire"
        assert rows[0]["weight"] == "1.25"
        assert rows[0]["promotional_text"] == 'Rare, "cornflower" blue'

    def test_optional_fields_blank(self):
        gemstone = GemstoneResponse(**GemstoneFactory.create(cut=None, delivery_days=None))
        rows = list(csv.DictReader(io.StringIO(serialize_catalog_csv([gemstone]))))
        assert rows[0]["cut"] == ""
        assert rows[0]["delivery_days"] == ""
        assert rows[0]["premium_currency"] == ""

    def test_round_trip_through_parser(self):
        gemstones = [full_gemstone(), full_gemstone(name="ruby", color="red", price_amount=1)]

        records = list(parse_catalog_csv(serialize_catalog_csv(gemstones)))

        assert len(records) == 2
        for gemstone, record in zip(gemstones, records):
            validate_staged_record(record)
            assert not record.has_errors
            data = build_gemstone_create(record)
            assert data.serial_number == gemstone.serial_number
            assert data.name == gemstone.name
            assert data.color == gemstone.color
            assert data.cut == gemstone.cut
            assert data.clarity == gemstone.clarity
            assert data.weight_carats == gemstone.weight_carats
            assert data.length_mm == gemstone.length_mm
            assert data.price_amount == gemstone.price_amount
            assert data.price_currency == gemstone.price_currency
            assert data.premium_price_amount == gemstone.premium_price_amount
            assert data.premium_price_currency == gemstone.premium_price_currency
            assert data.in_stock == gemstone.in_stock
            assert data.delivery_days == gemstone.delivery_days
            assert data.internal_code == gemstone.internal_code
            assert data.origin_id == gemstone.origin_id
            assert data.description == gemstone.description
            assert data.promotional_text == gemstone.promotional_text

    def test_unrenderable_record_fails_whole_export(self):
        good = full_gemstone()
        bad = full_gemstone()
        object.__setattr__(bad, "weight_carats", "heavy")

        with pytest.raises(CatalogExportError) as exc_info:
            serialize_catalog_csv([good, bad])
        assert exc_info.value.details["gemstone_id"] == bad.id


class TestExportFilename:
    """Tests for export file naming."""

    def test_single_record_uses_serial(self):
        gemstone = full_gemstone(serial_number="SP 0042/A")
        assert export_filename([gemstone], single=True) == "gemstone-SP-0042-A.csv"

    def test_multiple_records_use_date(self):
        gemstones = [full_gemstone(), full_gemstone()]
        name = export_filename(gemstones, single=False, extension="xlsx", today=date(2026, 3, 1))
        assert name == "gemstones-export-2026-03-01.xlsx"

    def test_safe_filename_part(self):
        assert safe_filename_part("../etc") == "etc"
        assert safe_filename_part("") == "record"


class TestExportService:
    """Tests for ExportService.export_selection()"""

    def test_ids_exported_in_selection_order(self):
        rows = GemstoneFactory.create_batch(3)
        store = FakeCatalogStore(rows)
        ids = [rows[2]["id"], rows[0]["id"]]

        export = ExportService(store).export_selection(ids=ids)

        records = list(parse_catalog_csv(export.content.decode("utf-8")))
        assert [r.business_key for r in records] == [rows[2]["serial_number"], rows[0]["serial_number"]]
        assert export.media_type.startswith("text/csv")

    def test_single_id_filename(self):
        row = GemstoneFactory.create(serial_number="DM-001")
        export = ExportService(FakeCatalogStore([row])).export_selection(ids=[row["id"]])
        assert export.filename == "gemstone-DM-001.csv"

    def test_missing_id_fails(self):
        store = FakeCatalogStore(GemstoneFactory.create_batch(1))
        with pytest.raises(CatalogExportError) as exc_info:
            ExportService(store).export_selection(ids=["missing-id"])
        assert exc_info.value.details["missing_ids"] == ["missing-id"]

    def test_unsupported_format_rejected(self):
        store = FakeCatalogStore(GemstoneFactory.create_batch(1))
        with pytest.raises(CatalogExportError) as exc_info:
            ExportService(store).export_selection(ids=list(store.rows), file_format="pdf")
        assert exc_info.value.details["file_format"] == "pdf"

    def test_filtered_export(self):
        store = FakeCatalogStore([
            GemstoneFactory.create(name="ruby", color="red"),
            GemstoneFactory.create(name="sapphire"),
            GemstoneFactory.create(name="ruby", color="red"),
        ])

        export = ExportService(store).export_selection(filters=CatalogFilter(name=GemstoneType.RUBY))

        records = list(parse_catalog_csv(export.content.decode("utf-8")))
        assert len(records) == 2
        assert export.filename.startswith("gemstones-export-")

    def test_excel_export_reads_back(self):
        rows = GemstoneFactory.create_batch(2)
        store = FakeCatalogStore(rows)

        export = ExportService(store).export_selection(
            ids=[r["id"] for r in rows], file_format="xlsx"
        )

        wb = load_workbook(BytesIO(export.content))
        ws = wb.active
        assert [cell.value for cell in ws[1]] == EXPORT_HEADERS
        assert ws.cell(row=2, column=1).value == rows[0]["serial_number"]
        assert export.filename.endswith(".xlsx")

        records = list(parse_catalog_excel(export.content))
        assert [r.value("price") for r in records] == [r["price_amount"] for r in rows]
        assert not any(r.has_errors for r in records)
