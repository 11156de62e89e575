"""
Export service: catalog CSV and Excel files.

Writes gemstones with the same columns and value formats the import parser
reads, so an exported file can be imported again unchanged. An export either
renders every selected record or fails as a whole.
"""

import csv
import io
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from io import BytesIO
from typing import Iterable, Optional

from openpyxl import Workbook
from openpyxl.styles import Font, Border, Side
from openpyxl.utils import get_column_letter
import structlog

from config import settings
from exceptions import CatalogExportError
from models.gemstone import CatalogFilter, GemstoneResponse
from parsers.catalog_parser import CATALOG_COLUMNS
from parsers.coercion import (
    format_count,
    format_decimal,
    format_enum,
    format_flag,
    format_money,
)
from services.store import CatalogStore

logger = structlog.get_logger(__name__)

EXPORT_HEADERS = [column.name for column in CATALOG_COLUMNS]

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
EXPORT_FORMATS = ("csv", "xlsx")

# Columns written as numbers in Excel
_NUMERIC_FAMILIES = ("money", "measurement", "count")


@dataclass
class ExportFile:
    """Rendered export ready to send as a download."""
    filename: str
    content: bytes
    media_type: str


def gemstone_to_row(gemstone: GemstoneResponse) -> list[str]:
    """Render one gemstone as text cells in EXPORT_HEADERS order."""
    return [
        gemstone.serial_number,
        format_enum(gemstone.name),
        format_enum(gemstone.color),
        format_enum(gemstone.cut),
        format_enum(gemstone.clarity),
        format_decimal(gemstone.weight_carats),
        format_decimal(gemstone.length_mm),
        format_decimal(gemstone.width_mm),
        format_decimal(gemstone.depth_mm),
        format_money(gemstone.price_amount),
        format_enum(gemstone.price_currency),
        format_money(gemstone.premium_price_amount),
        format_enum(gemstone.premium_price_currency),
        format_flag(gemstone.in_stock),
        format_count(gemstone.delivery_days),
        gemstone.internal_code or "",
        gemstone.origin_id or "",
        gemstone.description or "",
        gemstone.promotional_text or "",
    ]


def _render_rows(gemstones: Iterable[GemstoneResponse]) -> list[list[str]]:
    rows = []
    for gemstone in gemstones:
        try:
            rows.append(gemstone_to_row(gemstone))
        except Exception as e:
            logger.error(
                "export_row_failed",
                gemstone_id=getattr(gemstone, "id", None),
                error=str(e),
            )
            raise CatalogExportError(
                message=f"Could not export gemstone {getattr(gemstone, 'serial_number', '?')}",
                details={"gemstone_id": getattr(gemstone, "id", None), "original_error": str(e)}
            ) from e
    return rows


def serialize_catalog_csv(gemstones: Iterable[GemstoneResponse]) -> str:
    """
    Render gemstones as catalog CSV text.

    Raises:
        CatalogExportError: If any gemstone cannot be rendered
    """
    rows = _render_rows(gemstones)

    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    writer.writerows(rows)
    return output.getvalue()


def safe_filename_part(value: str) -> str:
    """
    Make a serial number safe for a filename.

    'SP 0042/A' -> 'SP-0042-A'
    """
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "-", value or "")
    return cleaned.strip("-.") or "record"


def export_filename(
    gemstones: list[GemstoneResponse],
    single: bool,
    extension: str = "csv",
    today: Optional[date] = None,
) -> str:
    """
    Filename for an export.

    Single-record exports embed the serial number; everything else uses the
    catalog prefix and the date.
    """
    if single and len(gemstones) == 1:
        return f"gemstone-{safe_filename_part(gemstones[0].serial_number)}.{extension}"
    today = today or date.today()
    return f"{settings.export_filename_prefix}-{today.isoformat()}.{extension}"


class ExportService:
    """Service for generating catalog export files."""

    def __init__(self, store: CatalogStore):
        self.store = store

    def select(
        self,
        ids: Optional[list[str]] = None,
        filters: Optional[CatalogFilter] = None,
    ) -> list[GemstoneResponse]:
        """
        Resolve the export selection.

        Explicit ids keep their order; otherwise every gemstone matching the
        filter is returned in the filter's sort order.

        Raises:
            CatalogExportError: If any selected id does not exist
        """
        if ids is None:
            return self.store.list_filtered(filters)

        ids = list(dict.fromkeys(ids))
        found = {gemstone.id: gemstone for gemstone in self.store.get_by_ids(ids)}
        missing = [gemstone_id for gemstone_id in ids if gemstone_id not in found]
        if missing:
            raise CatalogExportError(
                message=f"{len(missing)} selected gemstone(s) no longer exist",
                details={"missing_ids": missing}
            )
        return [found[gemstone_id] for gemstone_id in ids]

    def export_selection(
        self,
        ids: Optional[list[str]] = None,
        filters: Optional[CatalogFilter] = None,
        file_format: str = "csv",
    ) -> ExportFile:
        """
        Export a selection as CSV or Excel.

        Args:
            ids: Explicit gemstone ids (takes precedence over filters)
            filters: Active list filter for "export all"
            file_format: "csv" or "xlsx"

        Returns:
            ExportFile

        Raises:
            CatalogExportError: If the format is unsupported or a selected record is missing
        """
        if file_format not in EXPORT_FORMATS:
            raise CatalogExportError(
                message=f"Unsupported export format: {file_format}",
                details={"file_format": file_format, "supported": list(EXPORT_FORMATS)}
            )

        gemstones = self.select(ids, filters)
        single = ids is not None and len(gemstones) == 1

        logger.info(
            "generating_catalog_export",
            gemstone_count=len(gemstones),
            file_format=file_format,
            by_ids=ids is not None,
        )

        if file_format == "xlsx":
            content = self.generate_catalog_excel(gemstones).getvalue()
            media_type = XLSX_MEDIA_TYPE
        else:
            content = serialize_catalog_csv(gemstones).encode("utf-8")
            media_type = CSV_MEDIA_TYPE

        return ExportFile(
            filename=export_filename(gemstones, single, extension=file_format),
            content=content,
            media_type=media_type,
        )

    def generate_catalog_excel(self, gemstones: list[GemstoneResponse]) -> BytesIO:
        """
        Generate an Excel workbook with the export columns.

        Numeric columns are written as numbers, everything else as text.

        Returns:
            BytesIO containing the Excel file
        """
        rows = _render_rows(gemstones)

        wb = Workbook()
        ws = wb.active
        ws.title = "Catalog"

        bold_font = Font(bold=True)
        thin_border = Border(bottom=Side(style="thin", color="000000"))

        for col_index, header in enumerate(EXPORT_HEADERS, start=1):
            cell = ws.cell(row=1, column=col_index, value=header)
            cell.font = bold_font
            cell.border = thin_border
            ws.column_dimensions[get_column_letter(col_index)].width = max(12, len(header) + 2)

        for row_index, row in enumerate(rows, start=2):
            for col_index, (column, text) in enumerate(zip(CATALOG_COLUMNS, row), start=1):
                value = text
                if text and column.family in _NUMERIC_FAMILIES:
                    value = Decimal(text)
                cell = ws.cell(row=row_index, column=col_index, value=value if value != "" else None)
                if column.family == "money" and text:
                    cell.number_format = "0.00"

        ws.freeze_panes = "A2"

        output = BytesIO()
        wb.save(output)
        output.seek(0)

        logger.info("catalog_excel_generated", rows=len(rows))
        return output
