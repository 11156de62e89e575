"""
Catalog file parser for bulk gemstone import.

Turns an uploaded CSV (or .xlsx) file into StagedRecord objects in file
order. The header is checked before any row is read; a missing required
column is the only condition that rejects the whole file. Everything else
is reported per row as a ValidationIssue.

CSV convention: UTF-8, comma separated, double-quote escaping ("" inside a
quoted field), newlines allowed inside quoted fields, header row required.
"""

import csv
import io
from dataclasses import dataclass
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Iterable, Iterator, Optional, Union
import structlog

import pandas as pd

from config import settings
from exceptions import (
    CatalogParseError,
    CatalogMissingColumnsError,
    CatalogUploadError,
)
from models.catalog import (
    ROW_FIELD,
    CountValue,
    EnumValue,
    FlagValue,
    IdentifierValue,
    MeasurementValue,
    MoneyValue,
    StagedRecord,
    TextValue,
)
from models.gemstone import (
    CurrencyCode,
    GemClarity,
    GemColor,
    GemCut,
    GemstoneType,
)
from parsers.coercion import (
    CoercionError,
    parse_count,
    parse_enum,
    parse_flag,
    parse_measurement,
    parse_money,
)

logger = structlog.get_logger(__name__)

ALLOWED_EXTENSIONS = (".csv", ".xlsx")


# ===================
# COLUMN SCHEMA
# ===================

@dataclass(frozen=True)
class CatalogColumn:
    """
    One column of the catalog file.

    family selects the coercion rule: identifier, enum, money,
    measurement, count, flag or text.
    """
    name: str
    family: str
    label: str
    required: bool = False
    blank_is_error: bool = False
    vocabulary: Optional[type[Enum]] = None
    aliases: tuple[str, ...] = ()


# Order here is the export column order.
CATALOG_COLUMNS: tuple[CatalogColumn, ...] = (
    CatalogColumn("serial", "identifier", "serial number", required=True,
                  aliases=("serialnumber", "serial_number", "serial_no")),
    CatalogColumn("type", "enum", "gemstone type", required=True, blank_is_error=True,
                  vocabulary=GemstoneType, aliases=("name", "gemstone_type", "gemstone")),
    CatalogColumn("color", "enum", "color", required=True, blank_is_error=True,
                  vocabulary=GemColor),
    CatalogColumn("cut", "enum", "cut", vocabulary=GemCut),
    CatalogColumn("clarity", "enum", "clarity", vocabulary=GemClarity),
    CatalogColumn("weight", "measurement", "weight", blank_is_error=True,
                  aliases=("weight_carats", "weight_ct", "carats")),
    CatalogColumn("length", "measurement", "length", aliases=("length_mm",)),
    CatalogColumn("width", "measurement", "width", aliases=("width_mm",)),
    CatalogColumn("depth", "measurement", "depth", aliases=("depth_mm",)),
    CatalogColumn("price", "money", "price", required=True, blank_is_error=True,
                  aliases=("price_amount",)),
    CatalogColumn("currency", "enum", "currency", vocabulary=CurrencyCode,
                  aliases=("price_currency",)),
    CatalogColumn("premium_price", "money", "premium price",
                  aliases=("premium_price_amount",)),
    CatalogColumn("premium_currency", "enum", "premium currency", vocabulary=CurrencyCode,
                  aliases=("premium_price_currency",)),
    CatalogColumn("in_stock", "flag", "stock flag", aliases=("instock", "stock")),
    CatalogColumn("delivery_days", "count", "delivery days"),
    CatalogColumn("internal_code", "identifier", "internal code"),
    CatalogColumn("origin_id", "identifier", "origin", aliases=("origin",)),
    CatalogColumn("description", "text", "description"),
    CatalogColumn("promotional_text", "text", "promotional text"),
)

REQUIRED_COLUMNS = tuple(c.name for c in CATALOG_COLUMNS if c.required)
COLUMNS_BY_NAME = {c.name: c for c in CATALOG_COLUMNS}


def _normalize_column(col: str) -> str:
    """
    Normalize column name for consistent matching.

    "Serial Number" -> "serial_number"
    "Weight (carats)" -> "weight"
    "length_mm" -> "length_mm"
    """
    col = str(col).lower().strip().lstrip("\ufeff")
    for unit in ("(carats)", "(ct)", "(mm)"):
        col = col.replace(unit, "")
    col = col.strip().replace("-", "_").replace(" ", "_")
    while "__" in col:
        col = col.replace("__", "_")
    return col.strip("_")


def _build_lookup(columns: Iterable[CatalogColumn]) -> dict[str, CatalogColumn]:
    lookup = {}
    for column in columns:
        lookup[column.name] = column
        for alias in column.aliases:
            lookup[alias] = column
    return lookup


def read_header(
    header: list[str],
    columns: tuple[CatalogColumn, ...] = CATALOG_COLUMNS,
) -> dict[int, CatalogColumn]:
    """
    Map header positions to known columns.

    Unknown columns are ignored. When two header cells resolve to the same
    column the first one wins.

    Raises:
        CatalogMissingColumnsError: If a required column is absent
    """
    lookup = _build_lookup(columns)
    positions: dict[int, CatalogColumn] = {}
    seen: set[str] = set()
    ignored = []

    for index, cell in enumerate(header):
        column = lookup.get(_normalize_column(cell))
        if column is None:
            ignored.append(str(cell))
            continue
        if column.name in seen:
            logger.warning("catalog_duplicate_header", column=column.name, position=index)
            continue
        seen.add(column.name)
        positions[index] = column

    missing = [c.name for c in columns if c.required and c.name not in seen]
    if missing:
        logger.warning("catalog_header_rejected", missing=missing)
        raise CatalogMissingColumnsError(missing=missing, found=[str(h) for h in header])

    if ignored:
        logger.debug("catalog_columns_ignored", columns=ignored)

    return positions


# ===================
# ROW STAGING
# ===================

def stage_row(row_index: int, raw_fields: dict[str, str]) -> StagedRecord:
    """
    Coerce one row of raw cells into a StagedRecord.

    Args:
        row_index: 1-based data row ordinal
        raw_fields: Canonical column name -> original cell text

    Returns:
        StagedRecord with typed fields and any coercion issues
    """
    record = StagedRecord(row_index=row_index, raw_fields=dict(raw_fields))
    for name, raw in raw_fields.items():
        column = COLUMNS_BY_NAME[name]
        text = "" if raw is None else str(raw).strip()

        if not text:
            if column.family == "identifier" and column.required:
                # Blank business key is reported by validation
                record.parsed_fields[name] = IdentifierValue("")
            elif column.blank_is_error:
                record.add_error(name, f"{column.label} is required")
            continue

        try:
            if column.family == "identifier":
                record.parsed_fields[name] = IdentifierValue(text)
            elif column.family == "enum":
                record.parsed_fields[name] = EnumValue(
                    parse_enum(text, column.vocabulary, column.label)
                )
            elif column.family == "money":
                record.parsed_fields[name] = MoneyValue(parse_money(text, column.label))
            elif column.family == "measurement":
                record.parsed_fields[name] = MeasurementValue(
                    parse_measurement(text, column.label)
                )
            elif column.family == "count":
                record.parsed_fields[name] = CountValue(parse_count(text, column.label))
            elif column.family == "flag":
                record.parsed_fields[name] = FlagValue(parse_flag(text, column.label))
            else:
                record.parsed_fields[name] = TextValue(text)
        except CoercionError as e:
            record.add_error(name, e.message)

    return record


def _malformed_row(row_index: int, message: str, raw_text: str = "") -> StagedRecord:
    record = StagedRecord(row_index=row_index, raw_fields={ROW_FIELD: raw_text})
    record.add_error(ROW_FIELD, message)
    return record


def _iter_csv_rows(
    reader,
    positions: dict[int, CatalogColumn],
    width: int,
) -> Iterator[StagedRecord]:
    row_index = 0
    while True:
        try:
            cells = next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            row_index += 1
            logger.debug("catalog_row_malformed", row=row_index, error=str(e))
            yield _malformed_row(row_index, f"Malformed row: {e}")
            continue

        # Blank lines do not take a row index
        if not any(cell.strip() for cell in cells):
            continue

        row_index += 1
        if len(cells) != width:
            yield _malformed_row(
                row_index,
                f"Expected {width} fields, found {len(cells)}",
                ",".join(cells),
            )
            continue

        yield stage_row(
            row_index,
            {column.name: cells[index] for index, column in positions.items()},
        )


def parse_catalog_csv(text: str) -> Iterator[StagedRecord]:
    """
    Parse catalog CSV text.

    The header is validated immediately; rows are staged lazily as the
    returned iterator is consumed. The iterator can be consumed only once.

    Args:
        text: Decoded CSV content

    Returns:
        Iterator of StagedRecord in file order

    Raises:
        CatalogParseError: If the file has no header row
        CatalogMissingColumnsError: If required columns are missing
    """
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff"), newline=""), strict=True)

    try:
        header = next(reader)
        while not any(cell.strip() for cell in header):
            header = next(reader)
    except StopIteration:
        raise CatalogParseError("Catalog file is empty; a header row is required")
    except csv.Error as e:
        raise CatalogParseError(
            message="Header row could not be read",
            details={"original_error": str(e)}
        )

    positions = read_header(header)
    logger.info(
        "catalog_header_accepted",
        columns=[column.name for column in positions.values()],
    )
    return _iter_csv_rows(reader, positions, len(header))


def parse_catalog_excel(file: Union[str, Path, bytes, BytesIO]) -> Iterator[StagedRecord]:
    """
    Parse the first worksheet of a catalog .xlsx file.

    Cells are read as text and staged exactly like CSV cells.

    Raises:
        CatalogParseError: If the workbook cannot be read
        CatalogMissingColumnsError: If required columns are missing
    """
    logger.info("parsing_catalog_excel", file_type=type(file).__name__)

    if isinstance(file, bytes):
        file = BytesIO(file)

    try:
        df = pd.read_excel(
            file,
            sheet_name=0,
            dtype=str,
            keep_default_na=False,
            engine="openpyxl",
        )
    except Exception as e:
        logger.error("catalog_excel_read_failed", error=str(e))
        raise CatalogParseError(
            message="Failed to read Excel file",
            details={"original_error": str(e)}
        )

    positions = read_header([str(col) for col in df.columns])

    def rows() -> Iterator[StagedRecord]:
        row_index = 0
        for values in df.itertuples(index=False, name=None):
            cells = ["" if pd.isna(v) else str(v) for v in values]
            if not any(cell.strip() for cell in cells):
                continue
            row_index += 1
            yield stage_row(
                row_index,
                {column.name: cells[index] for index, column in positions.items()},
            )

    return rows()


# ===================
# UPLOAD HELPERS
# ===================

def validate_upload(filename: Optional[str], size: int) -> str:
    """
    Check upload type and size before parsing.

    Returns:
        Lower-case extension (".csv" or ".xlsx")

    Raises:
        CatalogUploadError: If the file type or size is not accepted
    """
    extension = Path(filename or "").suffix.lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise CatalogUploadError("File must be a CSV or XLSX file", filename)
    if size <= 0:
        raise CatalogUploadError("File is empty", filename)
    if size > settings.import_max_bytes:
        limit_mb = settings.import_max_bytes // (1024 * 1024)
        raise CatalogUploadError(f"File size must be less than {limit_mb}MB", filename)
    return extension


def decode_upload_bytes(raw_bytes: bytes) -> str:
    """Decode UTF-8 upload content (a leading BOM is tolerated)."""
    try:
        return raw_bytes.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise CatalogParseError(
            message="Catalog file must be UTF-8 encoded",
            details={"original_error": str(e)}
        )


def generate_csv_template() -> str:
    """Header row with every known column plus one sample row."""
    header = [column.name for column in CATALOG_COLUMNS]
    sample = [
        "DM-001", "diamond", "D", "round", "FL", "1.25", "6.5", "6.5", "4.1",
        "12500.00", "USD", "14000.00", "USD", "yes", "7", "DM001-INT", "",
        "Round brilliant diamond", "Investment grade stone",
    ]
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(header)
    writer.writerow(sample)
    return output.getvalue()
