"""
Catalog file parsers and value coercion.
"""

from parsers.catalog_parser import (
    CATALOG_COLUMNS,
    REQUIRED_COLUMNS,
    parse_catalog_csv,
    parse_catalog_excel,
    read_header,
    stage_row,
    generate_csv_template,
)
from parsers.coercion import CoercionError

__all__ = [
    "CATALOG_COLUMNS",
    "REQUIRED_COLUMNS",
    "parse_catalog_csv",
    "parse_catalog_excel",
    "read_header",
    "stage_row",
    "generate_csv_template",
    "CoercionError",
]
