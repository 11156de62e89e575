"""
Business logic services.

Each service handles one step of the catalog workflow.
"""

from services.store import CatalogStore
from services.gemstone_service import GemstoneService, get_gemstone_service
from services.validation_service import validate_staged_record, validate_field_updates
from services.duplicate_resolver import resolve_duplicates, find_serial_conflict
from services.import_service import CatalogImportService
from services.bulk_update_service import BulkUpdateService
from services.export_service import ExportService, serialize_catalog_csv

__all__ = [
    "CatalogStore",
    "GemstoneService",
    "get_gemstone_service",
    "validate_staged_record",
    "validate_field_updates",
    "resolve_duplicates",
    "find_serial_conflict",
    "CatalogImportService",
    "BulkUpdateService",
    "ExportService",
    "serialize_catalog_csv",
]
