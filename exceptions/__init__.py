"""
Custom exceptions module.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ConflictError,
    DuplicateError,
    DatabaseError,

    # Gemstone-specific
    GemstoneNotFoundError,
    GemstoneSerialExistsError,

    # Catalog import / export
    CatalogParseError,
    CatalogMissingColumnsError,
    CatalogUploadError,
    CatalogExportError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "DuplicateError",
    "DatabaseError",

    # Gemstone
    "GemstoneNotFoundError",
    "GemstoneSerialExistsError",

    # Catalog import / export
    "CatalogParseError",
    "CatalogMissingColumnsError",
    "CatalogUploadError",
    "CatalogExportError",
]
