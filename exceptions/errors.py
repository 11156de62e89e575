"""
Custom exception classes for the application.

Every error carries a stable code, an HTTP status and a details dict so the
routes can render the same JSON envelope for all of them.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "GEMSTONE_NOT_FOUND")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """Validation failed (422)."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=422,
            details=details
        )


class ConflictError(AppError):
    """Conflict with existing resource (409)."""

    def __init__(
        self,
        message: str,
        code: str = "CONFLICT",
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details
        )


class DuplicateError(ConflictError):
    """Duplicate resource (409)."""

    def __init__(
        self,
        resource: str,
        field: str,
        value: str
    ):
        super().__init__(
            code=f"{resource.upper()}_{field.upper()}_EXISTS",
            message=f"{resource} with this {field} already exists",
            details={field: value}
        )


class DatabaseError(AppError):
    """Database operation failed (500)."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# GEMSTONE ERRORS
# ===================

class GemstoneNotFoundError(NotFoundError):
    """Gemstone not found."""

    def __init__(self, gemstone_id: str):
        super().__init__(
            resource="Gemstone",
            identifier=gemstone_id,
            code="GEMSTONE_NOT_FOUND"
        )


class GemstoneSerialExistsError(DuplicateError):
    """Gemstone serial number already exists."""

    def __init__(self, serial_number: str):
        super().__init__(
            resource="Gemstone",
            field="serial_number",
            value=serial_number
        )


# ===================
# CATALOG IMPORT / EXPORT ERRORS
# ===================

class CatalogParseError(ValidationError):
    """Catalog file could not be read as a whole."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="CATALOG_PARSE_ERROR",
            message=message,
            details=details
        )


class CatalogMissingColumnsError(CatalogParseError):
    """Catalog file header lacks required columns."""

    def __init__(self, missing: list[str], found: list[str]):
        super().__init__(
            message=f"Missing required columns: {', '.join(missing)}",
            details={"missing": missing, "found": found}
        )
        self.code = "CATALOG_MISSING_COLUMNS"


class CatalogUploadError(ValidationError):
    """Upload rejected before parsing (type or size)."""

    def __init__(self, message: str, filename: Optional[str] = None):
        super().__init__(
            code="CATALOG_UPLOAD_REJECTED",
            message=message,
            details={"filename": filename}
        )


class CatalogExportError(AppError):
    """Export could not render the whole selection."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="CATALOG_EXPORT_FAILED",
            message=message,
            status_code=500,
            details=details
        )
