"""
Pydantic models and batch types for the gemstone catalog.
"""

from models.base import (
    BaseSchema,
    TimestampMixin,
)
from models.gemstone import (
    GemstoneType,
    GemColor,
    GemCut,
    GemClarity,
    CurrencyCode,
    MetadataStatus,
    GemstoneCreate,
    GemstoneUpdate,
    GemstoneResponse,
    CatalogFilter,
)
from models.catalog import (
    IssueKind,
    DuplicateScope,
    RecordState,
    ValidationIssue,
    StagedRecord,
    DuplicateFinding,
    RecordError,
    BatchOutcome,
)

__all__ = [
    # Base
    "BaseSchema",
    "TimestampMixin",

    # Gemstone
    "GemstoneType",
    "GemColor",
    "GemCut",
    "GemClarity",
    "CurrencyCode",
    "MetadataStatus",
    "GemstoneCreate",
    "GemstoneUpdate",
    "GemstoneResponse",
    "CatalogFilter",

    # Batch
    "IssueKind",
    "DuplicateScope",
    "RecordState",
    "ValidationIssue",
    "StagedRecord",
    "DuplicateFinding",
    "RecordError",
    "BatchOutcome",
]
