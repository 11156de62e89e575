"""
In-memory types for catalog import, bulk update and export.

Staged records only live for the duration of one batch operation. Parsed
field values are tagged by family so validation can dispatch on the family
instead of guessing from raw Python types.
"""

from copy import deepcopy
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union


class IssueKind(str, Enum):
    """Severity of a validation issue."""
    ERROR = "error"      # blocks persistence
    WARNING = "warning"  # reported only


class DuplicateScope(str, Enum):
    """Where a duplicate business key was found."""
    EXISTING_STORE = "existing-store"
    WITHIN_BATCH = "within-batch"


class RecordState(str, Enum):
    """Lifecycle of one staged record inside a batch."""
    PARSED = "parsed"
    VALIDATED = "validated"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"
    APPLYING = "applying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


# Synthetic field used for row-level parse failures
ROW_FIELD = "_row"


# ===================
# TAGGED FIELD VALUES
# ===================

@dataclass(frozen=True)
class IdentifierValue:
    """Identifier such as a serial number or internal code."""
    value: str


@dataclass(frozen=True)
class EnumValue:
    """Member of a closed vocabulary."""
    value: Enum


@dataclass(frozen=True)
class MoneyValue:
    """Amount in integer minor units."""
    minor_units: int


@dataclass(frozen=True)
class MeasurementValue:
    """Non-negative decimal measurement (carats, millimetres)."""
    value: Decimal


@dataclass(frozen=True)
class CountValue:
    """Non-negative whole number (days, quantities)."""
    value: int


@dataclass(frozen=True)
class FlagValue:
    """Boolean flag."""
    value: bool


@dataclass(frozen=True)
class TextValue:
    """Optional free text."""
    value: str


FieldValue = Union[
    IdentifierValue,
    EnumValue,
    MoneyValue,
    MeasurementValue,
    CountValue,
    FlagValue,
    TextValue,
]


def unwrap(value: Optional[FieldValue]) -> Any:
    """Plain Python value of a tagged field (None stays None)."""
    if value is None:
        return None
    if isinstance(value, MoneyValue):
        return value.minor_units
    return value.value


# ===================
# STAGED RECORDS
# ===================

@dataclass
class ValidationIssue:
    """Single diagnostic attached to a staged record."""
    field: str
    kind: IssueKind
    message: str

    @property
    def is_error(self) -> bool:
        return self.kind == IssueKind.ERROR

    def to_dict(self) -> dict:
        return {"field": self.field, "kind": self.kind.value, "message": self.message}


@dataclass
class StagedRecord:
    """One candidate record produced from one input row."""
    row_index: int
    raw_fields: dict[str, str] = field(default_factory=dict)
    parsed_fields: dict[str, FieldValue] = field(default_factory=dict)
    issues: list[ValidationIssue] = field(default_factory=list)
    state: RecordState = RecordState.PARSED

    @property
    def business_key(self) -> Optional[str]:
        """Trimmed serial number, or None when missing or blank."""
        serial = self.parsed_fields.get("serial")
        if serial is None:
            return None
        key = str(unwrap(serial)).strip()
        return key or None

    @property
    def has_errors(self) -> bool:
        return any(issue.is_error for issue in self.issues)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.is_error]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if not issue.is_error]

    def value(self, name: str) -> Any:
        """Plain value of a parsed field."""
        return unwrap(self.parsed_fields.get(name))

    def add_error(self, field_name: str, message: str) -> None:
        self.issues.append(ValidationIssue(field_name, IssueKind.ERROR, message))

    def add_warning(self, field_name: str, message: str) -> None:
        self.issues.append(ValidationIssue(field_name, IssueKind.WARNING, message))

    def error_summary(self) -> str:
        """All fatal issues joined for a one-line report entry."""
        return "; ".join(
            f"{issue.field}: {issue.message}" if issue.field != ROW_FIELD else issue.message
            for issue in self.errors
        )


@dataclass
class DuplicateFinding:
    """A record skipped because its business key is already taken."""
    row_index: int
    business_key: str
    scope: DuplicateScope
    existing_record_id: Optional[str] = None

    @property
    def reason(self) -> str:
        if self.scope == DuplicateScope.EXISTING_STORE:
            return "Serial number already exists"
        return "Serial number repeated earlier in this file"

    def to_dict(self) -> dict:
        return {
            "row_index": self.row_index,
            "business_key": self.business_key,
            "scope": self.scope.value,
            "existing_record_id": self.existing_record_id,
            "reason": self.reason,
        }


# ===================
# OUTCOME
# ===================

@dataclass
class RecordError:
    """
    Failure of one record.

    Import failures carry the row index; bulk update failures carry the
    record id. `label` is the human-facing identifier (serial number when
    known).
    """
    message: str
    row_index: Optional[int] = None
    record_id: Optional[str] = None
    label: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "row_index": self.row_index,
            "record_id": self.record_id,
            "label": self.label,
            "message": self.message,
        }


@dataclass
class RowWarning:
    """Advisory issue reported against a row that was still processed."""
    row_index: int
    field: str
    message: str


@dataclass
class BatchOutcome:
    """
    Aggregate result of one import or bulk update run.

    Counters are only changed through the record_* methods, so
    attempted == succeeded + failed + duplicate_count after every step.
    """
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    duplicate_count: int = 0
    per_record_errors: list[RecordError] = field(default_factory=list)
    duplicates: list[DuplicateFinding] = field(default_factory=list)
    warnings: list[RowWarning] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True when nothing failed (duplicates are skips, not failures)."""
        return self.failed == 0

    @property
    def is_consistent(self) -> bool:
        return (
            self.attempted == self.succeeded + self.failed + self.duplicate_count
            and min(self.attempted, self.succeeded, self.failed, self.duplicate_count) >= 0
            and len(self.per_record_errors) == self.failed
            and len(self.duplicates) == self.duplicate_count
        )

    def record_success(self) -> None:
        self.attempted += 1
        self.succeeded += 1

    def record_failure(self, error: RecordError) -> None:
        self.attempted += 1
        self.failed += 1
        self.per_record_errors.append(error)

    def record_duplicate(self, finding: DuplicateFinding) -> None:
        self.attempted += 1
        self.duplicate_count += 1
        self.duplicates.append(finding)

    def record_warning(self, row_index: int, field_name: str, message: str) -> None:
        self.warnings.append(RowWarning(row_index, field_name, message))

    def snapshot(self) -> "BatchOutcome":
        """Independent copy for progress callbacks."""
        return deepcopy(self)

    def to_dict(self, limit: Optional[int] = None) -> dict:
        """
        Convert to API response format.

        Detail lists are capped at `limit` entries; counters stay exact.
        """
        errors = self.per_record_errors if limit is None else self.per_record_errors[:limit]
        duplicates = self.duplicates if limit is None else self.duplicates[:limit]
        warnings = self.warnings if limit is None else self.warnings[:limit]
        return {
            "success": self.success,
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "duplicate_count": self.duplicate_count,
            "errors": [e.to_dict() for e in errors],
            "errors_truncated": len(self.per_record_errors) - len(errors),
            "duplicates": [d.to_dict() for d in duplicates],
            "duplicates_truncated": len(self.duplicates) - len(duplicates),
            "warnings": [
                {"row_index": w.row_index, "field": w.field, "message": w.message}
                for w in warnings
            ],
            "warnings_truncated": len(self.warnings) - len(warnings),
        }
