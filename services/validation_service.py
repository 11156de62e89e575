"""
Semantic validation for catalog records.

Runs after type coercion and catches what coercion cannot: required
business key, positive amounts, cross-field currency rules. Functions here
never touch the database and never change field values; they only append
ValidationIssue entries.
"""

from typing import Callable, Optional
import structlog

from config import settings
from models.catalog import (
    ROW_FIELD,
    CountValue,
    EnumValue,
    FieldValue,
    FlagValue,
    IdentifierValue,
    IssueKind,
    MeasurementValue,
    MoneyValue,
    StagedRecord,
    TextValue,
    ValidationIssue,
)
from models.gemstone import GemstoneUpdate

logger = structlog.get_logger(__name__)

MAX_DELIVERY_DAYS = 365
MAX_IDENTIFIER_LENGTH = 100

DIMENSION_FIELDS = ("length", "width", "depth")

# Fields the store requires; a change-set may replace them but not clear them
NON_NULLABLE_UPDATE_FIELDS = ("price_amount", "price_currency", "in_stock", "serial_number")


# ===================
# PER-FAMILY CHECKS
# ===================

def _check_identifier(name: str, value: IdentifierValue, creating: bool) -> list[ValidationIssue]:
    issues = []
    if name == "serial" and not value.value.strip():
        issues.append(ValidationIssue(name, IssueKind.ERROR, "Serial number is required"))
    if len(value.value) > MAX_IDENTIFIER_LENGTH:
        issues.append(ValidationIssue(
            name, IssueKind.ERROR, f"Must be at most {MAX_IDENTIFIER_LENGTH} characters"
        ))
    return issues


def _check_measurement(name: str, value: MeasurementValue, creating: bool) -> list[ValidationIssue]:
    if name == "weight":
        if creating and value.value <= 0:
            return [ValidationIssue(name, IssueKind.ERROR, "Weight must be greater than 0")]
        return []
    if name in DIMENSION_FIELDS and value.value <= 0:
        return [ValidationIssue(name, IssueKind.ERROR, f"{name.capitalize()} must be greater than 0")]
    return []


def _check_money(name: str, value: MoneyValue, creating: bool) -> list[ValidationIssue]:
    if value.minor_units <= 0:
        label = "Premium price" if name == "premium_price" else "Price"
        return [ValidationIssue(name, IssueKind.ERROR, f"{label} must be greater than 0")]
    return []


def _check_count(name: str, value: CountValue, creating: bool) -> list[ValidationIssue]:
    if name == "delivery_days" and value.value > MAX_DELIVERY_DAYS:
        return [ValidationIssue(
            name, IssueKind.ERROR, f"Delivery days must be between 0 and {MAX_DELIVERY_DAYS}"
        )]
    return []


def _no_checks(name: str, value, creating: bool) -> list[ValidationIssue]:
    # Enums and flags are fully checked by coercion
    return []


_FAMILY_CHECKS: dict[type, Callable[[str, FieldValue, bool], list[ValidationIssue]]] = {
    IdentifierValue: _check_identifier,
    EnumValue: _no_checks,
    MoneyValue: _check_money,
    MeasurementValue: _check_measurement,
    CountValue: _check_count,
    FlagValue: _no_checks,
    TextValue: _no_checks,
}


# ===================
# STAGED RECORDS
# ===================

def validate_staged_record(
    record: StagedRecord,
    creating: bool = True,
    default_currency: Optional[str] = None,
) -> list[ValidationIssue]:
    """
    Append semantic issues to a staged record.

    Args:
        record: Record with coerced parsed_fields
        creating: True on the create path (weight must be strictly positive)
        default_currency: Currency inherited when a row omits one

    Returns:
        The issues added by this call
    """
    default_currency = default_currency or settings.default_currency
    issues: list[ValidationIssue] = []
    fields = record.parsed_fields

    if ROW_FIELD in record.raw_fields:
        # Malformed row, nothing was coerced
        return issues

    for name, value in fields.items():
        check = _FAMILY_CHECKS.get(type(value))
        if check is None:
            raise TypeError(f"Unsupported field value for {name}: {type(value).__name__}")
        issues.extend(check(name, value, creating))

    # Business key must exist even when the column held nothing usable
    if "serial" not in fields and not record.has_errors:
        issues.append(ValidationIssue("serial", IssueKind.ERROR, "Serial number is required"))

    if creating and "weight" not in fields and "weight" not in record.raw_fields:
        issues.append(ValidationIssue(
            "weight", IssueKind.WARNING, "Weight unspecified; record created without carat weight"
        ))

    if "currency" not in fields and "price" in fields:
        issues.append(ValidationIssue(
            "currency", IssueKind.WARNING, f"No currency given; using {default_currency}"
        ))

    if "premium_price" in fields and "premium_currency" not in fields:
        inherited = record.value("currency")
        inherited = inherited.value if inherited is not None else default_currency
        issues.append(ValidationIssue(
            "premium_currency",
            IssueKind.WARNING,
            f"Premium price has no currency; inheriting {inherited}",
        ))

    if "premium_currency" in fields and "premium_price" not in fields:
        issues.append(ValidationIssue(
            "premium_currency",
            IssueKind.WARNING,
            "Premium currency given without a premium price; ignored",
        ))

    record.issues.extend(issues)

    if issues:
        logger.debug(
            "catalog_row_validated",
            row=record.row_index,
            errors=sum(1 for i in issues if i.is_error),
            warnings=sum(1 for i in issues if not i.is_error),
        )

    return issues


# ===================
# FIELD UPDATE SETS
# ===================

def validate_field_updates(changes: GemstoneUpdate, bulk: bool = True) -> list[ValidationIssue]:
    """
    Check a sparse change-set before it is applied.

    Weight may be zero here; only the create path demands a positive weight.

    Args:
        changes: Fields explicitly selected for update
        bulk: True when the same change-set targets many records

    Returns:
        Issues found (empty when the change-set is acceptable)
    """
    issues: list[ValidationIssue] = []
    fields = changes.model_dump(exclude_unset=True)

    for name in NON_NULLABLE_UPDATE_FIELDS:
        if name in fields and fields[name] is None:
            issues.append(ValidationIssue(name, IssueKind.ERROR, f"{name} cannot be cleared"))

    if fields.get("price_amount") is not None and fields["price_amount"] <= 0:
        issues.append(ValidationIssue("price_amount", IssueKind.ERROR, "Price must be greater than 0"))

    premium = fields.get("premium_price_amount")
    if premium is not None and premium <= 0:
        issues.append(ValidationIssue(
            "premium_price_amount", IssueKind.ERROR, "Premium price must be greater than 0"
        ))

    if premium is not None and "premium_price_currency" not in fields:
        issues.append(ValidationIssue(
            "premium_price_currency",
            IssueKind.WARNING,
            "Premium price has no currency; the stored premium currency is kept",
        ))

    if bulk and "serial_number" in fields:
        issues.append(ValidationIssue(
            "serial_number",
            IssueKind.ERROR,
            "Serial number is unique and cannot be assigned in a bulk update",
        ))

    return issues
