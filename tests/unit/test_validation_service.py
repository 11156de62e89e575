"""
Tests for validation_service: semantic checks on staged records and change-sets.
"""

from decimal import Decimal

import pytest

from models.catalog import IssueKind
from models.gemstone import GemstoneUpdate
from parsers.catalog_parser import parse_catalog_csv, stage_row
from services.validation_service import validate_field_updates, validate_staged_record


def staged(**cells):
    base = {"serial": "A1", "type": "ruby", "color": "red", "price": "10.00", "currency": "USD"}
    base.update(cells)
    return stage_row(1, {k: v for k, v in base.items() if v is not None})


def fields_of(issues, kind):
    return [i.field for i in issues if i.kind == kind]


class TestValidateStagedRecord:
    """Tests for validate_staged_record()"""

    def test_clean_record(self):
        record = staged(weight="1.2")
        assert validate_staged_record(record) == []
        assert not record.has_errors

    def test_blank_serial_is_error(self):
        record = staged(serial="   ", weight="1.2")
        issues = validate_staged_record(record)
        assert fields_of(issues, IssueKind.ERROR) == ["serial"]

    def test_zero_weight_rejected_on_create(self):
        record = staged(weight="0")
        issues = validate_staged_record(record, creating=True)
        assert fields_of(issues, IssueKind.ERROR) == ["weight"]

    def test_zero_weight_allowed_on_update(self):
        record = staged(weight="0")
        assert validate_staged_record(record, creating=False) == []

    def test_absent_weight_column_is_warning(self):
        record = staged()
        issues = validate_staged_record(record)
        assert fields_of(issues, IssueKind.WARNING) == ["weight"]
        assert not record.has_errors

    def test_zero_dimension_rejected(self):
        record = staged(weight="1", length="0")
        issues = validate_staged_record(record)
        assert fields_of(issues, IssueKind.ERROR) == ["length"]

    def test_zero_price_rejected(self):
        record = staged(weight="1", price="0.00")
        issues = validate_staged_record(record)
        assert "Price must be greater than 0" in [i.message for i in issues]

    def test_delivery_days_upper_bound(self):
        record = staged(weight="1", delivery_days="366")
        issues = validate_staged_record(record)
        assert fields_of(issues, IssueKind.ERROR) == ["delivery_days"]

    def test_serial_too_long(self):
        record = staged(weight="1", serial="X" * 101)
        issues = validate_staged_record(record)
        assert fields_of(issues, IssueKind.ERROR) == ["serial"]

    def test_missing_currency_warns_with_default(self):
        record = staged(weight="1", currency=None)
        issues = validate_staged_record(record, default_currency="EUR")
        assert fields_of(issues, IssueKind.WARNING) == ["currency"]
        assert "EUR" in issues[0].message

    def test_premium_without_currency_inherits(self):
        record = staged(weight="1", currency="GBP", premium_price="20")
        issues = validate_staged_record(record)
        assert fields_of(issues, IssueKind.WARNING) == ["premium_currency"]
        assert "GBP" in issues[0].message

    def test_premium_currency_without_price(self):
        record = staged(weight="1", premium_currency="EUR")
        issues = validate_staged_record(record)
        assert fields_of(issues, IssueKind.WARNING) == ["premium_currency"]

    def test_issues_appended_to_record(self):
        record = staged(weight="1", price="0")
        validate_staged_record(record)
        assert record.has_errors
        assert record.errors[0].field == "price"

    def test_malformed_row_gets_no_extra_issues(self):
        record = next(parse_catalog_csv("serial,type,color,price\nA1,ruby\n"))
        assert validate_staged_record(record) == []
        assert len(record.issues) == 1


class TestValidateFieldUpdates:
    """Tests for validate_field_updates()"""

    def test_empty_change_set(self):
        assert validate_field_updates(GemstoneUpdate()) == []

    def test_zero_weight_is_fine(self):
        assert validate_field_updates(GemstoneUpdate(weight_carats=Decimal("0"))) == []

    def test_zero_price_rejected(self):
        issues = validate_field_updates(GemstoneUpdate(price_amount=0))
        assert fields_of(issues, IssueKind.ERROR) == ["price_amount"]

    def test_clearing_required_field_rejected(self):
        issues = validate_field_updates(GemstoneUpdate(in_stock=None))
        assert fields_of(issues, IssueKind.ERROR) == ["in_stock"]

    def test_premium_without_currency_warns(self):
        issues = validate_field_updates(GemstoneUpdate(premium_price_amount=500))
        assert fields_of(issues, IssueKind.WARNING) == ["premium_price_currency"]
        assert fields_of(issues, IssueKind.ERROR) == []

    def test_serial_not_allowed_in_bulk(self):
        changes = GemstoneUpdate(serial_number="NEW-1")
        assert fields_of(validate_field_updates(changes, bulk=True), IssueKind.ERROR) == ["serial_number"]
        assert validate_field_updates(changes, bulk=False) == []
