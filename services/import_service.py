"""
Catalog import service.

Drives parse -> validate -> duplicate check -> create for every row of an
uploaded catalog file. Rows are independent: a rejected row, a duplicate or
a failed insert is recorded in the BatchOutcome and the next row is
processed. Nothing is rolled back and nothing is retried.

Per-row lifecycle:
    PARSED -> VALIDATED -> DUPLICATE | REJECTED | APPLYING -> SUCCEEDED | FAILED
"""

from io import BytesIO
from pathlib import Path
from typing import Callable, Iterable, Optional, Union
import structlog

from config import settings
from exceptions import AppError
from models.catalog import (
    BatchOutcome,
    RecordError,
    RecordState,
    StagedRecord,
)
from models.gemstone import CurrencyCode, GemstoneCreate
from parsers.catalog_parser import parse_catalog_csv, parse_catalog_excel
from services.duplicate_resolver import resolve_duplicates
from services.store import CatalogStore
from services.validation_service import validate_staged_record

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[BatchOutcome], None]


def build_gemstone_create(
    record: StagedRecord,
    default_currency: Optional[str] = None,
) -> GemstoneCreate:
    """
    Map a validated staged record to the insert schema.

    A missing currency falls back to the default currency; a premium price
    without its own currency inherits the primary one.
    """
    currency = record.value("currency") or CurrencyCode(default_currency or settings.default_currency)
    premium_price = record.value("premium_price")
    premium_currency = None
    if premium_price is not None:
        premium_currency = record.value("premium_currency") or currency

    in_stock = record.value("in_stock")

    return GemstoneCreate(
        serial_number=record.business_key,
        name=record.value("type"),
        color=record.value("color"),
        cut=record.value("cut"),
        clarity=record.value("clarity"),
        weight_carats=record.value("weight"),
        length_mm=record.value("length"),
        width_mm=record.value("width"),
        depth_mm=record.value("depth"),
        price_amount=record.value("price"),
        price_currency=currency,
        premium_price_amount=premium_price,
        premium_price_currency=premium_currency,
        in_stock=True if in_stock is None else in_stock,
        delivery_days=record.value("delivery_days"),
        internal_code=record.value("internal_code"),
        origin_id=record.value("origin_id"),
        description=record.value("description"),
        promotional_text=record.value("promotional_text"),
    )


class CatalogImportService:
    """
    Bulk catalog import.

    Usage:
        service = CatalogImportService(store)
        outcome = service.import_batch(csv_text)
    """

    def __init__(self, store: CatalogStore):
        self.store = store

    def import_batch(
        self,
        text: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchOutcome:
        """
        Import catalog CSV text.

        Raises:
            CatalogMissingColumnsError: If the header lacks required columns
            DatabaseError: If the duplicate lookup cannot run
        """
        records = parse_catalog_csv(text)
        return self.import_records(records, on_progress=on_progress)

    def import_excel(
        self,
        file: Union[str, Path, bytes, BytesIO],
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchOutcome:
        """Import the first worksheet of an .xlsx catalog file."""
        records = parse_catalog_excel(file)
        return self.import_records(records, on_progress=on_progress)

    def import_records(
        self,
        records: Iterable[StagedRecord],
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchOutcome:
        """
        Validate, de-duplicate and create staged records.

        Args:
            records: Staged records in input order
            on_progress: Called with an outcome snapshot after each record

        Returns:
            BatchOutcome; counters satisfy
            attempted == succeeded + failed + duplicate_count at every step
        """
        staged: list[StagedRecord] = []
        for record in records:
            validate_staged_record(record, creating=True)
            record.state = RecordState.VALIDATED
            staged.append(record)

        logger.info("catalog_import_started", rows=len(staged))

        candidates = [r for r in staged if not r.has_errors]
        resolution = resolve_duplicates(candidates, self.store)
        accepted = {id(r) for r in resolution.accepted}
        # Duplicates come back in input order, one per non-accepted candidate
        pending_duplicates = iter(resolution.duplicates)

        outcome = BatchOutcome()

        for record in staged:
            for warning in record.warnings:
                outcome.record_warning(record.row_index, warning.field, warning.message)

            if record.has_errors:
                record.state = RecordState.REJECTED
                outcome.record_failure(RecordError(
                    message=record.error_summary(),
                    row_index=record.row_index,
                    label=record.business_key,
                ))
                logger.debug("catalog_row_rejected", row=record.row_index)
            elif id(record) not in accepted:
                record.state = RecordState.DUPLICATE
                outcome.record_duplicate(next(pending_duplicates))
            else:
                self._apply(record, outcome)

            if on_progress is not None:
                on_progress(outcome.snapshot())

        logger.info(
            "catalog_import_complete",
            attempted=outcome.attempted,
            succeeded=outcome.succeeded,
            failed=outcome.failed,
            duplicates=outcome.duplicate_count,
        )

        return outcome

    def _apply(self, record: StagedRecord, outcome: BatchOutcome) -> None:
        """Create one record; any failure is recorded, never raised."""
        record.state = RecordState.APPLYING
        try:
            self.store.create(build_gemstone_create(record))
        except Exception as e:
            message = e.message if isinstance(e, AppError) else str(e)
            record.state = RecordState.FAILED
            outcome.record_failure(RecordError(
                message=message,
                row_index=record.row_index,
                label=record.business_key,
            ))
            logger.error(
                "catalog_row_failed",
                row=record.row_index,
                serial_number=record.business_key,
                error=message,
                error_type=type(e).__name__,
            )
            return

        record.state = RecordState.SUCCEEDED
        outcome.record_success()
