"""
Bulk field update service.

Applies one sparse change-set to an explicit list of gemstone ids. Each id
is its own unit of work: a failed write is recorded and the next id is
processed. A missing id is discovered by the write itself.
"""

from typing import Callable, Iterable, Optional
import structlog

from exceptions import AppError, ValidationError
from models.catalog import BatchOutcome, RecordError
from models.gemstone import GemstoneUpdate
from services.store import CatalogStore
from services.validation_service import validate_field_updates

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[BatchOutcome], None]


class BulkUpdateService:
    """
    Apply the same change-set to many gemstones.

    Usage:
        service = BulkUpdateService(store)
        outcome = service.apply_bulk_update(ids, GemstoneUpdate(in_stock=False), "Sold out")
    """

    def __init__(self, store: CatalogStore):
        self.store = store

    def apply_bulk_update(
        self,
        ids: Iterable[str],
        changes: GemstoneUpdate,
        reason: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> BatchOutcome:
        """
        Update every listed gemstone with the same fields.

        Args:
            ids: Gemstone ids, in the order results should be reported
            changes: Fields selected for update (absent fields are untouched)
            reason: Justification, logged with the run
            on_progress: Called with an outcome snapshot after each id

        Returns:
            BatchOutcome with errors keyed by serial number (or id when unknown)

        Raises:
            ValidationError: If reason is blank
        """
        ids = list(ids)
        if not reason or not reason.strip():
            raise ValidationError(
                message="A reason is required for bulk updates",
                code="BULK_UPDATE_REASON_REQUIRED",
            )

        fields = changes.to_fields()
        errors = [issue for issue in validate_field_updates(changes, bulk=True) if issue.is_error]

        logger.info(
            "bulk_update_started",
            count=len(ids),
            fields=sorted(fields.keys()),
            reason=reason.strip(),
        )

        labels = self._serial_labels(ids)
        outcome = BatchOutcome()

        for gemstone_id in ids:
            label = labels.get(gemstone_id, gemstone_id)

            if errors:
                outcome.record_failure(RecordError(
                    message="; ".join(f"{i.field}: {i.message}" for i in errors),
                    record_id=gemstone_id,
                    label=label,
                ))
            elif not fields:
                # Nothing selected: success without a write
                outcome.record_success()
            else:
                self._apply(gemstone_id, label, fields, outcome)

            if on_progress is not None:
                on_progress(outcome.snapshot())

        logger.info(
            "bulk_update_complete",
            attempted=outcome.attempted,
            succeeded=outcome.succeeded,
            failed=outcome.failed,
        )

        return outcome

    def _apply(self, gemstone_id: str, label: str, fields: dict, outcome: BatchOutcome) -> None:
        try:
            self.store.update(gemstone_id, dict(fields))
        except Exception as e:
            message = e.message if isinstance(e, AppError) else str(e)
            outcome.record_failure(RecordError(
                message=message,
                record_id=gemstone_id,
                label=label,
            ))
            logger.error(
                "bulk_update_record_failed",
                gemstone_id=gemstone_id,
                serial_number=label,
                error=message,
                error_type=type(e).__name__,
            )
            return

        outcome.record_success()

    def _serial_labels(self, ids: list[str]) -> dict[str, str]:
        """Serial numbers for reporting; unknown ids fall back to the id."""
        if not ids:
            return {}
        try:
            return self.store.get_serials(ids)
        except AppError as e:
            logger.warning(
                "bulk_update_labels_failed",
                count=len(ids),
                error=e.message,
            )
            return {}
