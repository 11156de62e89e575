"""
Duplicate detection for catalog serial numbers.

A record is a duplicate when its serial number already exists in the store,
or when an earlier row of the same batch used it (first occurrence wins).
Only one existence query is issued per batch. This does not protect against
two batches racing each other; the table's unique constraint does that.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional
import structlog

from models.catalog import DuplicateFinding, DuplicateScope, StagedRecord
from services.store import CatalogStore

logger = structlog.get_logger(__name__)


@dataclass
class DuplicateResolution:
    """Records split into accepted and duplicate, both in input order."""
    accepted: list[StagedRecord] = field(default_factory=list)
    duplicates: list[DuplicateFinding] = field(default_factory=list)


def resolve_duplicates(
    records: Iterable[StagedRecord],
    store: CatalogStore,
    exclude_ids: Iterable[str] = (),
) -> DuplicateResolution:
    """
    Partition validated records into accepted and duplicate.

    Args:
        records: Records without fatal issues, in input order
        store: Store used for the single existence lookup
        exclude_ids: Record ids that do not count as conflicts (edit in place)

    Returns:
        DuplicateResolution

    Raises:
        DatabaseError: If the existence lookup fails (aborts the batch)
    """
    records = list(records)
    excluded = set(exclude_ids)
    keys = [r.business_key for r in records if r.business_key]

    # Result order is not assumed to match the request
    existing = store.find_ids_by_serials(keys) if keys else {}
    existing = {
        serial.strip(): record_id
        for serial, record_id in existing.items()
        if record_id not in excluded
    }

    resolution = DuplicateResolution()
    seen: set[str] = set()

    for record in records:
        key = record.business_key
        if key in existing:
            resolution.duplicates.append(DuplicateFinding(
                row_index=record.row_index,
                business_key=key,
                scope=DuplicateScope.EXISTING_STORE,
                existing_record_id=existing[key],
            ))
        elif key in seen:
            resolution.duplicates.append(DuplicateFinding(
                row_index=record.row_index,
                business_key=key,
                scope=DuplicateScope.WITHIN_BATCH,
            ))
        else:
            seen.add(key)
            resolution.accepted.append(record)

    logger.info(
        "duplicates_resolved",
        candidates=len(records),
        accepted=len(resolution.accepted),
        existing_store=sum(1 for d in resolution.duplicates if d.scope == DuplicateScope.EXISTING_STORE),
        within_batch=sum(1 for d in resolution.duplicates if d.scope == DuplicateScope.WITHIN_BATCH),
    )

    return resolution


def find_serial_conflict(
    store: CatalogStore,
    serial_number: str,
    exclude_id: Optional[str] = None,
) -> Optional[str]:
    """
    Check one serial number for an edit-in-place flow.

    Returns:
        Id of the other record holding this serial, or None
    """
    key = serial_number.strip()
    if not key:
        return None
    existing = store.find_ids_by_serials([key])
    record_id = existing.get(key)
    if record_id is None or record_id == exclude_id:
        return None
    return record_id
