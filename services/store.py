"""
Persistence contract used by the catalog batch services.

The import, bulk update and export services only depend on this protocol;
GemstoneService is the Supabase implementation. Store failures are raised
as AppError subclasses (usually DatabaseError) and turned into per-record
results by the callers.
"""

from typing import Iterable, Optional, Protocol

from models.gemstone import CatalogFilter, GemstoneCreate, GemstoneResponse


class CatalogStore(Protocol):
    """Narrow store contract for catalog records."""

    def find_ids_by_serials(self, serials: Iterable[str]) -> dict[str, str]:
        """Map each existing serial number to its record id (one query)."""
        ...

    def create(self, data: GemstoneCreate) -> str:
        """Insert one record and return its id."""
        ...

    def update(self, gemstone_id: str, fields: dict) -> None:
        """Write the given fields to one record."""
        ...

    def get_serials(self, ids: Iterable[str]) -> dict[str, str]:
        """Map record ids to serial numbers (missing ids are absent)."""
        ...

    def get_by_ids(self, ids: Iterable[str]) -> list[GemstoneResponse]:
        """Fetch records by id, in no particular order."""
        ...

    def list_filtered(self, filters: Optional[CatalogFilter] = None) -> list[GemstoneResponse]:
        """Fetch every record matching the filter, in the filter's sort order."""
        ...
