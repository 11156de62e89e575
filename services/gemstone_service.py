"""
Gemstone service backed by Supabase.

Implements the CatalogStore contract used by import, bulk update and
export, plus the single-record operations the admin screens call.
"""

from typing import Iterable, Optional
import structlog

from config import get_supabase_client, settings
from models.gemstone import (
    CatalogFilter,
    GemstoneCreate,
    GemstoneResponse,
    GemstoneUpdate,
)
from exceptions import (
    GemstoneNotFoundError,
    GemstoneSerialExistsError,
    DatabaseError,
    ValidationError,
)
from services.duplicate_resolver import find_serial_conflict
from services.validation_service import validate_field_updates

logger = structlog.get_logger(__name__)

# Supabase caps page size; larger selections are fetched in pages
PAGE_SIZE = 1000
# Keeps "in" filters well inside URL length limits
IN_FILTER_CHUNK = 200


def _chunks(values: list[str], size: int = IN_FILTER_CHUNK):
    for start in range(0, len(values), size):
        yield values[start:start + size]


class GemstoneService:
    """
    Gemstone business logic.

    Handles reads and writes against the catalog table.
    """

    def __init__(self):
        self.db = get_supabase_client()
        self.table = settings.catalog_table

    # ===================
    # READ OPERATIONS
    # ===================

    def get_by_id(self, gemstone_id: str) -> GemstoneResponse:
        """
        Get a single gemstone by ID.

        Raises:
            GemstoneNotFoundError: If gemstone doesn't exist
        """
        logger.debug("getting_gemstone", gemstone_id=gemstone_id)

        try:
            result = (
                self.db.table(self.table)
                .select("*")
                .eq("id", gemstone_id)
                .execute()
            )
        except Exception as e:
            logger.error("get_gemstone_failed", gemstone_id=gemstone_id, error=str(e))
            raise DatabaseError("select", str(e))

        if not result.data:
            raise GemstoneNotFoundError(gemstone_id)

        return GemstoneResponse(**result.data[0])

    def get_by_ids(self, ids: Iterable[str]) -> list[GemstoneResponse]:
        """
        Get gemstones by ID.

        Returns:
            Found gemstones in store order (missing IDs are skipped)
        """
        ids = list(dict.fromkeys(ids))
        if not ids:
            return []

        logger.debug("getting_gemstones_by_ids", count=len(ids))

        gemstones = []
        try:
            for chunk in _chunks(ids):
                result = (
                    self.db.table(self.table)
                    .select("*")
                    .in_("id", chunk)
                    .execute()
                )
                gemstones.extend(GemstoneResponse(**row) for row in result.data)
        except Exception as e:
            logger.error("get_gemstones_by_ids_failed", count=len(ids), error=str(e))
            raise DatabaseError("select", str(e))

        return gemstones

    def get_serials(self, ids: Iterable[str]) -> dict[str, str]:
        """Map gemstone IDs to serial numbers."""
        ids = list(dict.fromkeys(ids))
        if not ids:
            return {}

        serials = {}
        try:
            for chunk in _chunks(ids):
                result = (
                    self.db.table(self.table)
                    .select("id, serial_number")
                    .in_("id", chunk)
                    .execute()
                )
                serials.update({row["id"]: row["serial_number"] for row in result.data})
        except Exception as e:
            logger.error("get_serials_failed", count=len(ids), error=str(e))
            raise DatabaseError("select", str(e))

        return serials

    def find_ids_by_serials(self, serials: Iterable[str]) -> dict[str, str]:
        """
        Look up which serial numbers already exist.

        Args:
            serials: Serial numbers to check

        Returns:
            Dict of existing serial_number -> gemstone id
        """
        serials = list(dict.fromkeys(s for s in serials if s))
        if not serials:
            return {}

        logger.debug("checking_serials", count=len(serials))

        existing = {}
        try:
            for chunk in _chunks(serials):
                result = (
                    self.db.table(self.table)
                    .select("id, serial_number")
                    .in_("serial_number", chunk)
                    .execute()
                )
                existing.update({row["serial_number"]: row["id"] for row in result.data})
        except Exception as e:
            logger.error("check_serials_failed", count=len(serials), error=str(e))
            raise DatabaseError("select", str(e))

        return existing

    def list_filtered(self, filters: Optional[CatalogFilter] = None) -> list[GemstoneResponse]:
        """
        Get every gemstone matching the filter.

        Pages through the table so exports are not cut at the API page size.

        Returns:
            Gemstones in the filter's sort order
        """
        filters = filters or CatalogFilter()
        logger.info("listing_gemstones", filters=filters.model_dump(exclude_none=True, mode="json"))

        gemstones = []
        offset = 0
        try:
            while True:
                query = self.db.table(self.table).select("*")

                if filters.name:
                    query = query.eq("name", filters.name.value)
                if filters.color:
                    query = query.eq("color", filters.color.value)
                if filters.cut:
                    query = query.eq("cut", filters.cut.value)
                if filters.clarity:
                    query = query.eq("clarity", filters.clarity.value)
                if filters.price_currency:
                    query = query.eq("price_currency", filters.price_currency.value)
                if filters.in_stock is not None:
                    query = query.eq("in_stock", filters.in_stock)
                if filters.search:
                    query = query.ilike("serial_number", f"%{filters.search}%")

                query = query.order(filters.sort_by, desc=filters.sort_desc)
                # Tie-break keeps pages stable
                query = query.order("id")
                query = query.range(offset, offset + PAGE_SIZE - 1)

                result = query.execute()
                gemstones.extend(GemstoneResponse(**row) for row in result.data)

                if len(result.data) < PAGE_SIZE:
                    break
                offset += PAGE_SIZE
        except Exception as e:
            logger.error("list_gemstones_failed", error=str(e))
            raise DatabaseError("select", str(e))

        logger.info("gemstones_listed", count=len(gemstones))
        return gemstones

    # ===================
    # WRITE OPERATIONS
    # ===================

    def create(self, data: GemstoneCreate) -> str:
        """
        Insert a new gemstone.

        Serial uniqueness is left to the table's unique constraint; a
        violation surfaces as DatabaseError.

        Returns:
            New gemstone ID
        """
        logger.debug("creating_gemstone", serial_number=data.serial_number)

        try:
            result = (
                self.db.table(self.table)
                .insert(data.to_insert())
                .execute()
            )
        except Exception as e:
            logger.error("create_gemstone_failed", serial_number=data.serial_number, error=str(e))
            raise DatabaseError("insert", str(e))

        if not result.data:
            raise DatabaseError("insert", "no row returned")

        gemstone_id = result.data[0]["id"]
        logger.info("gemstone_created", gemstone_id=gemstone_id, serial_number=data.serial_number)
        return gemstone_id

    def update(self, gemstone_id: str, fields: dict) -> None:
        """
        Write the given fields to one gemstone.

        Raises:
            GemstoneNotFoundError: If no row has this ID
            DatabaseError: If the write fails
        """
        if not fields:
            return

        try:
            result = (
                self.db.table(self.table)
                .update(fields)
                .eq("id", gemstone_id)
                .execute()
            )
        except Exception as e:
            logger.error("update_gemstone_failed", gemstone_id=gemstone_id, error=str(e))
            raise DatabaseError("update", str(e))

        if not result.data:
            raise GemstoneNotFoundError(gemstone_id)

        logger.debug("gemstone_updated", gemstone_id=gemstone_id, fields=list(fields.keys()))

    def edit(self, gemstone_id: str, data: GemstoneUpdate) -> GemstoneResponse:
        """
        Edit one gemstone in place.

        Only provided fields are updated. A changed serial number is checked
        against every other record first.

        Raises:
            GemstoneNotFoundError: If gemstone doesn't exist
            GemstoneSerialExistsError: If the new serial belongs to another record
            ValidationError: If the change-set is invalid
        """
        logger.info("editing_gemstone", gemstone_id=gemstone_id)

        errors = [i for i in validate_field_updates(data, bulk=False) if i.is_error]
        if errors:
            raise ValidationError(
                message=errors[0].message,
                details={"issues": [i.to_dict() for i in errors]}
            )

        existing = self.get_by_id(gemstone_id)
        fields = data.to_fields()

        new_serial = fields.get("serial_number")
        if new_serial and new_serial != existing.serial_number:
            if find_serial_conflict(self, new_serial, exclude_id=gemstone_id):
                raise GemstoneSerialExistsError(new_serial)

        if not fields:
            return existing

        self.update(gemstone_id, fields)
        return self.get_by_id(gemstone_id)


# Singleton instance for convenience
_gemstone_service: Optional[GemstoneService] = None


def get_gemstone_service() -> GemstoneService:
    """Get or create GemstoneService instance."""
    global _gemstone_service
    if _gemstone_service is None:
        _gemstone_service = GemstoneService()
    return _gemstone_service
