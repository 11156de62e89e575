"""
Test data factories.

Uses factory pattern to generate consistent test data.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import uuid4

from exceptions import DatabaseError, GemstoneNotFoundError
from models.gemstone import CatalogFilter, GemstoneCreate, GemstoneResponse


class GemstoneFactory:
    """
    Factory for creating test gemstone rows.

    Usage:
        # Create with defaults
        gemstone = GemstoneFactory.create()

        # Create with overrides
        gemstone = GemstoneFactory.create(serial_number="SP-1", name="sapphire")

        # Create multiple
        gemstones = GemstoneFactory.create_batch(5)
    """

    _counter = 0

    @classmethod
    def _next_counter(cls) -> int:
        cls._counter += 1
        return cls._counter

    @classmethod
    def create(cls, **overrides) -> dict:
        """
        Create a single gemstone dict matching the gemstones table.

        Any column can be overridden by keyword.
        """
        counter = cls._next_counter()
        now = datetime.now(timezone.utc).isoformat()

        row = {
            "id": str(uuid4()),
            "serial_number": f"GEM-{counter:04d}",
            "name": "sapphire",
            "color": "blue",
            "cut": "oval",
            "clarity": "VS1",
            "weight_carats": 1.25,
            "length_mm": 7.1,
            "width_mm": 5.2,
            "depth_mm": 3.4,
            "price_amount": 125000,
            "price_currency": "USD",
            "premium_price_amount": None,
            "premium_price_currency": None,
            "in_stock": True,
            "delivery_days": 7,
            "internal_code": None,
            "origin_id": None,
            "description": "Ceylon sapphire",
            "promotional_text": None,
            "created_at": now,
            "updated_at": now,
        }
        row.update(overrides)
        return row

    @classmethod
    def create_batch(cls, count: int, **overrides) -> list:
        """Create multiple gemstones with the same overrides."""
        return [cls.create(**overrides) for _ in range(count)]


class FakeCatalogStore:
    """
    In-memory CatalogStore.

    Failures can be injected per serial number (create), per id (update) or
    for the duplicate lookup. Call counters record every store call made.
    """

    def __init__(
        self,
        gemstones: Optional[list] = None,
        fail_serials: Iterable[str] = (),
        fail_ids: Iterable[str] = (),
        fail_lookup: bool = False,
    ):
        self.rows: dict[str, dict] = {}
        for row in gemstones or []:
            self.add(row)
        self.fail_serials = set(fail_serials)
        self.fail_ids = set(fail_ids)
        self.fail_lookup = fail_lookup
        self.lookup_calls = 0
        self.create_calls = 0
        self.update_calls = 0

    def add(self, row: dict) -> dict:
        self.rows[row["id"]] = dict(row)
        return row

    def by_serial(self, serial_number: str) -> Optional[dict]:
        for row in self.rows.values():
            if row["serial_number"] == serial_number:
                return row
        return None

    # CatalogStore

    def find_ids_by_serials(self, serials):
        self.lookup_calls += 1
        if self.fail_lookup:
            raise DatabaseError("select", "lookup unavailable")
        wanted = set(serials)
        return {
            row["serial_number"]: gemstone_id
            for gemstone_id, row in self.rows.items()
            if row["serial_number"] in wanted
        }

    def create(self, data: GemstoneCreate) -> str:
        self.create_calls += 1
        if data.serial_number in self.fail_serials:
            raise DatabaseError("insert", "connection reset")
        gemstone_id = str(uuid4())
        row = data.to_insert()
        row["id"] = gemstone_id
        self.rows[gemstone_id] = row
        return gemstone_id

    def update(self, gemstone_id: str, fields: dict) -> None:
        self.update_calls += 1
        if gemstone_id in self.fail_ids:
            raise DatabaseError("update", "statement timeout")
        if gemstone_id not in self.rows:
            raise GemstoneNotFoundError(gemstone_id)
        self.rows[gemstone_id].update(fields)

    def get_serials(self, ids):
        return {i: self.rows[i]["serial_number"] for i in ids if i in self.rows}

    def get_by_ids(self, ids):
        return [GemstoneResponse(**self.rows[i]) for i in ids if i in self.rows]

    def list_filtered(self, filters: Optional[CatalogFilter] = None):
        filters = filters or CatalogFilter()
        rows = list(self.rows.values())
        for column in ("name", "color", "cut", "clarity", "price_currency"):
            wanted = getattr(filters, column)
            if wanted is not None:
                rows = [r for r in rows if r.get(column) == wanted.value]
        if filters.in_stock is not None:
            rows = [r for r in rows if r.get("in_stock") == filters.in_stock]
        if filters.search:
            rows = [r for r in rows if filters.search.lower() in r["serial_number"].lower()]
        rows.sort(key=lambda r: (r.get(filters.sort_by) is None, r.get(filters.sort_by)),
                  reverse=filters.sort_desc)
        return [GemstoneResponse(**r) for r in rows]
