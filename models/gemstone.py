"""
Gemstone schemas and closed vocabularies.

The enum values double as the display labels used by CSV import and export,
so both directions share one vocabulary.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from models.base import BaseSchema, TimestampMixin


class GemstoneType(str, Enum):
    """Gemstone species."""
    DIAMOND = "diamond"
    EMERALD = "emerald"
    RUBY = "ruby"
    SAPPHIRE = "sapphire"
    AMETHYST = "amethyst"
    TOPAZ = "topaz"
    GARNET = "garnet"
    PERIDOT = "peridot"
    CITRINE = "citrine"
    TANZANITE = "tanzanite"
    AQUAMARINE = "aquamarine"
    MORGANITE = "morganite"
    TOURMALINE = "tourmaline"
    ZIRCON = "zircon"
    APATITE = "apatite"
    QUARTZ = "quartz"
    PARAIBA = "paraiba"
    SPINEL = "spinel"
    ALEXANDRITE = "alexandrite"
    AGATE = "agate"


class GemColor(str, Enum):
    """Color grades (diamond D-M scale, fancy and colored stones)."""
    RED = "red"
    BLUE = "blue"
    GREEN = "green"
    YELLOW = "yellow"
    PINK = "pink"
    WHITE = "white"
    BLACK = "black"
    COLORLESS = "colorless"
    D = "D"
    E = "E"
    F = "F"
    G = "G"
    H = "H"
    I = "I"  # noqa: E741
    J = "J"
    K = "K"
    L = "L"
    M = "M"
    FANCY_YELLOW = "fancy-yellow"
    FANCY_BLUE = "fancy-blue"
    FANCY_PINK = "fancy-pink"
    FANCY_GREEN = "fancy-green"


class GemCut(str, Enum):
    """Cut shapes."""
    ROUND = "round"
    OVAL = "oval"
    MARQUISE = "marquise"
    PEAR = "pear"
    EMERALD = "emerald"
    PRINCESS = "princess"
    CUSHION = "cushion"
    RADIANT = "radiant"
    FANTASY = "fantasy"
    BAGUETTE = "baguette"
    ASSCHER = "asscher"
    RHOMBUS = "rhombus"
    TRAPEZOID = "trapezoid"
    TRIANGLE = "triangle"
    HEART = "heart"
    CABOCHON = "cabochon"
    PENTAGON = "pentagon"
    HEXAGON = "hexagon"


class GemClarity(str, Enum):
    """Clarity grades."""
    FL = "FL"
    IF = "IF"
    VVS1 = "VVS1"
    VVS2 = "VVS2"
    VS1 = "VS1"
    VS2 = "VS2"
    SI1 = "SI1"
    SI2 = "SI2"
    I1 = "I1"


class CurrencyCode(str, Enum):
    """Supported price currencies."""
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    RUB = "RUB"
    CHF = "CHF"
    JPY = "JPY"


class MetadataStatus(str, Enum):
    """Editorial review state of a catalog record."""
    NEEDS_REVIEW = "needs_review"
    UPDATED = "updated"
    NEEDS_UPDATING = "needs_updating"
    VERIFIED = "verified"
    REJECTED = "rejected"


def _dump_value(value: Any) -> Any:
    """Convert a schema value to what the database client accepts."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    return value


class GemstoneCreate(BaseSchema):
    """
    Create a new gemstone.

    Required: serial_number, name, color, price_amount, price_currency
    Money is held in minor units (cents).
    """

    serial_number: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Human-facing unique serial number",
        examples=["SP-0042", "DM-001"]
    )
    name: GemstoneType = Field(..., description="Gemstone type")
    color: GemColor = Field(..., description="Color grade")
    cut: Optional[GemCut] = Field(None, description="Cut shape")
    clarity: Optional[GemClarity] = Field(None, description="Clarity grade")
    weight_carats: Optional[Decimal] = Field(None, ge=0, description="Weight in carats")
    length_mm: Optional[Decimal] = Field(None, ge=0)
    width_mm: Optional[Decimal] = Field(None, ge=0)
    depth_mm: Optional[Decimal] = Field(None, ge=0)
    price_amount: int = Field(..., ge=0, description="Price in minor units")
    price_currency: CurrencyCode = Field(..., description="Price currency")
    premium_price_amount: Optional[int] = Field(None, ge=0)
    premium_price_currency: Optional[CurrencyCode] = None
    in_stock: bool = Field(True, description="Whether the stone is available")
    delivery_days: Optional[int] = Field(None, ge=0, le=365)
    internal_code: Optional[str] = Field(None, max_length=100)
    origin_id: Optional[str] = None
    description: Optional[str] = None
    promotional_text: Optional[str] = None

    def to_insert(self) -> dict:
        """Row payload for the gemstones table."""
        return {key: _dump_value(value) for key, value in self.model_dump().items()}


class GemstoneUpdate(BaseSchema):
    """
    Sparse change-set for one or many gemstones.

    Only fields explicitly provided are written; presence of a field is the
    "update this" toggle.
    """

    price_amount: Optional[int] = Field(None, ge=0)
    price_currency: Optional[CurrencyCode] = None
    premium_price_amount: Optional[int] = Field(None, ge=0)
    premium_price_currency: Optional[CurrencyCode] = None
    weight_carats: Optional[Decimal] = Field(None, ge=0)
    in_stock: Optional[bool] = None
    delivery_days: Optional[int] = Field(None, ge=0, le=365)
    quantity: Optional[int] = Field(None, ge=0)
    metadata_status: Optional[MetadataStatus] = None
    description: Optional[str] = None
    promotional_text: Optional[str] = None
    origin_id: Optional[str] = None
    internal_code: Optional[str] = Field(None, max_length=100)
    serial_number: Optional[str] = Field(None, min_length=1, max_length=100)

    def to_fields(self) -> dict:
        """Only the explicitly set fields, ready for the database client."""
        return {
            key: _dump_value(value)
            for key, value in self.model_dump(exclude_unset=True).items()
        }


class GemstoneResponse(BaseSchema, TimestampMixin):
    """Persisted gemstone as read back from the store."""

    id: str = Field(..., description="Gemstone UUID")
    serial_number: str
    name: GemstoneType
    color: GemColor
    cut: Optional[GemCut] = None
    clarity: Optional[GemClarity] = None
    weight_carats: Optional[Decimal] = None
    length_mm: Optional[Decimal] = None
    width_mm: Optional[Decimal] = None
    depth_mm: Optional[Decimal] = None
    price_amount: int
    price_currency: CurrencyCode
    premium_price_amount: Optional[int] = None
    premium_price_currency: Optional[CurrencyCode] = None
    in_stock: bool = True
    delivery_days: Optional[int] = None
    internal_code: Optional[str] = None
    origin_id: Optional[str] = None
    description: Optional[str] = None
    promotional_text: Optional[str] = None

    @field_validator("weight_carats", "length_mm", "width_mm", "depth_mm", mode="before")
    @classmethod
    def zero_dimension_is_unspecified(cls, v, info):
        """Legacy rows store 0 for unknown dimensions."""
        if info.field_name != "weight_carats" and v in (0, "0", 0.0):
            return None
        return v


class CatalogFilter(BaseModel):
    """Active list filter, used for "export all matching"."""

    name: Optional[GemstoneType] = None
    color: Optional[GemColor] = None
    cut: Optional[GemCut] = None
    clarity: Optional[GemClarity] = None
    price_currency: Optional[CurrencyCode] = None
    in_stock: Optional[bool] = None
    search: Optional[str] = Field(None, description="Serial number substring")
    sort_by: str = Field(
        "serial_number",
        pattern="^(serial_number|created_at|price_amount|weight_carats|name)$"
    )
    sort_desc: bool = False
