"""
Pydantic models for deals.
"""

from datetime import date
from enum import Enum
from typing import Any, List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator


class DealType(str, Enum):
    BOGO = "BOGO"
    PERCENTAGE_OFF = "PERCENTAGE_OFF"
    DOLLAR_OFF = "DOLLAR_OFF"
    FREE_ITEM = "FREE_ITEM"
    COMBO_DEAL = "COMBO_DEAL"


def _coerce_number(value: Any) -> Any:
    """
    Coerce a price-like value to float.

    Claude usually returns plain numbers, but "$8.00" or "1,299" strings do
    show up. Anything that still isn't numeric after stripping currency
    symbols becomes None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = value.strip().replace("$", "").replace(",", "")
        if not cleaned:
            return None
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


class DealDraft(BaseModel):
    """
    Raw extraction output from Claude, before images and flags are attached.

    Field names follow the camelCase JSON keys the prompt asks for; snake_case
    names are accepted too. Values are type-coerced only: an unknown dealType
    or a non-ISO expiryDate is kept as given.
    """
    restaurant: Optional[str] = None
    deal_description: Optional[str] = Field(default=None, alias="dealDescription")
    original_price: Optional[float] = Field(default=None, alias="originalPrice")
    discounted_price: Optional[float] = Field(default=None, alias="discountedPrice")
    savings: Optional[float] = None
    expiry_date: Optional[str] = Field(default=None, alias="expiryDate")
    deal_code: Optional[str] = Field(default=None, alias="dealCode")
    terms_and_conditions: Optional[str] = Field(default=None, alias="termsAndConditions")
    deal_type: Optional[str] = Field(default=None, alias="dealType")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @field_validator("original_price", "discounted_price", "savings", mode="before")
    @classmethod
    def _numbers(cls, v):
        return _coerce_number(v)

    @field_validator(
        "restaurant",
        "deal_description",
        "expiry_date",
        "deal_code",
        "terms_and_conditions",
        "deal_type",
        mode="before",
    )
    @classmethod
    def _strings(cls, v):
        if v is None:
            return None
        if not isinstance(v, str):
            v = str(v)
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def _fill_savings(self):
        # Claude is asked to state savings; derive it only when it didn't.
        if (
            self.savings is None
            and self.original_price is not None
            and self.discounted_price is not None
        ):
            diff = round(self.original_price - self.discounted_price, 2)
            if diff >= 0:
                self.savings = diff
        return self

    @property
    def is_complete(self) -> bool:
        """True when the draft carries the fields every stored deal needs."""
        return bool(self.restaurant) and bool(self.deal_description)


class DealCreate(BaseModel):
    """Insert payload for the deals table."""
    user_id: str
    email_id: str
    restaurant: str
    deal_description: str
    original_price: Optional[float] = None
    discounted_price: Optional[float] = None
    savings: float = 0.0
    expiry_date: Optional[str] = None
    deal_code: Optional[str] = None
    terms_and_conditions: Optional[str] = None
    deal_type: Optional[str] = None
    image_url: Optional[str] = None
    logo_url: Optional[str] = None
    is_active: bool = True
    is_notified: bool = False


class Deal(BaseModel):
    """Full deal record from the database."""
    model_config = {"from_attributes": True}

    id: str
    user_id: str
    email_id: str
    restaurant: str
    deal_description: str
    original_price: Optional[float] = None
    discounted_price: Optional[float] = None
    savings: float = 0.0
    expiry_date: Optional[date] = None
    deal_code: Optional[str] = None
    terms_and_conditions: Optional[str] = None
    deal_type: Optional[str] = None
    image_url: Optional[str] = None
    logo_url: Optional[str] = None
    is_active: bool = True
    is_notified: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class DealFilters(BaseModel):
    """Query-string filters for GET /api/deals/{user_email}."""
    restaurant: Optional[str] = None
    min_savings: Optional[float] = None
    expiring_soon: bool = False


# ---------------------------------------------------------------------------
# Request / response bodies
# ---------------------------------------------------------------------------

class ScanRequest(BaseModel):
    user_email: str = Field(alias="userEmail")

    model_config = {"populate_by_name": True}


class ScanResponse(BaseModel):
    success: bool = True
    deals_processed: int = Field(serialization_alias="dealsProcessed")
    deals: List[Deal] = []


class DealListResponse(BaseModel):
    deals: List[Deal] = []
