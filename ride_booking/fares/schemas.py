from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


class SelectedExtra(BaseModel):
    """An extra chosen for a booking with its quantity"""
    extra_id: str
    name: str
    unit_price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., ge=1)


class FareBreakdown(BaseModel):
    """Itemised fare for a booking"""
    price_per_seat: Decimal
    seat_count: int
    base_fare: Decimal
    service_fee: Decimal
    extras_total: Decimal
    pickup_fee: Decimal
    subtotal: Decimal
    discount: Decimal
    total: Decimal
    currency: str = "USD"


class FareQuoteRequest(BaseModel):
    price_per_seat: Decimal = Field(..., ge=0)
    seat_count: int = Field(1, ge=0)
    extras: List[SelectedExtra] = []
    doorstep_pickup: bool = False
    discount_code: Optional[str] = None


class DiscountRule(BaseModel):
    """Promo code rule"""
    code: str
    discount_type: DiscountType
    value: Decimal = Field(..., gt=0)
    description: Optional[str] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    max_uses: Optional[int] = None
    times_used: int = 0
    min_booking_amount: Optional[Decimal] = None
    applicable_route_ids: List[str] = []
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def normalise_code(cls, v):
        if not v or not v.strip():
            raise ValueError("Discount code cannot be empty")
        return v.strip().upper()


class DiscountResult(BaseModel):
    code: str
    discount_type: DiscountType
    amount: Decimal
    description: Optional[str] = None


class DiscountValidationRequest(BaseModel):
    code: str
    pre_discount_total: Decimal = Field(..., ge=0)
    route_id: Optional[str] = None
