from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal
from enum import Enum


class PaymentMethodType(str, Enum):
    """Payment methods accepted at checkout"""
    CARD = "credit_card"
    MOBILE_MONEY = "mobile_money"


class CardDetails(BaseModel):
    cardholder_name: str = ""
    card_number: str = ""
    expiry: str = ""  # MM/YY
    cvv: str = ""


class MobileMoneyDetails(BaseModel):
    phone_number: str = ""
    full_name: str = ""
    provider: Optional[str] = None


class PaymentDetails(BaseModel):
    """Payment submitted at the end of the booking wizard"""
    method: PaymentMethodType
    card: Optional[CardDetails] = None
    mobile_money: Optional[MobileMoneyDetails] = None


class PaymentResult(BaseModel):
    success: bool
    transaction_id: Optional[str] = None
    amount: Decimal = Field(default=Decimal("0.00"))
    message: Optional[str] = None
