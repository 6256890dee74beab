from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum

from ride_booking.fares.schemas import FareBreakdown, SelectedExtra
from ride_booking.payments.schemas import PaymentMethodType


class BookingStatus(str, Enum):
    """Booking status enumeration"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked-in"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    """Payment status enumeration"""
    PENDING = "pending"
    PAID = "paid"
    REFUND_DUE = "refund_due"


class DeliveryMethod(str, Enum):
    """How the ticket reaches the passenger"""
    SMS = "sms"
    EMAIL = "email"
    WHATSAPP = "whatsapp"


class PassengerInfo(BaseModel):
    """Contact details of the travelling passenger"""
    name: str
    phone: str
    email: Optional[str] = None
    delivery_method: DeliveryMethod = DeliveryMethod.SMS


class Booking(BaseModel):
    """A paid-for reservation of one or more seats on a trip"""
    booking_id: str
    session_id: Optional[str] = None
    trip_id: str
    passenger_id: Optional[str] = None
    passenger: PassengerInfo
    seat_ids: List[str]
    seat_numbers: List[str] = []
    extras: List[SelectedExtra] = []
    doorstep_pickup: bool = False
    pickup_address: Optional[str] = None
    fare: Optional[FareBreakdown] = None
    total_price: Decimal
    currency: str = "USD"
    discount_code: Optional[str] = None
    payment_method: Optional[PaymentMethodType] = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    transaction_id: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING
    confirmation_code: str
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    checked_in_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None


class BookingEvent(BaseModel):
    """One entry of a booking's append-only status history"""
    booking_id: str
    from_status: Optional[BookingStatus] = None
    to_status: BookingStatus
    occurred_at: datetime = Field(default_factory=datetime.now)
    note: Optional[str] = None


# Request models

class BookingConfirmationRequest(BaseModel):
    transaction_id: Optional[str] = None
    payment_method: Optional[PaymentMethodType] = None


class BookingCancellationRequest(BaseModel):
    cancellation_reason: Optional[str] = None


class CheckInRequest(BaseModel):
    seat_id: str


class BookingSearchFilters(BaseModel):
    passenger_id: Optional[str] = None
    trip_id: Optional[str] = None
    status: Optional[BookingStatus] = None
