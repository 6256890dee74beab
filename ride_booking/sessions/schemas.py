from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from enum import Enum

from ride_booking.bookings.schemas import DeliveryMethod
from ride_booking.catalog.schemas import Trip
from ride_booking.fares.schemas import FareBreakdown, SelectedExtra


class WorkflowStep(str, Enum):
    """Booking wizard steps, in order"""
    SEARCH = "search"
    SELECT_TRIP = "select_trip"
    SELECT_SEATS = "select_seats"
    PASSENGER_INFO = "passenger_info"
    PAYMENT = "payment"
    CONFIRMATION = "confirmation"


STEP_ORDER: List[WorkflowStep] = list(WorkflowStep)


class TripSearchCriteria(BaseModel):
    origin: str = ""
    destination: str = ""
    travel_date: Optional[date] = None


class PassengerDraft(BaseModel):
    """Passenger details as typed so far; checked when leaving the step"""
    name: str = ""
    phone: str = ""
    email: Optional[str] = None
    delivery_method: DeliveryMethod = DeliveryMethod.SMS


class GuardError(BaseModel):
    error_code: str
    error_message: str
    field: Optional[str] = None


class BookingSession(BaseModel):
    """One passenger's in-progress run through the booking wizard"""
    session_id: str
    passenger_id: Optional[str] = None
    step: WorkflowStep = WorkflowStep.SEARCH
    criteria: TripSearchCriteria = Field(default_factory=TripSearchCriteria)
    search_results: List[str] = []
    trip: Optional[Trip] = None
    held_seat_ids: List[str] = []
    passenger: PassengerDraft = Field(default_factory=PassengerDraft)
    extras: List[SelectedExtra] = []
    doorstep_pickup: bool = False
    pickup_address: Optional[str] = None
    discount_code: Optional[str] = None
    fare: Optional[FareBreakdown] = None
    booking_id: Optional[str] = None
    payment_in_flight: bool = False
    reconciliation_required: bool = False
    last_error: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    expires_at: Optional[datetime] = None


# Request models

class StartSessionRequest(BaseModel):
    criteria: TripSearchCriteria = Field(default_factory=TripSearchCriteria)


class TripSelectionRequest(BaseModel):
    trip_id: str


class SeatHoldRequest(BaseModel):
    seat_ids: List[str] = Field(..., min_length=1)


class ExtraSelection(BaseModel):
    extra_id: str
    quantity: int = Field(..., ge=0)


class ExtrasUpdateRequest(BaseModel):
    extras: List[ExtraSelection] = []


class PickupUpdateRequest(BaseModel):
    doorstep_pickup: bool
    pickup_address: Optional[str] = None


class DiscountApplyRequest(BaseModel):
    code: str
