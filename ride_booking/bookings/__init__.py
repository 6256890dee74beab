"""
Booking Lifecycle Module

Durable bookings created once a session's payment succeeds, and the status
state machine they move through:

    pending -> confirmed | cancelled
    confirmed -> checked-in | cancelled | completed
    checked-in -> completed

Key Components:
- booking_service.py: creation (seat commit + confirmation code) and transitions
- repository.py: in-memory and SQLAlchemy storage with an append-only history
- router.py: FastAPI endpoints for lookup, confirm, cancel, check-in, complete
- schemas.py: Pydantic models for bookings and booking events
"""

from .router import router
from .booking_service import BookingService, ALLOWED_TRANSITIONS, can_transition
from .repository import BookingRepository, InMemoryBookingRepository, SqlBookingRepository
from .schemas import (
    Booking, BookingEvent, BookingStatus, PaymentStatus, PassengerInfo,
    DeliveryMethod, BookingSearchFilters
)

__all__ = [
    "router",
    "BookingService",
    "ALLOWED_TRANSITIONS",
    "can_transition",
    "BookingRepository",
    "InMemoryBookingRepository",
    "SqlBookingRepository",
    "Booking",
    "BookingEvent",
    "BookingStatus",
    "PaymentStatus",
    "PassengerInfo",
    "DeliveryMethod",
    "BookingSearchFilters"
]
