from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from enum import Enum


class SeatPosition(str, Enum):
    WINDOW = "window"
    AISLE = "aisle"
    MIDDLE = "middle"


class SeatTier(str, Enum):
    """Seat pricing/comfort class"""
    STANDARD = "standard"
    PREMIUM = "premium"
    ECONOMY = "economy"


class SeatState(str, Enum):
    FREE = "free"
    HELD = "held"
    BOOKED = "booked"


class Seat(BaseModel):
    """A seat on one trip instance"""
    seat_id: str
    trip_id: str
    seat_number: str
    row: int
    column: int
    position: SeatPosition
    tier: SeatTier = SeatTier.STANDARD
    state: SeatState = SeatState.FREE
    held_by: Optional[str] = None
    hold_expires_at: Optional[datetime] = None
    booking_id: Optional[str] = None


class SeatView(BaseModel):
    """Seat as shown to passengers; never exposes who holds it"""
    seat_id: str
    seat_number: str
    row: int
    column: int
    position: SeatPosition
    tier: SeatTier
    is_available: bool


class SeatMap(BaseModel):
    trip_id: str
    total_seats: int
    available_seats: int
    seats: List[SeatView]
