"""
Seat Inventory Module

Deterministic seat layouts per vehicle type and the shared, lock-protected seat
records that mediate reservation holds, booking commits and cancellations.

Key Components:
- layout.py: seat layout generation for sedans, vans, buses and minibuses
- inventory_service.py: hold / release / commit / free and hold expiry
- schemas.py: Pydantic models for seats and seat maps
"""

from .inventory_service import SeatInventory
from .layout import generate_layout, make_seat_id
from .schemas import Seat, SeatMap, SeatPosition, SeatState, SeatTier, SeatView

__all__ = [
    "SeatInventory",
    "generate_layout",
    "make_seat_id",
    "Seat",
    "SeatMap",
    "SeatPosition",
    "SeatState",
    "SeatTier",
    "SeatView"
]
