from typing import TYPE_CHECKING

from fastapi import Request

if TYPE_CHECKING:
    from ride_booking.engine import BookingEngine


def get_engine(request: Request) -> "BookingEngine":
    """The engine wired up for this application instance"""
    return request.app.state.engine
