from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import List, Optional

from ride_booking.bookings.schemas import (
    Booking, BookingCancellationRequest, BookingConfirmationRequest, BookingEvent,
    BookingSearchFilters, BookingStatus, CheckInRequest
)
from ride_booking.dependencies import get_engine
from ride_booking.exceptions import BookingEngineError, http_error

router = APIRouter()


@router.get("", response_model=List[Booking])
def search_bookings(
    passenger_id: Optional[str] = Query(None, description="Filter by passenger"),
    trip_id: Optional[str] = Query(None, description="Filter by trip"),
    booking_status: Optional[BookingStatus] = Query(None, alias="status", description="Filter by booking status"),
    limit: int = Query(50, ge=1, le=100, description="Maximum results"),
    engine=Depends(get_engine)
):
    """List bookings, newest first"""

    filters = BookingSearchFilters(passenger_id=passenger_id, trip_id=trip_id, status=booking_status)
    return engine.bookings.search_bookings(filters)[:limit]


@router.get("/code/{confirmation_code}", response_model=Booking)
def get_booking_by_code(
    confirmation_code: str,
    engine=Depends(get_engine)
):
    """Get booking by confirmation code"""

    booking = engine.bookings.get_booking_by_code(confirmation_code)
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found"
        )
    return booking


@router.get("/{booking_id}", response_model=Booking)
def get_booking(
    booking_id: str,
    engine=Depends(get_engine)
):
    """Get booking details by ID"""

    booking = engine.bookings.get_booking(booking_id)
    if not booking:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found"
        )
    return booking


@router.get("/{booking_id}/history", response_model=List[BookingEvent])
def get_booking_history(
    booking_id: str,
    engine=Depends(get_engine)
):
    """Status history of a booking"""

    try:
        return engine.bookings.get_history(booking_id)
    except BookingEngineError as e:
        raise http_error(e)


@router.post("/{booking_id}/confirm", response_model=Booking)
def confirm_booking(
    booking_id: str,
    request: BookingConfirmationRequest,
    engine=Depends(get_engine)
):
    """Confirm a pending booking once its payment has cleared"""

    try:
        return engine.bookings.confirm_payment(
            booking_id,
            transaction_id=request.transaction_id,
            payment_method=request.payment_method
        )
    except BookingEngineError as e:
        raise http_error(e)


@router.post("/{booking_id}/cancel", response_model=Booking)
def cancel_booking(
    booking_id: str,
    request: BookingCancellationRequest,
    engine=Depends(get_engine)
):
    """Cancel a booking and release its seats"""

    try:
        return engine.bookings.cancel_booking(booking_id, reason=request.cancellation_reason)
    except BookingEngineError as e:
        raise http_error(e)


@router.post("/{booking_id}/check-in", response_model=Booking)
def check_in_booking(
    booking_id: str,
    request: CheckInRequest,
    engine=Depends(get_engine)
):
    """Check a passenger in for their seat"""

    try:
        return engine.bookings.check_in(booking_id, request.seat_id)
    except BookingEngineError as e:
        raise http_error(e)


@router.post("/{booking_id}/complete", response_model=Booking)
def complete_booking(
    booking_id: str,
    engine=Depends(get_engine)
):
    """Mark a booking's trip as completed"""

    try:
        return engine.bookings.complete_booking(booking_id)
    except BookingEngineError as e:
        raise http_error(e)
