from fastapi import APIRouter, Depends, status
from typing import List, Optional

from ride_booking.auth.dependencies import get_optional_passenger_id
from ride_booking.bookings.schemas import Booking
from ride_booking.dependencies import get_engine
from ride_booking.exceptions import BookingEngineError, http_error
from ride_booking.fares.schemas import DiscountResult, FareBreakdown
from ride_booking.payments.schemas import PaymentDetails
from ride_booking.sessions.schemas import (
    BookingSession, DiscountApplyRequest, ExtrasUpdateRequest, PassengerDraft,
    PickupUpdateRequest, SeatHoldRequest, StartSessionRequest, TripSearchCriteria,
    TripSelectionRequest
)

router = APIRouter()


@router.post("", response_model=BookingSession, status_code=status.HTTP_201_CREATED)
async def start_session(
    request: StartSessionRequest,
    passenger_id: Optional[str] = Depends(get_optional_passenger_id),
    engine=Depends(get_engine)
):
    """
    Start a booking session.

    Logged-in passengers send a bearer token; without one the session is a
    guest checkout. When origin and destination are given the trip search runs
    immediately and the session waits at trip selection.
    """
    try:
        return await engine.workflow.start_session(request.criteria, passenger_id=passenger_id)
    except BookingEngineError as e:
        raise http_error(e)


@router.get("/{session_id}", response_model=BookingSession)
def get_session(session_id: str, engine=Depends(get_engine)):
    """Current state of a booking session"""
    try:
        return engine.workflow.get_session(session_id)
    except BookingEngineError as e:
        raise http_error(e)


@router.post("/{session_id}/search", response_model=BookingSession)
async def search_trips(
    session_id: str,
    criteria: TripSearchCriteria,
    engine=Depends(get_engine)
):
    """Run (or re-run) the trip search for a session"""
    try:
        return await engine.workflow.search(session_id, criteria)
    except BookingEngineError as e:
        raise http_error(e)


@router.post("/{session_id}/trip", response_model=BookingSession)
async def select_trip(
    session_id: str,
    request: TripSelectionRequest,
    engine=Depends(get_engine)
):
    try:
        return await engine.workflow.select_trip(session_id, request.trip_id)
    except BookingEngineError as e:
        raise http_error(e)


@router.post("/{session_id}/seats", response_model=BookingSession)
def hold_seats(
    session_id: str,
    request: SeatHoldRequest,
    engine=Depends(get_engine)
):
    """Hold seats for this session; all requested seats are held or none"""
    try:
        return engine.workflow.hold_seats(session_id, request.seat_ids)
    except BookingEngineError as e:
        raise http_error(e)


@router.delete("/{session_id}/seats/{seat_id}", response_model=BookingSession)
def release_seat(session_id: str, seat_id: str, engine=Depends(get_engine)):
    try:
        return engine.workflow.release_seats(session_id, [seat_id])
    except BookingEngineError as e:
        raise http_error(e)


@router.put("/{session_id}/passenger", response_model=BookingSession)
def set_passenger(
    session_id: str,
    passenger: PassengerDraft,
    engine=Depends(get_engine)
):
    """Save passenger details; they are checked when the session advances"""
    try:
        return engine.workflow.set_passenger(session_id, passenger)
    except BookingEngineError as e:
        raise http_error(e)


@router.put("/{session_id}/extras", response_model=BookingSession)
async def set_extras(
    session_id: str,
    request: ExtrasUpdateRequest,
    engine=Depends(get_engine)
):
    try:
        return await engine.workflow.set_extras(session_id, request.extras)
    except BookingEngineError as e:
        raise http_error(e)


@router.put("/{session_id}/pickup", response_model=BookingSession)
def set_pickup(
    session_id: str,
    request: PickupUpdateRequest,
    engine=Depends(get_engine)
):
    try:
        return engine.workflow.set_pickup(session_id, request.doorstep_pickup, request.pickup_address)
    except BookingEngineError as e:
        raise http_error(e)


@router.post("/{session_id}/discount", response_model=DiscountResult)
def apply_discount(
    session_id: str,
    request: DiscountApplyRequest,
    engine=Depends(get_engine)
):
    try:
        return engine.workflow.apply_discount(session_id, request.code)
    except BookingEngineError as e:
        raise http_error(e)


@router.delete("/{session_id}/discount", response_model=BookingSession)
def remove_discount(session_id: str, engine=Depends(get_engine)):
    try:
        return engine.workflow.remove_discount(session_id)
    except BookingEngineError as e:
        raise http_error(e)


@router.get("/{session_id}/fare", response_model=FareBreakdown)
def get_fare(session_id: str, engine=Depends(get_engine)):
    """Itemised fare for the session as it stands"""
    try:
        return engine.workflow.quote(session_id)
    except BookingEngineError as e:
        raise http_error(e)


@router.post("/{session_id}/advance", response_model=BookingSession)
async def advance(session_id: str, engine=Depends(get_engine)):
    """Move to the next step; 400 with field errors when a guard fails"""
    try:
        return await engine.workflow.advance(session_id)
    except BookingEngineError as e:
        raise http_error(e)


@router.post("/{session_id}/back", response_model=BookingSession)
def back(session_id: str, engine=Depends(get_engine)):
    try:
        return engine.workflow.back(session_id)
    except BookingEngineError as e:
        raise http_error(e)


@router.post("/{session_id}/payment", response_model=Booking, status_code=status.HTTP_201_CREATED)
async def submit_payment(
    session_id: str,
    payment: PaymentDetails,
    engine=Depends(get_engine)
):
    """
    Pay for the session and create the booking.

    A declined or timed-out payment returns 402 and the session stays at the
    payment step with its seats still held.
    """
    try:
        return await engine.workflow.submit_payment(session_id, payment)
    except BookingEngineError as e:
        raise http_error(e)


@router.delete("/{session_id}", response_model=List[str])
def abandon_session(session_id: str, engine=Depends(get_engine)):
    """Abandon the session; returns the seat ids released"""
    try:
        return engine.workflow.abandon(session_id)
    except BookingEngineError as e:
        raise http_error(e)
