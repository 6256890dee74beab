from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from datetime import date

from ride_booking.catalog.schemas import Extra, Trip, TripSummary
from ride_booking.dependencies import get_engine
from ride_booking.exceptions import BookingEngineError, http_error
from ride_booking.seats.schemas import SeatMap

router = APIRouter()


@router.get("/trips", response_model=List[TripSummary])
async def list_trips(
    origin: str = Query(..., min_length=1, description="Departure city"),
    destination: str = Query(..., min_length=1, description="Arrival city"),
    travel_date: Optional[date] = Query(None, description="Travel date"),
    engine=Depends(get_engine)
):
    """Search scheduled trips with live seat availability"""

    try:
        summaries = []
        for trip in await engine.catalog.list_trips(origin, destination, travel_date):
            vehicle = await engine.catalog.get_vehicle(trip.vehicle_id)
            engine.inventory.load_trip(trip, vehicle)
            summaries.append(TripSummary(
                trip=trip,
                vehicle=vehicle,
                available_seats=engine.inventory.available_count(trip.trip_id)
            ))
        return summaries
    except BookingEngineError as e:
        raise http_error(e)


@router.get("/trips/{trip_id}", response_model=Trip)
async def get_trip(trip_id: str, engine=Depends(get_engine)):
    try:
        return await engine.catalog.get_trip(trip_id)
    except BookingEngineError as e:
        raise http_error(e)


@router.get("/trips/{trip_id}/seats", response_model=SeatMap)
async def get_seat_map(trip_id: str, engine=Depends(get_engine)):
    """Seat map of a trip; held seats whose hold has lapsed show as available"""

    try:
        if not engine.inventory.has_trip(trip_id):
            trip = await engine.catalog.get_trip(trip_id)
            vehicle = await engine.catalog.get_vehicle(trip.vehicle_id)
            engine.inventory.load_trip(trip, vehicle)
        return engine.inventory.get_seat_map(trip_id)
    except BookingEngineError as e:
        raise http_error(e)


@router.get("/extras", response_model=List[Extra])
async def list_extras(engine=Depends(get_engine)):
    return await engine.catalog.list_extras()
