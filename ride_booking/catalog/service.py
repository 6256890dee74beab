from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, List, Optional

from ride_booking.catalog.schemas import Extra, Trip, TripStatus, Vehicle
from ride_booking.exceptions import NotFoundError


class TripCatalog(ABC):
    """Read access to published trips, vehicles and extras"""

    @abstractmethod
    async def list_trips(self, origin: str, destination: str, travel_date: Optional[date] = None) -> List[Trip]:
        pass

    @abstractmethod
    async def get_trip(self, trip_id: str) -> Trip:
        pass

    @abstractmethod
    async def get_vehicle(self, vehicle_id: str) -> Vehicle:
        pass

    @abstractmethod
    async def list_extras(self) -> List[Extra]:
        pass

    async def get_extra(self, extra_id: str) -> Extra:
        for extra in await self.list_extras():
            if extra.extra_id == extra_id:
                return extra
        raise NotFoundError(f"Extra '{extra_id}' not found", extra_id=extra_id)


class InMemoryTripCatalog(TripCatalog):
    """Trip catalog kept in process memory"""

    def __init__(self):
        self._trips: Dict[str, Trip] = {}
        self._vehicles: Dict[str, Vehicle] = {}
        self._extras: Dict[str, Extra] = {}

    def add_vehicle(self, vehicle: Vehicle) -> Vehicle:
        self._vehicles[vehicle.vehicle_id] = vehicle
        return vehicle

    def add_trip(self, trip: Trip) -> Trip:
        if trip.vehicle_id not in self._vehicles:
            raise NotFoundError(f"Vehicle '{trip.vehicle_id}' not found", vehicle_id=trip.vehicle_id)
        self._trips[trip.trip_id] = trip
        return trip

    def add_extra(self, extra: Extra) -> Extra:
        self._extras[extra.extra_id] = extra
        return extra

    def update_status(self, trip_id: str, status: TripStatus) -> Trip:
        trip = self._trips.get(trip_id)
        if not trip:
            raise NotFoundError(f"Trip '{trip_id}' not found", trip_id=trip_id)
        trip.status = status
        return trip

    async def list_trips(self, origin: str, destination: str, travel_date: Optional[date] = None) -> List[Trip]:
        """Search trips by route (case-insensitive) and optional date"""
        origin_key = origin.strip().lower()
        destination_key = destination.strip().lower()

        trips = [
            t for t in self._trips.values()
            if t.route.origin.lower() == origin_key and t.route.destination.lower() == destination_key
        ]
        if travel_date:
            trips = [t for t in trips if t.scheduled_date == travel_date]

        return sorted(trips, key=lambda t: (t.scheduled_date, t.scheduled_time))

    async def get_trip(self, trip_id: str) -> Trip:
        trip = self._trips.get(trip_id)
        if not trip:
            raise NotFoundError(f"Trip '{trip_id}' not found", trip_id=trip_id)
        return trip

    async def get_vehicle(self, vehicle_id: str) -> Vehicle:
        vehicle = self._vehicles.get(vehicle_id)
        if not vehicle:
            raise NotFoundError(f"Vehicle '{vehicle_id}' not found", vehicle_id=vehicle_id)
        return vehicle

    async def list_extras(self) -> List[Extra]:
        return list(self._extras.values())
