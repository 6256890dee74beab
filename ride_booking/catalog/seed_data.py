import logging
from datetime import date, time, timedelta
from decimal import Decimal
from typing import Optional

from ride_booking.catalog.schemas import Extra, RouteInfo, Trip, Vehicle, VehicleType
from ride_booking.catalog.service import InMemoryTripCatalog

logger = logging.getLogger(__name__)


def create_seed_catalog(start_date: Optional[date] = None) -> InMemoryTripCatalog:
    """Build a catalog with demo vehicles, trips and extras"""

    start_date = start_date or date.today() + timedelta(days=1)
    catalog = InMemoryTripCatalog()

    # 1. Vehicles
    vehicles = [
        Vehicle(vehicle_id="V001", vehicle_type=VehicleType.SEDAN, capacity=4,
                plate_number="GR-1024-21", features=["air conditioning"]),
        Vehicle(vehicle_id="V002", vehicle_type=VehicleType.VAN, capacity=12,
                plate_number="GR-2231-22", features=["air conditioning", "usb charging"]),
        Vehicle(vehicle_id="V003", vehicle_type=VehicleType.BUS, capacity=30,
                plate_number="AS-7781-20", features=["air conditioning", "wifi", "restroom"]),
        Vehicle(vehicle_id="V004", vehicle_type=VehicleType.MINIBUS, capacity=18,
                plate_number="AS-4410-23", features=["usb charging"]),
    ]
    for vehicle in vehicles:
        catalog.add_vehicle(vehicle)

    # 2. Trips
    trips = [
        Trip(trip_id="T1", route=RouteInfo(origin="Accra", destination="Kumasi"),
             scheduled_date=start_date, scheduled_time=time(8, 0),
             price_per_seat=Decimal("45.00"), vehicle_id="V003", driver_id="D001"),
        Trip(trip_id="T2", route=RouteInfo(origin="Accra", destination="Kumasi"),
             scheduled_date=start_date, scheduled_time=time(14, 30),
             price_per_seat=Decimal("35.00"), vehicle_id="V002", driver_id="D002"),
        Trip(trip_id="T3", route=RouteInfo(origin="Accra", destination="Cape Coast"),
             scheduled_date=start_date, scheduled_time=time(9, 15),
             price_per_seat=Decimal("25.00"), vehicle_id="V001", driver_id="D003"),
        Trip(trip_id="T4", route=RouteInfo(origin="Kumasi", destination="Tamale"),
             scheduled_date=start_date + timedelta(days=1), scheduled_time=time(6, 45),
             price_per_seat=Decimal("60.00"), vehicle_id="V004", driver_id="D004"),
    ]
    for trip in trips:
        catalog.add_trip(trip)

    # 3. Extras
    extras = [
        Extra(extra_id="luggage", name="Extra luggage", unit_price=Decimal("5.00")),
        Extra(extra_id="snack", name="Snack pack", unit_price=Decimal("3.50")),
        Extra(extra_id="water", name="Bottled water", unit_price=Decimal("1.00")),
    ]
    for extra in extras:
        catalog.add_extra(extra)

    logger.info("Seeded catalog with %d vehicles, %d trips, %d extras", len(vehicles), len(trips), len(extras))
    return catalog
