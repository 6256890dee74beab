"""
Trip Catalog Module

Read-only trip, vehicle and extras reference data consumed by the booking
engine. TripCatalog is the abstract interface; InMemoryTripCatalog backs the
demo application and the tests.

Key Components:
- service.py: TripCatalog interface and the in-memory implementation
- seed_data.py: demo vehicles, trips and extras
- router.py: FastAPI endpoints for trip search, seat maps and extras
- schemas.py: Pydantic models for trips, vehicles and extras
"""

from .router import router
from .service import InMemoryTripCatalog, TripCatalog
from .seed_data import create_seed_catalog
from .schemas import Extra, RouteInfo, Trip, TripStatus, TripSummary, Vehicle, VehicleType

__all__ = [
    "router",
    "InMemoryTripCatalog",
    "TripCatalog",
    "create_seed_catalog",
    "Extra",
    "RouteInfo",
    "Trip",
    "TripStatus",
    "TripSummary",
    "Vehicle",
    "VehicleType"
]
