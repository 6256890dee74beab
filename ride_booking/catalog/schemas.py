from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, time
from decimal import Decimal
from enum import Enum


class TripStatus(str, Enum):
    """Trip status enumeration"""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class VehicleType(str, Enum):
    """Vehicle type enumeration"""
    SEDAN = "sedan"
    VAN = "van"
    BUS = "bus"
    MINIBUS = "minibus"


class RouteInfo(BaseModel):
    origin: str
    destination: str

    @property
    def route_id(self) -> str:
        """Slug such as "accra-kumasi" used by route-specific discount rules"""
        return f"{self.origin}-{self.destination}".lower().replace(" ", "-")


class Vehicle(BaseModel):
    """Vehicle reference data"""
    vehicle_id: str
    vehicle_type: VehicleType
    capacity: int = Field(..., ge=1)
    plate_number: Optional[str] = None
    features: List[str] = []


class Trip(BaseModel):
    """Scheduled trip published by a driver"""
    trip_id: str
    route: RouteInfo
    scheduled_date: date
    scheduled_time: time
    price_per_seat: Decimal = Field(..., ge=0)
    vehicle_id: str
    driver_id: Optional[str] = None
    status: TripStatus = TripStatus.SCHEDULED


class Extra(BaseModel):
    """Purchasable add-on such as luggage or refreshments"""
    extra_id: str
    name: str
    unit_price: Decimal = Field(..., ge=0)


class TripSummary(BaseModel):
    """Trip listing entry with live seat availability"""
    trip: Trip
    vehicle: Vehicle
    available_seats: int
