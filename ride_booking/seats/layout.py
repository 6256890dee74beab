import math
from typing import List

from ride_booking.catalog.schemas import VehicleType
from ride_booking.exceptions import ValidationError
from ride_booking.seats.schemas import Seat, SeatPosition, SeatTier

SEAT_LETTERS = "ABCD"

# vehicle type -> (seats per row, premium rows)
LAYOUT_RULES = {
    VehicleType.SEDAN: (2, 0),
    VehicleType.VAN: (2, 2),
    VehicleType.BUS: (4, 3),
    VehicleType.MINIBUS: (4, 3),
}


def make_seat_id(trip_id: str, seat_number: str) -> str:
    return f"{trip_id}-{seat_number}"


def _row_count(vehicle_type: VehicleType, capacity: int) -> int:
    if vehicle_type == VehicleType.SEDAN:
        return 2
    seats_per_row, _ = LAYOUT_RULES[vehicle_type]
    return math.ceil(capacity / seats_per_row)


def _position(seats_per_row: int, column: int) -> SeatPosition:
    if seats_per_row == 2 or column in (1, seats_per_row):
        return SeatPosition.WINDOW
    return SeatPosition.AISLE


def generate_layout(vehicle_type: VehicleType, capacity: int, trip_id: str) -> List[Seat]:
    """
    Generate the seat layout of a vehicle for one trip.

    The result depends only on its arguments, so regenerating the layout for a
    trip always yields the same seat ids and labels.

    - sedan: 2 rows of 2 window seats, all standard
    - van: ceil(capacity/2) rows of 2 window seats, rows 1-2 premium
    - bus/minibus: ceil(capacity/4) rows of 4 seats, outer columns window,
      inner columns aisle, rows 1-3 premium

    Layouts are truncated to ``capacity``.
    """
    try:
        vehicle_type = VehicleType(vehicle_type)
    except ValueError:
        raise ValidationError(f"Unknown vehicle type '{vehicle_type}'", field="vehicle_type")
    if capacity < 1:
        raise ValidationError("Vehicle capacity must be at least 1", field="capacity")

    seats_per_row, premium_rows = LAYOUT_RULES[vehicle_type]
    seats: List[Seat] = []

    for row in range(1, _row_count(vehicle_type, capacity) + 1):
        for column in range(1, seats_per_row + 1):
            seat_number = f"{row}{SEAT_LETTERS[column - 1]}"
            seats.append(Seat(
                seat_id=make_seat_id(trip_id, seat_number),
                trip_id=trip_id,
                seat_number=seat_number,
                row=row,
                column=column,
                position=_position(seats_per_row, column),
                tier=SeatTier.PREMIUM if row <= premium_rows else SeatTier.STANDARD,
            ))

    return seats[:capacity]
