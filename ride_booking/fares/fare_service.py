from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from ride_booking.config import settings
from ride_booking.exceptions import ValidationError
from ride_booking.fares.schemas import FareBreakdown, SelectedExtra

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def round2(value) -> Decimal:
    """Round a money amount to cents, half-up"""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class FareCalculationService:
    """Fare math for a booking: seats, service fee, extras, pickup and discount"""

    def __init__(
        self,
        service_fee_rate: Optional[Decimal] = None,
        pickup_fee: Optional[Decimal] = None,
        currency: Optional[str] = None
    ):
        self.service_fee_rate = Decimal(str(service_fee_rate if service_fee_rate is not None else settings.SERVICE_FEE_RATE))
        self.pickup_fee = round2(pickup_fee if pickup_fee is not None else settings.DOORSTEP_PICKUP_FEE)
        self.currency = currency or settings.CURRENCY

    def calculate_fare(
        self,
        price_per_seat: Decimal,
        seat_count: int,
        extras: Iterable[SelectedExtra] = (),
        doorstep_pickup: bool = False,
        discount: Decimal = ZERO
    ) -> FareBreakdown:
        """
        Calculate the itemised fare.

        Each addition is rounded to cents. The discount is clamped to the
        pre-discount subtotal, so ``subtotal - discount == total`` and the
        total is never negative.
        """
        price_per_seat = Decimal(str(price_per_seat))
        discount = Decimal(str(discount))
        extras = list(extras)

        if price_per_seat < 0:
            raise ValidationError("Price per seat cannot be negative", field="price_per_seat")
        if seat_count < 0:
            raise ValidationError("Seat count cannot be negative", field="seat_count")
        if discount < 0:
            raise ValidationError("Discount cannot be negative", field="discount")

        base_fare = round2(price_per_seat * seat_count)
        service_fee = self.calculate_service_fee(base_fare)
        extras_total = self.calculate_extras_total(extras)
        pickup_fee = self.pickup_fee if doorstep_pickup else ZERO

        subtotal = round2(base_fare + service_fee)
        subtotal = round2(subtotal + extras_total)
        subtotal = round2(subtotal + pickup_fee)

        applied_discount = min(round2(discount), subtotal)
        total = max(round2(subtotal - applied_discount), ZERO)

        return FareBreakdown(
            price_per_seat=round2(price_per_seat),
            seat_count=seat_count,
            base_fare=base_fare,
            service_fee=service_fee,
            extras_total=extras_total,
            pickup_fee=pickup_fee,
            subtotal=subtotal,
            discount=applied_discount,
            total=total,
            currency=self.currency
        )

    def calculate_service_fee(self, base_fare: Decimal) -> Decimal:
        return round2(Decimal(str(base_fare)) * self.service_fee_rate)

    def calculate_extras_total(self, extras: Iterable[SelectedExtra]) -> Decimal:
        total = ZERO
        for extra in extras:
            if extra.quantity < 1:
                raise ValidationError(f"Quantity for '{extra.name}' must be at least 1", field="extras")
            total = round2(total + extra.unit_price * extra.quantity)
        return total
