from fastapi import APIRouter, Depends

from ride_booking.dependencies import get_engine
from ride_booking.exceptions import BookingEngineError, http_error
from ride_booking.fares.schemas import (
    DiscountResult, DiscountValidationRequest, FareBreakdown, FareQuoteRequest
)

router = APIRouter()


@router.post("/quote", response_model=FareBreakdown)
def quote_fare(
    request: FareQuoteRequest,
    engine=Depends(get_engine)
):
    """Price a prospective booking without creating a session"""

    try:
        fare = engine.fares.calculate_fare(
            price_per_seat=request.price_per_seat,
            seat_count=request.seat_count,
            extras=request.extras,
            doorstep_pickup=request.doorstep_pickup
        )
        if request.discount_code:
            discount = engine.discounts.apply(request.discount_code, fare.subtotal)
            fare = engine.fares.calculate_fare(
                price_per_seat=request.price_per_seat,
                seat_count=request.seat_count,
                extras=request.extras,
                doorstep_pickup=request.doorstep_pickup,
                discount=discount.amount
            )
        return fare
    except BookingEngineError as e:
        raise http_error(e)


@router.post("/discounts/validate", response_model=DiscountResult)
def validate_discount_code(
    request: DiscountValidationRequest,
    engine=Depends(get_engine)
):
    """Check a promo code against an order total"""

    try:
        return engine.discounts.apply(request.code, request.pre_discount_total, route_id=request.route_id)
    except BookingEngineError as e:
        raise http_error(e)
