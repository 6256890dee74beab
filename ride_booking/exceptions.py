"""
Error taxonomy for the booking engine.

Every error carries a stable ``code``. Recoverable errors are meant to be shown
to the passenger; caller defects (illegal state transitions) are logged and
returned with a generic message only.
"""

import logging
from typing import Dict, List, Optional

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


class BookingEngineError(Exception):
    """Base class for all booking engine errors"""

    code = "BOOKING_ERROR"
    http_status = status.HTTP_400_BAD_REQUEST
    user_facing = True

    def __init__(self, message: str = "", **context):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.context = context


# Recoverable errors

class ValidationError(BookingEngineError):
    """A step guard or input check failed; re-prompt the same step"""

    code = "VALIDATION_FAILED"

    def __init__(self, message: str = "", errors: Optional[List[Dict[str, str]]] = None, **context):
        super().__init__(message, **context)
        self.errors = errors or []


class SeatUnavailable(BookingEngineError):
    code = "SEAT_UNAVAILABLE"
    http_status = status.HTTP_409_CONFLICT


class HoldExpiredOrMissing(BookingEngineError):
    code = "HOLD_EXPIRED_OR_MISSING"
    http_status = status.HTTP_409_CONFLICT


class InvalidCode(BookingEngineError):
    code = "INVALID_CODE"


class CodeNotApplicable(BookingEngineError):
    code = "CODE_NOT_APPLICABLE"


class PaymentError(BookingEngineError):
    """Raised by a payment gateway when a charge is declined or errors out"""

    code = "PAYMENT_ERROR"
    http_status = status.HTTP_402_PAYMENT_REQUIRED


class PaymentFailed(PaymentError):
    """Payment did not go through; the session stays at the payment step"""

    code = "PAYMENT_FAILED"


class SessionExpired(BookingEngineError):
    code = "SESSION_EXPIRED"
    http_status = status.HTTP_410_GONE


class NotFoundError(BookingEngineError):
    code = "NOT_FOUND"
    http_status = status.HTTP_404_NOT_FOUND


# Caller defects

class IllegalTransition(BookingEngineError):
    code = "ILLEGAL_TRANSITION"
    http_status = status.HTTP_409_CONFLICT
    user_facing = False


class NotPending(IllegalTransition):
    code = "NOT_PENDING"


class NotCancellable(IllegalTransition):
    code = "NOT_CANCELLABLE"


class InvalidSeatForBooking(IllegalTransition):
    code = "INVALID_SEAT_FOR_BOOKING"


# Fatal

class ReconciliationRequired(BookingEngineError):
    """A charge went through but the booking could not be recorded"""

    code = "RECONCILIATION_REQUIRED"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    user_facing = False


def http_error(exc: BookingEngineError) -> HTTPException:
    """Translate an engine error into an HTTPException for the routers"""

    if not exc.user_facing:
        logger.error("Booking engine defect %s: %s %s", exc.code, exc.message, exc.context)
        detail = {"code": exc.code, "message": "The request conflicts with the current booking state"}
        if isinstance(exc, ReconciliationRequired):
            detail["message"] = "Payment received but booking could not be completed; support has been alerted"
        return HTTPException(status_code=exc.http_status, detail=detail)

    detail = {"code": exc.code, "message": exc.message}
    if isinstance(exc, ValidationError) and exc.errors:
        detail["errors"] = exc.errors
    return HTTPException(status_code=exc.http_status, detail=detail)
