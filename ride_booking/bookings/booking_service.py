import logging
import secrets
import string
import threading
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Set

from ride_booking.bookings.repository import BookingRepository, InMemoryBookingRepository
from ride_booking.bookings.schemas import (
    Booking, BookingEvent, BookingSearchFilters, BookingStatus, PassengerInfo, PaymentStatus
)
from ride_booking.config import settings
from ride_booking.exceptions import (
    IllegalTransition, InvalidSeatForBooking, NotCancellable, NotFoundError, NotPending
)
from ride_booking.fares.schemas import FareBreakdown, SelectedExtra
from ride_booking.payments.schemas import PaymentMethodType
from ride_booking.seats.inventory_service import SeatInventory

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[BookingStatus, Set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CHECKED_IN, BookingStatus.CANCELLED, BookingStatus.COMPLETED},
    BookingStatus.CHECKED_IN: {BookingStatus.COMPLETED},
    BookingStatus.CANCELLED: set(),
    BookingStatus.COMPLETED: set(),
}

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_SUFFIX_LENGTH = 6
MAX_CODE_ATTEMPTS = 20


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


class BookingService:
    """Booking lifecycle: creation from committed seats and status transitions"""

    def __init__(
        self,
        inventory: SeatInventory,
        repository: Optional[BookingRepository] = None,
        clock: Callable[[], datetime] = datetime.now,
        code_prefix: Optional[str] = None
    ):
        self.inventory = inventory
        self.repository = repository or InMemoryBookingRepository()
        self._clock = clock
        self._lock = threading.RLock()
        self.code_prefix = (code_prefix or settings.CONFIRMATION_CODE_PREFIX).upper()
        if len(self.code_prefix) != 2 or not self.code_prefix.isalpha():
            raise ValueError("Confirmation code prefix must be exactly two letters")

    def create_booking(
        self,
        trip_id: str,
        seat_ids: Iterable[str],
        passenger: PassengerInfo,
        total_price: Decimal,
        session_id: str,
        passenger_id: Optional[str] = None,
        fare: Optional[FareBreakdown] = None,
        extras: Iterable[SelectedExtra] = (),
        doorstep_pickup: bool = False,
        pickup_address: Optional[str] = None,
        discount_code: Optional[str] = None
    ) -> Booking:
        """
        Create a pending booking for seats held by ``session_id``.

        The seats are committed first; if any hold is stale the commit raises
        HoldExpiredOrMissing and no booking is created.
        """
        seat_ids = list(seat_ids)
        booking_id = str(uuid.uuid4())

        committed = self.inventory.commit(seat_ids, session_id, booking_id)

        try:
            with self._lock:
                now = self._clock()
                booking = Booking(
                    booking_id=booking_id,
                    session_id=session_id,
                    trip_id=trip_id,
                    passenger_id=passenger_id,
                    passenger=passenger,
                    seat_ids=seat_ids,
                    seat_numbers=[s.seat_number for s in committed],
                    extras=list(extras),
                    doorstep_pickup=doorstep_pickup,
                    pickup_address=pickup_address,
                    fare=fare,
                    total_price=total_price,
                    currency=fare.currency if fare else settings.CURRENCY,
                    discount_code=discount_code,
                    status=BookingStatus.PENDING,
                    confirmation_code=self._generate_confirmation_code(),
                    created_at=now,
                    updated_at=now
                )
                self.repository.add(booking, BookingEvent(
                    booking_id=booking_id, to_status=BookingStatus.PENDING, occurred_at=now, note="created"
                ))
        except Exception:
            logger.exception("Failed to record booking %s; freeing committed seats", booking_id)
            self.inventory.free(seat_ids, booking_id=booking_id)
            raise

        logger.info("Booking %s created for trip %s (%s)", booking_id, trip_id, booking.confirmation_code)
        return booking

    def confirm_payment(
        self,
        booking_id: str,
        transaction_id: Optional[str] = None,
        payment_method: Optional[PaymentMethodType] = None
    ) -> Booking:
        """Pending -> Confirmed"""
        with self._lock:
            booking = self._get_or_raise(booking_id)
            if booking.status != BookingStatus.PENDING:
                raise NotPending(
                    f"Booking {booking_id} is {booking.status.value}, not pending",
                    booking_id=booking_id, status=booking.status.value
                )
            booking.payment_status = PaymentStatus.PAID
            booking.transaction_id = transaction_id or booking.transaction_id
            booking.payment_method = payment_method or booking.payment_method
            return self._transition(booking, BookingStatus.CONFIRMED, note=transaction_id)

    def cancel_booking(self, booking_id: str, reason: Optional[str] = None) -> Booking:
        """Cancel a pending or confirmed booking and free its seats"""
        with self._lock:
            booking = self._get_or_raise(booking_id)
            if not can_transition(booking.status, BookingStatus.CANCELLED):
                raise NotCancellable(
                    f"Booking {booking_id} cannot be cancelled. Status: {booking.status.value}",
                    booking_id=booking_id, status=booking.status.value
                )
            booking.cancelled_at = self._clock()
            booking.cancellation_reason = reason
            if booking.payment_status == PaymentStatus.PAID:
                booking.payment_status = PaymentStatus.REFUND_DUE
            booking = self._transition(booking, BookingStatus.CANCELLED, note=reason)

        self.inventory.free(booking.seat_ids, booking_id=booking_id)
        return booking

    def check_in(self, booking_id: str, seat_id: str) -> Booking:
        """Board a passenger; only confirmed bookings, only their own seats"""
        with self._lock:
            booking = self._get_or_raise(booking_id)
            if booking.status != BookingStatus.CONFIRMED:
                raise IllegalTransition(
                    f"Booking {booking_id} cannot be checked in. Status: {booking.status.value}",
                    booking_id=booking_id, status=booking.status.value
                )
            if seat_id not in booking.seat_ids:
                raise InvalidSeatForBooking(
                    f"Seat {seat_id} is not part of booking {booking_id}",
                    booking_id=booking_id, seat_id=seat_id
                )
            booking.checked_in_at = self._clock()
            return self._transition(booking, BookingStatus.CHECKED_IN, note=seat_id)

    def complete_booking(self, booking_id: str) -> Booking:
        """Mark the trip as ridden; terminal"""
        with self._lock:
            booking = self._get_or_raise(booking_id)
            if not can_transition(booking.status, BookingStatus.COMPLETED):
                raise IllegalTransition(
                    f"Booking {booking_id} cannot be completed. Status: {booking.status.value}",
                    booking_id=booking_id, status=booking.status.value
                )
            booking.completed_at = self._clock()
            return self._transition(booking, BookingStatus.COMPLETED)

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return self.repository.get(booking_id)

    def get_booking_by_code(self, confirmation_code: str) -> Optional[Booking]:
        return self.repository.get_by_confirmation_code(confirmation_code.strip().upper())

    def search_bookings(self, filters: BookingSearchFilters) -> List[Booking]:
        return self.repository.search(filters)

    def get_history(self, booking_id: str) -> List[BookingEvent]:
        self._get_or_raise(booking_id)
        return self.repository.list_events(booking_id)

    def _transition(self, booking: Booking, target: BookingStatus, note: Optional[str] = None) -> Booking:
        if not can_transition(booking.status, target):
            raise IllegalTransition(
                f"Illegal booking transition: {booking.status.value} -> {target.value}",
                booking_id=booking.booking_id
            )
        previous = booking.status
        now = self._clock()
        booking.status = target
        booking.updated_at = now
        self.repository.save(booking, BookingEvent(
            booking_id=booking.booking_id, from_status=previous, to_status=target, occurred_at=now, note=note
        ))
        logger.info("Booking %s: %s -> %s", booking.booking_id, previous.value, target.value)
        return booking

    def _get_or_raise(self, booking_id: str) -> Booking:
        booking = self.repository.get(booking_id)
        if not booking:
            raise NotFoundError(f"Booking '{booking_id}' not found", booking_id=booking_id)
        return booking

    def _generate_confirmation_code(self) -> str:
        """Prefix letters plus six random upper-case alphanumerics, unique among stored codes"""
        for _ in range(MAX_CODE_ATTEMPTS):
            code = self.code_prefix + "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_SUFFIX_LENGTH))
            if not self.repository.confirmation_code_exists(code):
                return code
            logger.warning("Confirmation code collision on %s, retrying", code)
        raise RuntimeError("Could not generate a unique confirmation code")
