import asyncio
import logging
import threading
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional

from ride_booking.bookings.booking_service import BookingService
from ride_booking.bookings.schemas import Booking, DeliveryMethod, PassengerInfo
from ride_booking.catalog.schemas import TripStatus
from ride_booking.catalog.service import TripCatalog
from ride_booking.config import settings
from ride_booking.exceptions import (
    CodeNotApplicable, HoldExpiredOrMissing, IllegalTransition, InvalidCode, NotFoundError,
    PaymentError, PaymentFailed, ReconciliationRequired, SeatUnavailable, SessionExpired,
    ValidationError
)
from ride_booking.fares.discount_service import DiscountValidator
from ride_booking.fares.fare_service import FareCalculationService, ZERO
from ride_booking.fares.schemas import DiscountResult, FareBreakdown, SelectedExtra
from ride_booking.notifications.service import DeliveryService, build_ticket_payload
from ride_booking.payments.gateway import PaymentGateway
from ride_booking.payments.schemas import PaymentDetails
from ride_booking.seats.inventory_service import SeatInventory
from ride_booking.sessions.schemas import (
    STEP_ORDER, BookingSession, ExtraSelection, GuardError, PassengerDraft,
    TripSearchCriteria, WorkflowStep
)
from ride_booking.sessions.validation import PaymentValidator, WorkflowValidator

logger = logging.getLogger(__name__)

MAX_EXTRA_QUANTITY = 10

# Steps at which the fare inputs (extras, pickup, discount) may change
FARE_EDIT_STEPS = (WorkflowStep.SELECT_SEATS, WorkflowStep.PASSENGER_INFO, WorkflowStep.PAYMENT)


def _as_dicts(errors: Iterable[GuardError]) -> List[Dict[str, str]]:
    return [e.model_dump() for e in errors]


class SessionWorkflowService:
    """
    Drives one passenger's booking from search to confirmation.

    Sessions live in memory only; the seat holds they own live in the shared
    SeatInventory. Each session moves through the steps of WorkflowStep, and
    ``advance`` only lets it forward when the guards of every earlier step
    still pass.
    """

    def __init__(
        self,
        catalog: TripCatalog,
        inventory: SeatInventory,
        fares: FareCalculationService,
        discounts: DiscountValidator,
        bookings: BookingService,
        gateway: PaymentGateway,
        notifier: DeliveryService,
        max_seats: Optional[int] = None,
        session_ttl: Optional[timedelta] = None,
        payment_timeout: Optional[float] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.catalog = catalog
        self.inventory = inventory
        self.fares = fares
        self.discounts = discounts
        self.bookings = bookings
        self.gateway = gateway
        self.notifier = notifier
        self.max_seats = max_seats or settings.MAX_SEATS_PER_BOOKING
        self.session_ttl = session_ttl or timedelta(minutes=settings.SESSION_TTL_MINUTES)
        self.payment_timeout = payment_timeout or settings.PAYMENT_TIMEOUT_SECONDS
        self._clock = clock
        self._lock = threading.RLock()
        self._sessions: Dict[str, BookingSession] = {}
        self.validator = WorkflowValidator(self.max_seats)
        self.payment_validator = PaymentValidator()

    # Session lifecycle

    async def start_session(
        self,
        criteria: Optional[TripSearchCriteria] = None,
        passenger_id: Optional[str] = None
    ) -> BookingSession:
        """Open a session; with origin and destination given the search runs straight away"""
        now = self._clock()
        session = BookingSession(
            session_id=str(uuid.uuid4()),
            passenger_id=passenger_id,
            criteria=criteria or TripSearchCriteria(),
            created_at=now,
            updated_at=now,
            expires_at=now + self.session_ttl
        )
        with self._lock:
            self._sessions[session.session_id] = session
        logger.info("Session %s started (passenger %s)", session.session_id, passenger_id or "guest")

        if not self.validator.validate_search(session):
            await self._run_search(session)
        return session

    def get_session(self, session_id: str) -> BookingSession:
        with self._lock:
            session = self._sessions.get(session_id)
            if not session:
                raise NotFoundError(f"Session {session_id} not found", session_id=session_id)

            if session.expires_at and self._clock() > session.expires_at and not session.payment_in_flight:
                self._drop(session)
                raise SessionExpired("Your booking session has expired, please start again", session_id=session_id)
            return session

    def abandon(self, session_id: str) -> List[str]:
        """Drop the session and release every seat it holds"""
        session = self.get_session(session_id)
        self._require_no_payment(session)
        released = self._drop(session)
        logger.info("Session %s abandoned, released %d seat(s)", session_id, len(released))
        return released

    def sweep_expired_sessions(self, now: Optional[datetime] = None) -> List[str]:
        """Abandon idle sessions; sessions with a payment in flight are left alone"""
        now = now or self._clock()
        with self._lock:
            expired = [
                s for s in self._sessions.values()
                if s.expires_at and s.expires_at <= now and not s.payment_in_flight
            ]
            for session in expired:
                self._drop(session)

        if expired:
            logger.info("Expired %d idle session(s)", len(expired))
        return [s.session_id for s in expired]

    # Search and trip selection

    async def search(self, session_id: str, criteria: TripSearchCriteria) -> BookingSession:
        session = self.get_session(session_id)
        self._require_step(session, WorkflowStep.SEARCH, WorkflowStep.SELECT_TRIP)

        session.criteria = criteria
        errors = self.validator.validate_search(session)
        if errors:
            raise ValidationError("Origin and destination are required", errors=_as_dicts(errors))

        await self._run_search(session)
        return session

    async def select_trip(self, session_id: str, trip_id: str) -> BookingSession:
        session = self.get_session(session_id)
        self._require_step(session, WorkflowStep.SELECT_TRIP)

        trip = await self.catalog.get_trip(trip_id)
        if trip.status != TripStatus.SCHEDULED:
            raise ValidationError(
                f"Trip {trip_id} is {trip.status.value} and cannot be booked",
                errors=[{"error_code": "TRIP_NOT_BOOKABLE", "error_message": "This trip is no longer open for booking", "field": "trip_id"}]
            )
        vehicle = await self.catalog.get_vehicle(trip.vehicle_id)
        self.inventory.load_trip(trip, vehicle)

        if session.trip and session.trip.trip_id != trip.trip_id:
            released = self.inventory.release_all(session.session_id)
            logger.info("Session %s switched trip, released %d seat(s)", session.session_id, len(released))
            session.held_seat_ids = []

        session.trip = trip
        self._refresh_fare(session)
        self._touch(session)
        return session

    # Seats

    def hold_seats(self, session_id: str, seat_ids: Iterable[str]) -> BookingSession:
        """
        Hold seats on the selected trip.

        All-or-nothing within one call: if any seat cannot be held, the seats
        acquired by this call are released again and SeatUnavailable is raised.
        """
        session = self.get_session(session_id)
        self._require_step(session, WorkflowStep.SELECT_SEATS)
        self._sync_holds(session)

        requested = list(dict.fromkeys(seat_ids))
        new_ids = [s for s in requested if s not in session.held_seat_ids]
        if len(session.held_seat_ids) + len(new_ids) > self.max_seats:
            raise ValidationError(
                f"Maximum {self.max_seats} seat(s) per booking",
                errors=[{"error_code": "TOO_MANY_SEATS", "error_message": f"Maximum {self.max_seats} seat(s) per booking", "field": "seat_ids"}]
            )

        for seat_id in requested:
            if self.inventory.get_seat(seat_id).trip_id != session.trip.trip_id:
                raise ValidationError(f"Seat {seat_id} is not on the selected trip", seat_id=seat_id)

        acquired = []
        try:
            for seat_id in requested:
                self.inventory.hold(seat_id, session.session_id)
                if seat_id in new_ids:
                    acquired.append(seat_id)
        except SeatUnavailable:
            for seat_id in acquired:
                self.inventory.release(seat_id, session.session_id)
            raise

        session.held_seat_ids = session.held_seat_ids + acquired
        session.last_error = None
        self._refresh_fare(session)
        self._touch(session)
        return session

    def release_seats(self, session_id: str, seat_ids: Iterable[str]) -> BookingSession:
        session = self.get_session(session_id)
        self._require_step(session, WorkflowStep.SELECT_SEATS)

        for seat_id in seat_ids:
            self.inventory.release(seat_id, session.session_id)
            if seat_id in session.held_seat_ids:
                session.held_seat_ids = [s for s in session.held_seat_ids if s != seat_id]

        self._refresh_fare(session)
        self._touch(session)
        return session

    # Passenger, extras and pickup

    def set_passenger(self, session_id: str, passenger: PassengerDraft) -> BookingSession:
        session = self.get_session(session_id)
        self._require_step(session, WorkflowStep.PASSENGER_INFO)
        session.passenger = passenger
        self._touch(session)
        return session

    async def set_extras(self, session_id: str, selections: Iterable[ExtraSelection]) -> BookingSession:
        """Replace the selected extras; a quantity of 0 removes the extra"""
        session = self.get_session(session_id)
        self._require_fare_edit(session)

        extras = []
        for selection in selections:
            if selection.quantity == 0:
                continue
            if selection.quantity > MAX_EXTRA_QUANTITY:
                raise ValidationError(
                    f"At most {MAX_EXTRA_QUANTITY} of each extra",
                    errors=[{"error_code": "TOO_MANY_EXTRAS", "error_message": f"At most {MAX_EXTRA_QUANTITY} of each extra", "field": selection.extra_id}]
                )
            extra = await self.catalog.get_extra(selection.extra_id)
            extras.append(SelectedExtra(
                extra_id=extra.extra_id,
                name=extra.name,
                unit_price=extra.unit_price,
                quantity=selection.quantity
            ))

        # the catalog lookups yield, so a payment may have started meanwhile
        self._require_fare_edit(session)
        session.extras = extras
        self._refresh_fare(session)
        self._touch(session)
        return session

    def set_pickup(self, session_id: str, doorstep_pickup: bool, pickup_address: Optional[str] = None) -> BookingSession:
        session = self.get_session(session_id)
        self._require_fare_edit(session)
        session.doorstep_pickup = doorstep_pickup
        session.pickup_address = pickup_address.strip() if pickup_address else None
        self._refresh_fare(session)
        self._touch(session)
        return session

    # Fare and discounts

    def apply_discount(self, session_id: str, code: str) -> DiscountResult:
        """Validate ``code`` against the current fare and keep it on the session"""
        session = self.get_session(session_id)
        self._require_fare_edit(session)

        pre_discount = self._calculate(session, ZERO)
        result = self.discounts.apply(code, pre_discount.subtotal, route_id=session.trip.route.route_id)

        session.discount_code = result.code
        self._refresh_fare(session)
        self._touch(session)
        return result

    def remove_discount(self, session_id: str) -> BookingSession:
        session = self.get_session(session_id)
        self._require_fare_edit(session)
        session.discount_code = None
        self._refresh_fare(session)
        self._touch(session)
        return session

    def quote(self, session_id: str) -> FareBreakdown:
        session = self.get_session(session_id)
        if session.trip is None:
            raise ValidationError(
                "Select a trip before requesting a fare",
                errors=[{"error_code": "NO_TRIP_SELECTED", "error_message": "Please select a trip", "field": "trip_id"}]
            )
        self._sync_holds(session)
        return self._refresh_fare(session)

    # Navigation

    async def advance(self, session_id: str) -> BookingSession:
        """
        Move to the next step if the guards of every step so far pass.

        Leaving Search runs the trip search with the stored criteria, the same
        as calling ``search``.
        """
        session = self.get_session(session_id)
        if session.step in (WorkflowStep.PAYMENT, WorkflowStep.CONFIRMATION):
            raise IllegalTransition(
                f"Cannot advance from {session.step.value}; submit payment instead",
                session_id=session_id, step=session.step.value
            )

        self._sync_holds(session)
        target = STEP_ORDER[STEP_ORDER.index(session.step) + 1]
        errors = self._guard_errors_before(session, target)
        if errors:
            session.last_error = errors[0].error_message
            raise ValidationError(errors[0].error_message, errors=_as_dicts(errors), step=session.step.value)

        session.last_error = None
        if session.step == WorkflowStep.SEARCH:
            await self._run_search(session)
            return session

        session.step = target
        session.last_error = None
        self._refresh_fare(session)
        self._touch(session)
        logger.debug("Session %s advanced to %s", session_id, target.value)
        return session

    def back(self, session_id: str) -> BookingSession:
        session = self.get_session(session_id)
        if session.step in (WorkflowStep.SEARCH, WorkflowStep.CONFIRMATION):
            raise IllegalTransition(
                f"Cannot go back from {session.step.value}",
                session_id=session_id, step=session.step.value
            )
        self._require_no_payment(session)

        session.step = STEP_ORDER[STEP_ORDER.index(session.step) - 1]
        self._touch(session)
        return session

    # Payment

    async def submit_payment(self, session_id: str, payment: PaymentDetails) -> Booking:
        """
        Charge the passenger and create the booking.

        Failures before the charge (validation, stale holds) and failed charges
        leave the session recoverable. Once the gateway has taken the money,
        a failure to record the booking is fatal: the session is flagged for
        reconciliation and nothing is retried.
        """
        session = self.get_session(session_id)
        if session.reconciliation_required:
            raise ReconciliationRequired(
                "This session is awaiting payment reconciliation", session_id=session_id
            )
        self._require_step(session, WorkflowStep.PAYMENT)
        if session.payment_in_flight:
            raise ValidationError("A payment is already in progress for this session", session_id=session_id)

        errors = self._guard_errors_before(session, WorkflowStep.PAYMENT)
        errors += self.payment_validator.validate(payment, self._clock().date())
        if errors:
            session.last_error = errors[0].error_message
            raise ValidationError(errors[0].error_message, errors=_as_dicts(errors), step=session.step.value)

        try:
            self.inventory.verify_holds(
                session.held_seat_ids, session.session_id,
                extend_by=self.inventory.hold_ttl + timedelta(seconds=self.payment_timeout)
            )
        except HoldExpiredOrMissing:
            self._sync_holds(session)
            session.step = WorkflowStep.SELECT_SEATS
            session.last_error = "Your seat hold expired, please select your seat again"
            self._refresh_fare(session)
            raise

        fare = self._refresh_fare(session)
        order = session.model_copy(deep=True)
        session.payment_in_flight = True
        try:
            transaction_id = await self._charge(session, fare.total, payment)
            booking = self._record_booking(session, order, fare, payment, transaction_id)
        finally:
            session.payment_in_flight = False

        if order.discount_code:
            self.discounts.record_redemption(order.discount_code)

        session.booking_id = booking.booking_id
        session.step = WorkflowStep.CONFIRMATION
        session.last_error = None
        self._touch(session)

        await self._deliver_ticket(booking)
        return booking

    async def _charge(self, session: BookingSession, amount: Decimal, payment: PaymentDetails) -> Optional[str]:
        if amount <= ZERO:
            logger.info("Session %s owes nothing, skipping the gateway", session.session_id)
            return None

        try:
            result = await asyncio.wait_for(
                self.gateway.charge(amount, payment.method, payment),
                timeout=self.payment_timeout
            )
        except asyncio.TimeoutError:
            session.last_error = "The payment provider did not respond, please try again"
            logger.warning("Payment for session %s timed out after %ss", session.session_id, self.payment_timeout)
            raise PaymentFailed(session.last_error, session_id=session.session_id)
        except PaymentError as e:
            session.last_error = e.message
            logger.warning("Payment for session %s failed: %s", session.session_id, e.message)
            raise PaymentFailed(e.message, session_id=session.session_id) from e

        if not result.success:
            session.last_error = result.message or "Payment was not completed"
            raise PaymentFailed(session.last_error, session_id=session.session_id)
        return result.transaction_id

    def _record_booking(
        self,
        session: BookingSession,
        order: BookingSession,
        fare: FareBreakdown,
        payment: PaymentDetails,
        transaction_id: Optional[str]
    ) -> Booking:
        """Book exactly what was priced; ``order`` is the session as it stood when charged"""
        draft = order.passenger
        try:
            booking = self.bookings.create_booking(
                trip_id=order.trip.trip_id,
                seat_ids=order.held_seat_ids,
                passenger=PassengerInfo(
                    name=draft.name.strip(),
                    phone=draft.phone.strip(),
                    email=(draft.email or "").strip() or None,
                    delivery_method=draft.delivery_method
                ),
                total_price=fare.total,
                session_id=session.session_id,
                passenger_id=order.passenger_id,
                fare=fare,
                extras=order.extras,
                doorstep_pickup=order.doorstep_pickup,
                pickup_address=order.pickup_address,
                discount_code=order.discount_code
            )
            return self.bookings.confirm_payment(booking.booking_id, transaction_id, payment.method)
        except Exception as e:
            session.reconciliation_required = True
            session.last_error = "Payment received but the booking could not be completed"
            logger.critical(
                "Charge %s of %s %s taken for session %s but booking failed: %s",
                transaction_id, fare.total, fare.currency, session.session_id, e
            )
            raise ReconciliationRequired(
                session.last_error, session_id=session.session_id, transaction_id=transaction_id
            ) from e

    async def _deliver_ticket(self, booking: Booking) -> None:
        passenger = booking.passenger
        recipient = passenger.email if passenger.delivery_method == DeliveryMethod.EMAIL else passenger.phone
        try:
            await self.notifier.deliver(passenger.delivery_method, recipient, build_ticket_payload(booking))
        except Exception:
            logger.exception("Ticket delivery failed for booking %s", booking.booking_id)

    # Helpers

    async def _run_search(self, session: BookingSession) -> None:
        criteria = session.criteria
        trips = await self.catalog.list_trips(criteria.origin, criteria.destination, criteria.travel_date)
        session.search_results = [t.trip_id for t in trips]
        session.step = WorkflowStep.SELECT_TRIP
        self._touch(session)
        logger.info(
            "Session %s found %d trip(s) %s -> %s",
            session.session_id, len(trips), criteria.origin, criteria.destination
        )

    def _guard_errors_before(self, session: BookingSession, target: WorkflowStep) -> List[GuardError]:
        errors = []
        for step in STEP_ORDER[:STEP_ORDER.index(target)]:
            errors.extend(self.validator.guard_errors(step, session))
        return errors

    def _sync_holds(self, session: BookingSession) -> None:
        """Forget seats whose holds lapsed in the inventory"""
        live = self.inventory.held_by(session.session_id, session.held_seat_ids)
        if len(live) != len(session.held_seat_ids):
            logger.info(
                "Session %s lost %d expired hold(s)",
                session.session_id, len(session.held_seat_ids) - len(live)
            )
            session.held_seat_ids = [s for s in session.held_seat_ids if s in live]

    def _calculate(self, session: BookingSession, discount: Decimal) -> FareBreakdown:
        return self.fares.calculate_fare(
            session.trip.price_per_seat,
            len(session.held_seat_ids),
            extras=session.extras,
            doorstep_pickup=session.doorstep_pickup,
            discount=discount
        )

    def _refresh_fare(self, session: BookingSession) -> Optional[FareBreakdown]:
        """Recompute the fare; a discount code that stopped applying is dropped"""
        if session.trip is None:
            session.fare = None
            return None

        discount = ZERO
        if session.discount_code:
            pre_discount = self._calculate(session, ZERO)
            try:
                discount = self.discounts.apply(
                    session.discount_code, pre_discount.subtotal, route_id=session.trip.route.route_id
                ).amount
            except (InvalidCode, CodeNotApplicable) as e:
                logger.info("Dropping discount %s from session %s: %s", session.discount_code, session.session_id, e.message)
                session.discount_code = None
                session.last_error = e.message

        session.fare = self._calculate(session, discount)
        return session.fare

    def _require_step(self, session: BookingSession, *steps: WorkflowStep) -> None:
        if session.step not in steps:
            raise IllegalTransition(
                f"Session is at {session.step.value}, expected {', '.join(s.value for s in steps)}",
                session_id=session.session_id, step=session.step.value
            )

    def _require_no_payment(self, session: BookingSession) -> None:
        if session.payment_in_flight:
            raise ValidationError("A payment is in progress for this session", session_id=session.session_id)

    def _require_fare_edit(self, session: BookingSession) -> None:
        self._require_step(session, *FARE_EDIT_STEPS)
        self._require_no_payment(session)

    def _touch(self, session: BookingSession) -> None:
        now = self._clock()
        session.updated_at = now
        session.expires_at = now + self.session_ttl

    def _drop(self, session: BookingSession) -> List[str]:
        with self._lock:
            self._sessions.pop(session.session_id, None)
        return self.inventory.release_all(session.session_id)
