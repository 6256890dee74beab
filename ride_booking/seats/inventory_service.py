import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from ride_booking.catalog.schemas import Trip, Vehicle
from ride_booking.config import settings
from ride_booking.exceptions import HoldExpiredOrMissing, NotFoundError, SeatUnavailable
from ride_booking.seats.layout import generate_layout
from ride_booking.seats.schemas import Seat, SeatMap, SeatState, SeatView

logger = logging.getLogger(__name__)


class SeatInventory:
    """
    Seat records for every loaded trip, plus reservation holds.

    This is the only state shared between booking sessions. Every read-modify-
    write of a seat happens under one lock, so two sessions can never both hold
    or book the same seat, and multi-seat commits are all-or-nothing.
    """

    def __init__(
        self,
        hold_ttl: Optional[timedelta] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.hold_ttl = hold_ttl or timedelta(minutes=settings.SEAT_HOLD_TTL_MINUTES)
        self._clock = clock
        self._lock = threading.RLock()
        self._seats: Dict[str, Seat] = {}
        self._trip_seats: Dict[str, List[str]] = {}

    # Layout

    def load_trip(self, trip: Trip, vehicle: Vehicle, reset: bool = False) -> List[Seat]:
        """Generate the seat map of a trip once; ``reset`` starts a new trip instance"""
        with self._lock:
            if trip.trip_id in self._trip_seats and not reset:
                return self._snapshot(trip.trip_id)

            for seat_id in self._trip_seats.pop(trip.trip_id, []):
                self._seats.pop(seat_id, None)

            seats = generate_layout(vehicle.vehicle_type, vehicle.capacity, trip.trip_id)
            for seat in seats:
                self._seats[seat.seat_id] = seat
            self._trip_seats[trip.trip_id] = [s.seat_id for s in seats]

            logger.info("Loaded %d seats for trip %s (%s)", len(seats), trip.trip_id, vehicle.vehicle_type.value)
            return self._snapshot(trip.trip_id)

    def has_trip(self, trip_id: str) -> bool:
        return trip_id in self._trip_seats

    def get_seat(self, seat_id: str) -> Seat:
        with self._lock:
            return self._get(seat_id).model_copy()

    def get_seat_map(self, trip_id: str) -> SeatMap:
        with self._lock:
            now = self._clock()
            seats = [self._seats[seat_id] for seat_id in self._trip_ids(trip_id)]
            views = [
                SeatView(
                    seat_id=s.seat_id,
                    seat_number=s.seat_number,
                    row=s.row,
                    column=s.column,
                    position=s.position,
                    tier=s.tier,
                    is_available=self._is_claimable(s, now),
                )
                for s in seats
            ]
        return SeatMap(
            trip_id=trip_id,
            total_seats=len(views),
            available_seats=len([v for v in views if v.is_available]),
            seats=views,
        )

    def available_count(self, trip_id: str) -> int:
        with self._lock:
            now = self._clock()
            return len([sid for sid in self._trip_ids(trip_id) if self._is_claimable(self._seats[sid], now)])

    def held_by(self, session_id: str, seat_ids: Optional[Iterable[str]] = None) -> List[str]:
        """Seat ids currently (and not expired) held by a session"""
        with self._lock:
            now = self._clock()
            candidates = list(seat_ids) if seat_ids is not None else list(self._seats.keys())
            return [
                sid for sid in candidates
                if sid in self._seats and self._is_live_hold(self._seats[sid], session_id, now)
            ]

    # Holds

    def hold(self, seat_id: str, session_id: str, ttl: Optional[timedelta] = None) -> Seat:
        """Place (or refresh) a session's hold on a seat"""
        with self._lock:
            seat = self._get(seat_id)
            now = self._clock()

            if seat.state == SeatState.BOOKED:
                raise SeatUnavailable(f"Seat {seat.seat_number} is already booked", seat_id=seat_id)
            if seat.state == SeatState.HELD and seat.held_by != session_id and not self._is_expired(seat, now):
                raise SeatUnavailable(f"Seat {seat.seat_number} is held by another passenger", seat_id=seat_id)

            seat.state = SeatState.HELD
            seat.held_by = session_id
            seat.hold_expires_at = now + (ttl or self.hold_ttl)
            logger.debug("Seat %s held by session %s until %s", seat_id, session_id, seat.hold_expires_at)
            return seat.model_copy()

    def release(self, seat_id: str, session_id: str) -> bool:
        """Release a hold owned by ``session_id``; no-op otherwise"""
        with self._lock:
            seat = self._seats.get(seat_id)
            if not seat or seat.state != SeatState.HELD or seat.held_by != session_id:
                return False
            self._clear_hold(seat)
            return True

    def release_all(self, session_id: str) -> List[str]:
        with self._lock:
            released = [
                seat.seat_id for seat in self._seats.values()
                if seat.state == SeatState.HELD and seat.held_by == session_id
            ]
            for seat_id in released:
                self._clear_hold(self._seats[seat_id])
        if released:
            logger.info("Released %d holds of session %s", len(released), session_id)
        return released

    def verify_holds(self, seat_ids: Iterable[str], session_id: str, extend_by: Optional[timedelta] = None) -> None:
        """Check a session still holds every seat; with ``extend_by`` the holds are pushed out from now"""
        seat_ids = list(seat_ids)
        with self._lock:
            now = self._clock()
            self._check_holds(seat_ids, session_id, now)
            if extend_by:
                for seat_id in seat_ids:
                    self._seats[seat_id].hold_expires_at = now + extend_by

    # Booking

    def commit(self, seat_ids: Iterable[str], session_id: str, booking_id: str) -> List[Seat]:
        """
        Turn a session's holds into booked seats.

        Two phases under the lock: every hold is checked (owner and expiry, at
        commit time) before any seat is flipped, so either all seats are booked
        or none are.
        """
        seat_ids = list(seat_ids)
        with self._lock:
            now = self._clock()
            self._check_holds(seat_ids, session_id, now)

            committed = []
            for seat_id in seat_ids:
                seat = self._seats[seat_id]
                seat.state = SeatState.BOOKED
                seat.booking_id = booking_id
                seat.held_by = None
                seat.hold_expires_at = None
                committed.append(seat.model_copy())

        logger.info("Committed seats %s to booking %s", seat_ids, booking_id)
        return committed

    def free(self, seat_ids: Iterable[str], booking_id: Optional[str] = None) -> List[str]:
        """Return booked seats to the pool (cancellation)"""
        freed = []
        with self._lock:
            for seat_id in seat_ids:
                seat = self._seats.get(seat_id)
                if not seat or seat.state != SeatState.BOOKED:
                    continue
                if booking_id and seat.booking_id != booking_id:
                    continue
                seat.state = SeatState.FREE
                seat.booking_id = None
                freed.append(seat_id)
        if freed:
            logger.info("Freed seats %s", freed)
        return freed

    def sweep_expired(self, now: Optional[datetime] = None) -> List[str]:
        """Release every hold whose TTL has passed"""
        with self._lock:
            now = now or self._clock()
            expired = [
                seat for seat in self._seats.values()
                if seat.state == SeatState.HELD and self._is_expired(seat, now)
            ]
            for seat in expired:
                logger.info("Hold on seat %s by session %s expired", seat.seat_id, seat.held_by)
                self._clear_hold(seat)
        return [seat.seat_id for seat in expired]

    # Internals

    def _get(self, seat_id: str) -> Seat:
        seat = self._seats.get(seat_id)
        if not seat:
            raise NotFoundError(f"Seat '{seat_id}' not found", seat_id=seat_id)
        return seat

    def _trip_ids(self, trip_id: str) -> List[str]:
        if trip_id not in self._trip_seats:
            raise NotFoundError(f"No seat map loaded for trip '{trip_id}'", trip_id=trip_id)
        return self._trip_seats[trip_id]

    def _snapshot(self, trip_id: str) -> List[Seat]:
        return [self._seats[seat_id].model_copy() for seat_id in self._trip_seats[trip_id]]

    def _check_holds(self, seat_ids: List[str], session_id: str, now: datetime) -> None:
        if not seat_ids:
            raise HoldExpiredOrMissing("No seats to commit", session_id=session_id)
        stale = [
            sid for sid in seat_ids
            if sid not in self._seats or not self._is_live_hold(self._seats[sid], session_id, now)
        ]
        if stale:
            raise HoldExpiredOrMissing(
                f"Seat hold expired or missing for {', '.join(stale)}",
                seat_ids=stale,
                session_id=session_id,
            )

    def _is_live_hold(self, seat: Seat, session_id: str, now: datetime) -> bool:
        return seat.state == SeatState.HELD and seat.held_by == session_id and not self._is_expired(seat, now)

    def _is_claimable(self, seat: Seat, now: datetime) -> bool:
        return seat.state == SeatState.FREE or (seat.state == SeatState.HELD and self._is_expired(seat, now))

    @staticmethod
    def _is_expired(seat: Seat, now: datetime) -> bool:
        return seat.hold_expires_at is not None and seat.hold_expires_at <= now

    @staticmethod
    def _clear_hold(seat: Seat) -> None:
        seat.state = SeatState.FREE
        seat.held_by = None
        seat.hold_expires_at = None
