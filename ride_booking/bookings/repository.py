from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from ride_booking.bookings.schemas import (
    Booking, BookingEvent, BookingSearchFilters, BookingStatus, PaymentStatus
)
from ride_booking.models import BookingEventRecord, BookingRecord


class BookingRepository(ABC):
    """Storage for bookings and their status history"""

    @abstractmethod
    def add(self, booking: Booking, event: Optional[BookingEvent] = None) -> Booking:
        """Store a new booking, together with its first history event"""
        pass

    @abstractmethod
    def save(self, booking: Booking, event: Optional[BookingEvent] = None) -> Booking:
        """Update a booking and append ``event``; both are written or neither is"""
        pass

    @abstractmethod
    def get(self, booking_id: str) -> Optional[Booking]:
        pass

    @abstractmethod
    def get_by_confirmation_code(self, confirmation_code: str) -> Optional[Booking]:
        pass

    @abstractmethod
    def search(self, filters: BookingSearchFilters) -> List[Booking]:
        pass

    @abstractmethod
    def list_events(self, booking_id: str) -> List[BookingEvent]:
        pass

    def confirmation_code_exists(self, confirmation_code: str) -> bool:
        return self.get_by_confirmation_code(confirmation_code) is not None


class InMemoryBookingRepository(BookingRepository):

    def __init__(self):
        self._bookings: Dict[str, Booking] = {}
        self._events: List[BookingEvent] = []

    def add(self, booking: Booking, event: Optional[BookingEvent] = None) -> Booking:
        if booking.booking_id in self._bookings:
            raise ValueError(f"Booking {booking.booking_id} already exists")
        self._write(booking, event)
        return booking

    def save(self, booking: Booking, event: Optional[BookingEvent] = None) -> Booking:
        if booking.booking_id not in self._bookings:
            raise ValueError(f"Booking {booking.booking_id} does not exist")
        self._write(booking, event)
        return booking

    def get(self, booking_id: str) -> Optional[Booking]:
        booking = self._bookings.get(booking_id)
        return booking.model_copy(deep=True) if booking else None

    def get_by_confirmation_code(self, confirmation_code: str) -> Optional[Booking]:
        for booking in self._bookings.values():
            if booking.confirmation_code == confirmation_code:
                return booking.model_copy(deep=True)
        return None

    def search(self, filters: BookingSearchFilters) -> List[Booking]:
        bookings = list(self._bookings.values())

        if filters.passenger_id:
            bookings = [b for b in bookings if b.passenger_id == filters.passenger_id]
        if filters.trip_id:
            bookings = [b for b in bookings if b.trip_id == filters.trip_id]
        if filters.status:
            bookings = [b for b in bookings if b.status == filters.status]

        bookings = sorted(bookings, key=lambda b: b.created_at, reverse=True)
        return [b.model_copy(deep=True) for b in bookings]

    def list_events(self, booking_id: str) -> List[BookingEvent]:
        return [e.model_copy() for e in self._events if e.booking_id == booking_id]

    def _write(self, booking: Booking, event: Optional[BookingEvent]) -> None:
        # copy both first so a failure leaves storage untouched
        stored = booking.model_copy(deep=True)
        stored_event = event.model_copy() if event else None
        self._bookings[booking.booking_id] = stored
        if stored_event:
            self._events.append(stored_event)


class SqlBookingRepository(BookingRepository):
    """Bookings stored through SQLAlchemy, one session per operation"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def add(self, booking: Booking, event: Optional[BookingEvent] = None) -> Booking:
        with self.session_factory() as db:
            db.add(self._to_record(booking, BookingRecord()))
            if event:
                db.add(self._event_record(event))
            db.commit()
        return booking

    def save(self, booking: Booking, event: Optional[BookingEvent] = None) -> Booking:
        with self.session_factory() as db:
            record = db.get(BookingRecord, booking.booking_id)
            if record is None:
                raise ValueError(f"Booking {booking.booking_id} does not exist")
            self._to_record(booking, record)
            if event:
                db.add(self._event_record(event))
            db.commit()
        return booking

    def get(self, booking_id: str) -> Optional[Booking]:
        with self.session_factory() as db:
            record = db.get(BookingRecord, booking_id)
            return self._to_schema(record) if record else None

    def get_by_confirmation_code(self, confirmation_code: str) -> Optional[Booking]:
        with self.session_factory() as db:
            record = db.query(BookingRecord).filter(
                BookingRecord.confirmation_code == confirmation_code
            ).first()
            return self._to_schema(record) if record else None

    def search(self, filters: BookingSearchFilters) -> List[Booking]:
        with self.session_factory() as db:
            query = db.query(BookingRecord)

            if filters.passenger_id:
                query = query.filter(BookingRecord.passenger_id == filters.passenger_id)
            if filters.trip_id:
                query = query.filter(BookingRecord.trip_id == filters.trip_id)
            if filters.status:
                query = query.filter(BookingRecord.status == filters.status.value)

            records = query.order_by(BookingRecord.created_at.desc()).all()
            return [self._to_schema(r) for r in records]

    def list_events(self, booking_id: str) -> List[BookingEvent]:
        with self.session_factory() as db:
            records = db.query(BookingEventRecord).filter(
                BookingEventRecord.booking_id == booking_id
            ).order_by(BookingEventRecord.id).all()
            return [
                BookingEvent(
                    booking_id=r.booking_id,
                    from_status=BookingStatus(r.from_status) if r.from_status else None,
                    to_status=BookingStatus(r.to_status),
                    occurred_at=r.occurred_at,
                    note=r.note
                )
                for r in records
            ]

    @staticmethod
    def _event_record(event: BookingEvent) -> BookingEventRecord:
        return BookingEventRecord(
            booking_id=event.booking_id,
            from_status=event.from_status.value if event.from_status else None,
            to_status=event.to_status.value,
            occurred_at=event.occurred_at,
            note=event.note
        )

    @staticmethod
    def _to_record(booking: Booking, record: BookingRecord) -> BookingRecord:
        data = booking.model_dump(mode="json")
        record.id = booking.booking_id
        record.session_id = booking.session_id
        record.trip_id = booking.trip_id
        record.passenger_id = booking.passenger_id
        record.passenger = data["passenger"]
        record.seat_ids = list(booking.seat_ids)
        record.seat_numbers = list(booking.seat_numbers)
        record.extras = data["extras"]
        record.doorstep_pickup = booking.doorstep_pickup
        record.pickup_address = booking.pickup_address
        record.fare = data["fare"]
        record.total_price = booking.total_price
        record.currency = booking.currency
        record.discount_code = booking.discount_code
        record.payment_method = booking.payment_method.value if booking.payment_method else None
        record.payment_status = booking.payment_status.value
        record.transaction_id = booking.transaction_id
        record.status = booking.status.value
        record.confirmation_code = booking.confirmation_code
        record.created_at = booking.created_at
        record.updated_at = booking.updated_at
        record.checked_in_at = booking.checked_in_at
        record.cancelled_at = booking.cancelled_at
        record.completed_at = booking.completed_at
        record.cancellation_reason = booking.cancellation_reason
        return record

    @staticmethod
    def _to_schema(record: BookingRecord) -> Booking:
        return Booking(
            booking_id=record.id,
            session_id=record.session_id,
            trip_id=record.trip_id,
            passenger_id=record.passenger_id,
            passenger=record.passenger,
            seat_ids=record.seat_ids,
            seat_numbers=record.seat_numbers or [],
            extras=record.extras or [],
            doorstep_pickup=record.doorstep_pickup,
            pickup_address=record.pickup_address,
            fare=record.fare,
            total_price=record.total_price,
            currency=record.currency,
            discount_code=record.discount_code,
            payment_method=record.payment_method,
            payment_status=PaymentStatus(record.payment_status),
            transaction_id=record.transaction_id,
            status=BookingStatus(record.status),
            confirmation_code=record.confirmation_code,
            created_at=record.created_at,
            updated_at=record.updated_at,
            checked_in_at=record.checked_in_at,
            cancelled_at=record.cancelled_at,
            completed_at=record.completed_at,
            cancellation_reason=record.cancellation_reason
        )
