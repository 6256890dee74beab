from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, ForeignKey, Numeric, JSON
from sqlalchemy.orm import relationship

from ride_booking.database import Base

# ================================
# Bookings
# ================================
class BookingRecord(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, index=True)
    session_id = Column(String(36), index=True)
    trip_id = Column(String(64), nullable=False, index=True)
    passenger_id = Column(String(64), index=True)
    passenger = Column(JSON, nullable=False)
    seat_ids = Column(JSON, nullable=False)
    seat_numbers = Column(JSON, nullable=False, default=list)
    extras = Column(JSON, nullable=False, default=list)
    doorstep_pickup = Column(Boolean, default=False)
    pickup_address = Column(Text)
    fare = Column(JSON)
    total_price = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    discount_code = Column(String(50))
    payment_method = Column(String(50))
    payment_status = Column(String(50), nullable=False, index=True)
    transaction_id = Column(String(100))
    status = Column(String(50), nullable=False, index=True)
    confirmation_code = Column(String(16), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)
    checked_in_at = Column(DateTime)
    cancelled_at = Column(DateTime)
    completed_at = Column(DateTime)
    cancellation_reason = Column(Text)

    # Relationships
    events = relationship("BookingEventRecord", back_populates="booking", order_by="BookingEventRecord.id")

# ================================
# Booking Audit Trail (append-only)
# ================================
class BookingEventRecord(Base):
    __tablename__ = "booking_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False, index=True)
    from_status = Column(String(50))
    to_status = Column(String(50), nullable=False)
    occurred_at = Column(DateTime, nullable=False)
    note = Column(Text)

    # Relationships
    booking = relationship("BookingRecord", back_populates="events")
