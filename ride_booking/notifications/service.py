"""Ticket delivery to passengers (SMS, email, WhatsApp)"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from ride_booking.bookings.schemas import Booking, DeliveryMethod

logger = logging.getLogger(__name__)


def build_ticket_payload(booking: Booking) -> Dict[str, Any]:
    """Ticket contents sent to the passenger"""
    return {
        "booking_id": booking.booking_id,
        "confirmation_code": booking.confirmation_code,
        "trip_id": booking.trip_id,
        "passenger_name": booking.passenger.name,
        "seats": booking.seat_numbers,
        "total_price": str(booking.total_price),
        "currency": booking.currency,
        "status": booking.status.value,
    }


class DeliveryService(ABC):
    @abstractmethod
    async def deliver(self, method: DeliveryMethod, recipient: str, ticket_payload: Dict[str, Any]) -> None:
        pass


class LoggingDeliveryService(DeliveryService):
    """Records deliveries in an outbox and logs them instead of sending"""

    def __init__(self):
        self.outbox: List[Dict[str, Any]] = []

    async def deliver(self, method: DeliveryMethod, recipient: str, ticket_payload: Dict[str, Any]) -> None:
        self.outbox.append({"method": method.value, "recipient": recipient, "payload": ticket_payload})
        logger.info(
            "Ticket %s sent by %s to %s",
            ticket_payload.get("confirmation_code"), method.value, recipient
        )
