"""
Wiring of the booking engine.

BookingEngine holds one instance of every service and collaborator. The app
keeps it on ``app.state.engine``; tests build their own with fakes injected.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from ride_booking.bookings.booking_service import BookingService
from ride_booking.bookings.repository import BookingRepository, SqlBookingRepository
from ride_booking.catalog.seed_data import create_seed_catalog
from ride_booking.catalog.service import TripCatalog
from ride_booking.config import settings
from ride_booking.database import create_session_factory
from ride_booking.fares.discount_service import DiscountValidator
from ride_booking.fares.fare_service import FareCalculationService
from ride_booking.fares.schemas import DiscountRule
from ride_booking.notifications.service import DeliveryService, LoggingDeliveryService
from ride_booking.payments.gateway import MockPaymentGateway, PaymentGateway
from ride_booking.seats.inventory_service import SeatInventory
from ride_booking.sessions.workflow_service import SessionWorkflowService

logger = logging.getLogger(__name__)


class BookingEngine:
    def __init__(
        self,
        catalog: TripCatalog,
        inventory: SeatInventory,
        fares: FareCalculationService,
        discounts: DiscountValidator,
        bookings: BookingService,
        workflow: SessionWorkflowService,
        gateway: PaymentGateway,
        notifier: DeliveryService
    ):
        self.catalog = catalog
        self.inventory = inventory
        self.fares = fares
        self.discounts = discounts
        self.bookings = bookings
        self.workflow = workflow
        self.gateway = gateway
        self.notifier = notifier
        self._sweeper_running = False

    def sweep(self, now: Optional[datetime] = None) -> None:
        """Abandon idle sessions, then release any holds that lapsed"""
        expired_sessions = self.workflow.sweep_expired_sessions(now)
        released = self.inventory.sweep_expired(now)
        if expired_sessions or released:
            logger.info(
                "Sweep: %d session(s) expired, %d stale hold(s) released",
                len(expired_sessions), len(released)
            )

    async def run_expiry_sweeper(self, interval_seconds: Optional[float] = None):
        """Run ``sweep`` every ``interval_seconds`` until stopped or cancelled"""
        interval = interval_seconds or settings.EXPIRY_SWEEP_INTERVAL_SECONDS
        self._sweeper_running = True
        logger.info("Expiry sweeper started (every %ss)", interval)

        while self._sweeper_running:
            try:
                self.sweep()
            except Exception:
                logger.exception("Expiry sweep failed")
            await asyncio.sleep(interval)

    def stop_sweeper(self):
        self._sweeper_running = False


def build_engine(
    catalog: Optional[TripCatalog] = None,
    repository: Optional[BookingRepository] = None,
    gateway: Optional[PaymentGateway] = None,
    notifier: Optional[DeliveryService] = None,
    discount_rules: Optional[List[DiscountRule]] = None,
    clock: Callable[[], datetime] = datetime.now,
    database_url: Optional[str] = None,
    max_seats: Optional[int] = None
) -> BookingEngine:
    """
    Assemble an engine from settings.

    Anything not passed in gets its default: the seeded in-memory catalog,
    SQL-backed booking storage at DATABASE_URL, the mock payment gateway and
    the logging ticket delivery.
    """
    catalog = catalog or create_seed_catalog()
    repository = repository or SqlBookingRepository(create_session_factory(database_url or settings.DATABASE_URL))
    gateway = gateway or MockPaymentGateway()
    notifier = notifier or LoggingDeliveryService()

    inventory = SeatInventory(hold_ttl=timedelta(minutes=settings.SEAT_HOLD_TTL_MINUTES), clock=clock)
    fares = FareCalculationService()
    discounts = DiscountValidator(rules=discount_rules, clock=clock)
    bookings = BookingService(inventory, repository=repository, clock=clock)
    workflow = SessionWorkflowService(
        catalog=catalog,
        inventory=inventory,
        fares=fares,
        discounts=discounts,
        bookings=bookings,
        gateway=gateway,
        notifier=notifier,
        max_seats=max_seats or settings.MAX_SEATS_PER_BOOKING,
        session_ttl=timedelta(minutes=settings.SESSION_TTL_MINUTES),
        payment_timeout=settings.PAYMENT_TIMEOUT_SECONDS,
        clock=clock
    )

    return BookingEngine(
        catalog=catalog,
        inventory=inventory,
        fares=fares,
        discounts=discounts,
        bookings=bookings,
        workflow=workflow,
        gateway=gateway,
        notifier=notifier
    )
