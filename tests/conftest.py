from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from ride_booking.bookings.repository import InMemoryBookingRepository
from ride_booking.catalog.seed_data import create_seed_catalog
from ride_booking.engine import build_engine
from ride_booking.main import create_app
from ride_booking.notifications.service import LoggingDeliveryService
from ride_booking.payments.gateway import MockPaymentGateway
from ride_booking.payments.schemas import CardDetails, MobileMoneyDetails, PaymentDetails, PaymentMethodType
from ride_booking.seats.inventory_service import SeatInventory


class FakeClock:
    """Settable clock injected wherever services read the time"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 18, 9, 0, 0))


@pytest.fixture
def catalog():
    return create_seed_catalog()


@pytest.fixture
def inventory(clock):
    return SeatInventory(hold_ttl=timedelta(minutes=10), clock=clock)


@pytest.fixture
def gateway():
    return MockPaymentGateway()


@pytest.fixture
def notifier():
    return LoggingDeliveryService()


@pytest.fixture
def engine(catalog, gateway, notifier, clock):
    return build_engine(
        catalog=catalog,
        repository=InMemoryBookingRepository(),
        gateway=gateway,
        notifier=notifier,
        clock=clock
    )


@pytest.fixture
def client(engine):
    app = create_app(engine=engine, run_sweeper=False)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def card_payment():
    return PaymentDetails(
        method=PaymentMethodType.CARD,
        card=CardDetails(
            cardholder_name="Jane Mensah",
            card_number="4242 4242 4242 4242",
            expiry="12/30",
            cvv="123"
        )
    )


@pytest.fixture
def mobile_money_payment():
    return PaymentDetails(
        method=PaymentMethodType.MOBILE_MONEY,
        mobile_money=MobileMoneyDetails(phone_number="0244123456", full_name="Jane Mensah", provider="MTN")
    )
