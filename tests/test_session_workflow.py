import asyncio
import re
from decimal import Decimal

import pytest

from ride_booking.bookings.repository import InMemoryBookingRepository
from ride_booking.bookings.schemas import BookingStatus, DeliveryMethod, PaymentStatus
from ride_booking.catalog.schemas import TripStatus
from ride_booking.engine import build_engine
from ride_booking.exceptions import (
    CodeNotApplicable, HoldExpiredOrMissing, IllegalTransition, NotFoundError, PaymentFailed,
    ReconciliationRequired, SeatUnavailable, SessionExpired, ValidationError
)
from ride_booking.fares.schemas import DiscountRule, DiscountType
from ride_booking.payments.schemas import CardDetails, PaymentDetails, PaymentMethodType
from ride_booking.seats.schemas import SeatState
from ride_booking.sessions.schemas import ExtraSelection, PassengerDraft, TripSearchCriteria, WorkflowStep

ACCRA_KUMASI = TripSearchCriteria(origin="Accra", destination="Kumasi")


def error_codes(exc_info):
    return [e["error_code"] for e in exc_info.value.errors]


def start(engine, criteria=ACCRA_KUMASI):
    return asyncio.run(engine.workflow.start_session(criteria))


def to_seats(engine, trip_id="T1"):
    session = start(engine)
    asyncio.run(engine.workflow.select_trip(session.session_id, trip_id))
    asyncio.run(engine.workflow.advance(session.session_id))
    return session


def to_payment(engine, seat_id="T1-1A", passenger=None):
    session = to_seats(engine)
    workflow = engine.workflow
    workflow.hold_seats(session.session_id, [seat_id])
    asyncio.run(workflow.advance(session.session_id))
    workflow.set_passenger(session.session_id, passenger or PassengerDraft(name="Jane", phone="0555"))
    asyncio.run(workflow.advance(session.session_id))
    return session


class TestNavigation:
    def test_start_with_criteria_runs_search(self, engine):
        session = start(engine)

        assert session.step == WorkflowStep.SELECT_TRIP
        assert session.search_results == ["T1", "T2"]

    def test_start_without_criteria_waits_at_search(self, engine):
        session = start(engine, TripSearchCriteria())
        assert session.step == WorkflowStep.SEARCH

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(engine.workflow.advance(session.session_id))
        assert error_codes(exc_info) == ["MISSING_ORIGIN", "MISSING_DESTINATION"]

    def test_search_then_select(self, engine):
        session = start(engine, TripSearchCriteria())

        asyncio.run(engine.workflow.search(session.session_id, TripSearchCriteria(origin="accra", destination="cape coast")))

        assert session.step == WorkflowStep.SELECT_TRIP
        assert session.search_results == ["T3"]

    def test_advance_from_search_runs_search(self, engine):
        session = start(engine)
        engine.workflow.back(session.session_id)
        session.search_results = []

        asyncio.run(engine.workflow.advance(session.session_id))

        assert session.step == WorkflowStep.SELECT_TRIP
        assert session.search_results == ["T1", "T2"]

    def test_cannot_advance_without_trip(self, engine):
        session = start(engine)

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(engine.workflow.advance(session.session_id))
        assert error_codes(exc_info) == ["NO_TRIP_SELECTED"]

    def test_cannot_select_cancelled_trip(self, engine, catalog):
        catalog.update_status("T2", TripStatus.CANCELLED)
        session = start(engine)

        with pytest.raises(ValidationError):
            asyncio.run(engine.workflow.select_trip(session.session_id, "T2"))

    def test_unknown_trip(self, engine):
        session = start(engine)

        with pytest.raises(NotFoundError):
            asyncio.run(engine.workflow.select_trip(session.session_id, "T99"))

    def test_back_is_illegal_from_search(self, engine):
        session = start(engine, TripSearchCriteria())

        with pytest.raises(IllegalTransition):
            engine.workflow.back(session.session_id)

    def test_back_and_forward(self, engine):
        session = to_payment(engine)

        engine.workflow.back(session.session_id)
        assert session.step == WorkflowStep.PASSENGER_INFO
        asyncio.run(engine.workflow.advance(session.session_id))
        assert session.step == WorkflowStep.PAYMENT

    def test_cannot_advance_past_payment(self, engine):
        session = to_payment(engine)

        with pytest.raises(IllegalTransition):
            asyncio.run(engine.workflow.advance(session.session_id))

    def test_operations_check_step(self, engine):
        session = start(engine)

        with pytest.raises(IllegalTransition):
            engine.workflow.hold_seats(session.session_id, ["T1-1A"])


class TestSeats:
    def test_payment_unreachable_without_seats(self, engine):
        session = to_seats(engine)

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(engine.workflow.advance(session.session_id))
        assert error_codes(exc_info) == ["NO_SEATS_SELECTED"]
        assert session.step == WorkflowStep.SELECT_SEATS

    def test_lapsed_hold_blocks_later_advance(self, engine, clock):
        session = to_seats(engine)
        engine.workflow.hold_seats(session.session_id, ["T1-1A"])
        asyncio.run(engine.workflow.advance(session.session_id))
        engine.workflow.set_passenger(session.session_id, PassengerDraft(name="Jane", phone="0555"))
        clock.advance(minutes=11)

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(engine.workflow.advance(session.session_id))

        assert "NO_SEATS_SELECTED" in error_codes(exc_info)
        assert session.step == WorkflowStep.PASSENGER_INFO
        assert session.held_seat_ids == []

    def test_max_seats_per_booking(self, engine):
        session = to_seats(engine)

        with pytest.raises(ValidationError):
            engine.workflow.hold_seats(session.session_id, ["T1-1A", "T1-1B"])
        assert engine.inventory.held_by(session.session_id) == []

    def test_seat_from_other_trip_rejected(self, engine, catalog):
        vehicle = asyncio.run(catalog.get_vehicle("V002"))
        engine.inventory.load_trip(asyncio.run(catalog.get_trip("T2")), vehicle)
        session = to_seats(engine)

        with pytest.raises(ValidationError):
            engine.workflow.hold_seats(session.session_id, ["T2-1A"])

    def test_seat_held_by_another_session(self, engine):
        first = to_seats(engine)
        second = to_seats(engine)
        engine.workflow.hold_seats(first.session_id, ["T1-1A"])

        with pytest.raises(SeatUnavailable):
            engine.workflow.hold_seats(second.session_id, ["T1-1A"])
        assert second.held_seat_ids == []

    def test_multi_seat_hold_is_all_or_nothing(self, catalog, gateway, notifier, clock):
        engine = build_engine(
            catalog=catalog, repository=InMemoryBookingRepository(), gateway=gateway,
            notifier=notifier, clock=clock, max_seats=3
        )
        first = to_seats(engine)
        second = to_seats(engine)
        engine.workflow.hold_seats(first.session_id, ["T1-1B"])

        with pytest.raises(SeatUnavailable):
            engine.workflow.hold_seats(second.session_id, ["T1-1A", "T1-1B"])

        assert engine.inventory.get_seat("T1-1A").state == SeatState.FREE
        assert second.held_seat_ids == []

    def test_release_seat(self, engine):
        session = to_seats(engine)
        engine.workflow.hold_seats(session.session_id, ["T1-1A"])

        engine.workflow.release_seats(session.session_id, ["T1-1A"])

        assert session.held_seat_ids == []
        assert engine.inventory.get_seat("T1-1A").state == SeatState.FREE

    def test_switching_trip_releases_holds(self, engine):
        session = to_seats(engine)
        engine.workflow.hold_seats(session.session_id, ["T1-1A"])
        engine.workflow.back(session.session_id)

        asyncio.run(engine.workflow.select_trip(session.session_id, "T2"))

        assert session.held_seat_ids == []
        assert engine.inventory.get_seat("T1-1A").state == SeatState.FREE


class TestPassengerGuard:
    def _at_passenger_step(self, engine):
        session = to_seats(engine)
        engine.workflow.hold_seats(session.session_id, ["T1-1A"])
        asyncio.run(engine.workflow.advance(session.session_id))
        return session

    def test_name_and_phone_required(self, engine):
        session = self._at_passenger_step(engine)

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(engine.workflow.advance(session.session_id))
        assert error_codes(exc_info) == ["MISSING_NAME", "MISSING_PHONE"]

    def test_email_required_for_email_delivery(self, engine):
        session = self._at_passenger_step(engine)
        engine.workflow.set_passenger(session.session_id, PassengerDraft(
            name="Jane", phone="0555", delivery_method=DeliveryMethod.EMAIL
        ))

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(engine.workflow.advance(session.session_id))
        assert error_codes(exc_info) == ["MISSING_EMAIL"]

    def test_malformed_email(self, engine):
        session = self._at_passenger_step(engine)
        engine.workflow.set_passenger(session.session_id, PassengerDraft(name="Jane", phone="0555", email="jane@"))

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(engine.workflow.advance(session.session_id))
        assert error_codes(exc_info) == ["INVALID_EMAIL"]

    @pytest.mark.parametrize("email", ["jane", "jane@mail", "jane@@mail.com", "jane doe@mail.com"])
    def test_rejected_email_addresses(self, engine, email):
        session = self._at_passenger_step(engine)
        engine.workflow.set_passenger(session.session_id, PassengerDraft(name="Jane", phone="0555", email=email))

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(engine.workflow.advance(session.session_id))
        assert error_codes(exc_info) == ["INVALID_EMAIL"]

    def test_valid_email_for_email_delivery(self, engine):
        session = self._at_passenger_step(engine)
        engine.workflow.set_passenger(session.session_id, PassengerDraft(
            name="Jane", phone="0555", email="jane.mensah@mail.com", delivery_method=DeliveryMethod.EMAIL
        ))

        asyncio.run(engine.workflow.advance(session.session_id))
        assert session.step == WorkflowStep.PAYMENT

    def test_pickup_address_required_for_doorstep_pickup(self, engine):
        session = self._at_passenger_step(engine)
        engine.workflow.set_passenger(session.session_id, PassengerDraft(name="Jane", phone="0555"))
        engine.workflow.set_pickup(session.session_id, True)

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(engine.workflow.advance(session.session_id))
        assert error_codes(exc_info) == ["MISSING_PICKUP_ADDRESS"]

        engine.workflow.set_pickup(session.session_id, True, "12 Ring Road, Accra")
        asyncio.run(engine.workflow.advance(session.session_id))
        assert session.step == WorkflowStep.PAYMENT


class TestFare:
    def test_fare_follows_seats_extras_and_pickup(self, engine):
        session = to_seats(engine)
        engine.workflow.hold_seats(session.session_id, ["T1-1A"])
        asyncio.run(engine.workflow.set_extras(session.session_id, [ExtraSelection(extra_id="luggage", quantity=2)]))
        engine.workflow.set_pickup(session.session_id, True, "12 Ring Road")

        fare = engine.workflow.quote(session.session_id)

        assert fare.base_fare == Decimal("45.00")
        assert fare.service_fee == Decimal("4.50")
        assert fare.extras_total == Decimal("10.00")
        assert fare.pickup_fee == Decimal("5.00")
        assert fare.total == Decimal("64.50")

    def test_unknown_extra(self, engine):
        session = to_seats(engine)

        with pytest.raises(NotFoundError):
            asyncio.run(engine.workflow.set_extras(session.session_id, [ExtraSelection(extra_id="lounge", quantity=1)]))

    def test_apply_and_remove_discount(self, engine):
        session = to_seats(engine)
        engine.workflow.hold_seats(session.session_id, ["T1-1A"])

        result = engine.workflow.apply_discount(session.session_id, "first10")

        assert result.amount == Decimal("4.95")
        assert session.discount_code == "FIRST10"
        assert engine.workflow.quote(session.session_id).total == Decimal("44.55")

        engine.workflow.remove_discount(session.session_id)
        assert engine.workflow.quote(session.session_id).total == Decimal("49.50")

    def test_rejected_code_leaves_session_unchanged(self, engine):
        session = to_seats(engine)
        engine.workflow.hold_seats(session.session_id, ["T1-1A"])

        with pytest.raises(CodeNotApplicable):
            engine.workflow.apply_discount(session.session_id, "WELCOME20")
        assert session.discount_code is None

    def test_discount_dropped_when_it_stops_applying(self, engine):
        session = to_seats(engine)
        engine.workflow.hold_seats(session.session_id, ["T1-1A"])
        asyncio.run(engine.workflow.set_extras(session.session_id, [ExtraSelection(extra_id="luggage", quantity=1)]))
        engine.workflow.apply_discount(session.session_id, "WELCOME20")
        assert session.fare.discount == Decimal("10.90")

        asyncio.run(engine.workflow.set_extras(session.session_id, []))

        assert session.discount_code is None
        assert session.fare.discount == Decimal("0.00")
        assert "minimum" in session.last_error


class TestPayment:
    def test_end_to_end_booking(self, engine, gateway, notifier, card_payment):
        session = to_seats(engine)
        engine.workflow.hold_seats(session.session_id, ["T1-1A"])
        engine.workflow.apply_discount(session.session_id, "FIRST10")
        asyncio.run(engine.workflow.advance(session.session_id))
        engine.workflow.set_passenger(session.session_id, PassengerDraft(name="Jane", phone="0555"))
        asyncio.run(engine.workflow.advance(session.session_id))

        booking = asyncio.run(engine.workflow.submit_payment(session.session_id, card_payment))

        assert booking.status == BookingStatus.CONFIRMED
        assert booking.payment_status == PaymentStatus.PAID
        assert re.fullmatch(r"[A-Z]{2}[A-Z0-9]{6}", booking.confirmation_code)
        assert booking.total_price == Decimal("44.55")
        assert booking.discount_code == "FIRST10"
        assert booking.transaction_id == gateway.charges[0].transaction_id
        assert gateway.charges[0].amount == Decimal("44.55")

        assert engine.inventory.get_seat("T1-1A").state == SeatState.BOOKED
        assert session.step == WorkflowStep.CONFIRMATION
        assert session.booking_id == booking.booking_id
        assert engine.discounts.get_rule("FIRST10").times_used == 1
        assert engine.bookings.get_booking(booking.booking_id).status == BookingStatus.CONFIRMED

        assert len(notifier.outbox) == 1
        assert notifier.outbox[0]["recipient"] == "0555"
        assert notifier.outbox[0]["payload"]["confirmation_code"] == booking.confirmation_code

    def test_mobile_money_payment(self, engine, mobile_money_payment):
        session = to_payment(engine)

        booking = asyncio.run(engine.workflow.submit_payment(session.session_id, mobile_money_payment))

        assert booking.payment_method == PaymentMethodType.MOBILE_MONEY
        assert booking.status == BookingStatus.CONFIRMED

    def test_declined_card_keeps_holds(self, engine, gateway, card_payment):
        session = to_payment(engine)
        declined = card_payment.model_copy(deep=True)
        declined.card.card_number = "4000 0000 0000 0002"

        with pytest.raises(PaymentFailed):
            asyncio.run(engine.workflow.submit_payment(session.session_id, declined))

        assert session.step == WorkflowStep.PAYMENT
        assert session.last_error == "Card was declined"
        assert not session.payment_in_flight
        assert engine.inventory.held_by(session.session_id) == ["T1-1A"]

        booking = asyncio.run(engine.workflow.submit_payment(session.session_id, card_payment))
        assert booking.status == BookingStatus.CONFIRMED

    def test_gateway_timeout(self, engine, gateway, card_payment):
        session = to_payment(engine)
        gateway.delay_seconds = 5
        engine.workflow.payment_timeout = 0.05

        with pytest.raises(PaymentFailed):
            asyncio.run(engine.workflow.submit_payment(session.session_id, card_payment))

        assert session.step == WorkflowStep.PAYMENT
        assert engine.inventory.held_by(session.session_id) == ["T1-1A"]
        assert gateway.charges == []

    @pytest.mark.parametrize("card,code", [
        (CardDetails(cardholder_name="Jane", card_number="4242", expiry="12/30", cvv="123"), "INVALID_CARD_NUMBER"),
        (CardDetails(cardholder_name="Jane", card_number="4242424242424242", expiry="13/30", cvv="123"), "INVALID_EXPIRY"),
        (CardDetails(cardholder_name="Jane", card_number="4242424242424242", expiry="09/26", cvv="123"), "CARD_EXPIRED"),
        (CardDetails(cardholder_name="Jane", card_number="4242424242424242", expiry="12/30", cvv="12"), "INVALID_CVV"),
        (CardDetails(cardholder_name="", card_number="4242424242424242", expiry="12/30", cvv="123"), "MISSING_CARDHOLDER"),
    ])
    def test_invalid_card_rejected_before_charge(self, engine, gateway, card, code):
        session = to_payment(engine)

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(engine.workflow.submit_payment(
                session.session_id, PaymentDetails(method=PaymentMethodType.CARD, card=card)
            ))

        assert error_codes(exc_info) == [code]
        assert gateway.charges == []

    def test_card_valid_through_end_of_expiry_month(self, engine, card_payment):
        session = to_payment(engine)
        card_payment.card.expiry = "10/26"

        booking = asyncio.run(engine.workflow.submit_payment(session.session_id, card_payment))
        assert booking.status == BookingStatus.CONFIRMED

    def test_short_mobile_money_number(self, engine, mobile_money_payment):
        session = to_payment(engine)
        mobile_money_payment.mobile_money.phone_number = "024412"

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(engine.workflow.submit_payment(session.session_id, mobile_money_payment))
        assert error_codes(exc_info) == ["INVALID_MOBILE_NUMBER"]
        assert "10 to 15 digits" in exc_info.value.errors[0]["error_message"]

    def test_long_mobile_money_number(self, engine, mobile_money_payment):
        session = to_payment(engine)
        mobile_money_payment.mobile_money.phone_number = "0244 1234 5678 9012"

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(engine.workflow.submit_payment(session.session_id, mobile_money_payment))
        assert error_codes(exc_info) == ["INVALID_MOBILE_NUMBER"]

    def test_expired_hold_sends_session_back_to_seats(self, engine, gateway, clock, card_payment):
        session = to_payment(engine)
        clock.advance(minutes=11)

        with pytest.raises(HoldExpiredOrMissing):
            asyncio.run(engine.workflow.submit_payment(session.session_id, card_payment))

        assert session.step == WorkflowStep.SELECT_SEATS
        assert session.held_seat_ids == []
        assert gateway.charges == []

    def test_booking_failure_after_charge_needs_reconciliation(self, engine, gateway, card_payment, monkeypatch):
        session = to_payment(engine)

        def broken_create(**kwargs):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(engine.bookings, "create_booking", broken_create)

        with pytest.raises(ReconciliationRequired):
            asyncio.run(engine.workflow.submit_payment(session.session_id, card_payment))
        assert session.reconciliation_required
        assert len(gateway.charges) == 1

        with pytest.raises(ReconciliationRequired):
            asyncio.run(engine.workflow.submit_payment(session.session_id, card_payment))
        assert len(gateway.charges) == 1

    def test_delivery_failure_is_not_fatal(self, engine, notifier, card_payment, monkeypatch):
        session = to_payment(engine)

        async def broken_deliver(method, recipient, ticket_payload):
            raise ConnectionError("sms provider down")

        monkeypatch.setattr(notifier, "deliver", broken_deliver)

        booking = asyncio.run(engine.workflow.submit_payment(session.session_id, card_payment))

        assert booking.status == BookingStatus.CONFIRMED
        assert session.step == WorkflowStep.CONFIRMATION

    def test_fully_discounted_booking_skips_gateway(self, engine, gateway, card_payment):
        engine.discounts.add_rule(DiscountRule(code="FREERIDE", discount_type=DiscountType.PERCENTAGE, value=Decimal("100")))
        session = to_seats(engine)
        engine.workflow.hold_seats(session.session_id, ["T1-1A"])
        engine.workflow.apply_discount(session.session_id, "FREERIDE")
        asyncio.run(engine.workflow.advance(session.session_id))
        engine.workflow.set_passenger(session.session_id, PassengerDraft(name="Jane", phone="0555"))
        asyncio.run(engine.workflow.advance(session.session_id))

        booking = asyncio.run(engine.workflow.submit_payment(session.session_id, card_payment))

        assert booking.total_price == Decimal("0.00")
        assert booking.status == BookingStatus.CONFIRMED
        assert gateway.charges == []

    def test_no_back_from_confirmation(self, engine, card_payment):
        session = to_payment(engine)
        asyncio.run(engine.workflow.submit_payment(session.session_id, card_payment))

        with pytest.raises(IllegalTransition):
            engine.workflow.back(session.session_id)

    def test_fare_is_fixed_after_confirmation(self, engine, card_payment):
        session = to_payment(engine)
        engine.workflow.apply_discount(session.session_id, "SAVE5")
        booking = asyncio.run(engine.workflow.submit_payment(session.session_id, card_payment))

        with pytest.raises(IllegalTransition):
            engine.workflow.remove_discount(session.session_id)
        assert session.discount_code == "SAVE5"
        assert session.fare.total == booking.total_price

    def test_fare_inputs_locked_while_charging(self, engine, gateway, card_payment, monkeypatch):
        session = to_payment(engine)
        workflow = engine.workflow
        charge = gateway.charge
        rejected = []

        async def charge_with_edits(amount, method, details):
            edits = [
                lambda: workflow.set_pickup(session.session_id, True, "12 Ring Road"),
                lambda: workflow.apply_discount(session.session_id, "SAVE5"),
                lambda: workflow.remove_discount(session.session_id),
            ]
            for edit in edits:
                try:
                    edit()
                except ValidationError:
                    rejected.append(edit)
            try:
                await workflow.set_extras(session.session_id, [ExtraSelection(extra_id="luggage", quantity=3)])
            except ValidationError:
                rejected.append("extras")
            return await charge(amount, method, details)

        monkeypatch.setattr(gateway, "charge", charge_with_edits)

        booking = asyncio.run(workflow.submit_payment(session.session_id, card_payment))

        assert len(rejected) == 4
        assert booking.extras == []
        assert not booking.doorstep_pickup
        assert booking.discount_code is None
        assert booking.total_price == booking.fare.total == Decimal("49.50")
        assert gateway.charges[0].amount == Decimal("49.50")

    def test_hold_outlives_a_slow_charge(self, engine, gateway, clock, card_payment, monkeypatch):
        session = to_payment(engine)
        clock.advance(minutes=9, seconds=59)
        charge = gateway.charge

        async def slow_charge(amount, method, details):
            clock.advance(seconds=5)
            engine.inventory.sweep_expired()
            return await charge(amount, method, details)

        monkeypatch.setattr(gateway, "charge", slow_charge)

        booking = asyncio.run(engine.workflow.submit_payment(session.session_id, card_payment))

        assert booking.status == BookingStatus.CONFIRMED
        assert not session.reconciliation_required
        assert engine.inventory.get_seat("T1-1A").state == SeatState.BOOKED

    def test_payment_requires_payment_step(self, engine, card_payment):
        session = to_seats(engine)

        with pytest.raises(IllegalTransition):
            asyncio.run(engine.workflow.submit_payment(session.session_id, card_payment))


class TestExpiry:
    def test_abandon_releases_holds(self, engine):
        session = to_seats(engine)
        engine.workflow.hold_seats(session.session_id, ["T1-1A"])

        assert engine.workflow.abandon(session.session_id) == ["T1-1A"]
        assert engine.inventory.get_seat("T1-1A").state == SeatState.FREE
        with pytest.raises(NotFoundError):
            engine.workflow.get_session(session.session_id)

    def test_idle_session_expires(self, engine, clock):
        session = to_seats(engine)
        engine.workflow.hold_seats(session.session_id, ["T1-1A"])
        clock.advance(minutes=31)

        with pytest.raises(SessionExpired):
            engine.workflow.get_session(session.session_id)
        assert engine.inventory.get_seat("T1-1A").state == SeatState.FREE

    def test_activity_extends_session(self, engine, clock):
        session = to_seats(engine)
        clock.advance(minutes=20)
        engine.workflow.hold_seats(session.session_id, ["T1-1A"])
        clock.advance(minutes=20)

        assert engine.workflow.get_session(session.session_id).step == WorkflowStep.SELECT_SEATS

    def test_engine_sweep(self, engine, clock):
        first = to_seats(engine)
        engine.workflow.hold_seats(first.session_id, ["T1-1A"])
        second = to_seats(engine)
        engine.workflow.hold_seats(second.session_id, ["T1-1B"])

        clock.advance(minutes=12)
        engine.sweep()
        # both holds lapsed, neither session is idle long enough yet
        assert engine.inventory.get_seat("T1-1A").state == SeatState.FREE
        assert engine.inventory.get_seat("T1-1B").state == SeatState.FREE

        clock.advance(minutes=20)
        assert engine.workflow.sweep_expired_sessions() == [first.session_id, second.session_id]
