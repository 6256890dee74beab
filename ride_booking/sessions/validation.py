import calendar
import re
from datetime import date
from typing import Callable, Dict, List, Optional

from email_validator import EmailNotValidError, validate_email

from ride_booking.bookings.schemas import DeliveryMethod
from ride_booking.payments.schemas import PaymentDetails, PaymentMethodType
from ride_booking.sessions.schemas import BookingSession, GuardError, WorkflowStep

EXPIRY_PATTERN = re.compile(r"^(\d{2})/(\d{2})$")


def _digits(value: Optional[str]) -> str:
    return re.sub(r"[\s-]", "", value or "")


def _is_valid_email(email: str) -> bool:
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


class WorkflowValidator:
    """Guards that must hold before the wizard may leave a step"""

    def __init__(self, max_seats_per_booking: int):
        self.max_seats_per_booking = max_seats_per_booking
        self._guards: Dict[WorkflowStep, Callable[[BookingSession], List[GuardError]]] = {
            WorkflowStep.SEARCH: self.validate_search,
            WorkflowStep.SELECT_TRIP: self.validate_trip_selection,
            WorkflowStep.SELECT_SEATS: self.validate_seat_selection,
            WorkflowStep.PASSENGER_INFO: self.validate_passenger,
        }

    def guard_errors(self, step: WorkflowStep, session: BookingSession) -> List[GuardError]:
        guard = self._guards.get(step)
        return guard(session) if guard else []

    def validate_search(self, session: BookingSession) -> List[GuardError]:
        errors = []
        if not session.criteria.origin.strip():
            errors.append(GuardError(
                error_code="MISSING_ORIGIN",
                error_message="Origin is required",
                field="origin"
            ))
        if not session.criteria.destination.strip():
            errors.append(GuardError(
                error_code="MISSING_DESTINATION",
                error_message="Destination is required",
                field="destination"
            ))
        return errors

    def validate_trip_selection(self, session: BookingSession) -> List[GuardError]:
        if session.trip is None:
            return [GuardError(
                error_code="NO_TRIP_SELECTED",
                error_message="Please select a trip",
                field="trip_id"
            )]
        return []

    def validate_seat_selection(self, session: BookingSession) -> List[GuardError]:
        held = len(session.held_seat_ids)
        if held < 1:
            return [GuardError(
                error_code="NO_SEATS_SELECTED",
                error_message="Please select at least one seat",
                field="seat_ids"
            )]
        if held > self.max_seats_per_booking:
            return [GuardError(
                error_code="TOO_MANY_SEATS",
                error_message=f"Maximum {self.max_seats_per_booking} seat(s) per booking",
                field="seat_ids"
            )]
        return []

    def validate_passenger(self, session: BookingSession) -> List[GuardError]:
        errors = []
        passenger = session.passenger

        if not passenger.name.strip():
            errors.append(GuardError(
                error_code="MISSING_NAME",
                error_message="Full name is required",
                field="name"
            ))
        if not passenger.phone.strip():
            errors.append(GuardError(
                error_code="MISSING_PHONE",
                error_message="Phone number is required",
                field="phone"
            ))

        email = (passenger.email or "").strip()
        if passenger.delivery_method == DeliveryMethod.EMAIL and not email:
            errors.append(GuardError(
                error_code="MISSING_EMAIL",
                error_message="Email is required for email delivery",
                field="email"
            ))
        elif email and not _is_valid_email(email):
            errors.append(GuardError(
                error_code="INVALID_EMAIL",
                error_message="Please enter a valid email address",
                field="email"
            ))

        if session.doorstep_pickup and not (session.pickup_address or "").strip():
            errors.append(GuardError(
                error_code="MISSING_PICKUP_ADDRESS",
                error_message="Pickup address is required for doorstep pickup",
                field="pickup_address"
            ))
        return errors


class PaymentValidator:
    """Method-specific checks on submitted payment details"""

    def validate(self, details: PaymentDetails, today: Optional[date] = None) -> List[GuardError]:
        if details.method == PaymentMethodType.CARD:
            return self._validate_card(details, today or date.today())
        if details.method == PaymentMethodType.MOBILE_MONEY:
            return self._validate_mobile_money(details)
        return [GuardError(
            error_code="UNSUPPORTED_METHOD",
            error_message=f"Unsupported payment method: {details.method}",
            field="method"
        )]

    def _validate_card(self, details: PaymentDetails, today: date) -> List[GuardError]:
        card = details.card
        if card is None:
            return [GuardError(error_code="MISSING_CARD", error_message="Card details are required", field="card")]

        errors = []
        if not card.cardholder_name.strip():
            errors.append(GuardError(
                error_code="MISSING_CARDHOLDER",
                error_message="Cardholder name is required",
                field="card.cardholder_name"
            ))

        number = _digits(card.card_number)
        if not number.isdigit() or not 16 <= len(number) <= 19:
            errors.append(GuardError(
                error_code="INVALID_CARD_NUMBER",
                error_message="Card number must be 16 to 19 digits",
                field="card.card_number"
            ))

        match = EXPIRY_PATTERN.match(card.expiry.strip())
        if not match or not 1 <= int(match.group(1)) <= 12:
            errors.append(GuardError(
                error_code="INVALID_EXPIRY",
                error_message="Expiry must be in MM/YY format",
                field="card.expiry"
            ))
        else:
            month, year = int(match.group(1)), 2000 + int(match.group(2))
            last_day = date(year, month, calendar.monthrange(year, month)[1])
            if last_day < today:
                errors.append(GuardError(
                    error_code="CARD_EXPIRED",
                    error_message="Card has expired",
                    field="card.expiry"
                ))

        if not re.fullmatch(r"\d{3,4}", card.cvv.strip()):
            errors.append(GuardError(
                error_code="INVALID_CVV",
                error_message="CVV must be 3 or 4 digits",
                field="card.cvv"
            ))
        return errors

    def _validate_mobile_money(self, details: PaymentDetails) -> List[GuardError]:
        wallet = details.mobile_money
        if wallet is None:
            return [GuardError(
                error_code="MISSING_MOBILE_MONEY",
                error_message="Mobile money details are required",
                field="mobile_money"
            )]

        errors = []
        number = _digits(wallet.phone_number)
        if not number.isdigit() or not 10 <= len(number) <= 15:
            errors.append(GuardError(
                error_code="INVALID_MOBILE_NUMBER",
                error_message="Mobile money number must be 10 to 15 digits",
                field="mobile_money.phone_number"
            ))
        if not wallet.full_name.strip():
            errors.append(GuardError(
                error_code="MISSING_ACCOUNT_NAME",
                error_message="Account holder name is required",
                field="mobile_money.full_name"
            ))
        return errors
