import logging
import threading
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional

from ride_booking.exceptions import CodeNotApplicable, InvalidCode
from ride_booking.fares.fare_service import round2
from ride_booking.fares.schemas import DiscountResult, DiscountRule, DiscountType

logger = logging.getLogger(__name__)


def default_discount_rules(now: Optional[datetime] = None) -> List[DiscountRule]:
    now = now or datetime.now()
    return [
        DiscountRule(code="FIRST10", discount_type=DiscountType.PERCENTAGE, value=Decimal("10"),
                     description="10% off your first ride"),
        DiscountRule(code="SAVE5", discount_type=DiscountType.FIXED_AMOUNT, value=Decimal("5.00"),
                     description="$5 off any booking"),
        DiscountRule(code="WELCOME20", discount_type=DiscountType.PERCENTAGE, value=Decimal("20"),
                     description="20% off bookings of $50 or more", min_booking_amount=Decimal("50.00")),
        DiscountRule(code="SUMMER15", discount_type=DiscountType.PERCENTAGE, value=Decimal("15"),
                     description="Summer promotion", valid_until=now - timedelta(days=30)),
    ]


class DiscountValidator:
    """Validates promo codes against a rule table"""

    def __init__(
        self,
        rules: Optional[Iterable[DiscountRule]] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self._clock = clock
        self._lock = threading.Lock()
        self._rules: Dict[str, DiscountRule] = {}
        for rule in (rules if rules is not None else default_discount_rules(clock())):
            self.add_rule(rule)

    def add_rule(self, rule: DiscountRule) -> DiscountRule:
        with self._lock:
            self._rules[rule.code] = rule
        return rule

    def get_rule(self, code: str) -> Optional[DiscountRule]:
        return self._rules.get(code.strip().upper())

    def apply(
        self,
        code: str,
        pre_discount_total: Decimal,
        route_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> DiscountResult:
        """Return the discount for ``code`` capped at ``pre_discount_total``"""
        rule = self.get_rule(code or "")
        if not rule:
            raise InvalidCode(f"Discount code '{code}' is not valid", code=code)

        now = now or self._clock()
        pre_discount_total = Decimal(str(pre_discount_total))

        if not rule.is_active:
            raise CodeNotApplicable(f"Discount code '{rule.code}' is no longer active", code=rule.code)
        if rule.valid_from and now < rule.valid_from:
            raise CodeNotApplicable(f"Discount code '{rule.code}' is not valid yet", code=rule.code)
        if rule.valid_until and now > rule.valid_until:
            raise CodeNotApplicable(f"Discount code '{rule.code}' has expired", code=rule.code)
        if rule.max_uses is not None and rule.times_used >= rule.max_uses:
            raise CodeNotApplicable(f"Discount code '{rule.code}' has reached its usage limit", code=rule.code)
        if rule.min_booking_amount is not None and pre_discount_total < rule.min_booking_amount:
            raise CodeNotApplicable(
                f"Discount code '{rule.code}' requires a minimum booking of {rule.min_booking_amount}",
                code=rule.code
            )
        if rule.applicable_route_ids and (route_id or "").lower() not in [r.lower() for r in rule.applicable_route_ids]:
            raise CodeNotApplicable(f"Discount code '{rule.code}' does not apply to this route", code=rule.code)

        if rule.discount_type == DiscountType.PERCENTAGE:
            amount = round2(pre_discount_total * rule.value / Decimal("100"))
        else:
            amount = round2(rule.value)

        return DiscountResult(
            code=rule.code,
            discount_type=rule.discount_type,
            amount=min(amount, round2(pre_discount_total)),
            description=rule.description
        )

    def record_redemption(self, code: str) -> None:
        """Count one use of a code once a booking using it is confirmed"""
        with self._lock:
            rule = self._rules.get(code.strip().upper())
            if rule:
                rule.times_used += 1
                logger.info("Discount code %s redeemed (%d uses)", rule.code, rule.times_used)
