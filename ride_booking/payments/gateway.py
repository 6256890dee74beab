import asyncio
import logging
import secrets
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional, Set

from ride_booking.exceptions import PaymentError
from ride_booking.payments.schemas import PaymentDetails, PaymentMethodType, PaymentResult

logger = logging.getLogger(__name__)


class PaymentGateway(ABC):
    @abstractmethod
    async def charge(self, amount: Decimal, method: PaymentMethodType, details: PaymentDetails) -> PaymentResult:
        """Charge ``amount``; raise PaymentError when the charge is declined"""


class MockPaymentGateway(PaymentGateway):
    """
    Deterministic stand-in for a card / mobile money processor.

    Card numbers ending in one of ``declined_suffixes`` are declined, and
    ``fail_next`` declines the next N charges whatever the details.
    """

    def __init__(self, delay_seconds: float = 0.0, declined_suffixes: Optional[Set[str]] = None):
        self.delay_seconds = delay_seconds
        self.declined_suffixes = declined_suffixes or {"0002"}
        self.fail_next = 0
        self.charges: List[PaymentResult] = []

    async def charge(self, amount: Decimal, method: PaymentMethodType, details: PaymentDetails) -> PaymentResult:
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        if self.fail_next > 0:
            self.fail_next -= 1
            raise PaymentError("Payment was declined by the provider", method=method.value)

        if method == PaymentMethodType.CARD and details.card:
            number = details.card.card_number.replace(" ", "")
            if any(number.endswith(suffix) for suffix in self.declined_suffixes):
                raise PaymentError("Card was declined", method=method.value)

        result = PaymentResult(
            success=True,
            transaction_id=f"TXN{secrets.token_hex(8).upper()}",
            amount=amount
        )
        self.charges.append(result)
        logger.info("Charged %s via %s (%s)", amount, method.value, result.transaction_id)
        return result
