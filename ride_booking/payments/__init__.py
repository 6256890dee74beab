from .gateway import PaymentGateway, MockPaymentGateway
from .schemas import CardDetails, MobileMoneyDetails, PaymentDetails, PaymentMethodType, PaymentResult

__all__ = [
    "PaymentGateway",
    "MockPaymentGateway",
    "CardDetails",
    "MobileMoneyDetails",
    "PaymentDetails",
    "PaymentMethodType",
    "PaymentResult"
]
