"""
Fares Module

Fare calculation (seats, service fee, extras, doorstep pickup, discounts) and
promo code validation.

Key Components:
- fare_service.py: cent-exact fare math with a non-negative total
- discount_service.py: promo code rule table and validation
- router.py: FastAPI endpoints for fare quotes and code checks
- schemas.py: Pydantic models for fares and discount rules
"""

from .router import router
from .fare_service import FareCalculationService, round2
from .discount_service import DiscountValidator, default_discount_rules
from .schemas import (
    DiscountResult, DiscountRule, DiscountType, DiscountValidationRequest,
    FareBreakdown, FareQuoteRequest, SelectedExtra
)

__all__ = [
    "router",
    "FareCalculationService",
    "round2",
    "DiscountValidator",
    "default_discount_rules",
    "DiscountResult",
    "DiscountRule",
    "DiscountType",
    "DiscountValidationRequest",
    "FareBreakdown",
    "FareQuoteRequest",
    "SelectedExtra"
]
