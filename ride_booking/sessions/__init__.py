"""
Booking Sessions Module

The booking wizard: one session per passenger, walked through the steps
search -> select trip -> select seats -> passenger info -> payment ->
confirmation. Seat holds taken by a session live in the shared seat
inventory and are released when the session is abandoned or expires.

Key Components:
- workflow_service.py: step machine, seat holds and payment orchestration
- validation.py: step guards and payment method checks
- router.py: FastAPI endpoints for the wizard
- schemas.py: Pydantic models for sessions and their requests
"""

from .router import router
from .workflow_service import SessionWorkflowService
from .validation import PaymentValidator, WorkflowValidator
from .schemas import (
    STEP_ORDER, BookingSession, GuardError, PassengerDraft, TripSearchCriteria, WorkflowStep
)

__all__ = [
    "router",
    "SessionWorkflowService",
    "PaymentValidator",
    "WorkflowValidator",
    "STEP_ORDER",
    "BookingSession",
    "GuardError",
    "PassengerDraft",
    "TripSearchCriteria",
    "WorkflowStep"
]
