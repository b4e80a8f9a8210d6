"""
Booking Module

Bookings move through payment, check-in and boarding on one sailing, and
can be moved to another sailing of the same route while the reschedule
window is open.

Key Components:
- lifecycle.py: status transitions and the append-only status history
- booking_service.py: booking creation, payment confirmation and staff actions
- reschedule_service.py: fee calculation, alternatives and the seat swap
- validation.py: request checks run before any seat is reserved
- router.py: FastAPI endpoints for bookings and reschedules
- schemas.py: Pydantic models for booking requests and responses
"""

from .router import router
from .booking_service import BookingService
from .reschedule_service import RescheduleService
from .lifecycle import BookingLifecycle, ALLOWED_TRANSITIONS

__all__ = [
    "router",
    "BookingService",
    "RescheduleService",
    "BookingLifecycle",
    "ALLOWED_TRANSITIONS",
]
