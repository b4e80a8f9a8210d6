"""
Refund Module

Refunds are granted only for weather disturbances and vessel cancellations
and pass through staff review before the wallet payout is recorded.

Key Components:
- workflow.py: refund state machine and refundable booking statuses
- refund_service.py: request, review, approve, reject and process
- router.py: FastAPI endpoints for the admin refund queue
- schemas.py: Pydantic models for refund requests and responses
"""

from .router import router
from .refund_service import RefundService
from .workflow import REFUND_TRANSITIONS, REFUNDABLE_BOOKING_STATUSES

__all__ = [
    "router",
    "RefundService",
    "REFUND_TRANSITIONS",
    "REFUNDABLE_BOOKING_STATUSES",
]
