"""
Refund approval chain.

    requested -> under_review -> approved -> processed
         \\            \\
          `-------------`---> rejected

Review is optional; staff may approve straight from ``requested``.
``processed`` and ``rejected`` are final.
"""

from typing import Dict, FrozenSet

from src.enums import BookingStatus, RefundStatus
from src.exceptions import StateConflictError

R = RefundStatus

REFUND_TRANSITIONS: Dict[RefundStatus, FrozenSet[RefundStatus]] = {
    R.REQUESTED: frozenset({R.UNDER_REVIEW, R.APPROVED, R.REJECTED}),
    R.UNDER_REVIEW: frozenset({R.APPROVED, R.REJECTED}),
    R.APPROVED: frozenset({R.PROCESSED}),
    R.PROCESSED: frozenset(),
    R.REJECTED: frozenset(),
}

# Booking statuses a refund may be requested from
REFUNDABLE_BOOKING_STATUSES = frozenset({
    BookingStatus.PENDING_PAYMENT,
    BookingStatus.CONFIRMED,
    BookingStatus.CHECKED_IN,
    BookingStatus.BOARDED,
})

def can_transition(current: RefundStatus, target: RefundStatus) -> bool:
    return RefundStatus(target) in REFUND_TRANSITIONS[RefundStatus(current)]

def ensure_transition(current: RefundStatus, target: RefundStatus) -> None:
    current = RefundStatus(current)
    target = RefundStatus(target)
    if not can_transition(current, target):
        raise StateConflictError(
            f"Refund cannot move from '{current.value}' to '{target.value}'",
            current_status=current.value,
        )

def is_refundable(booking_status: BookingStatus) -> bool:
    return BookingStatus(booking_status) in REFUNDABLE_BOOKING_STATUSES
