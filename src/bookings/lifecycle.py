"""
Booking state machine.

    pending_payment -> confirmed -> checked_in -> boarded -> completed

``changed`` is the transient state a reschedule passes through before the
booking returns to the status it had. ``cancelled`` and ``refunded`` can be
entered from any non-terminal status and release the booking's seats.
"""

import logging
from typing import Dict, FrozenSet, Optional

from sqlalchemy.orm import Session

from src.enums import BookingStatus
from src.exceptions import StateConflictError
from src.models import Booking, BookingStatusEvent
from src.capacity.allocator import CapacityAllocator
from src.schedules.time_policy import TimePolicy

logger = logging.getLogger(__name__)

S = BookingStatus

ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    S.PENDING_PAYMENT: frozenset({S.CONFIRMED, S.CHANGED, S.CANCELLED, S.REFUNDED}),
    S.CONFIRMED: frozenset({S.CHECKED_IN, S.CHANGED, S.CANCELLED, S.REFUNDED}),
    S.CHECKED_IN: frozenset({S.BOARDED, S.CHANGED, S.CANCELLED, S.REFUNDED}),
    S.BOARDED: frozenset({S.COMPLETED, S.CANCELLED, S.REFUNDED}),
    S.CHANGED: frozenset({S.PENDING_PAYMENT, S.CONFIRMED, S.CHECKED_IN, S.CANCELLED, S.REFUNDED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
    S.REFUNDED: frozenset(),
}

# Entering these gives the seats back to the sailing
RELEASING_STATUSES = frozenset({S.CANCELLED, S.REFUNDED})

TIMESTAMP_FIELDS = {
    S.CONFIRMED: "confirmed_at",
    S.CHECKED_IN: "checked_in_at",
    S.BOARDED: "boarded_at",
    S.COMPLETED: "completed_at",
    S.CANCELLED: "cancelled_at",
    S.REFUNDED: "refunded_at",
}

def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return BookingStatus(target) in ALLOWED_TRANSITIONS[BookingStatus(current)]

def ensure_transition(current: BookingStatus, target: BookingStatus) -> None:
    current = BookingStatus(current)
    target = BookingStatus(target)
    if not can_transition(current, target):
        raise StateConflictError(
            f"Booking cannot move from '{current.value}' to '{target.value}'",
            current_status=current.value,
        )

class BookingLifecycle:
    """Applies transitions to a booking inside the caller's transaction"""

    def __init__(self, db: Session, time_policy: Optional[TimePolicy] = None):
        self.db = db
        self.time_policy = time_policy or TimePolicy()
        self.allocator = CapacityAllocator(db)

    def record_creation(self, booking: Booking, actor: Optional[str] = None) -> BookingStatusEvent:
        event = BookingStatusEvent(
            booking=booking,
            from_status=None,
            to_status=booking.status,
            actor=actor,
            note="Booking created",
            created_at=booking.created_at,
        )
        self.db.add(event)
        return event

    def transition(
        self,
        booking: Booking,
        target: BookingStatus,
        actor: Optional[str] = None,
        note: Optional[str] = None,
    ) -> BookingStatusEvent:
        current = BookingStatus(booking.status)
        target = BookingStatus(target)
        ensure_transition(current, target)

        if target in RELEASING_STATUSES and not booking.seats_released:
            self.allocator.release(booking.sailing_id, booking.channel, booking.passenger_count)
            booking.seats_released = True

        now = self.time_policy.now()
        booking.status = target
        booking.updated_at = now
        field = TIMESTAMP_FIELDS.get(target)
        if field and getattr(booking, field) is None:
            setattr(booking, field, now)

        event = BookingStatusEvent(
            booking=booking,
            from_status=current,
            to_status=target,
            actor=actor,
            note=note,
            created_at=now,
        )
        self.db.add(event)
        logger.info("Booking %s: %s -> %s", booking.reference, current.value, target.value)
        return event
