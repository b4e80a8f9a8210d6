import logging
from decimal import Decimal
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.config import settings
from src.enums import BookingStatus, Channel
from src.exceptions import (
    CapacityExceededError, InvalidInputError, NoAvailabilityError,
    PolicyViolationError, ReschedulePolicyError, RescheduleFailedError,
    StateConflictError
)
from src.models import Booking, BookingChange
from src.bookings.booking_service import BookingService
from src.bookings.lifecycle import BookingLifecycle
from src.bookings.schemas import AlternativeSailing, RescheduleOptions, RescheduleResult
from src.capacity.allocator import CapacityAllocator
from src.routes.fare_service import round_half_up
from src.schedules.service import SailingService
from src.schedules.time_policy import TimePolicy

logger = logging.getLogger(__name__)

RESCHEDULABLE_STATUSES = frozenset({
    BookingStatus.PENDING_PAYMENT,
    BookingStatus.CONFIRMED,
    BookingStatus.CHECKED_IN,
})

def calculate_reschedule_fee(fare_subtotal_cents: int) -> int:
    """Percentage of the fare subtotal plus a flat processing fee"""
    percent = Decimal(settings.RESCHEDULE_FEE_PERCENT)
    return (
        round_half_up(Decimal(fare_subtotal_cents) * percent / Decimal("100"))
        + settings.RESCHEDULE_PROCESSING_FEE_CENTS
    )

class RescheduleService:
    """Moves a booking to another sailing on the same route"""

    def __init__(self, db: Session, time_policy: Optional[TimePolicy] = None):
        self.db = db
        self.time_policy = time_policy or TimePolicy()
        self.bookings = BookingService(db, self.time_policy)
        self.sailings = SailingService(db, self.time_policy)
        self.allocator = CapacityAllocator(db)
        self.lifecycle = BookingLifecycle(db, self.time_policy)

    def check_eligibility(self, booking: Booking) -> None:
        """Raise unless the booking may be moved right now"""
        status = BookingStatus(booking.status)
        if status not in RESCHEDULABLE_STATUSES:
            raise StateConflictError(
                f"A {status.value} booking cannot be rescheduled",
                current_status=status.value,
            )
        self.bookings.ensure_no_open_refund(booking)
        if not self.time_policy.can_reschedule(booking.sailing):
            hours = int(self.time_policy.reschedule_cutoff.total_seconds() // 3600)
            raise ReschedulePolicyError(
                f"Rescheduling is only allowed at least {hours} hours before departure",
                departs_at=self.time_policy.sailing_departure(booking.sailing).isoformat(),
            )

    def calculate_fee(self, booking: Booking) -> int:
        return calculate_reschedule_fee(booking.fare_subtotal_cents)

    def list_alternatives(self, reference: str) -> RescheduleOptions:
        booking = self.bookings.get_booking(reference)
        self.check_eligibility(booking)

        alternatives = self.sailings.find_alternatives(
            booking.sailing, Channel(booking.channel), booking.passenger_count
        )
        return RescheduleOptions(
            reference=booking.reference,
            current_sailing_id=booking.sailing_id,
            reschedule_fee_cents=self.calculate_fee(booking),
            alternatives=[
                AlternativeSailing(
                    sailing_id=s.id,
                    departure_date=s.departure_date,
                    departure_time=s.departure_time.strftime("%H:%M"),
                    vessel_name=s.vessel_name,
                    route_name=s.route.display_name if s.route else None,
                    seats_available=self.allocator.seats_available(s.id, booking.channel),
                )
                for s in alternatives
            ],
        )

    def reschedule(self, reference: str, target_sailing_id: int, actor: Optional[str] = None) -> RescheduleResult:
        """Move the booking and charge the reschedule fee.

        The seat swap, the status round trip through ``changed`` and the
        change record are committed together or not at all.
        """
        booking = self.bookings.get_booking(reference)
        self.check_eligibility(booking)

        current_sailing = booking.sailing
        if target_sailing_id == current_sailing.id:
            raise InvalidInputError("Booking is already on this sailing", target_sailing_id=target_sailing_id)

        target = self.sailings.get_sailing(target_sailing_id)
        if target.route_id != current_sailing.route_id:
            raise PolicyViolationError(
                "A booking can only be moved to a sailing on the same route",
                target_sailing_id=target.id,
            )
        if not self.sailings.is_bookable(target):
            raise PolicyViolationError(
                "The selected sailing is no longer open for booking",
                target_sailing_id=target.id,
            )

        previous_status = BookingStatus(booking.status)
        previous_sailing_id = current_sailing.id
        channel = Channel(booking.channel)
        seats = booking.passenger_count
        fee = self.calculate_fee(booking)

        try:
            self.lifecycle.transition(
                booking, BookingStatus.CHANGED, actor=actor,
                note=f"Moving from sailing {previous_sailing_id} to {target.id}",
            )
            self.allocator.release(previous_sailing_id, channel, seats)
            self.allocator.reserve(target.id, channel, seats)

            if booking.original_sailing_id is None:
                booking.original_sailing_id = previous_sailing_id
            booking.sailing = target
            booking.reschedule_fees_cents = (booking.reschedule_fees_cents or 0) + fee
            self.db.add(BookingChange(
                booking=booking,
                from_sailing_id=previous_sailing_id,
                to_sailing_id=target.id,
                additional_fee_cents=fee,
                previous_status=previous_status,
                changed_by=actor,
                created_at=self.time_policy.now(),
            ))

            self.lifecycle.transition(booking, previous_status, actor=actor, note="Reschedule complete")
            self.db.commit()
        except CapacityExceededError as e:
            self.db.rollback()
            raise NoAvailabilityError(
                "The selected sailing no longer has enough seats",
                sailing_id=target_sailing_id,
                channel=e.channel,
                requested=e.requested,
                available=e.available,
            )
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Reschedule of booking %s failed", reference)
            raise RescheduleFailedError("Reschedule failed and was rolled back; please try again")
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(
            "Booking %s moved from sailing %s to %s (fee %s)",
            booking.reference, previous_sailing_id, booking.sailing_id, fee,
        )
        return RescheduleResult(
            reference=booking.reference,
            status=booking.status,
            previous_sailing_id=previous_sailing_id,
            new_sailing_id=booking.sailing_id,
            original_sailing_id=booking.original_sailing_id,
            reschedule_fee_cents=fee,
            amount_due_cents=booking.grand_total_cents + booking.reschedule_fees_cents,
        )
