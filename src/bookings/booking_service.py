import logging
import secrets
import string
from typing import Optional
from decimal import Decimal
from sqlalchemy.orm import Session

from src.enums import BookingStatus, Channel, DiscountIdStatus, FareCategory, RefundStatus, SailingStatus
from src.exceptions import (
    BookingEngineError, BookingNotFoundError, InvalidInputError, PolicyViolationError,
    SailingNotFoundError, StateConflictError, TicketNotFoundError
)
from src.models import Booking, Passenger, Sailing
from src.bookings.lifecycle import BookingLifecycle
from src.bookings.schemas import (
    BookingCreateRequest, BookingResponse, PassengerOut, BookingChangeOut,
    RefundSummary, BookingHistoryResponse, BookingStatusEventOut, TicketValidation
)
from src.bookings.validation import BookingValidator
from src.capacity.allocator import CapacityAllocator
from src.routes.fare_service import FareCalculationService
from src.routes.schemas import FareBreakdown, PassengerFareLine
from src.schedules.time_policy import TimePolicy

logger = logging.getLogger(__name__)

REFERENCE_ALPHABET = string.ascii_uppercase + string.digits
REFERENCE_LENGTH = 10

# Bookings whose tickets the crew may scan
TICKET_STATUSES = frozenset({
    BookingStatus.CONFIRMED,
    BookingStatus.CHECKED_IN,
    BookingStatus.BOARDED,
})

class BookingService:
    """Creates bookings and drives them through payment and boarding"""

    def __init__(self, db: Session, time_policy: Optional[TimePolicy] = None):
        self.db = db
        self.time_policy = time_policy or TimePolicy()
        self.allocator = CapacityAllocator(db)
        self.lifecycle = BookingLifecycle(db, self.time_policy)
        self.fare_service = FareCalculationService(db)
        self.validator = BookingValidator()

    def create_booking(self, request: BookingCreateRequest) -> Booking:
        """Price the passengers, reserve their seats and store the booking.

        Online bookings wait in ``pending_payment`` for staff to verify the
        wallet transfer. Walk-in bookings are paid at the booth and are
        confirmed in the same transaction.
        """
        errors = self.validator.validate_booking_request(request, today=self.time_policy.today())
        if errors:
            raise InvalidInputError(
                errors[0].error_message,
                errors=[e.model_dump() for e in errors],
            )

        sailing = self.db.query(Sailing).filter(Sailing.id == request.sailing_id).first()
        if not sailing:
            raise SailingNotFoundError(f"Sailing {request.sailing_id} not found", sailing_id=request.sailing_id)
        if SailingStatus(sailing.status) != SailingStatus.SCHEDULED:
            raise PolicyViolationError(
                f"Sailing is {SailingStatus(sailing.status).value} and cannot be booked",
                sailing_id=sailing.id,
            )
        if not self.time_policy.is_bookable(sailing):
            cutoff_minutes = int(self.time_policy.booking_cutoff.total_seconds() // 60)
            raise PolicyViolationError(
                f"This sailing departs too soon. Book a sailing at least {cutoff_minutes} minutes from now so there is time to pay and board.",
                sailing_id=sailing.id,
            )

        channel = Channel(request.channel)
        breakdown = self.fare_service.quote(
            sailing.route_id, self.time_policy.today(), request.passengers, channel
        )
        seats = len(breakdown.lines)
        now = self.time_policy.now()

        try:
            self.allocator.reserve(sailing.id, channel, seats)

            booking = Booking(
                reference=self._generate_reference(),
                sailing=sailing,
                channel=channel,
                status=BookingStatus.PENDING_PAYMENT,
                contact_full_name=(request.contact_full_name or breakdown.lines[0].full_name).strip(),
                contact_email=(request.contact_email or "").strip() or None,
                contact_mobile=(request.contact_mobile or "").strip() or None,
                contact_address=(request.contact_address or "").strip() or None,
                passenger_count=seats,
                base_fare_cents=breakdown.base_fare_cents,
                discount_percents={line.fare_category.value: str(line.discount_percent) for line in breakdown.lines},
                fare_subtotal_cents=breakdown.fare_subtotal_cents,
                platform_fee_per_passenger_cents=breakdown.platform_fee_per_passenger_cents,
                platform_fee_total_cents=breakdown.platform_fee_total_cents,
                processing_fee_cents=breakdown.processing_fee_cents,
                grand_total_cents=breakdown.grand_total_cents,
                reschedule_fees_cents=0,
                seats_released=False,
                created_by=request.actor,
                created_at=now,
                updated_at=now,
            )
            for line, info in zip(breakdown.lines, request.passengers):
                category = line.fare_category
                booking.passengers.append(Passenger(
                    position=line.position,
                    full_name=line.full_name,
                    fare_category=category,
                    discount_percent=line.discount_percent,
                    birthdate=info.birthdate,
                    gender=info.gender,
                    nationality=info.nationality,
                    discount_id_status=self._discount_id_status(category, info.discount_id_status),
                    price_cents=line.price_cents,
                ))
            self.db.add(booking)
            self.lifecycle.record_creation(booking, actor=request.actor)

            if channel == Channel.WALK_IN:
                self.lifecycle.transition(
                    booking, BookingStatus.CONFIRMED,
                    actor=request.actor, note="Paid at ticket booth",
                )
                self._assign_ticket_numbers(booking)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(
            "Booking %s created on sailing %s: %s %s seat(s), total %s",
            booking.reference, sailing.id, seats, channel.value, booking.grand_total_cents,
        )
        return booking

    def get_booking(self, reference: str) -> Booking:
        normalized = (reference or "").strip().upper()
        booking = self.db.query(Booking).filter(Booking.reference == normalized).first()
        if not booking:
            raise BookingNotFoundError(f"Booking {normalized} not found", reference=normalized)
        return booking

    def confirm_payment(
        self,
        reference: str,
        actor: Optional[str] = None,
        payment_reference: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Booking:
        """Staff verified the wallet transfer"""
        booking = self.get_booking(reference)
        self.ensure_no_open_refund(booking)
        if payment_reference and payment_reference.strip():
            booking.payment_reference = payment_reference.strip()
        return self._apply(booking, BookingStatus.CONFIRMED, actor, note or "Payment verified", assign_tickets=True)

    def check_in(self, reference: str, actor: Optional[str] = None, note: Optional[str] = None) -> Booking:
        """Check in every passenger on the booking"""
        booking = self.get_booking(reference)
        self.ensure_no_open_refund(booking)
        return self._apply(booking, BookingStatus.CHECKED_IN, actor, note, stamp="checked_in_at")

    def board(self, reference: str, actor: Optional[str] = None, note: Optional[str] = None) -> Booking:
        booking = self.get_booking(reference)
        self.ensure_no_open_refund(booking)
        return self._apply(booking, BookingStatus.BOARDED, actor, note, stamp="boarded_at")

    def complete(self, reference: str, actor: Optional[str] = None, note: Optional[str] = None) -> Booking:
        booking = self.get_booking(reference)
        self.ensure_no_open_refund(booking)
        return self._apply(booking, BookingStatus.COMPLETED, actor, note)

    def cancel(self, reference: str, actor: Optional[str] = None, note: Optional[str] = None) -> Booking:
        """Cancel and give the seats back to the sailing"""
        booking = self.get_booking(reference)
        self.ensure_no_open_refund(booking)
        return self._apply(booking, BookingStatus.CANCELLED, actor, note)

    # Ticket scans at the gate
    def find_by_ticket(self, ticket_number: str, sailing_id: Optional[int] = None) -> TicketValidation:
        """Resolve a scanned ticket to its passenger and booking.

        ``valid`` is false when the booking is not confirmed or later, a
        refund is open, the sailing no longer runs, or the ticket belongs to
        a sailing other than ``sailing_id``. ``reason`` says which.
        """
        passenger = self._get_ticket(ticket_number)
        booking = passenger.booking
        sailing = booking.sailing
        reason = self._ticket_problem(booking, sailing_id)
        return TicketValidation(
            ticket_number=passenger.ticket_number,
            valid=reason is None,
            reason=reason,
            booking_reference=booking.reference,
            booking_status=booking.status,
            sailing_id=sailing.id,
            departure_date=sailing.departure_date,
            departure_time=sailing.departure_time.strftime("%H:%M"),
            vessel_name=sailing.vessel_name,
            route_name=sailing.route.display_name if sailing.route else None,
            passenger=PassengerOut.model_validate(passenger),
        )

    def check_in_ticket(self, ticket_number: str, actor: Optional[str] = None, note: Optional[str] = None) -> Booking:
        """Check in one passenger; the first scan checks in the booking"""
        passenger = self._get_ticket(ticket_number)
        booking = passenger.booking
        self._ensure_ticket_usable(booking)
        if passenger.checked_in_at is None:
            passenger.checked_in_at = self.time_policy.now()
        if BookingStatus(booking.status) == BookingStatus.CONFIRMED:
            return self._apply(
                booking, BookingStatus.CHECKED_IN, actor,
                note or f"Ticket {passenger.ticket_number} checked in",
            )
        return self._save(booking)

    def board_ticket(self, ticket_number: str, actor: Optional[str] = None, note: Optional[str] = None) -> Booking:
        """Board one checked-in passenger; the first scan boards the booking"""
        passenger = self._get_ticket(ticket_number)
        booking = passenger.booking
        self._ensure_ticket_usable(booking)
        if passenger.checked_in_at is None:
            raise StateConflictError(
                f"Ticket {passenger.ticket_number} has not been checked in",
                current_status=BookingStatus(booking.status).value,
            )
        if passenger.boarded_at is None:
            passenger.boarded_at = self.time_policy.now()
        if BookingStatus(booking.status) == BookingStatus.CHECKED_IN:
            return self._apply(
                booking, BookingStatus.BOARDED, actor,
                note or f"Ticket {passenger.ticket_number} boarded",
            )
        return self._save(booking)

    def get_history(self, reference: str) -> BookingHistoryResponse:
        booking = self.get_booking(reference)
        return BookingHistoryResponse(
            reference=booking.reference,
            status=booking.status,
            events=[BookingStatusEventOut.model_validate(e) for e in booking.status_events],
        )

    def to_response(self, booking: Booking) -> BookingResponse:
        return BookingResponse(
            id=booking.id,
            reference=booking.reference,
            sailing_id=booking.sailing_id,
            original_sailing_id=booking.original_sailing_id,
            channel=booking.channel,
            status=booking.status,
            passenger_count=booking.passenger_count,
            passengers=[PassengerOut.model_validate(p) for p in booking.passengers],
            contact_full_name=booking.contact_full_name,
            contact_email=booking.contact_email,
            contact_mobile=booking.contact_mobile,
            contact_address=booking.contact_address,
            payment_reference=booking.payment_reference,
            fare_breakdown=stored_breakdown(booking),
            reschedule_fees_cents=booking.reschedule_fees_cents or 0,
            amount_due_cents=booking.grand_total_cents + (booking.reschedule_fees_cents or 0),
            seats_released=booking.seats_released,
            created_at=booking.created_at,
            confirmed_at=booking.confirmed_at,
            checked_in_at=booking.checked_in_at,
            boarded_at=booking.boarded_at,
            completed_at=booking.completed_at,
            cancelled_at=booking.cancelled_at,
            refunded_at=booking.refunded_at,
            changes=[BookingChangeOut.model_validate(c) for c in booking.changes],
            refund=RefundSummary.model_validate(booking.refunds[-1]) if booking.refunds else None,
        )

    def _apply(
        self,
        booking: Booking,
        target: BookingStatus,
        actor: Optional[str],
        note: Optional[str],
        assign_tickets: bool = False,
        stamp: Optional[str] = None,
    ) -> Booking:
        try:
            self.lifecycle.transition(booking, target, actor=actor, note=note)
            if assign_tickets:
                self._assign_ticket_numbers(booking)
            if stamp:
                now = self.time_policy.now()
                for passenger in booking.passengers:
                    if getattr(passenger, stamp) is None:
                        setattr(passenger, stamp, now)
        except Exception:
            self.db.rollback()
            raise
        return self._save(booking)

    def _save(self, booking: Booking) -> Booking:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(booking)
        return booking

    def _get_ticket(self, ticket_number: str) -> Passenger:
        normalized = (ticket_number or "").strip().upper()
        passenger = self.db.query(Passenger).filter(Passenger.ticket_number == normalized).first()
        if not passenger:
            raise TicketNotFoundError(f"Ticket {normalized} not found", ticket_number=normalized)
        return passenger

    def _ensure_ticket_usable(self, booking: Booking) -> None:
        self.ensure_no_open_refund(booking)
        status = BookingStatus(booking.status)
        if status not in TICKET_STATUSES:
            raise StateConflictError(
                f"Ticket cannot be used: booking {booking.reference} is {status.value}",
                current_status=status.value,
            )
        sailing_status = SailingStatus(booking.sailing.status)
        if sailing_status != SailingStatus.SCHEDULED:
            raise PolicyViolationError(
                f"Sailing {booking.sailing_id} is {sailing_status.value}",
                sailing_id=booking.sailing_id,
            )

    def _ticket_problem(self, booking: Booking, sailing_id: Optional[int]) -> Optional[str]:
        try:
            self._ensure_ticket_usable(booking)
        except BookingEngineError as e:
            return e.message
        if sailing_id is not None and sailing_id != booking.sailing_id:
            return f"Ticket is for sailing {booking.sailing_id}, not {sailing_id}"
        return None

    def ensure_no_open_refund(self, booking: Booking) -> None:
        for refund in booking.refunds:
            status = RefundStatus(refund.status)
            if status.is_open:
                raise StateConflictError(
                    f"Booking {booking.reference} has a refund in progress ({status.value})",
                    current_status=BookingStatus(booking.status).value,
                )

    def _discount_id_status(self, category: FareCategory, status):
        if not category.requires_discount_id:
            return None
        return status or DiscountIdStatus.PENDING

    def _assign_ticket_numbers(self, booking: Booking) -> None:
        """One ticket number per passenger; kept if already assigned"""
        for passenger in booking.passengers:
            if not passenger.ticket_number:
                passenger.ticket_number = self._unique_code(Passenger.ticket_number)

    def _generate_reference(self) -> str:
        return self._unique_code(Booking.reference)

    def _unique_code(self, column) -> str:
        while True:
            code = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(REFERENCE_LENGTH))
            if not self.db.query(column).filter(column == code).first():
                return code

def stored_breakdown(booking: Booking) -> FareBreakdown:
    """Rebuild the fare breakdown from the stored passenger lines"""
    lines = [
        PassengerFareLine(
            position=p.position,
            full_name=p.full_name,
            fare_category=p.fare_category,
            discount_percent=Decimal(str(p.discount_percent)),
            price_cents=p.price_cents,
        )
        for p in booking.passengers
    ]
    return FareBreakdown(
        base_fare_cents=booking.base_fare_cents,
        channel=booking.channel,
        lines=lines,
        fare_subtotal_cents=booking.fare_subtotal_cents,
        platform_fee_per_passenger_cents=booking.platform_fee_per_passenger_cents,
        platform_fee_total_cents=booking.platform_fee_total_cents,
        processing_fee_cents=booking.processing_fee_cents,
        grand_total_cents=booking.grand_total_cents,
    )
