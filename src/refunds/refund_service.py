import logging
from typing import List, Optional
from sqlalchemy.orm import Session

from src.enums import BookingStatus, RefundBasis, RefundStatus
from src.exceptions import (
    InvalidInputError, PolicyViolationError, RefundNotFoundError, StateConflictError
)
from src.models import Booking, Refund
from src.bookings.booking_service import BookingService
from src.bookings.lifecycle import BookingLifecycle
from src.refunds.schemas import RefundCreateRequest, RefundResponse
from src.refunds.workflow import ensure_transition, is_refundable
from src.schedules.time_policy import TimePolicy

logger = logging.getLogger(__name__)

class RefundService:
    """Refund requests and the staff approval chain"""

    def __init__(self, db: Session, time_policy: Optional[TimePolicy] = None):
        self.db = db
        self.time_policy = time_policy or TimePolicy()
        self.bookings = BookingService(db, self.time_policy)
        self.lifecycle = BookingLifecycle(db, self.time_policy)

    def request_refund(self, request: RefundCreateRequest) -> Refund:
        """Open a refund for a booking.

        Only weather disturbances and vessel cancellations qualify, and a
        booking holds at most one open refund at a time.
        """
        basis = self._parse_basis(request.policy_basis)
        booking = self.bookings.get_booking(request.booking_reference)

        booking_status = BookingStatus(booking.status)
        if not is_refundable(booking_status):
            raise StateConflictError(
                f"A {booking_status.value} booking cannot be refunded",
                current_status=booking_status.value,
            )
        for existing in booking.refunds:
            if RefundStatus(existing.status).is_open:
                raise StateConflictError(
                    f"Booking {booking.reference} already has an open refund",
                    current_status=RefundStatus(existing.status).value,
                )

        amount = request.requested_amount_cents
        if amount is None:
            amount = booking.grand_total_cents
        self._check_amount(amount, booking, "requested_amount_cents")

        refund = Refund(
            booking=booking,
            requested_amount_cents=amount,
            policy_basis=basis,
            notes=request.notes,
            status=RefundStatus.REQUESTED,
            requested_by=request.actor,
            requested_at=self.time_policy.now(),
        )
        self.db.add(refund)
        self._commit()
        self.db.refresh(refund)
        logger.info("Refund %s requested for booking %s (%s, %s)", refund.id, booking.reference, basis.value, amount)
        return refund

    def start_review(self, refund_id: int, actor: Optional[str] = None, admin_notes: Optional[str] = None) -> Refund:
        refund = self.get_refund(refund_id)
        ensure_transition(refund.status, RefundStatus.UNDER_REVIEW)
        refund.status = RefundStatus.UNDER_REVIEW
        refund.reviewed_by = actor
        refund.reviewed_at = self.time_policy.now()
        if admin_notes:
            refund.admin_notes = admin_notes
        self._commit()
        self.db.refresh(refund)
        return refund

    def approve(
        self,
        refund_id: int,
        approved_amount_cents: Optional[int] = None,
        actor: Optional[str] = None,
        admin_notes: Optional[str] = None,
    ) -> Refund:
        """Approve, optionally for less than was requested"""
        refund = self.get_refund(refund_id)
        ensure_transition(refund.status, RefundStatus.APPROVED)

        amount = refund.requested_amount_cents if approved_amount_cents is None else approved_amount_cents
        self._check_amount(amount, refund.booking, "approved_amount_cents")
        if amount > refund.requested_amount_cents:
            raise PolicyViolationError(
                "Approved amount cannot exceed the requested amount",
                requested_amount_cents=refund.requested_amount_cents,
                approved_amount_cents=amount,
            )

        refund.status = RefundStatus.APPROVED
        refund.approved_amount_cents = amount
        refund.approved_by = actor
        refund.approved_at = self.time_policy.now()
        if admin_notes:
            refund.admin_notes = admin_notes
        self._commit()
        self.db.refresh(refund)
        logger.info("Refund %s approved for %s", refund.id, amount)
        return refund

    def reject(self, refund_id: int, reason: str, actor: Optional[str] = None) -> Refund:
        refund = self.get_refund(refund_id)
        if not (reason or "").strip():
            raise InvalidInputError("A rejection reason is required", field="reason")
        ensure_transition(refund.status, RefundStatus.REJECTED)

        refund.status = RefundStatus.REJECTED
        refund.rejection_reason = reason.strip()
        refund.rejected_by = actor
        refund.rejected_at = self.time_policy.now()
        self._commit()
        self.db.refresh(refund)
        logger.info("Refund %s rejected", refund.id)
        return refund

    def process(
        self,
        refund_id: int,
        gcash_reference: str,
        actor: Optional[str] = None,
        admin_notes: Optional[str] = None,
    ) -> Refund:
        """Record the payout and move the booking to ``refunded``.

        The booking's seats go back to the sailing in the same transaction.
        """
        refund = self.get_refund(refund_id)
        if not (gcash_reference or "").strip():
            raise InvalidInputError("A transfer reference is required to process a refund", field="gcash_reference")
        ensure_transition(refund.status, RefundStatus.PROCESSED)

        booking = refund.booking
        now = self.time_policy.now()
        try:
            refund.status = RefundStatus.PROCESSED
            refund.gcash_reference = gcash_reference.strip()
            refund.processed_by = actor
            refund.processed_at = now
            if admin_notes:
                refund.admin_notes = admin_notes
            self.lifecycle.transition(
                booking, BookingStatus.REFUNDED, actor=actor,
                note=f"Refund {refund.id} processed",
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(refund)
        logger.info(
            "Refund %s processed for booking %s: %s sent",
            refund.id, booking.reference, refund.approved_amount_cents,
        )
        return refund

    def get_refund(self, refund_id: int) -> Refund:
        refund = self.db.query(Refund).filter(Refund.id == refund_id).first()
        if not refund:
            raise RefundNotFoundError(f"Refund {refund_id} not found", refund_id=refund_id)
        return refund

    def list_refunds(self, status: Optional[RefundStatus] = None, limit: int = 100) -> List[Refund]:
        """Admin queue, oldest request first"""
        query = self.db.query(Refund)
        if status is not None:
            query = query.filter(Refund.status == RefundStatus(status))
        return query.order_by(Refund.requested_at, Refund.id).limit(limit).all()

    def to_response(self, refund: Refund) -> RefundResponse:
        return RefundResponse(
            id=refund.id,
            booking_id=refund.booking_id,
            booking_reference=refund.booking.reference,
            booking_status=refund.booking.status,
            status=refund.status,
            policy_basis=refund.policy_basis,
            requested_amount_cents=refund.requested_amount_cents,
            approved_amount_cents=refund.approved_amount_cents,
            notes=refund.notes,
            admin_notes=refund.admin_notes,
            rejection_reason=refund.rejection_reason,
            gcash_reference=refund.gcash_reference,
            requested_by=refund.requested_by,
            reviewed_by=refund.reviewed_by,
            approved_by=refund.approved_by,
            rejected_by=refund.rejected_by,
            processed_by=refund.processed_by,
            requested_at=refund.requested_at,
            reviewed_at=refund.reviewed_at,
            approved_at=refund.approved_at,
            rejected_at=refund.rejected_at,
            processed_at=refund.processed_at,
        )

    def _parse_basis(self, value: str) -> RefundBasis:
        try:
            return RefundBasis((value or "").strip().lower())
        except ValueError:
            allowed = [b.value for b in RefundBasis]
            raise PolicyViolationError(
                f"Refunds are only granted for: {', '.join(allowed)}",
                allowed_reasons=allowed,
            )

    def _check_amount(self, amount: int, booking: Booking, field: str) -> None:
        if amount < 0:
            raise InvalidInputError("Refund amount cannot be negative", field=field)
        if amount > booking.grand_total_cents:
            raise PolicyViolationError(
                "Refund amount cannot exceed the booking total",
                field=field,
                grand_total_cents=booking.grand_total_cents,
            )

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
