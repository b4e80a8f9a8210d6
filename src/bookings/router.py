from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from src.database import get_db
from src.exceptions import BookingEngineError, to_http_exception
from src.bookings.schemas import (
    BookingCreateRequest, BookingResponse, BookingActionRequest,
    PaymentConfirmationRequest, BookingHistoryResponse, RescheduleRequest,
    RescheduleOptions, RescheduleResult, TicketValidation
)
from src.bookings.booking_service import BookingService
from src.bookings.reschedule_service import RescheduleService
from src.schedules.time_policy import TimePolicy, get_time_policy

router = APIRouter()

# Ticket Scan Endpoints
@router.get("/tickets/{ticket_number}", response_model=TicketValidation)
def validate_ticket(
    ticket_number: str,
    sailing_id: Optional[int] = Query(None, description="Sailing the crew is boarding"),
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Look up a scanned ticket and whether it is good for this sailing"""

    try:
        return BookingService(db, time_policy).find_by_ticket(ticket_number, sailing_id=sailing_id)
    except BookingEngineError as e:
        raise to_http_exception(e)

@router.post("/tickets/{ticket_number}/check-in", response_model=BookingResponse)
def check_in_ticket(
    ticket_number: str,
    request: Optional[BookingActionRequest] = None,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    return _run_action(BookingService(db, time_policy), "check_in_ticket", ticket_number, request)

@router.post("/tickets/{ticket_number}/board", response_model=BookingResponse)
def board_ticket(
    ticket_number: str,
    request: Optional[BookingActionRequest] = None,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    return _run_action(BookingService(db, time_policy), "board_ticket", ticket_number, request)

# Booking Management Endpoints
@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    request: BookingCreateRequest,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Reserve seats on a sailing and create the booking"""

    booking_service = BookingService(db, time_policy)

    try:
        booking = booking_service.create_booking(request)
        return booking_service.to_response(booking)
    except BookingEngineError as e:
        raise to_http_exception(e)

@router.get("/{reference}", response_model=BookingResponse)
def get_booking(
    reference: str,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Get booking details by reference"""

    booking_service = BookingService(db, time_policy)

    try:
        booking = booking_service.get_booking(reference)
        return booking_service.to_response(booking)
    except BookingEngineError as e:
        raise to_http_exception(e)

@router.get("/{reference}/history", response_model=BookingHistoryResponse)
def get_booking_history(
    reference: str,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Status changes of a booking, oldest first"""

    try:
        return BookingService(db, time_policy).get_history(reference)
    except BookingEngineError as e:
        raise to_http_exception(e)

# Status Transition Endpoints
@router.post("/{reference}/confirm-payment", response_model=BookingResponse)
def confirm_payment(
    reference: str,
    request: PaymentConfirmationRequest,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Staff confirms the wallet payment; tickets are issued"""

    booking_service = BookingService(db, time_policy)

    try:
        booking = booking_service.confirm_payment(
            reference,
            actor=request.actor,
            payment_reference=request.payment_reference,
            note=request.note
        )
        return booking_service.to_response(booking)
    except BookingEngineError as e:
        raise to_http_exception(e)

@router.post("/{reference}/check-in", response_model=BookingResponse)
def check_in_booking(
    reference: str,
    request: Optional[BookingActionRequest] = None,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    return _run_action(BookingService(db, time_policy), "check_in", reference, request)

@router.post("/{reference}/board", response_model=BookingResponse)
def board_booking(
    reference: str,
    request: Optional[BookingActionRequest] = None,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    return _run_action(BookingService(db, time_policy), "board", reference, request)

@router.post("/{reference}/complete", response_model=BookingResponse)
def complete_booking(
    reference: str,
    request: Optional[BookingActionRequest] = None,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    return _run_action(BookingService(db, time_policy), "complete", reference, request)

@router.post("/{reference}/cancel", response_model=BookingResponse)
def cancel_booking(
    reference: str,
    request: Optional[BookingActionRequest] = None,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Cancel a booking and release its seats"""
    return _run_action(BookingService(db, time_policy), "cancel", reference, request)

# Reschedule Endpoints
@router.get("/{reference}/reschedule/alternatives", response_model=RescheduleOptions)
def get_reschedule_alternatives(
    reference: str,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Sailings this booking can be moved to, with the fee it would cost"""

    try:
        return RescheduleService(db, time_policy).list_alternatives(reference)
    except BookingEngineError as e:
        raise to_http_exception(e)

@router.post("/{reference}/reschedule", response_model=RescheduleResult)
def reschedule_booking(
    reference: str,
    request: RescheduleRequest,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Move a booking to another sailing on the same route"""

    try:
        return RescheduleService(db, time_policy).reschedule(
            reference, request.target_sailing_id, actor=request.actor
        )
    except BookingEngineError as e:
        raise to_http_exception(e)

def _run_action(
    booking_service: BookingService,
    action: str,
    reference: str,
    request: Optional[BookingActionRequest]
) -> BookingResponse:
    request = request or BookingActionRequest()
    try:
        booking = getattr(booking_service, action)(reference, actor=request.actor, note=request.note)
        return booking_service.to_response(booking)
    except BookingEngineError as e:
        raise to_http_exception(e)
