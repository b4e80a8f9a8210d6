from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from src.database import get_db
from src.enums import RefundStatus
from src.exceptions import BookingEngineError, to_http_exception
from src.refunds.schemas import (
    RefundCreateRequest, RefundResponse, RefundListResponse, RefundReviewRequest,
    RefundApproveRequest, RefundRejectRequest, RefundProcessRequest
)
from src.refunds.refund_service import RefundService
from src.schedules.time_policy import TimePolicy, get_time_policy

router = APIRouter()

@router.post("", response_model=RefundResponse, status_code=status.HTTP_201_CREATED)
def request_refund(
    request: RefundCreateRequest,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Request a refund for a weather disturbance or vessel cancellation"""

    refund_service = RefundService(db, time_policy)

    try:
        refund = refund_service.request_refund(request)
        return refund_service.to_response(refund)
    except BookingEngineError as e:
        raise to_http_exception(e)

@router.get("", response_model=RefundListResponse)
def list_refunds(
    refund_status: Optional[RefundStatus] = Query(None, alias="status", description="Filter by refund status"),
    limit: int = Query(100, ge=1, le=500, description="Maximum results"),
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Admin refund queue"""

    refund_service = RefundService(db, time_policy)
    refunds = refund_service.list_refunds(refund_status, limit=limit)
    return RefundListResponse(
        refunds=[refund_service.to_response(r) for r in refunds],
        total=len(refunds)
    )

@router.get("/{refund_id}", response_model=RefundResponse)
def get_refund(
    refund_id: int,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    refund_service = RefundService(db, time_policy)

    try:
        return refund_service.to_response(refund_service.get_refund(refund_id))
    except BookingEngineError as e:
        raise to_http_exception(e)

@router.post("/{refund_id}/review", response_model=RefundResponse)
def review_refund(
    refund_id: int,
    request: Optional[RefundReviewRequest] = None,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    request = request or RefundReviewRequest()
    refund_service = RefundService(db, time_policy)

    try:
        refund = refund_service.start_review(refund_id, actor=request.actor, admin_notes=request.admin_notes)
        return refund_service.to_response(refund)
    except BookingEngineError as e:
        raise to_http_exception(e)

@router.post("/{refund_id}/approve", response_model=RefundResponse)
def approve_refund(
    refund_id: int,
    request: Optional[RefundApproveRequest] = None,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Approve a refund, optionally for a lower amount"""

    request = request or RefundApproveRequest()
    refund_service = RefundService(db, time_policy)

    try:
        refund = refund_service.approve(
            refund_id,
            approved_amount_cents=request.approved_amount_cents,
            actor=request.actor,
            admin_notes=request.admin_notes
        )
        return refund_service.to_response(refund)
    except BookingEngineError as e:
        raise to_http_exception(e)

@router.post("/{refund_id}/reject", response_model=RefundResponse)
def reject_refund(
    refund_id: int,
    request: RefundRejectRequest,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    refund_service = RefundService(db, time_policy)

    try:
        refund = refund_service.reject(refund_id, request.reason, actor=request.actor)
        return refund_service.to_response(refund)
    except BookingEngineError as e:
        raise to_http_exception(e)

@router.post("/{refund_id}/process", response_model=RefundResponse)
def process_refund(
    refund_id: int,
    request: RefundProcessRequest,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Record the wallet payout; the booking becomes refunded"""

    refund_service = RefundService(db, time_policy)

    try:
        refund = refund_service.process(
            refund_id,
            request.gcash_reference,
            actor=request.actor,
            admin_notes=request.admin_notes
        )
        return refund_service.to_response(refund)
    except BookingEngineError as e:
        raise to_http_exception(e)
