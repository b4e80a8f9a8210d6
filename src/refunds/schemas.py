from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from src.enums import BookingStatus, RefundStatus, RefundBasis

class RefundCreateRequest(BaseModel):
    """Passenger asks for their money back"""
    booking_reference: str
    # Kept as text so a disallowed reason gets a policy error, not a 422
    policy_basis: str
    requested_amount_cents: Optional[int] = None
    notes: Optional[str] = None
    actor: Optional[str] = None

class RefundReviewRequest(BaseModel):
    actor: Optional[str] = None
    admin_notes: Optional[str] = None

class RefundApproveRequest(BaseModel):
    # Defaults to the requested amount
    approved_amount_cents: Optional[int] = None
    actor: Optional[str] = None
    admin_notes: Optional[str] = None

class RefundRejectRequest(BaseModel):
    reason: str = ""
    actor: Optional[str] = None

class RefundProcessRequest(BaseModel):
    """Staff sent the money back through the wallet"""
    gcash_reference: str = ""
    actor: Optional[str] = None
    admin_notes: Optional[str] = None

class RefundResponse(BaseModel):
    id: int
    booking_id: int
    booking_reference: str
    # Booking status after the action; refunded once processed
    booking_status: BookingStatus
    status: RefundStatus
    policy_basis: RefundBasis
    requested_amount_cents: int
    approved_amount_cents: Optional[int] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    gcash_reference: Optional[str] = None
    requested_by: Optional[str] = None
    reviewed_by: Optional[str] = None
    approved_by: Optional[str] = None
    rejected_by: Optional[str] = None
    processed_by: Optional[str] = None
    requested_at: datetime
    reviewed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None

class RefundListResponse(BaseModel):
    refunds: List[RefundResponse]
    total: int = Field(..., ge=0)
