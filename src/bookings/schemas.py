from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, date

from src.enums import (
    BookingStatus, Channel, DiscountIdStatus, FareCategory, RefundStatus, RefundBasis
)
from src.routes.schemas import FareBreakdown

# Passenger Information
class PassengerInfo(BaseModel):
    """Passenger line submitted with a booking"""
    full_name: str = ""
    # Kept as text so an unknown category is reported by the validator
    fare_category: str = FareCategory.ADULT.value
    birthdate: Optional[date] = None
    gender: Optional[str] = None
    nationality: Optional[str] = None
    discount_id_status: Optional[DiscountIdStatus] = None

class PassengerOut(BaseModel):
    position: int
    full_name: str
    fare_category: FareCategory
    birthdate: Optional[date] = None
    gender: Optional[str] = None
    nationality: Optional[str] = None
    discount_id_status: Optional[DiscountIdStatus] = None
    price_cents: int
    ticket_number: Optional[str] = None
    checked_in_at: Optional[datetime] = None
    boarded_at: Optional[datetime] = None

    class Config:
        from_attributes = True

# Booking Request Models
class BookingCreateRequest(BaseModel):
    """Request to book seats on a sailing"""
    sailing_id: int
    channel: Channel = Channel.ONLINE
    passengers: List[PassengerInfo]
    contact_full_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_mobile: Optional[str] = None
    contact_address: Optional[str] = None
    actor: Optional[str] = None

class BookingActionRequest(BaseModel):
    """Staff action on a booking"""
    actor: Optional[str] = None
    note: Optional[str] = None

class PaymentConfirmationRequest(BookingActionRequest):
    # Wallet transfer reference quoted by the passenger, if any
    payment_reference: Optional[str] = None

class RescheduleRequest(BaseModel):
    target_sailing_id: int
    actor: Optional[str] = None

# Booking Response Models
class BookingStatusEventOut(BaseModel):
    from_status: Optional[BookingStatus] = None
    to_status: BookingStatus
    actor: Optional[str] = None
    note: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

class BookingChangeOut(BaseModel):
    from_sailing_id: int
    to_sailing_id: int
    additional_fee_cents: int
    previous_status: BookingStatus
    changed_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

class RefundSummary(BaseModel):
    id: int
    status: RefundStatus
    policy_basis: RefundBasis
    requested_amount_cents: int
    approved_amount_cents: Optional[int] = None
    gcash_reference: Optional[str] = None

    class Config:
        from_attributes = True

class BookingResponse(BaseModel):
    """Booking with its stored fare breakdown"""
    id: int
    reference: str
    sailing_id: int
    original_sailing_id: Optional[int] = None
    channel: Channel
    status: BookingStatus
    passenger_count: int
    passengers: List[PassengerOut]
    contact_full_name: str
    contact_email: Optional[str] = None
    contact_mobile: Optional[str] = None
    contact_address: Optional[str] = None
    payment_reference: Optional[str] = None
    fare_breakdown: FareBreakdown
    reschedule_fees_cents: int = 0
    amount_due_cents: int
    seats_released: bool
    created_at: datetime
    confirmed_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    boarded_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    changes: List[BookingChangeOut] = Field(default_factory=list)
    refund: Optional[RefundSummary] = None

class BookingHistoryResponse(BaseModel):
    reference: str
    status: BookingStatus
    events: List[BookingStatusEventOut]

class AlternativeSailing(BaseModel):
    sailing_id: int
    departure_date: date
    departure_time: str
    vessel_name: Optional[str] = None
    route_name: Optional[str] = None
    seats_available: int

class RescheduleOptions(BaseModel):
    reference: str
    current_sailing_id: int
    reschedule_fee_cents: int
    alternatives: List[AlternativeSailing]

class RescheduleResult(BaseModel):
    reference: str
    status: BookingStatus
    previous_sailing_id: int
    new_sailing_id: int
    original_sailing_id: int
    reschedule_fee_cents: int
    amount_due_cents: int

# Ticket Models
class TicketValidation(BaseModel):
    """What the crew sees after scanning a ticket"""
    ticket_number: str
    valid: bool
    reason: Optional[str] = None
    booking_reference: str
    booking_status: BookingStatus
    sailing_id: int
    departure_date: date
    departure_time: str
    vessel_name: Optional[str] = None
    route_name: Optional[str] = None
    passenger: PassengerOut
