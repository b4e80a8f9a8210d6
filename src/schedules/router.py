from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from src.database import get_db
from src.exceptions import BookingEngineError, to_http_exception
from src.capacity.allocator import CapacityAllocator
from src.capacity.schemas import SailingAvailability
from src.schedules.schemas import (
    SailingCreate, SailingStatusUpdate, SailingSummary, SailingListResponse
)
from src.schedules.service import SailingService
from src.schedules.time_policy import TimePolicy, get_time_policy

router = APIRouter()

@router.get("", response_model=SailingListResponse)
def list_sailings(
    route_id: Optional[int] = Query(None, description="Filter by route"),
    departure_date: Optional[date] = Query(None, description="Filter by departure date"),
    bookable_only: bool = Query(False, description="Only sailings still open for booking"),
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Upcoming sailings with live seat availability"""

    sailing_service = SailingService(db, time_policy)
    sailings = sailing_service.list_sailings(
        route_id=route_id,
        departure_date=departure_date,
        bookable_only=bookable_only
    )
    summaries = [sailing_service.summarize(s) for s in sailings]

    return SailingListResponse(
        sailings=summaries,
        total=len(summaries),
        current_time=time_policy.now()
    )

@router.post("", response_model=SailingSummary, status_code=status.HTTP_201_CREATED)
def create_sailing(
    request: SailingCreate,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Schedule a departure with its channel quotas"""

    sailing_service = SailingService(db, time_policy)

    try:
        sailing = sailing_service.create_sailing(request)
        return sailing_service.summarize(sailing)
    except BookingEngineError as e:
        raise to_http_exception(e)

@router.get("/{sailing_id}", response_model=SailingSummary)
def get_sailing(
    sailing_id: int,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    sailing_service = SailingService(db, time_policy)

    try:
        return sailing_service.summarize(sailing_service.get_sailing(sailing_id))
    except BookingEngineError as e:
        raise to_http_exception(e)

@router.get("/{sailing_id}/availability", response_model=SailingAvailability)
def get_sailing_availability(
    sailing_id: int,
    db: Session = Depends(get_db)
):
    """Seats left in the online and walk-in pools"""

    try:
        return CapacityAllocator(db).availability(sailing_id)
    except BookingEngineError as e:
        raise to_http_exception(e)

@router.post("/{sailing_id}/status", response_model=SailingSummary)
def update_sailing_status(
    sailing_id: int,
    request: SailingStatusUpdate,
    db: Session = Depends(get_db),
    time_policy: TimePolicy = Depends(get_time_policy)
):
    """Mark a sailing departed or cancelled"""

    sailing_service = SailingService(db, time_policy)

    try:
        sailing = sailing_service.update_status(sailing_id, request.status)
        return sailing_service.summarize(sailing)
    except BookingEngineError as e:
        raise to_http_exception(e)
