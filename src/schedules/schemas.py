from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime, time

from src.enums import SailingStatus
from src.capacity.schemas import ChannelAvailability

class SailingCreate(BaseModel):
    """Schedule a departure; quotas are fixed here and never edited directly"""
    route_id: int
    vessel_name: Optional[str] = None
    departure_date: date
    departure_time: time
    online_quota: int = Field(..., ge=0)
    walk_in_quota: int = Field(0, ge=0)

class SailingStatusUpdate(BaseModel):
    status: SailingStatus

class SailingSummary(BaseModel):
    """Sailing with live availability for both channels"""
    id: int
    route_id: int
    route_name: Optional[str] = None
    vessel_name: Optional[str] = None
    departure_date: date
    departure_time: time
    departs_at: datetime
    status: SailingStatus
    online: ChannelAvailability
    walk_in: ChannelAvailability
    is_bookable: bool

class SailingListResponse(BaseModel):
    sailings: List[SailingSummary]
    total: int
    current_time: datetime
