from pydantic import BaseModel
from typing import List, Optional
from datetime import date, datetime, time

from src.enums import BookingStatus, Channel, FareCategory

class ManifestPassengerRow(BaseModel):
    """One named passenger on the sailing"""
    seq: int
    ticket_number: str
    reference: str
    passenger_name: str
    fare_category: FareCategory
    address: Optional[str] = None
    contact: Optional[str] = None
    source: Channel
    status: BookingStatus
    checked_in_at: Optional[datetime] = None
    boarded_at: Optional[datetime] = None

class SailingManifest(BaseModel):
    """Passenger manifest handed to the port authority before departure"""
    serial_number: str
    sailing_id: int
    vessel_name: Optional[str] = None
    route_name: Optional[str] = None
    departure_date: date
    departure_time: time
    online_quota: int
    online_booked: int
    walk_in_quota: int
    walk_in_booked: int
    passengers: List[ManifestPassengerRow]
    total_listed: int
    # Walk-in seats counted by the booth but not backed by a named booking
    walk_in_unnamed: int
    total_passengers: int
    generated_at: datetime
