import logging
from typing import List, Optional
from datetime import date
from sqlalchemy.orm import Session

from src.enums import Channel, SailingStatus
from src.exceptions import InvalidInputError, SailingNotFoundError, StateConflictError
from src.models import Route, Sailing
from src.capacity.allocator import CapacityAllocator
from src.schedules.schemas import SailingCreate, SailingSummary
from src.schedules.time_policy import TimePolicy

logger = logging.getLogger(__name__)

class SailingService:
    """Scheduled departures and their bookability"""

    def __init__(self, db: Session, time_policy: Optional[TimePolicy] = None):
        self.db = db
        self.time_policy = time_policy or TimePolicy()
        self.allocator = CapacityAllocator(db)

    def create_sailing(self, request: SailingCreate) -> Sailing:
        route = self.db.query(Route).filter(Route.id == request.route_id).first()
        if not route:
            raise InvalidInputError(f"Route {request.route_id} not found", field="route_id")

        sailing = Sailing(
            route_id=route.id,
            vessel_name=request.vessel_name,
            departure_date=request.departure_date,
            departure_time=request.departure_time,
            status=SailingStatus.SCHEDULED,
            online_quota=request.online_quota,
            online_booked=0,
            walk_in_quota=request.walk_in_quota,
            walk_in_booked=0,
        )
        self.db.add(sailing)
        self.db.commit()
        self.db.refresh(sailing)
        logger.info("Scheduled sailing %s on route %s at %s %s", sailing.id, route.code, sailing.departure_date, sailing.departure_time)
        return sailing

    def get_sailing(self, sailing_id: int) -> Sailing:
        sailing = self.db.query(Sailing).filter(Sailing.id == sailing_id).first()
        if not sailing:
            raise SailingNotFoundError(f"Sailing {sailing_id} not found", sailing_id=sailing_id)
        return sailing

    def update_status(self, sailing_id: int, new_status: SailingStatus) -> Sailing:
        """Mark a sailing departed or cancelled; neither can be undone"""
        sailing = self.get_sailing(sailing_id)
        current = SailingStatus(sailing.status)
        if current != SailingStatus.SCHEDULED:
            raise StateConflictError(
                f"Sailing is already {current.value}",
                current_status=current.value,
            )
        if new_status == SailingStatus.SCHEDULED:
            raise InvalidInputError("Sailing is already scheduled", field="status")
        sailing.status = new_status
        self.db.commit()
        self.db.refresh(sailing)
        logger.info("Sailing %s marked %s", sailing.id, new_status.value)
        return sailing

    def is_bookable(self, sailing: Sailing) -> bool:
        """Scheduled and outside the booking cutoff"""
        return (
            SailingStatus(sailing.status) == SailingStatus.SCHEDULED
            and self.time_policy.is_bookable(sailing)
        )

    def list_sailings(
        self,
        route_id: Optional[int] = None,
        departure_date: Optional[date] = None,
        bookable_only: bool = False,
    ) -> List[Sailing]:
        query = self.db.query(Sailing)
        if route_id is not None:
            query = query.filter(Sailing.route_id == route_id)
        if departure_date is not None:
            query = query.filter(Sailing.departure_date == departure_date)
        else:
            query = query.filter(Sailing.departure_date >= self.time_policy.today())

        sailings = query.order_by(Sailing.departure_date, Sailing.departure_time, Sailing.id).all()
        if bookable_only:
            sailings = [s for s in sailings if self.is_bookable(s)]
        return sailings

    def find_alternatives(
        self,
        sailing: Sailing,
        channel: Channel,
        seats: int,
    ) -> List[Sailing]:
        """Other bookable sailings on the same route with room for ``seats``"""
        candidates = (
            self.db.query(Sailing)
            .filter(Sailing.route_id == sailing.route_id)
            .filter(Sailing.id != sailing.id)
            .filter(Sailing.status == SailingStatus.SCHEDULED)
            .filter(Sailing.departure_date >= self.time_policy.today())
            .order_by(Sailing.departure_date, Sailing.departure_time, Sailing.id)
            .limit(50)
            .all()
        )
        alternatives = []
        for candidate in candidates:
            if not self.time_policy.is_bookable(candidate):
                continue
            if self.allocator.seats_available(candidate.id, channel) >= seats:
                alternatives.append(candidate)
        return alternatives

    def summarize(self, sailing: Sailing) -> SailingSummary:
        availability = self.allocator.availability(sailing.id)
        route = sailing.route
        return SailingSummary(
            id=sailing.id,
            route_id=sailing.route_id,
            route_name=(route.display_name or f"{route.origin} → {route.destination}") if route else None,
            vessel_name=sailing.vessel_name,
            departure_date=sailing.departure_date,
            departure_time=sailing.departure_time,
            departs_at=self.time_policy.sailing_departure(sailing),
            status=sailing.status,
            online=availability.online,
            walk_in=availability.walk_in,
            is_bookable=self.is_bookable(sailing),
        )
