"""
Seat inventory for sailings.

Each sailing holds two independent pools, online and walk-in. The
``*_booked`` counters are changed here and nowhere else, and only through
single conditional UPDATE statements: the quota check and the increment are
evaluated by the database as one step, so two requests racing for the last
seat cannot both pass the check. A read followed by a separate write would
let both of them through.

Neither ``reserve`` nor ``release`` commits. They run inside the caller's
transaction so a multi-step operation (a reschedule) can be rolled back as a
whole.
"""

import logging
from typing import Dict, Tuple

from sqlalchemy import case, update
from sqlalchemy.orm import Session

from src.enums import Channel
from src.exceptions import CapacityExceededError, InvalidInputError, SailingNotFoundError
from src.models import Sailing
from src.capacity.schemas import ChannelAvailability, SailingAvailability

logger = logging.getLogger(__name__)

_COLUMNS: Dict[Channel, Tuple[str, str]] = {
    Channel.ONLINE: ("online_booked", "online_quota"),
    Channel.WALK_IN: ("walk_in_booked", "walk_in_quota"),
}

def _columns(channel: Channel):
    booked_name, quota_name = _COLUMNS[Channel(channel)]
    return getattr(Sailing, booked_name), getattr(Sailing, quota_name)

def _check_seats(seats: int) -> None:
    if isinstance(seats, bool) or not isinstance(seats, int) or seats < 1:
        raise InvalidInputError("Seat count must be a positive integer", seats=seats)

class CapacityAllocator:
    """Atomic reserve/release against a sailing's channel counters"""

    def __init__(self, db: Session):
        self.db = db

    def reserve(self, sailing_id: int, channel: Channel, seats: int) -> None:
        """Take ``seats`` from the channel pool or fail without changing it.

        Raises ``CapacityExceededError`` when the post-increment count would
        exceed the quota and ``SailingNotFoundError`` for an unknown sailing.
        """
        _check_seats(seats)
        channel = Channel(channel)
        booked, quota = _columns(channel)

        stmt = (
            update(Sailing)
            .where(Sailing.id == sailing_id)
            .where(booked + seats <= quota)
            .values({booked: booked + seats})
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)

        if result.rowcount == 1:
            logger.debug("Reserved %s %s seat(s) on sailing %s", seats, channel.value, sailing_id)
            return

        snapshot = self._snapshot(sailing_id)
        if snapshot is None:
            raise SailingNotFoundError(f"Sailing {sailing_id} not found", sailing_id=sailing_id)

        pool = snapshot.pool(channel)
        logger.warning(
            "Capacity exceeded on sailing %s (%s): requested %s, available %s",
            sailing_id, channel.value, seats, pool.available,
        )
        raise CapacityExceededError(
            f"Not enough {channel.value.replace('_', '-')} seats: {pool.available} left, need {seats}",
            sailing_id=sailing_id,
            channel=channel.value,
            requested=seats,
            available=pool.available,
        )

    def release(self, sailing_id: int, channel: Channel, seats: int) -> None:
        """Give ``seats`` back to the channel pool, never going below zero"""
        _check_seats(seats)
        channel = Channel(channel)
        booked, _ = _columns(channel)

        stmt = (
            update(Sailing)
            .where(Sailing.id == sailing_id)
            .values({booked: case((booked - seats < 0, 0), else_=booked - seats)})
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        if result.rowcount == 0:
            logger.warning("Release on unknown sailing %s ignored", sailing_id)
            return
        logger.debug("Released %s %s seat(s) on sailing %s", seats, channel.value, sailing_id)

    def availability(self, sailing_id: int) -> SailingAvailability:
        snapshot = self._snapshot(sailing_id)
        if snapshot is None:
            raise SailingNotFoundError(f"Sailing {sailing_id} not found", sailing_id=sailing_id)
        return snapshot

    def seats_available(self, sailing_id: int, channel: Channel) -> int:
        return self.availability(sailing_id).pool(Channel(channel)).available

    def _snapshot(self, sailing_id: int):
        row = self.db.execute(
            Sailing.__table__.select().where(Sailing.__table__.c.id == sailing_id)
        ).mappings().first()
        if row is None:
            return None
        return SailingAvailability(
            sailing_id=sailing_id,
            online=ChannelAvailability(quota=row["online_quota"], booked=row["online_booked"]),
            walk_in=ChannelAvailability(quota=row["walk_in_quota"], booked=row["walk_in_booked"]),
        )
