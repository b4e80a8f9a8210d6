from datetime import datetime, date, time, timedelta
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from src.config import settings

class TimePolicy:
    """Cutoff arithmetic in the single operating timezone.

    Eligibility never uses the caller's local time: every decision compares
    the sailing's departure, interpreted in ``OPERATING_TIMEZONE``, against
    the current instant in that same zone.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        timezone: Optional[str] = None,
        booking_cutoff_minutes: Optional[int] = None,
        reschedule_cutoff_hours: Optional[int] = None,
    ):
        self.tz = ZoneInfo(timezone or settings.OPERATING_TIMEZONE)
        self._clock = clock
        if booking_cutoff_minutes is None:
            booking_cutoff_minutes = settings.BOOKING_CUTOFF_MINUTES
        if reschedule_cutoff_hours is None:
            reschedule_cutoff_hours = settings.RESCHEDULE_CUTOFF_HOURS
        self.booking_cutoff = timedelta(minutes=booking_cutoff_minutes)
        self.reschedule_cutoff = timedelta(hours=reschedule_cutoff_hours)

    def now(self) -> datetime:
        """Current instant in the operating timezone"""
        current = self._clock() if self._clock else datetime.now(tz=self.tz)
        if current.tzinfo is None:
            raise ValueError("Clock must return timezone-aware datetimes")
        return current.astimezone(self.tz)

    def today(self) -> date:
        return self.now().date()

    def departure_instant(self, departure_date: date, departure_time: time) -> datetime:
        """Departure as an aware datetime; the stored wall time is local"""
        naive_time = departure_time.replace(tzinfo=None)
        return datetime.combine(departure_date, naive_time, tzinfo=self.tz)

    def sailing_departure(self, sailing) -> datetime:
        return self.departure_instant(sailing.departure_date, sailing.departure_time)

    def has_departed(self, sailing, now: Optional[datetime] = None) -> bool:
        now = now or self.now()
        return now >= self.sailing_departure(sailing)

    def is_bookable(self, sailing, now: Optional[datetime] = None) -> bool:
        """True while departure is at least the booking cutoff away"""
        now = now or self.now()
        return self.sailing_departure(sailing) - now >= self.booking_cutoff

    def can_reschedule(self, sailing, now: Optional[datetime] = None) -> bool:
        """True while now + reschedule cutoff is not past departure"""
        now = now or self.now()
        return now + self.reschedule_cutoff <= self.sailing_departure(sailing)

    def time_until_departure(self, sailing, now: Optional[datetime] = None) -> timedelta:
        now = now or self.now()
        return self.sailing_departure(sailing) - now

def get_time_policy() -> TimePolicy:
    """FastAPI dependency; tests override it with a fixed clock"""
    return TimePolicy()
