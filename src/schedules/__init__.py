"""
Sailings Module

Scheduled departures, their bookability and the single operating timezone
every cutoff is computed in.

Key Components:
- time_policy.py: booking and reschedule cutoffs against an injectable clock
- service.py: sailing creation, listing and reschedule alternatives
- router.py: FastAPI endpoints for sailings and seat availability
- schemas.py: Pydantic models for sailing requests and summaries
"""

from .router import router
from .service import SailingService
from .time_policy import TimePolicy, get_time_policy

__all__ = [
    "router",
    "SailingService",
    "TimePolicy",
    "get_time_policy",
]
