"""
Fare Module

Prices bookings from the fare rule in force on a route.

Key Components:
- fare_service.py: per-category pricing, fees, totals and age-band suggestions
- router.py: FastAPI endpoints for fare quotes and category suggestions
- schemas.py: Pydantic models for fare schedules and breakdowns
"""

from .router import router
from .fare_service import (
    FareCalculationService, calculate_fare, price_for_category,
    suggest_fare_category, round_half_up
)
from .schemas import FareSchedule, FareBreakdown, PassengerFareLine

__all__ = [
    "router",
    "FareCalculationService",
    "calculate_fare",
    "price_for_category",
    "suggest_fare_category",
    "round_half_up",
    "FareSchedule",
    "FareBreakdown",
    "PassengerFareLine",
]
