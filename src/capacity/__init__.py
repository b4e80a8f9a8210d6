"""
Capacity Module

Per-sailing seat counters for the online and walk-in channels.

Key Components:
- allocator.py: atomic reserve and release
- schemas.py: Pydantic models for seat availability
"""

from .allocator import CapacityAllocator
from .schemas import ChannelAvailability, SailingAvailability

__all__ = [
    "CapacityAllocator",
    "ChannelAvailability",
    "SailingAvailability",
]
