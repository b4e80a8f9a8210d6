"""Closed status and category values shared by models, schemas and services"""

from enum import Enum


class Channel(str, Enum):
    """Seat pool a booking draws from"""
    ONLINE = "online"
    WALK_IN = "walk_in"


class SailingStatus(str, Enum):
    SCHEDULED = "scheduled"
    DEPARTED = "departed"
    CANCELLED = "cancelled"


class FareCategory(str, Enum):
    """Passenger fare category"""
    ADULT = "adult"
    SENIOR = "senior"
    PWD = "pwd"
    STUDENT = "student"
    CHILD = "child"
    INFANT = "infant"

    @property
    def requires_discount_id(self) -> bool:
        return self in (FareCategory.SENIOR, FareCategory.PWD, FareCategory.STUDENT)


class DiscountIdStatus(str, Enum):
    PENDING = "pending"
    UPLOADED = "uploaded"
    WAIVED = "waived"


class BookingStatus(str, Enum):
    """Booking lifecycle status"""
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    BOARDED = "boarded"
    COMPLETED = "completed"
    CHANGED = "changed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REFUNDED)


class RefundStatus(str, Enum):
    """Refund workflow status"""
    REQUESTED = "requested"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    PROCESSED = "processed"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in (RefundStatus.PROCESSED, RefundStatus.REJECTED)

    @property
    def is_open(self) -> bool:
        """Still on its way to a payout"""
        return not self.is_terminal


class RefundBasis(str, Enum):
    """Policy grounds a refund may be requested on"""
    WEATHER_DISTURBANCE = "weather_disturbance"
    VESSEL_CANCELLATION = "vessel_cancellation"
