from sqlalchemy import (
    Column, Integer, BigInteger, String, Boolean, DateTime, Date, Time, Text,
    ForeignKey, Numeric, JSON, CheckConstraint, Enum as SAEnum
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from src.database import Base
from src.enums import (
    Channel, SailingStatus, FareCategory, DiscountIdStatus, BookingStatus,
    RefundStatus, RefundBasis
)

# SQLite only auto-increments INTEGER PRIMARY KEY
BigIntId = BigInteger().with_variant(Integer, "sqlite")

def _enum(enum_cls):
    return SAEnum(
        enum_cls,
        native_enum=False,
        length=32,
        validate_strings=True,
        values_callable=lambda members: [m.value for m in members],
    )

# ================================
# Routes & Fare Rules
# ================================
class Route(Base):
    __tablename__ = "routes"

    id = Column(BigIntId, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    origin = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    display_name = Column(String(255))
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    fare_rules = relationship("FareRule", back_populates="route")
    sailings = relationship("Sailing", back_populates="route")

class FareRule(Base):
    __tablename__ = "fare_rules"

    id = Column(BigIntId, primary_key=True, index=True)
    route_id = Column(BigInteger, ForeignKey("routes.id"), nullable=False, index=True)
    base_fare_cents = Column(Integer, nullable=False)
    senior_discount_percent = Column(Numeric(5, 2), nullable=False, default=20)
    pwd_discount_percent = Column(Numeric(5, 2), nullable=False, default=20)
    student_discount_percent = Column(Numeric(5, 2), nullable=False, default=20)
    child_discount_percent = Column(Numeric(5, 2), nullable=False, default=50)
    infant_max_age = Column(Integer, nullable=False, default=2)
    child_min_age = Column(Integer, nullable=False, default=3)
    child_max_age = Column(Integer, nullable=False, default=10)
    senior_min_age = Column(Integer, nullable=False, default=60)
    platform_fee_cents = Column(Integer, nullable=False, default=2000)
    processing_fee_cents = Column(Integer, nullable=False, default=1500)
    valid_from = Column(Date, nullable=False)
    valid_until = Column(Date)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    route = relationship("Route", back_populates="fare_rules")

# ================================
# Sailings (scheduled departures)
# ================================
class Sailing(Base):
    __tablename__ = "sailings"
    __table_args__ = (
        CheckConstraint("online_booked >= 0 AND online_booked <= online_quota", name="ck_sailings_online_capacity"),
        CheckConstraint("walk_in_booked >= 0 AND walk_in_booked <= walk_in_quota", name="ck_sailings_walk_in_capacity"),
    )

    id = Column(BigIntId, primary_key=True, index=True)
    route_id = Column(BigInteger, ForeignKey("routes.id"), nullable=False, index=True)
    vessel_name = Column(String(255))
    departure_date = Column(Date, nullable=False, index=True)
    departure_time = Column(Time, nullable=False)
    status = Column(_enum(SailingStatus), nullable=False, default=SailingStatus.SCHEDULED, index=True)
    # Counters are written only by src.capacity.allocator
    online_quota = Column(Integer, nullable=False, default=0)
    online_booked = Column(Integer, nullable=False, default=0)
    walk_in_quota = Column(Integer, nullable=False, default=0)
    walk_in_booked = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    route = relationship("Route", back_populates="sailings")
    bookings = relationship("Booking", back_populates="sailing", foreign_keys="Booking.sailing_id")

# ================================
# Bookings & Passengers
# ================================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(BigIntId, primary_key=True, index=True)
    reference = Column(String(16), unique=True, nullable=False, index=True)
    sailing_id = Column(BigInteger, ForeignKey("sailings.id"), nullable=False, index=True)
    original_sailing_id = Column(BigInteger, ForeignKey("sailings.id"))
    channel = Column(_enum(Channel), nullable=False, index=True)
    status = Column(_enum(BookingStatus), nullable=False, index=True)

    contact_full_name = Column(String(255), nullable=False)
    contact_email = Column(String(255), index=True)
    contact_mobile = Column(String(50))
    contact_address = Column(Text)
    payment_reference = Column(String(100))

    # Fare breakdown, immutable after creation
    passenger_count = Column(Integer, nullable=False)
    base_fare_cents = Column(Integer, nullable=False)
    discount_percents = Column(JSON, default=dict)
    fare_subtotal_cents = Column(Integer, nullable=False)
    platform_fee_per_passenger_cents = Column(Integer, nullable=False)
    platform_fee_total_cents = Column(Integer, nullable=False)
    processing_fee_cents = Column(Integer, nullable=False)
    grand_total_cents = Column(Integer, nullable=False)

    reschedule_fees_cents = Column(Integer, nullable=False, default=0)
    seats_released = Column(Boolean, nullable=False, default=False)
    created_by = Column(String(255))

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    confirmed_at = Column(DateTime(timezone=True))
    checked_in_at = Column(DateTime(timezone=True))
    boarded_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    cancelled_at = Column(DateTime(timezone=True))
    refunded_at = Column(DateTime(timezone=True))

    # Relationships
    sailing = relationship("Sailing", back_populates="bookings", foreign_keys=[sailing_id])
    original_sailing = relationship("Sailing", foreign_keys=[original_sailing_id])
    passengers = relationship("Passenger", back_populates="booking", order_by="Passenger.position", cascade="all, delete-orphan")
    status_events = relationship("BookingStatusEvent", back_populates="booking", order_by="BookingStatusEvent.id")
    changes = relationship("BookingChange", back_populates="booking", order_by="BookingChange.id")
    refunds = relationship("Refund", back_populates="booking", order_by="Refund.id")

class Passenger(Base):
    __tablename__ = "booking_passengers"

    id = Column(BigIntId, primary_key=True, index=True)
    booking_id = Column(BigInteger, ForeignKey("bookings.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    full_name = Column(String(255), nullable=False)
    fare_category = Column(_enum(FareCategory), nullable=False)
    discount_percent = Column(Numeric(5, 2), nullable=False, default=0)
    birthdate = Column(Date)
    gender = Column(String(20))
    nationality = Column(String(100))
    discount_id_status = Column(_enum(DiscountIdStatus))
    price_cents = Column(Integer, nullable=False)
    ticket_number = Column(String(16), unique=True)
    checked_in_at = Column(DateTime(timezone=True))
    boarded_at = Column(DateTime(timezone=True))

    # Relationships
    booking = relationship("Booking", back_populates="passengers")

class BookingStatusEvent(Base):
    """Append-only status history"""
    __tablename__ = "booking_status_events"

    id = Column(BigIntId, primary_key=True, index=True)
    booking_id = Column(BigInteger, ForeignKey("bookings.id"), nullable=False, index=True)
    from_status = Column(_enum(BookingStatus))
    to_status = Column(_enum(BookingStatus), nullable=False)
    actor = Column(String(255))
    note = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    # Relationships
    booking = relationship("Booking", back_populates="status_events")

class BookingChange(Base):
    """One row per reschedule"""
    __tablename__ = "booking_changes"

    id = Column(BigIntId, primary_key=True, index=True)
    booking_id = Column(BigInteger, ForeignKey("bookings.id"), nullable=False, index=True)
    from_sailing_id = Column(BigInteger, ForeignKey("sailings.id"), nullable=False)
    to_sailing_id = Column(BigInteger, ForeignKey("sailings.id"), nullable=False)
    additional_fee_cents = Column(Integer, nullable=False)
    previous_status = Column(_enum(BookingStatus), nullable=False)
    changed_by = Column(String(255))
    created_at = Column(DateTime(timezone=True), nullable=False)

    # Relationships
    booking = relationship("Booking", back_populates="changes")

# ================================
# Refunds
# ================================
class Refund(Base):
    __tablename__ = "refunds"
    __table_args__ = (
        CheckConstraint("requested_amount_cents >= 0", name="ck_refunds_requested_amount"),
        CheckConstraint("approved_amount_cents IS NULL OR approved_amount_cents <= requested_amount_cents", name="ck_refunds_approved_amount"),
    )

    id = Column(BigIntId, primary_key=True, index=True)
    booking_id = Column(BigInteger, ForeignKey("bookings.id"), nullable=False, index=True)
    requested_amount_cents = Column(Integer, nullable=False)
    approved_amount_cents = Column(Integer)
    policy_basis = Column(_enum(RefundBasis), nullable=False)
    notes = Column(Text)
    status = Column(_enum(RefundStatus), nullable=False, index=True)
    gcash_reference = Column(String(100))
    admin_notes = Column(Text)
    rejection_reason = Column(Text)

    requested_by = Column(String(255))
    reviewed_by = Column(String(255))
    approved_by = Column(String(255))
    rejected_by = Column(String(255))
    processed_by = Column(String(255))
    requested_at = Column(DateTime(timezone=True), nullable=False, index=True)
    reviewed_at = Column(DateTime(timezone=True))
    approved_at = Column(DateTime(timezone=True))
    rejected_at = Column(DateTime(timezone=True))
    processed_at = Column(DateTime(timezone=True))

    # Relationships
    booking = relationship("Booking", back_populates="refunds")
