from typing import Iterable, Optional
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy import or_
from sqlalchemy.orm import Session

from src.config import settings
from src.enums import Channel, FareCategory
from src.exceptions import InvalidInputError
from src.models import FareRule
from src.routes.schemas import FareSchedule, PassengerFareLine, FareBreakdown

HUNDRED = Decimal("100")

def round_half_up(value: Decimal) -> int:
    """Round to the nearest centavo, halves away from zero"""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def price_for_category(base_fare_cents: int, discount_percent: Decimal, category: FareCategory) -> int:
    """Per-passenger price in cents"""
    if category == FareCategory.ADULT:
        return base_fare_cents
    if category == FareCategory.INFANT:
        return 0
    return round_half_up(Decimal(base_fare_cents) * (HUNDRED - Decimal(discount_percent)) / HUNDRED)

def calculate_fare(schedule: FareSchedule, passengers: Iterable, channel: Channel = Channel.ONLINE) -> FareBreakdown:
    """Price an ordered passenger list.

    ``passengers`` items need ``full_name`` and ``fare_category``; the
    category billed is always the one given, never an age-based suggestion.
    """
    lines = []
    for position, passenger in enumerate(passengers):
        category = FareCategory(passenger.fare_category)
        discount = _discount_for(schedule, category)
        lines.append(PassengerFareLine(
            position=position,
            full_name=(passenger.full_name or "").strip(),
            fare_category=category,
            discount_percent=discount,
            price_cents=price_for_category(schedule.base_fare_cents, discount, category),
        ))

    if not lines:
        raise InvalidInputError("At least one passenger is required")

    if channel == Channel.WALK_IN:
        # Walk-ins pay at the booth, so no wallet processing fee
        processing_fee = 0
        platform_fee = schedule.platform_fee_cents if schedule.platform_fee_applies_walk_in else 0
    else:
        processing_fee = schedule.processing_fee_cents
        platform_fee = schedule.platform_fee_cents

    fare_subtotal = sum(line.price_cents for line in lines)
    platform_total = platform_fee * len(lines)

    return FareBreakdown(
        base_fare_cents=schedule.base_fare_cents,
        channel=channel,
        lines=lines,
        fare_subtotal_cents=fare_subtotal,
        platform_fee_per_passenger_cents=platform_fee,
        platform_fee_total_cents=platform_total,
        processing_fee_cents=processing_fee,
        grand_total_cents=fare_subtotal + platform_total + processing_fee,
    )

def age_on(birthdate: date, on_date: date) -> int:
    years = on_date.year - birthdate.year
    if (on_date.month, on_date.day) < (birthdate.month, birthdate.day):
        years -= 1
    return years

def suggest_fare_category(birthdate: date, on_date: date, schedule: FareSchedule) -> FareCategory:
    """Age-band suggestion shown to the user. Never applied to billing."""
    if birthdate > on_date:
        raise InvalidInputError("Birthdate cannot be after the travel date", field="birthdate")
    age = age_on(birthdate, on_date)
    if age <= schedule.infant_max_age:
        return FareCategory.INFANT
    if schedule.child_min_age <= age <= schedule.child_max_age:
        return FareCategory.CHILD
    if age >= schedule.senior_min_age:
        return FareCategory.SENIOR
    return FareCategory.ADULT

def default_fare_schedule(route_id: Optional[int] = None) -> FareSchedule:
    """Configured fallback for routes without a fare rule"""
    return FareSchedule(
        route_id=route_id,
        base_fare_cents=settings.DEFAULT_BASE_FARE_CENTS,
        discount_percents={
            FareCategory.SENIOR: Decimal(settings.DEFAULT_SENIOR_DISCOUNT_PERCENT),
            FareCategory.PWD: Decimal(settings.DEFAULT_PWD_DISCOUNT_PERCENT),
            FareCategory.STUDENT: Decimal(settings.DEFAULT_STUDENT_DISCOUNT_PERCENT),
            FareCategory.CHILD: Decimal(settings.DEFAULT_CHILD_DISCOUNT_PERCENT),
        },
        infant_max_age=settings.DEFAULT_INFANT_MAX_AGE,
        child_min_age=settings.DEFAULT_CHILD_MIN_AGE,
        child_max_age=settings.DEFAULT_CHILD_MAX_AGE,
        senior_min_age=settings.DEFAULT_SENIOR_MIN_AGE,
        platform_fee_cents=settings.PLATFORM_FEE_CENTS_PER_PASSENGER,
        processing_fee_cents=settings.PROCESSING_FEE_CENTS,
        platform_fee_applies_walk_in=settings.PLATFORM_FEE_APPLIES_WALK_IN,
    )

def fare_schedule_from_rule(rule: FareRule) -> FareSchedule:
    return FareSchedule(
        route_id=rule.route_id,
        fare_rule_id=rule.id,
        base_fare_cents=rule.base_fare_cents,
        discount_percents={
            FareCategory.SENIOR: Decimal(str(rule.senior_discount_percent)),
            FareCategory.PWD: Decimal(str(rule.pwd_discount_percent)),
            FareCategory.STUDENT: Decimal(str(rule.student_discount_percent)),
            FareCategory.CHILD: Decimal(str(rule.child_discount_percent)),
        },
        infant_max_age=rule.infant_max_age,
        child_min_age=rule.child_min_age,
        child_max_age=rule.child_max_age,
        senior_min_age=rule.senior_min_age,
        platform_fee_cents=rule.platform_fee_cents,
        processing_fee_cents=rule.processing_fee_cents,
        platform_fee_applies_walk_in=settings.PLATFORM_FEE_APPLIES_WALK_IN,
    )

def _discount_for(schedule: FareSchedule, category: FareCategory) -> Decimal:
    if category == FareCategory.ADULT:
        return Decimal("0")
    if category == FareCategory.INFANT:
        return HUNDRED
    try:
        return Decimal(schedule.discount_percents[category])
    except KeyError:
        raise InvalidInputError(f"No discount configured for fare category '{category.value}'")

class FareCalculationService:
    """Looks up the fare rule in force and prices bookings with it"""

    def __init__(self, db: Session):
        self.db = db

    def get_fare_schedule(self, route_id: int, on_date: date) -> FareSchedule:
        """Most recent rule whose validity window covers ``on_date``"""
        rule = (
            self.db.query(FareRule)
            .filter(FareRule.route_id == route_id)
            .filter(FareRule.valid_from <= on_date)
            .filter(or_(FareRule.valid_until.is_(None), FareRule.valid_until >= on_date))
            .order_by(FareRule.valid_from.desc(), FareRule.id.desc())
            .first()
        )
        if rule is None:
            return default_fare_schedule(route_id)
        return fare_schedule_from_rule(rule)

    def quote(self, route_id: int, on_date: date, passengers: Iterable, channel: Channel = Channel.ONLINE) -> FareBreakdown:
        schedule = self.get_fare_schedule(route_id, on_date)
        return calculate_fare(schedule, passengers, channel)
