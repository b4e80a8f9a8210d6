from datetime import date
from decimal import Decimal

import pytest

from src.enums import Channel, FareCategory
from src.exceptions import InvalidInputError
from src.models import FareRule
from src.routes.fare_service import (
    FareCalculationService, calculate_fare, default_fare_schedule,
    price_for_category, round_half_up, suggest_fare_category
)
from src.routes.schemas import FareQuotePassenger


def _pax(*categories):
    return [FareQuotePassenger(full_name=f"Passenger {i}", fare_category=c) for i, c in enumerate(categories)]


def test_adult_and_senior_online_total():
    schedule = default_fare_schedule()
    breakdown = calculate_fare(schedule, _pax("adult", "senior"), Channel.ONLINE)

    assert [line.price_cents for line in breakdown.lines] == [55000, 44000]
    assert breakdown.fare_subtotal_cents == 99000
    assert breakdown.platform_fee_total_cents == 4000
    assert breakdown.processing_fee_cents == 1500
    assert breakdown.grand_total_cents == 104500


def test_totals_reproduce_from_lines():
    schedule = default_fare_schedule()
    breakdown = calculate_fare(schedule, _pax("adult", "child", "infant", "pwd", "student"), Channel.ONLINE)

    assert breakdown.verify()
    assert breakdown.fare_subtotal_cents == sum(line.price_cents for line in breakdown.lines)
    assert breakdown.grand_total_cents == (
        breakdown.fare_subtotal_cents + breakdown.platform_fee_total_cents + breakdown.processing_fee_cents
    )


def test_infant_is_free_and_adult_pays_base():
    assert price_for_category(55000, Decimal("20"), FareCategory.INFANT) == 0
    assert price_for_category(55000, Decimal("20"), FareCategory.ADULT) == 55000


def test_discount_rounds_half_up():
    # 12345 * 50% = 6172.5
    assert price_for_category(12345, Decimal("50"), FareCategory.CHILD) == 6173
    assert round_half_up(Decimal("0.5")) == 1
    assert round_half_up(Decimal("2.4999")) == 2


def test_infant_still_pays_platform_fee():
    schedule = default_fare_schedule()
    breakdown = calculate_fare(schedule, _pax("infant"), Channel.ONLINE)

    assert breakdown.lines[0].price_cents == 0
    assert breakdown.platform_fee_total_cents == 2000
    assert breakdown.grand_total_cents == 3500


def test_walk_in_has_no_processing_fee():
    schedule = default_fare_schedule()
    breakdown = calculate_fare(schedule, _pax("adult", "senior"), Channel.WALK_IN)

    assert breakdown.processing_fee_cents == 0
    assert breakdown.platform_fee_total_cents == 4000
    assert breakdown.grand_total_cents == 103000


def test_walk_in_platform_fee_can_be_waived():
    schedule = default_fare_schedule().model_copy(update={"platform_fee_applies_walk_in": False})
    breakdown = calculate_fare(schedule, _pax("adult"), Channel.WALK_IN)

    assert breakdown.platform_fee_total_cents == 0
    assert breakdown.grand_total_cents == 55000


def test_empty_passenger_list_rejected():
    with pytest.raises(InvalidInputError):
        calculate_fare(default_fare_schedule(), [], Channel.ONLINE)


def test_age_suggestion_bands():
    schedule = default_fare_schedule()
    on = date(2025, 3, 10)

    assert suggest_fare_category(date(2023, 6, 1), on, schedule) == FareCategory.INFANT
    assert suggest_fare_category(date(2018, 3, 10), on, schedule) == FareCategory.CHILD
    assert suggest_fare_category(date(1990, 1, 1), on, schedule) == FareCategory.ADULT
    assert suggest_fare_category(date(1965, 3, 10), on, schedule) == FareCategory.SENIOR
    # Turns 60 tomorrow
    assert suggest_fare_category(date(1965, 3, 11), on, schedule) == FareCategory.ADULT


def test_age_suggestion_rejects_future_birthdate():
    with pytest.raises(InvalidInputError):
        suggest_fare_category(date(2025, 3, 11), date(2025, 3, 10), default_fare_schedule())


def test_billing_uses_chosen_category_not_age():
    # A 70 year old booked as adult pays the adult fare
    passenger = FareQuotePassenger(full_name="Lola", fare_category="adult")
    breakdown = calculate_fare(default_fare_schedule(), [passenger], Channel.ONLINE)

    assert breakdown.lines[0].fare_category == FareCategory.ADULT
    assert breakdown.lines[0].price_cents == 55000


def test_fare_rule_in_force_is_used(db, route):
    db.add(FareRule(
        route_id=route.id, base_fare_cents=60000, senior_discount_percent=20,
        pwd_discount_percent=20, student_discount_percent=20, child_discount_percent=50,
        platform_fee_cents=2000, processing_fee_cents=1500,
        valid_from=date(2025, 1, 1), valid_until=date(2025, 2, 28),
    ))
    db.add(FareRule(
        route_id=route.id, base_fare_cents=65000, senior_discount_percent=30,
        pwd_discount_percent=20, student_discount_percent=20, child_discount_percent=50,
        platform_fee_cents=2500, processing_fee_cents=1500,
        valid_from=date(2025, 3, 1),
    ))
    db.commit()

    service = FareCalculationService(db)
    march = service.get_fare_schedule(route.id, date(2025, 3, 10))
    february = service.get_fare_schedule(route.id, date(2025, 2, 10))

    assert march.base_fare_cents == 65000
    assert march.discount_percents[FareCategory.SENIOR] == Decimal("30")
    assert february.base_fare_cents == 60000


def test_route_without_rule_falls_back_to_default(db, route):
    schedule = FareCalculationService(db).get_fare_schedule(route.id, date(2025, 3, 10))

    assert schedule.fare_rule_id is None
    assert schedule.base_fare_cents == 55000
