from datetime import timedelta

import pytest

from src.enums import BookingStatus, Channel
from src.exceptions import (
    InvalidInputError, NoAvailabilityError, PolicyViolationError,
    ReschedulePolicyError, StateConflictError
)
from src.models import BookingChange
from src.capacity.allocator import CapacityAllocator
from src.bookings.reschedule_service import RescheduleService, calculate_reschedule_fee
from src.bookings.schemas import PassengerInfo
from src.refunds.refund_service import RefundService
from src.refunds.schemas import RefundCreateRequest


@pytest.fixture
def reschedule_service(db, time_policy):
    return RescheduleService(db, time_policy)


def _confirmed(booking_service, make_booking, sailing, **kwargs):
    booking = make_booking(sailing, **kwargs)
    return booking_service.confirm_payment(booking.reference, actor="staff")


def test_fee_is_ten_percent_plus_processing():
    assert calculate_reschedule_fee(99000) == 9900 + 1500
    # 10% of 12345 = 1234.5
    assert calculate_reschedule_fee(12345) == 1235 + 1500


def test_reschedule_allowed_30_hours_out(db, booking_service, reschedule_service, make_sailing, make_booking):
    current = make_sailing(hours_ahead=30)
    target = make_sailing(hours_ahead=54)
    booking = _confirmed(booking_service, make_booking, current)

    result = reschedule_service.reschedule(booking.reference, target.id, actor="staff")

    assert result.status == BookingStatus.CONFIRMED
    assert result.previous_sailing_id == current.id
    assert result.new_sailing_id == target.id
    assert result.original_sailing_id == current.id
    assert result.reschedule_fee_cents == calculate_reschedule_fee(booking.fare_subtotal_cents)
    assert result.amount_due_cents == booking.grand_total_cents + result.reschedule_fee_cents

    allocator = CapacityAllocator(db)
    assert allocator.availability(current.id).online.booked == 0
    assert allocator.availability(target.id).online.booked == 1


def test_reschedule_rejected_10_hours_out(booking_service, reschedule_service, make_sailing, make_booking):
    current = make_sailing(hours_ahead=10)
    target = make_sailing(hours_ahead=54)
    booking = _confirmed(booking_service, make_booking, current)

    with pytest.raises(ReschedulePolicyError):
        reschedule_service.reschedule(booking.reference, target.id)


def test_reschedule_window_boundary(booking_service, reschedule_service, make_sailing, make_booking):
    target = make_sailing(hours_ahead=72)
    just_inside = _confirmed(booking_service, make_booking, make_sailing(hours_ahead=24, seconds=1))
    just_outside = _confirmed(booking_service, make_booking, make_sailing(hours_ahead=24, seconds=-1))

    reschedule_service.reschedule(just_inside.reference, target.id)
    with pytest.raises(ReschedulePolicyError):
        reschedule_service.reschedule(just_outside.reference, target.id)


def test_history_passes_through_changed(booking_service, reschedule_service, make_sailing, make_booking):
    booking = _confirmed(booking_service, make_booking, make_sailing(hours_ahead=48))
    target = make_sailing(hours_ahead=72)

    reschedule_service.reschedule(booking.reference, target.id, actor="staff")

    events = booking_service.get_history(booking.reference).events
    assert [(e.from_status, e.to_status) for e in events[-2:]] == [
        (BookingStatus.CONFIRMED, BookingStatus.CHANGED),
        (BookingStatus.CHANGED, BookingStatus.CONFIRMED),
    ]


def test_checked_in_booking_returns_to_checked_in(booking_service, reschedule_service, make_sailing, make_booking):
    booking = _confirmed(booking_service, make_booking, make_sailing(hours_ahead=48))
    booking_service.check_in(booking.reference)
    target = make_sailing(hours_ahead=72)

    result = reschedule_service.reschedule(booking.reference, target.id)

    assert result.status == BookingStatus.CHECKED_IN


def test_original_sailing_kept_across_reschedules(db, booking_service, reschedule_service, make_sailing, make_booking):
    first = make_sailing(hours_ahead=48)
    second = make_sailing(hours_ahead=72)
    third = make_sailing(hours_ahead=96)
    booking = _confirmed(booking_service, make_booking, first)

    reschedule_service.reschedule(booking.reference, second.id)
    result = reschedule_service.reschedule(booking.reference, third.id)

    assert result.original_sailing_id == first.id
    assert result.new_sailing_id == third.id
    booking = booking_service.get_booking(booking.reference)
    assert booking.reschedule_fees_cents == 2 * calculate_reschedule_fee(booking.fare_subtotal_cents)
    assert [(c.from_sailing_id, c.to_sailing_id) for c in booking.changes] == [
        (first.id, second.id), (second.id, third.id)
    ]


def test_full_target_rolls_everything_back(db, booking_service, reschedule_service, make_sailing, make_booking):
    current = make_sailing(hours_ahead=48, online_quota=10)
    target = make_sailing(hours_ahead=72, online_quota=2, online_booked=1)
    booking = _confirmed(booking_service, make_booking, current, passengers=[
        PassengerInfo(full_name="A", fare_category="adult"),
        PassengerInfo(full_name="B", fare_category="adult"),
    ])

    with pytest.raises(NoAvailabilityError) as excinfo:
        reschedule_service.reschedule(booking.reference, target.id)
    assert excinfo.value.available == 1

    booking = booking_service.get_booking(booking.reference)
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.sailing_id == current.id
    assert booking.original_sailing_id is None
    assert booking.reschedule_fees_cents == 0
    assert db.query(BookingChange).count() == 0
    allocator = CapacityAllocator(db)
    assert allocator.availability(current.id).online.booked == 2
    assert allocator.availability(target.id).online.booked == 1


def test_target_must_differ_share_route_and_be_bookable(
    booking_service, reschedule_service, make_sailing, make_booking, other_route
):
    current = make_sailing(hours_ahead=48)
    booking = _confirmed(booking_service, make_booking, current)

    with pytest.raises(InvalidInputError):
        reschedule_service.reschedule(booking.reference, current.id)
    with pytest.raises(PolicyViolationError):
        reschedule_service.reschedule(booking.reference, make_sailing(hours_ahead=72, on_route=other_route).id)
    with pytest.raises(PolicyViolationError):
        reschedule_service.reschedule(booking.reference, make_sailing(hours_ahead=0, minutes=10).id)


@pytest.mark.parametrize("action", ["board", "cancel"])
def test_ineligible_status(booking_service, reschedule_service, make_sailing, make_booking, action):
    booking = _confirmed(booking_service, make_booking, make_sailing(hours_ahead=48))
    if action == "board":
        booking_service.check_in(booking.reference)
        booking_service.board(booking.reference)
    else:
        booking_service.cancel(booking.reference)

    with pytest.raises(StateConflictError):
        reschedule_service.reschedule(booking.reference, make_sailing(hours_ahead=72).id)


def test_open_refund_blocks_reschedule_like_other_actions(db, booking_service, reschedule_service, make_sailing, make_booking):
    booking = _confirmed(booking_service, make_booking, make_sailing(hours_ahead=48))
    RefundService(db, booking_service.time_policy).request_refund(RefundCreateRequest(
        booking_reference=booking.reference, policy_basis="weather_disturbance",
    ))

    with pytest.raises(StateConflictError) as from_reschedule:
        reschedule_service.list_alternatives(booking.reference)
    with pytest.raises(StateConflictError) as from_check_in:
        booking_service.check_in(booking.reference)

    assert from_reschedule.value.to_dict() == from_check_in.value.to_dict()
    assert from_reschedule.value.current_status == "confirmed"


def test_alternatives(db, booking_service, reschedule_service, make_sailing, make_booking, other_route):
    current = make_sailing(hours_ahead=48)
    open_sailing = make_sailing(hours_ahead=72)
    make_sailing(hours_ahead=96, online_quota=1, online_booked=1)
    make_sailing(hours_ahead=0, minutes=10)
    make_sailing(hours_ahead=72, on_route=other_route)
    walk_in_only = make_sailing(hours_ahead=120, online_quota=0, walk_in_quota=10)
    booking = _confirmed(booking_service, make_booking, current)

    options = reschedule_service.list_alternatives(booking.reference)

    assert [a.sailing_id for a in options.alternatives] == [open_sailing.id]
    assert walk_in_only.id not in [a.sailing_id for a in options.alternatives]
    assert options.reschedule_fee_cents == calculate_reschedule_fee(booking.fare_subtotal_cents)
    assert options.alternatives[0].seats_available == 10


def test_walk_in_booking_moves_within_walk_in_pool(db, booking_service, reschedule_service, make_sailing, make_booking):
    current = make_sailing(hours_ahead=48, walk_in_quota=5)
    target = make_sailing(hours_ahead=72, walk_in_quota=5)
    booking = make_booking(current, channel=Channel.WALK_IN)

    reschedule_service.reschedule(booking.reference, target.id)

    allocator = CapacityAllocator(db)
    assert allocator.availability(current.id).walk_in.booked == 0
    assert allocator.availability(target.id).walk_in.booked == 1
    assert allocator.availability(target.id).online.booked == 0
