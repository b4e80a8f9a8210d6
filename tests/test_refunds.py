import pytest

from src.enums import BookingStatus, RefundStatus
from src.exceptions import InvalidInputError, PolicyViolationError, StateConflictError
from src.capacity.allocator import CapacityAllocator
from src.bookings.reschedule_service import RescheduleService
from src.bookings.schemas import PassengerInfo
from src.refunds.refund_service import RefundService
from src.refunds.schemas import RefundCreateRequest
from src.refunds.workflow import REFUND_TRANSITIONS, ensure_transition

R = RefundStatus


@pytest.fixture
def refund_service(db, time_policy):
    return RefundService(db, time_policy)


@pytest.fixture
def confirmed_booking(booking_service, make_sailing, make_booking):
    booking = make_booking(make_sailing(online_quota=10), passengers=[
        PassengerInfo(full_name="Juan", fare_category="adult"),
        PassengerInfo(full_name="Lola", fare_category="senior"),
    ])
    return booking_service.confirm_payment(booking.reference, actor="staff")


def _request(booking, basis="weather_disturbance", amount=None):
    return RefundCreateRequest(
        booking_reference=booking.reference,
        policy_basis=basis,
        requested_amount_cents=amount,
        actor="passenger",
    )


def test_final_statuses_have_no_exits():
    assert REFUND_TRANSITIONS[R.PROCESSED] == frozenset()
    assert REFUND_TRANSITIONS[R.REJECTED] == frozenset()
    with pytest.raises(StateConflictError):
        ensure_transition(R.REQUESTED, R.PROCESSED)
    with pytest.raises(StateConflictError):
        ensure_transition(R.APPROVED, R.REJECTED)


def test_requested_amount_defaults_to_grand_total(refund_service, confirmed_booking):
    refund = refund_service.request_refund(_request(confirmed_booking))

    assert refund.status == R.REQUESTED
    assert refund.requested_amount_cents == confirmed_booking.grand_total_cents == 104500


def test_only_weather_or_vessel_cancellation(refund_service, confirmed_booking):
    with pytest.raises(PolicyViolationError) as excinfo:
        refund_service.request_refund(_request(confirmed_booking, basis="change_of_plans"))

    assert excinfo.value.context["allowed_reasons"] == ["weather_disturbance", "vessel_cancellation"]
    assert refund_service.request_refund(_request(confirmed_booking, basis="vessel_cancellation"))


def test_requested_amount_cannot_exceed_total(refund_service, confirmed_booking):
    with pytest.raises(PolicyViolationError):
        refund_service.request_refund(_request(confirmed_booking, amount=104501))


def test_full_chain_refunds_booking_only_after_processing(db, booking_service, refund_service, confirmed_booking):
    refund = refund_service.request_refund(_request(confirmed_booking))
    refund_service.start_review(refund.id, actor="admin")
    refund = refund_service.approve(refund.id, approved_amount_cents=refund.requested_amount_cents, actor="admin")

    assert refund.status == R.APPROVED
    assert refund.approved_amount_cents == 104500
    assert booking_service.get_booking(confirmed_booking.reference).status == BookingStatus.CONFIRMED

    refund = refund_service.process(refund.id, gcash_reference="GC-REF-001", actor="admin")

    assert refund.status == R.PROCESSED
    assert refund.processed_at is not None
    assert refund_service.to_response(refund).booking_status == BookingStatus.REFUNDED
    booking = booking_service.get_booking(confirmed_booking.reference)
    assert booking.status == BookingStatus.REFUNDED
    assert booking.seats_released
    assert booking.refunded_at is not None
    assert CapacityAllocator(db).availability(booking.sailing_id).online.booked == 0


def test_approval_above_total_rejected(refund_service, confirmed_booking):
    refund = refund_service.request_refund(_request(confirmed_booking))

    with pytest.raises(PolicyViolationError):
        refund_service.approve(refund.id, approved_amount_cents=104501)
    assert refund_service.get_refund(refund.id).status == R.REQUESTED


def test_approval_above_requested_rejected(refund_service, confirmed_booking):
    refund = refund_service.request_refund(_request(confirmed_booking, amount=50000))

    with pytest.raises(PolicyViolationError):
        refund_service.approve(refund.id, approved_amount_cents=60000)

    refund = refund_service.approve(refund.id, approved_amount_cents=40000)
    assert refund.requested_amount_cents == 50000
    assert refund.approved_amount_cents == 40000


def test_negative_approval_rejected(refund_service, confirmed_booking):
    refund = refund_service.request_refund(_request(confirmed_booking))

    with pytest.raises(InvalidInputError):
        refund_service.approve(refund.id, approved_amount_cents=-1)


def test_reject_requires_reason(refund_service, confirmed_booking):
    refund = refund_service.request_refund(_request(confirmed_booking))

    with pytest.raises(InvalidInputError):
        refund_service.reject(refund.id, reason="   ")

    refund = refund_service.reject(refund.id, reason="Sailing went ahead as scheduled", actor="admin")
    assert refund.status == R.REJECTED
    assert refund.rejection_reason == "Sailing went ahead as scheduled"


def test_process_requires_transfer_reference_and_approval(refund_service, confirmed_booking):
    refund = refund_service.request_refund(_request(confirmed_booking))

    with pytest.raises(StateConflictError):
        refund_service.process(refund.id, gcash_reference="GC-1")

    refund_service.approve(refund.id)
    with pytest.raises(InvalidInputError):
        refund_service.process(refund.id, gcash_reference="")


def test_one_open_refund_per_booking(refund_service, confirmed_booking):
    refund = refund_service.request_refund(_request(confirmed_booking))

    with pytest.raises(StateConflictError):
        refund_service.request_refund(_request(confirmed_booking))

    refund_service.reject(refund.id, reason="Duplicate")
    assert refund_service.request_refund(_request(confirmed_booking)).status == R.REQUESTED


def test_open_refund_blocks_booking_actions(db, time_policy, booking_service, refund_service, confirmed_booking, make_sailing):
    refund_service.request_refund(_request(confirmed_booking))

    with pytest.raises(StateConflictError):
        booking_service.cancel(confirmed_booking.reference)
    with pytest.raises(StateConflictError):
        booking_service.check_in(confirmed_booking.reference)
    with pytest.raises(StateConflictError):
        RescheduleService(db, time_policy).reschedule(confirmed_booking.reference, make_sailing(hours_ahead=96).id)


def test_cancelled_booking_not_refundable(booking_service, refund_service, confirmed_booking):
    booking_service.cancel(confirmed_booking.reference)

    with pytest.raises(StateConflictError):
        refund_service.request_refund(_request(confirmed_booking))


def test_boarded_booking_is_refundable(booking_service, refund_service, confirmed_booking):
    booking_service.check_in(confirmed_booking.reference)
    booking_service.board(confirmed_booking.reference)

    refund = refund_service.request_refund(_request(confirmed_booking, basis="weather_disturbance"))
    refund = refund_service.approve(refund.id)
    refund_service.process(refund.id, gcash_reference="GC-2")

    assert booking_service.get_booking(confirmed_booking.reference).status == BookingStatus.REFUNDED


def test_admin_queue_filters_by_status(refund_service, booking_service, make_sailing, make_booking):
    first = booking_service.confirm_payment(make_booking(make_sailing()).reference)
    second = booking_service.confirm_payment(make_booking(make_sailing()).reference)
    a = refund_service.request_refund(_request(first))
    b = refund_service.request_refund(_request(second))
    refund_service.start_review(b.id)

    assert [r.id for r in refund_service.list_refunds(R.REQUESTED)] == [a.id]
    assert [r.id for r in refund_service.list_refunds(R.UNDER_REVIEW)] == [b.id]
    assert len(refund_service.list_refunds()) == 2
