from datetime import date, datetime, time, timedelta, timezone
from types import SimpleNamespace

import pytest

from src.schedules.time_policy import TimePolicy


def _sailing(departs: datetime):
    return SimpleNamespace(departure_date=departs.date(), departure_time=departs.time().replace(tzinfo=None))


def test_departure_is_interpreted_in_manila(time_policy):
    instant = time_policy.departure_instant(date(2025, 3, 10), time(6, 0))

    assert instant.utcoffset() == timedelta(hours=8)
    assert instant.astimezone(timezone.utc) == datetime(2025, 3, 9, 22, 0, tzinfo=timezone.utc)


def test_now_converts_caller_clock_to_operating_zone():
    utc_clock = lambda: datetime(2025, 3, 9, 23, 0, tzinfo=timezone.utc)
    policy = TimePolicy(clock=utc_clock, timezone="Asia/Manila")

    assert policy.now().hour == 7
    assert policy.today() == date(2025, 3, 10)


def test_naive_clock_rejected():
    policy = TimePolicy(clock=lambda: datetime(2025, 3, 10, 8, 0))

    with pytest.raises(ValueError):
        policy.now()


def test_booking_cutoff(time_policy, clock):
    assert time_policy.is_bookable(_sailing(clock() + timedelta(minutes=30)))
    assert not time_policy.is_bookable(_sailing(clock() + timedelta(minutes=29, seconds=59)))


def test_has_departed(time_policy, clock):
    assert time_policy.has_departed(_sailing(clock()))
    assert not time_policy.has_departed(_sailing(clock() + timedelta(seconds=1)))


def test_reschedule_window_boundary(time_policy, clock):
    assert time_policy.can_reschedule(_sailing(clock() + timedelta(hours=24)))
    assert time_policy.can_reschedule(_sailing(clock() + timedelta(hours=24, seconds=1)))
    assert not time_policy.can_reschedule(_sailing(clock() + timedelta(hours=24) - timedelta(seconds=1)))


def test_time_until_departure(time_policy, clock):
    sailing = _sailing(clock() + timedelta(hours=30))

    assert time_policy.time_until_departure(sailing) == timedelta(hours=30)
    clock.advance(hours=6)
    assert time_policy.time_until_departure(sailing) == timedelta(hours=24)
