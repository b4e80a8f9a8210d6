from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.database import Base, get_db
from src.enums import Channel, SailingStatus
from src.models import Route, Sailing
from src.bookings.booking_service import BookingService
from src.bookings.schemas import BookingCreateRequest, PassengerInfo
from src.schedules.time_policy import TimePolicy, get_time_policy

MANILA = ZoneInfo("Asia/Manila")


class FixedClock:
    """Clock the tests move by hand"""

    def __init__(self, now: datetime):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FixedClock(datetime(2025, 3, 10, 8, 0, tzinfo=MANILA))


@pytest.fixture
def time_policy(clock):
    return TimePolicy(clock=clock, timezone="Asia/Manila", booking_cutoff_minutes=30, reschedule_cutoff_hours=24)


@pytest.fixture
def route(db):
    r = Route(code="SIA-SUR", origin="Siargao (Dapa)", destination="Surigao City", display_name="Siargao → Surigao")
    db.add(r)
    db.commit()
    db.refresh(r)
    return r


@pytest.fixture
def other_route(db):
    r = Route(code="DIN-SUR", origin="Dinagat (San Jose)", destination="Surigao City", display_name="Dinagat → Surigao")
    db.add(r)
    db.commit()
    db.refresh(r)
    return r


@pytest.fixture
def make_sailing(db, clock, route):
    """Sailing departing ``hours_ahead`` after the fixed clock"""

    def _make(hours_ahead=48, online_quota=10, walk_in_quota=5, online_booked=0, walk_in_booked=0,
              on_route=None, status=SailingStatus.SCHEDULED, **delta):
        departs = clock() + timedelta(hours=hours_ahead, **delta)
        sailing = Sailing(
            route_id=(on_route or route).id,
            vessel_name="MV Siargao Express",
            departure_date=departs.date(),
            departure_time=departs.time().replace(tzinfo=None),
            status=status,
            online_quota=online_quota,
            online_booked=online_booked,
            walk_in_quota=walk_in_quota,
            walk_in_booked=walk_in_booked,
        )
        db.add(sailing)
        db.commit()
        db.refresh(sailing)
        return sailing

    return _make


@pytest.fixture
def booking_service(db, time_policy):
    return BookingService(db, time_policy)


@pytest.fixture
def make_booking(booking_service):
    """Online adult booking unless told otherwise"""

    def _make(sailing, passengers=None, channel=Channel.ONLINE, **contact):
        passengers = passengers or [PassengerInfo(full_name="Juan Dela Cruz", fare_category="adult")]
        request = BookingCreateRequest(
            sailing_id=sailing.id,
            channel=channel,
            passengers=passengers,
            contact_full_name=contact.get("contact_full_name", "Juan Dela Cruz"),
            contact_email=contact.get("contact_email", "juan@example.com"),
            contact_mobile=contact.get("contact_mobile", "09171234567"),
            contact_address=contact.get("contact_address", "Dapa, Siargao"),
            actor=contact.get("actor", "passenger"),
        )
        return booking_service.create_booking(request)

    return _make


@pytest.fixture
def client(session_factory, time_policy):
    from src.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_time_policy] = lambda: time_policy
    yield TestClient(app)
    app.dependency_overrides.clear()
