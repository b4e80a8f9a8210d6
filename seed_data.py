#!/usr/bin/env python3

from datetime import time, timedelta

from src.config import settings
from src.database import Base, SessionLocal, engine
from src.enums import SailingStatus
from src.models import (
    Route, FareRule, Sailing, Booking, Passenger, BookingStatusEvent,
    BookingChange, Refund
)
from src.schedules.time_policy import TimePolicy

ROUTES = [
    ("SIA-SUR", "Siargao (Dapa)", "Surigao City"),
    ("SUR-SIA", "Surigao City", "Siargao (Dapa)"),
    ("DIN-SUR", "Dinagat (San Jose)", "Surigao City"),
    ("SUR-DIN", "Surigao City", "Dinagat (San Jose)"),
]

# Vessel and departure times per route
DEPARTURES = {
    "SIA-SUR": [("MV Siargao Express", time(5, 30)), ("MV Island Runner", time(12, 0))],
    "SUR-SIA": [("MV Siargao Express", time(9, 0)), ("MV Island Runner", time(15, 30))],
    "DIN-SUR": [("MV Dinagat Star", time(6, 0))],
    "SUR-DIN": [("MV Dinagat Star", time(13, 0))],
}

DAYS_AHEAD = 7

def create_seed_data():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    today = TimePolicy().today()

    try:
        print("🚀 Creating seed data for the ferry booking engine...")

        # Clear existing data (in reverse dependency order)
        print("Clearing existing data...")
        db.query(Refund).delete()
        db.query(BookingChange).delete()
        db.query(BookingStatusEvent).delete()
        db.query(Passenger).delete()
        db.query(Booking).delete()
        db.query(Sailing).delete()
        db.query(FareRule).delete()
        db.query(Route).delete()

        # 1. Create Routes
        print("Creating routes...")
        routes = [
            Route(code=code, origin=origin, destination=destination, display_name=f"{origin} → {destination}")
            for code, origin, destination in ROUTES
        ]
        db.add_all(routes)
        db.flush()

        # 2. Create Fare Rules
        print("Creating fare rules...")
        fare_rules = [
            FareRule(
                route_id=route.id,
                base_fare_cents=settings.DEFAULT_BASE_FARE_CENTS,
                senior_discount_percent=settings.DEFAULT_SENIOR_DISCOUNT_PERCENT,
                pwd_discount_percent=settings.DEFAULT_PWD_DISCOUNT_PERCENT,
                student_discount_percent=settings.DEFAULT_STUDENT_DISCOUNT_PERCENT,
                child_discount_percent=settings.DEFAULT_CHILD_DISCOUNT_PERCENT,
                platform_fee_cents=settings.PLATFORM_FEE_CENTS_PER_PASSENGER,
                processing_fee_cents=settings.PROCESSING_FEE_CENTS,
                valid_from=today,
            )
            for route in routes
        ]
        db.add_all(fare_rules)

        # 3. Create Sailings
        print(f"Creating sailings for the next {DAYS_AHEAD} days...")
        sailings = []
        for route in routes:
            for offset in range(DAYS_AHEAD):
                for vessel_name, departure_time in DEPARTURES[route.code]:
                    sailings.append(Sailing(
                        route_id=route.id,
                        vessel_name=vessel_name,
                        departure_date=today + timedelta(days=offset),
                        departure_time=departure_time,
                        status=SailingStatus.SCHEDULED,
                        online_quota=150,
                        online_booked=0,
                        walk_in_quota=50,
                        walk_in_booked=0,
                    ))
        db.add_all(sailings)

        # Commit all changes
        db.commit()
        print("✅ Successfully created seed data!")
        print(f"Created:")
        print(f"  - {len(routes)} routes")
        print(f"  - {len(fare_rules)} fare rules")
        print(f"  - {len(sailings)} sailings")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
