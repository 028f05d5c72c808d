"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 1 admin, 3 company and 5 driver accounts
  - the matching company and driver profiles
  - 6 sample trips (mix of pending, assigned, in_progress, completed)
  - a couple of pending trip requests in both directions
"""

import asyncio
from datetime import date, datetime, time, timedelta

from sqlalchemy import text

from src.domain.enums import (
    RequestStatus,
    RequestType,
    TripStatus,
    UserRole,
    VehicleType,
)
from src.infrastructure.database import async_session_factory, engine
from src.infrastructure.models import (
    CompanyModel,
    DriverModel,
    TripModel,
    TripRequestModel,
    UserModel,
)


COMPANIES = [
    {"email": "ops@sunlinetours.example", "company_name": "Sunline Tours", "contact_person": "Lena Ortiz"},
    {"email": "desk@bluebay.example", "company_name": "Blue Bay Travel", "contact_person": "Omar Haddad"},
    {"email": "info@atlasevents.example", "company_name": "Atlas Events", "contact_person": "Mira Kovac"},
]

DRIVERS = [
    {"email": "sam.reyes@example.com", "first_name": "Sam", "last_name": "Reyes", "vehicle_type": VehicleType.SEDAN, "vehicle_plate": "34 AB 101", "location": "Airport"},
    {"email": "nina.berg@example.com", "first_name": "Nina", "last_name": "Berg", "vehicle_type": VehicleType.SEDAN, "vehicle_plate": "34 AB 202", "location": "Airport"},
    {"email": "ali.demir@example.com", "first_name": "Ali", "last_name": "Demir", "vehicle_type": VehicleType.VAN, "vehicle_plate": "34 CD 303", "location": "Harbour"},
    {"email": "joe.park@example.com", "first_name": "Joe", "last_name": "Park", "vehicle_type": VehicleType.SUV, "vehicle_plate": "34 EF 404", "location": None},
    {"email": "eva.lund@example.com", "first_name": "Eva", "last_name": "Lund", "vehicle_type": VehicleType.BUS, "vehicle_plate": "34 GH 505", "location": None},
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Accounts ──────────────────────────────────────────────────
        session.add(UserModel(email="admin@example.com", role=UserRole.ADMIN, is_approved=True))

        companies = []
        for c in COMPANIES:
            user = UserModel(email=c["email"], role=UserRole.COMPANY, is_approved=True)
            session.add(user)
            await session.flush()
            company = CompanyModel(
                user_id=user.id,
                company_name=c["company_name"],
                contact_person=c["contact_person"],
            )
            session.add(company)
            companies.append(company)

        tomorrow = date.today() + timedelta(days=1)
        shift_start = datetime.combine(tomorrow, time(5, 0))

        drivers = []
        for d in DRIVERS:
            user = UserModel(email=d["email"], role=UserRole.DRIVER, is_approved=True)
            session.add(user)
            await session.flush()
            driver = DriverModel(
                user_id=user.id,
                first_name=d["first_name"],
                last_name=d["last_name"],
                vehicle_type=d["vehicle_type"],
                vehicle_plate=d["vehicle_plate"],
                current_location=d["location"],
                available_from=shift_start if d["location"] else None,
                available_to=shift_start + timedelta(hours=15) if d["location"] else None,
            )
            session.add(driver)
            drivers.append(driver)
        await session.flush()
        print(f"  Created {len(companies)} companies and {len(drivers)} drivers")

        # ── Trips ─────────────────────────────────────────────────────
        trips_data = [
            (companies[0], None, "Airport", "Old Town Hotel", time(9, 30), VehicleType.SEDAN, TripStatus.PENDING),
            (companies[0], None, "Harbour", "Conference Centre", time(14, 0), VehicleType.VAN, TripStatus.PENDING),
            (companies[1], drivers[0], "Airport", "Beach Resort", time(7, 15), VehicleType.SEDAN, TripStatus.ASSIGNED),
            (companies[1], drivers[3], "Central Station", "Airport", time(11, 0), VehicleType.SUV, TripStatus.IN_PROGRESS),
            (companies[2], drivers[2], "Stadium", "City Hall", time(18, 45), VehicleType.VAN, TripStatus.COMPLETED),
            (companies[2], None, "Airport", "Ski Lodge", time(6, 0), VehicleType.BUS, TripStatus.PENDING),
        ]
        trips = []
        for company, driver, pickup, destination, departure, vehicle, status in trips_data:
            trip = TripModel(
                company_id=company.id,
                driver_id=driver.id if driver else None,
                pickup_location=pickup,
                destination=destination,
                trip_date=tomorrow,
                departure_time=departure,
                passenger_count=2,
                vehicle_type=vehicle,
                company_price=120.0,
                driver_price=90.0,
                status=status,
            )
            session.add(trip)
            trips.append(trip)
        await session.flush()
        print(f"  Created {len(trips)} trips")

        # ── Trip requests ─────────────────────────────────────────────
        session.add_all([
            TripRequestModel(
                trip_id=trips[0].id,
                driver_id=drivers[1].id,
                company_id=companies[0].id,
                request_type=RequestType.COMPANY_TO_DRIVER,
                status=RequestStatus.PENDING,
            ),
            TripRequestModel(
                trip_id=trips[1].id,
                driver_id=drivers[2].id,
                company_id=companies[0].id,
                request_type=RequestType.DRIVER_TO_COMPANY,
                status=RequestStatus.PENDING,
            ),
        ])
        await session.flush()
        print("  Created 2 trip requests")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
