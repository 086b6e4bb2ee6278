#!/usr/bin/env python3
"""
Seed script to create the demo restaurant and the default admin account
"""

import asyncio

from jerktracker.config import get_settings
from jerktracker.migration import default_restaurant_record
from jerktracker.security import get_password_hash
from jerktracker.storage import Entity, create_storage

ADMIN_EMAIL = "admin@thejerktracker.com"
ADMIN_PASSWORD = "admin123"
STAFF_EMAIL = "staff@thejerktracker.com"
STAFF_PASSWORD = "staff123"


async def seed_demo_data():
    """Seed demo data for development"""
    settings = get_settings()
    storage = create_storage(settings)
    await storage.initialize()

    try:
        restaurant = await storage.get_by_id(Entity.RESTAURANTS, settings.default_restaurant_id)
        if restaurant is None:
            print("Creating demo restaurant...")
            restaurant = await storage.create(
                Entity.RESTAURANTS,
                default_restaurant_record(
                    id=settings.default_restaurant_id,
                    name=settings.default_restaurant_name,
                    email=settings.default_restaurant_email,
                ),
            )
            print(f"Created restaurant: {restaurant['name']} (ID: {restaurant['id']})")
        else:
            print("Demo restaurant already exists. Skipping...")

        accounts = [
            (ADMIN_EMAIL, ADMIN_PASSWORD, "Admin User", "ADMIN"),
            (STAFF_EMAIL, STAFF_PASSWORD, "Counter Staff", "STAFF"),
        ]
        for email, password, name, role in accounts:
            if await storage.query(Entity.USERS, "email", email):
                print(f"User {email} already exists. Skipping...")
                continue
            await storage.create(
                Entity.USERS,
                {
                    "email": email,
                    "hashed_password": get_password_hash(password),
                    "name": name,
                    "role": role,
                    "restaurant_id": restaurant["id"],
                },
            )
            print(f"Created {role.lower()} user: {email}")
    finally:
        await storage.close()

    print(f"""
Demo data ready!

Restaurant: {restaurant['name']}
  ID: {restaurant['id']}

Users:
  Admin:
    Email: {ADMIN_EMAIL}
    Password: {ADMIN_PASSWORD}

  Staff:
    Email: {STAFF_EMAIL}
    Password: {STAFF_PASSWORD}

Change these passwords before going live.
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
