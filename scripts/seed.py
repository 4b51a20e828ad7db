#!/usr/bin/env python3
"""Seed the database with sample catalog data, accounts and appointments."""
from __future__ import annotations

import argparse
import sys
from datetime import date, datetime, time, timedelta
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure the project root is on sys.path so ``barbershop`` can be imported when the script is executed directly.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from barbershop import create_app
from barbershop.extensions import db
from barbershop.models import Appointment, AuthAccount, Product, Service, User

SAMPLE_PRODUCTS = [
    {
        "name": "Beard Oil",
        "description": "Conditioning oil with cedarwood and argan",
        "price_cents": 2200,  # $22.00
        "quantity": 40,
        "image_url": "/images/products/beard-oil.jpg",
    },
    {
        "name": "Matte Pomade",
        "description": "Strong hold, no shine",
        "price_cents": 1800,  # $18.00
        "quantity": 60,
        "image_url": "/images/products/matte-pomade.jpg",
    },
    {
        "name": "Shaving Cream",
        "description": "Rich lather for a close shave",
        "price_cents": 1500,  # $15.00
        "quantity": 35,
        "image_url": "/images/products/shaving-cream.jpg",
    },
    {
        "name": "Aftershave Balm",
        "description": "Alcohol-free soothing balm",
        "price_cents": 2000,  # $20.00
        "quantity": 25,
        "image_url": "/images/products/aftershave-balm.jpg",
    },
]

SAMPLE_SERVICES = [
    {
        "name": "Classic Haircut",
        "description": "Scissor or clipper cut finished with a hot towel",
        "price_cents": 3000,
        "duration_minutes": 30,
        "image_url": "/images/services/haircut.jpg",
        "icon": "scissors",
    },
    {
        "name": "Beard Trim",
        "description": "Shape-up and line-up of the beard",
        "price_cents": 2000,
        "duration_minutes": 30,
        "image_url": "/images/services/beard-trim.jpg",
        "icon": "razor",
    },
    {
        "name": "Haircut & Beard",
        "description": "Full cut and beard trim",
        "price_cents": 4500,
        "duration_minutes": 60,
        "image_url": "/images/services/combo.jpg",
        "icon": "crown",
    },
]

SAMPLE_USERS = [
    {"name": "Admin User", "email": "admin@barbershop.test", "phone": "555-0100", "role": "admin"},
    {
        "name": "Carlos Client",
        "email": "carlos@barbershop.test",
        "phone": "555-0101",
        "role": "client",
        "address_street": "12 Main St",
        "address_city": "Springfield",
        "address_state": "IL",
        "address_zip": "62701",
        "address_country": "USA",
    },
]


def seed(password: str, reset: bool = False) -> None:
    app = create_app()

    with app.app_context():
        if reset:
            print("🧹 Dropping existing tables...")
            db.drop_all()
        db.create_all()

        if Product.query.count() or Service.query.count():
            print("⏭️  Catalog already seeded. Use --reset to start over.")
            return

        products = [Product(**data) for data in SAMPLE_PRODUCTS]
        services = [Service(**data) for data in SAMPLE_SERVICES]
        db.session.add_all(products + services)

        users = []
        for data in SAMPLE_USERS:
            user = User(**data)
            db.session.add(user)
            db.session.flush()
            db.session.add(AuthAccount(user_id=user.user_id, password_hash=generate_password_hash(password)))
            users.append(user)
            print(f"  ✓ Added {user.role}: {user.email}")
        db.session.flush()

        client = users[1]
        tomorrow = date.today() + timedelta(days=1)
        db.session.add_all([
            Appointment(
                client_id=client.user_id,
                service_id=services[0].service_id,
                starts_at=datetime.combine(tomorrow, time(10, 0)),
                status="scheduled",
            ),
            Appointment(
                client_id=client.user_id,
                service_id=services[1].service_id,
                starts_at=datetime.combine(tomorrow - timedelta(days=7), time(15, 30)),
                status="completed",
            ),
        ])

        db.session.commit()
        print(f"\n✅ Seeded {len(products)} products, {len(services)} services and {len(users)} users")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the barbershop database for local development.")
    parser.add_argument("--password", default="barber123", help="Password given to every seeded account")
    parser.add_argument("--reset", action="store_true", help="Drop all tables before seeding")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    seed(args.password, reset=args.reset)


if __name__ == "__main__":
    main()
