"""
Seed database with demo data for the table administration screens.

Usage: python scripts/seed_database.py
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd
from sqlalchemy import create_engine

from app.config import get_settings
from app.core.security import create_access_token
from app.database import engine
from app.models import Base


async def create_tables():
    """Create all database tables."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("Database tables created")


def create_sample_rows():
    """Load sample rows for every demo table."""
    settings = get_settings()
    sync_engine = create_engine(settings.SYNC_DATABASE_URL, pool_pre_ping=True)

    users = pd.DataFrame({
        "id": range(1, 121),
        "email": [f"volunteer{i}@example.com" for i in range(1, 121)],
        "full_name": [f"Volunteer {i}" for i in range(1, 121)],
        "role": ["admin"] + ["user"] * 119,
        "is_active": [i % 7 != 0 for i in range(1, 121)],
    })

    campaigns = pd.DataFrame({
        "id": range(1, 6),
        "title": [
            "Clean Water Week",
            "School Taps",
            "Rain Harvest Workshop",
            "River Cleanup",
            "Well Repair Fund",
        ],
        "status": ["active", "active", "draft", "closed", "active"],
        "budget": [1500.00, 3200.50, 800.00, 450.25, 12000.00],
        "starts_on": pd.date_range("2025-03-01", periods=5, freq="MS").date,
    })

    registrations = pd.DataFrame({
        "id": range(1, 41),
        "campaign_id": [(i % 5) + 1 for i in range(40)],
        "user_id": [(i % 120) + 1 for i in range(40)],
        "registered_at": pd.date_range("2025-02-01", periods=40, freq="D"),
    })

    translations = pd.DataFrame({
        "locale": ["en", "en", "fr", "fr"],
        "key": ["nav.donate", "nav.volunteer", "nav.donate", "nav.volunteer"],
        "value": ["Donate", "Volunteer", "Faire un don", "Bénévolat"],
    })

    page_views = pd.DataFrame({
        "path": ["/", "/donate", "/campaigns", "/"] * 25,
        "visitor": [f"v{i % 13}" for i in range(100)],
        "viewed_at": pd.date_range("2025-04-01", periods=100, freq="h"),
    })

    for name, frame in [
        ("users", users),
        ("campaigns", campaigns),
        ("campaign_registrations", registrations),
        ("translations", translations),
        ("page_views", page_views),
    ]:
        frame.to_sql(name, sync_engine, if_exists="append", index=False)
        print(f"Loaded {len(frame)} rows into '{name}'")

    sync_engine.dispose()


async def main():
    """Run all seed operations."""
    print("=" * 50)
    print("Seeding database...")
    print("=" * 50)

    # Create tables
    await create_tables()

    # Sample rows
    create_sample_rows()

    token = create_access_token({"sub": "volunteer1@example.com", "role": "admin"})

    print("=" * 50)
    print("Database seeding complete!")
    print("")
    print("Admin bearer token for local testing:")
    print(f"  {token}")
    print("=" * 50)


if __name__ == "__main__":
    asyncio.run(main())
