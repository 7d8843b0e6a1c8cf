"""
Database seeding script for the default administrator.

Creates the admin account configured in settings (admin / admin123 by
default) when the users table is empty. Run it once after the database is
set up; the application also does this on startup.
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from backend.app.db.session import AsyncSessionLocal, create_tables
from backend.app.services.user_service import seed_default_admin


async def seed_users():
    """Create the tables if needed, then the default admin."""
    await create_tables()

    async with AsyncSessionLocal() as db:
        print("🌱 Starting user seeding...")

        admin = await seed_default_admin(db)
        if admin is None:
            print("ℹ️  Users already exist, skipping seeding")
            return

        print(f"✅ Created ADMIN user (username: {admin.username})")
        print("\nChange the default password after the first login.")


if __name__ == "__main__":
    asyncio.run(seed_users())
