"""Management CLI.

Usage:
    python -m app.cli seed                      # System roles, lookups, default settings
    python -m app.cli create-admin EMAIL PASSWORD [FIRST LAST]
    python -m app.cli mark-overdue              # Run the overdue invoice sweep now
"""

import asyncio
import sys

from sqlalchemy import select

from app.auth.password import hash_password
from app.database import async_session
from app.models.role import Role
from app.models.user import User
from app.schemas.validators import MIN_PASSWORD_LENGTH
from app.services.scheduler import run_overdue_sweep
from app.services.seed import seed_all


async def seed():
    async with async_session() as db:
        await seed_all(db)
        await db.commit()
    print("Seeded system roles, expense categories, income sources and settings.")


async def create_admin(email: str, password: str, first_name: str = "Super", last_name: str = "Admin"):
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        return

    async with async_session() as db:
        await seed_all(db)
        role = (await db.execute(
            select(Role).where(Role.name == "super_admin")
        )).scalar_one()

        existing = (await db.execute(
            select(User).where(User.email == email.lower())
        )).unique().scalar_one_or_none()
        if existing:
            print(f"User {email} already exists.")
            return

        db.add(User(
            email=email.lower(),
            hashed_password=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role_id=role.id,
            user_type="admin",
            status="active",
            email_verified=True,
        ))
        await db.commit()
    print(f"Created super admin {email}")


async def mark_overdue():
    count = await run_overdue_sweep()
    print(f"Marked {count} invoice(s) overdue")


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "seed":
        asyncio.run(seed())
    elif cmd == "create-admin" and len(sys.argv) >= 4:
        asyncio.run(create_admin(*sys.argv[2:6]))
    elif cmd == "mark-overdue":
        asyncio.run(mark_overdue())
    else:
        print("Usage: python -m app.cli [seed|create-admin EMAIL PASSWORD [FIRST LAST]|mark-overdue]")
