#!/usr/bin/env python3
"""
Script to create an admin user for the Event Marketplace.
"""

import asyncio
import sys
from getpass import getpass

from sqlalchemy import select

from event_marketplace.database import close_database, get_db_session, init_database
from event_marketplace.models.user import User, UserRole
from event_marketplace.utils.auth import get_password_hash


async def create_admin_user():
    """Create an admin user interactively."""
    print("Event Marketplace - Admin User Creation")
    print("=" * 40)

    email = input("Enter admin email: ").strip().lower()
    if not email:
        print("Email is required!")
        return

    name = input("Enter name: ").strip()
    if not name:
        print("Name is required!")
        return

    password = getpass("Enter password: ").strip()
    if len(password) < 6:
        print("Password must be at least 6 characters!")
        return

    if password != getpass("Confirm password: ").strip():
        print("Passwords do not match!")
        return

    await init_database()
    try:
        async with get_db_session() as db:
            existing_user = await db.scalar(select(User).where(User.email == email))

            if existing_user:
                print(f"User with email {email} already exists!")
                if input("Make existing user an admin? (y/N): ").strip().lower() == "y":
                    existing_user.role = UserRole.ADMIN
                    print(f"User {email} is now an admin!")
                return

            admin_user = User(
                email=email,
                name=name,
                password_hash=get_password_hash(password),
                role=UserRole.ADMIN,
                is_active=True,
            )
            db.add(admin_user)
            await db.flush()

            print("Admin user created successfully!")
            print(f"   Email: {admin_user.email}")
            print(f"   Name: {admin_user.name}")
            print(f"   ID: {admin_user.id}")
    finally:
        await close_database()


async def list_admin_users():
    """List all admin users."""
    print("Current Admin Users")
    print("=" * 30)

    await init_database()
    try:
        async with get_db_session() as db:
            result = await db.execute(select(User).where(User.role == UserRole.ADMIN))
            admin_users = result.scalars().all()

            if not admin_users:
                print("No admin users found.")
            for user in admin_users:
                status = "Active" if user.is_active else "Inactive"
                print(f"{user.email}")
                print(f"   Name: {user.name}")
                print(f"   Status: {status}")
                print(f"   ID: {user.id}")
                print()
    finally:
        await close_database()


async def main():
    if len(sys.argv) > 1 and sys.argv[1] == "list":
        await list_admin_users()
    else:
        await create_admin_user()


if __name__ == "__main__":
    asyncio.run(main())
