"""
Seed Institution

Creates an institution in the directory and prints its verification code,
together with a super admin access token for local use of the API.
Run this script after the database migrations have been applied.

Usage:
    python scripts/seed_institution.py "Masjid Al-Noor" "Accra, Ghana"
"""

import asyncio
import sys
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from mosque_directory.core.auth import Actor, ActorRole
from mosque_directory.core.config import settings
from mosque_directory.core.security import create_access_token
from mosque_directory.modules.admin_accounts.service import LifecycleService
from mosque_directory.modules.admin_accounts.sql_store import SqlAlchemyLifecycleStore
from mosque_directory.modules.institutions.schemas import InstitutionCreate

SEED_SUPER_ADMIN = Actor(
    id=UUID("00000000-0000-0000-0000-000000000001"),
    role=ActorRole.SUPER_ADMIN,
    name="Seed Script",
)


async def seed_institution(name: str, location: str) -> None:
    """Create the institution unless one with the same name already exists."""

    engine = create_async_engine(settings.database_url, echo=False)
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    service = LifecycleService(SqlAlchemyLifecycleStore(session_maker))

    try:
        existing = await service.list_institutions(search=name, limit=100)
        for institution in existing["institutions"]:
            if institution.name == name:
                print(f"Institution already exists: {name}")
                print(f"  ID: {institution.id}")
                return

        institution = await service.create_institution(
            InstitutionCreate(name=name, location=location), SEED_SUPER_ADMIN
        )

        print("Institution created successfully!")
        print(f"  Name: {institution.name}")
        print(f"  ID: {institution.id}")
        print(f"  Verification code: {institution.verification_code}")
        print(f"  Code expires: {institution.verification_code_expires_at.isoformat()}")
        print()
        print("Super admin token:")
        print(f"  {create_access_token(str(SEED_SUPER_ADMIN.id), 'super_admin', name='Seed Script')}")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(1)
    asyncio.run(seed_institution(sys.argv[1], sys.argv[2]))
