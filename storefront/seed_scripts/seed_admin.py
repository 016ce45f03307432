import asyncio
import os

from dotenv import load_dotenv
from sqlmodel import select

from storefront.auth.repository import get_user_role_names, link_user_role
from storefront.auth.security import Role
from storefront.auth.services import create_user
from storefront.auth.utils import verify_password
from storefront.db.connection import async_session, create_db_and_tables
from storefront.db.roles_seed import seed_roles
from storefront.schema.full_schema import Users

load_dotenv()


async def create_admin(email: str = None, password: str = None, name: str = None) -> str:
    """Create (or promote) the bootstrap administrator. Returns the admin's user id."""
    admin_email = (email or os.environ.get("ADMIN_EMAIL") or "").strip().lower()
    admin_password = password or os.environ.get("ADMIN_PASSWORD")
    admin_name = name or os.environ.get("ADMIN_NAME", "Admin")

    if not admin_email or not admin_password:
        raise SystemExit("Set ADMIN_EMAIL and ADMIN_PASSWORD environment variables before running")

    await create_db_and_tables()

    async with async_session() as session:
        await seed_roles(session)

        q = await session.execute(select(Users).where(Users.email == admin_email))
        user = q.scalar_one_or_none()

        if not user:
            user = await create_user(session, email=admin_email, name=admin_name, password=admin_password,
                                     about="Bootstrap administrator", role=Role.ADMIN.value)
            print(f"Created admin user id={user.id}")
        else:
            if not verify_password(admin_password, user.password_hash):
                raise RuntimeError("Invalid credentials for existing admin user")
            print(f"Found existing user id={user.id}")

        roles = await get_user_role_names(session, user.id)
        for role in (Role.ADMIN, Role.NORMAL):
            if role.value not in roles:
                await link_user_role(session, user.id, role.value)
        await session.commit()

        return user.id


if __name__ == "__main__":
    asyncio.run(create_admin())
