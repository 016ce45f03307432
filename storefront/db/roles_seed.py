from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.security import Role as RoleName
from storefront.schema.full_schema import Role

DEFAULT_ROLES = [
    {"name": RoleName.ADMIN.value, "description": "Store administrator"},
    {"name": RoleName.NORMAL.value, "description": "Regular customer"},
]


async def seed_roles(session: AsyncSession):
    for r in DEFAULT_ROLES:
        q = await session.execute(select(Role).where(Role.name == r["name"]))
        role = q.scalar_one_or_none()
        if not role:
            role = Role(name=r["name"], description=r["description"])
            session.add(role)
    await session.commit()
