from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.constants import logger
from storefront.auth.utils import verify_password
from storefront.common.custom_exceptions import InvalidCredentials, UserNotFound
from storefront.schema.full_schema import RefreshToken, Role, UserRole, Users


async def user_by_email(session: AsyncSession, email: str) -> Optional[Users]:
    stmt = select(Users).where(Users.email == email)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def user_by_id(session: AsyncSession, user_id: str) -> Optional[Users]:
    return await session.get(Users, user_id)


async def require_user_by_email(session: AsyncSession, email: str) -> Users:
    user = await user_by_email(session, email)
    if not user:
        logger.warning("auth.user.not_found", extra={"email": email})
        raise UserNotFound(f"User not found with given email : {email}")
    return user


async def require_user_by_id(session: AsyncSession, user_id: str) -> Users:
    user = await user_by_id(session, user_id)
    if not user:
        raise UserNotFound(f"User not found with given id : {user_id}")
    return user


async def get_user_role_names(session: AsyncSession, user_id: str) -> List[str]:
    stmt = (
        select(Role.name)
        .join(UserRole, Role.id == UserRole.role_id)
        .where(UserRole.user_id == user_id)
        .order_by(Role.name)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def link_user_role(session: AsyncSession, user_id: str, role_name: str):
    q = select(Role).where(Role.name == role_name)
    role = (await session.execute(q)).scalar_one_or_none()
    if not role:
        role = Role(name=role_name)
        session.add(role)
        await session.flush()

    session.add(UserRole(user_id=user_id, role_id=role.id))


async def authenticate(session: AsyncSession, email: str, password: str) -> Users:
    """Unknown email and wrong password are indistinguishable to the caller."""
    email = email.strip().lower()
    user = await user_by_email(session, email)

    if not user or not verify_password(password, user.password_hash):
        logger.warning("auth.user.invalid_credentials", extra={"email": email, "known_user": bool(user)})
        raise InvalidCredentials()

    return user


async def refresh_row_by_user(session: AsyncSession, user_id: str) -> Optional[RefreshToken]:
    stmt = select(RefreshToken).where(RefreshToken.user_id == user_id)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def refresh_row_by_token(session: AsyncSession, token: str) -> Optional[RefreshToken]:
    stmt = select(RefreshToken).where(RefreshToken.token == token)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()
