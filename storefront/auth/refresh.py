from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.constants import REFRESH_TOKEN_EXPIRE_DAYS, logger
from storefront.auth.repository import (refresh_row_by_token, refresh_row_by_user, require_user_by_email,
                                        user_by_id)
from storefront.auth.utils import make_refresh_plain
from storefront.common.custom_exceptions import RefreshTokenExpired, RefreshTokenNotFound, UserNotFound
from storefront.common.utils import as_utc, now
from storefront.schema.full_schema import RefreshToken, Users


def _refresh_expiry():
    return now() + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS)


async def create_refresh_token(session: AsyncSession, email: str) -> RefreshToken:
    """
    Issue a fresh refresh token for the user behind `email`.

    Each user owns at most one row: an existing row gets a new value and a
    new expiry (so the previous value stops resolving), otherwise one is
    inserted. Two racing calls for the same user both end up updating the
    single row; whichever commits last wins.
    """
    user = await require_user_by_email(session, email)
    # a rollback expires `user`, keep the id as a plain value
    user_id = user.id

    row = await refresh_row_by_user(session, user_id)
    if row is None:
        row = RefreshToken(token=make_refresh_plain(), expiry_date=_refresh_expiry(), user_id=user_id)
        session.add(row)
        try:
            await session.commit()
        except IntegrityError:
            # a concurrent call inserted the row first, rotate that one instead
            await session.rollback()
            row = await refresh_row_by_user(session, user_id)
            if row is None:
                raise
            row.token = make_refresh_plain()
            row.expiry_date = _refresh_expiry()
            await session.commit()
        logger.info("auth.refresh.created", extra={"user_id": user_id})
        return row

    row.token = make_refresh_plain()
    row.expiry_date = _refresh_expiry()
    await session.commit()

    logger.info("auth.refresh.rotated", extra={"user_id": user_id})
    return row


async def find_by_token(session: AsyncSession, token: str) -> RefreshToken:
    row = await refresh_row_by_token(session, token)
    if row is None:
        logger.warning("auth.refresh.not_found")
        raise RefreshTokenNotFound("Refresh token not found in database !!")
    return row


async def verify_refresh_token(session: AsyncSession, refresh_token: RefreshToken) -> RefreshToken:
    """Expired rows are deleted on sight, so a second attempt reports not-found."""
    if as_utc(refresh_token.expiry_date) < now():
        await session.delete(refresh_token)
        await session.commit()
        logger.warning("auth.refresh.expired", extra={"user_id": refresh_token.user_id})
        raise RefreshTokenExpired()
    return refresh_token


async def resolve_user(session: AsyncSession, refresh_token: RefreshToken) -> Users:
    # re-read by value: a rotation since the caller looked it up invalidates it
    row = await find_by_token(session, refresh_token.token)
    user = await user_by_id(session, row.user_id)
    if user is None:
        raise UserNotFound()
    return user
