from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api import cur_version
from storefront.common.logging_setup import get_logger
from storefront.common.utils import build_error, json_error, success_response
from storefront.db.dependencies import get_session

logger = get_logger("storefront.common")

home_router = APIRouter()


@home_router.get("/health")
async def health_check(session: AsyncSession = Depends(get_session)):
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("health.db_unreachable")
        return json_error(build_error("Database connection error", 503, code="DB_UNAVAILABLE"), status_code=503)

    return success_response({"status": "healthy", "version": cur_version})
