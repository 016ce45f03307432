from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from storefront.config.settings import config_settings
from storefront.db.utils import _normalize_db_url, is_sqlite

DATABASE_URL = _normalize_db_url(config_settings.DATABASE_URL)

# file-backed sqlite gains nothing from pooling and its connections must not outlive an event loop
_engine_kwargs = {"poolclass": NullPool} if is_sqlite(DATABASE_URL) else {"pool_pre_ping": True}

async_engine = create_async_engine(DATABASE_URL, echo=config_settings.DB_ECHO, **_engine_kwargs)

async_session = async_sessionmaker(bind=async_engine, class_=AsyncSession, expire_on_commit=False)


async def create_db_and_tables():
    # registers every table on SQLModel.metadata
    import storefront.schema.full_schema  # noqa: F401

    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
