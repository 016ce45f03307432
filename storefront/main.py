
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from storefront.api import cur_version
from storefront.api.routers import public_routers, admin_routers
from storefront.auth.tokens import jwt_helper
from storefront.common.custom_exceptions import register_all_exceptions
from storefront.common.logging_setup import setup_logging, shutdown_logging
from storefront.config.admin_config import admin_config
from storefront.config.settings import config_settings
from storefront.db.connection import async_engine, async_session, create_db_and_tables
from storefront.db.roles_seed import seed_roles
from storefront.middlewares.auth_middleware import AuthenticationMiddleware
from storefront.middlewares.authorization_middleware import AuthorizationMiddleware
from storefront.middlewares.request_id_middleware import RequestIdMiddleware


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    app_logger = setup_logging()

    await create_db_and_tables()
    async with async_session() as session:
        await seed_roles(session)

    app_logger.info("app.startup", extra={"env": admin_config.ENV, "version": cur_version})
    try:
        yield
    finally:
        app_logger.info("app.shutdown")
        await async_engine.dispose()
        shutdown_logging()


def create_app():
    app = FastAPI(
        title="Storefront",
        version=cur_version,
        lifespan=app_lifespan)

    app.include_router(public_routers)

    if admin_config.ENABLE_ADMIN:
        app.include_router(admin_routers)

    # added innermost first: CORS -> request id -> authentication -> authorization -> routes
    app.add_middleware(AuthorizationMiddleware, default_policy=config_settings.ROUTE_DEFAULT_POLICY)
    app.add_middleware(AuthenticationMiddleware, session_maker=async_session, jwt_helper=jwt_helper)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config_settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_all_exceptions(app)

    return app

app = create_app()
