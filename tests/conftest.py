import os
import tempfile

# settings are read at import time, so the environment has to be in place before the app is imported
_DB_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/storefront.db"
os.environ["JWT_SECRET"] = "storefront-test-secret-" + "s" * 48
os.environ["ENV"] = "dev"
os.environ["ROUTE_DEFAULT_POLICY"] = "deny"
os.environ["GOOGLE_CLIENT_ID"] = "storefront-test.apps.googleusercontent.com"
os.environ["GOOGLE_CERTS_URL"] = "https://google.test/oauth2/v3/certs"
os.environ["GOOGLE_DEFAULT_PASSWORD"] = "google-default-pass"
os.environ["RZPAY_KEY"] = "rzp_test_key"
os.environ["RZPAY_SECRET"] = "rzp_test_secret"
os.environ["RZPAY_GATEWAY_URL"] = "https://psp.test/v1"

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient
from sqlmodel import SQLModel

import storefront.schema.full_schema  # noqa: F401
from storefront.auth.repository import link_user_role
from storefront.auth.security import Role
from storefront.auth.services import create_user
from storefront.auth.tokens import jwt_helper
from storefront.db.connection import async_engine, async_session
from storefront.db.roles_seed import seed_roles
from storefront.main import app
from storefront.schema.full_schema import Product, Providers

DEFAULT_PASSWORD = "Secret#123"


@pytest.fixture(autouse=True)
async def fresh_db():
    async with async_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
        await conn.run_sync(SQLModel.metadata.create_all)
    async with async_session() as session:
        await seed_roles(session)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def db_session():
    async with async_session() as session:
        yield session


@pytest.fixture
async def ac_client():
    async with LifespanManager(app):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac


@pytest.fixture
def make_user(db_session):
    async def _make(email="shopper@example.com", password=DEFAULT_PASSWORD, name="Shopper",
                    roles=(Role.NORMAL,), provider=Providers.SELF):
        user = await create_user(db_session, email=email, name=name, password=password,
                                 provider=provider, role=roles[0].value)
        for role in roles[1:]:
            await link_user_role(db_session, user.id, role.value)
        await db_session.commit()
        return user
    return _make


@pytest.fixture
def make_admin(make_user):
    async def _make(email="admin@example.com", password=DEFAULT_PASSWORD):
        return await make_user(email=email, password=password, name="Admin", roles=(Role.ADMIN, Role.NORMAL))
    return _make


@pytest.fixture
def make_product(db_session):
    async def _make(title="Green Tea", price=12.0, discounted_price=10.0, quantity=100, live=True,
                    category_id=None):
        product = Product(title=title, price=price, discounted_price=discounted_price, quantity=quantity,
                          live=live, stock=True, category_id=category_id)
        db_session.add(product)
        await db_session.commit()
        return product
    return _make


@pytest.fixture
def bearer():
    def _headers(email):
        return {"Authorization": f"Bearer {jwt_helper.issue(email)}"}
    return _headers
