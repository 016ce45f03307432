import pytest

from storefront.auth.repository import get_user_role_names
from storefront.db.connection import async_session
from storefront.seed_scripts.seed_admin import create_admin


@pytest.mark.asyncio
async def test_create_admin_is_repeatable(ac_client):
    admin_id = await create_admin(email="Root@Example.com", password="R00t-pass", name="Root")
    again = await create_admin(email="root@example.com", password="R00t-pass")

    assert again == admin_id
    async with async_session() as s:
        assert await get_user_role_names(s, admin_id) == ["ROLE_ADMIN", "ROLE_NORMAL"]

    login = await ac_client.post("/auth/generate-token", json={"email": "root@example.com", "password": "R00t-pass"})
    assert login.status_code == 200
    assert set(login.json()["data"]["user"]["roles"]) == {"ROLE_ADMIN", "ROLE_NORMAL"}


@pytest.mark.asyncio
async def test_existing_account_with_wrong_password_is_refused(make_user):
    await make_user(email="root@example.com")

    with pytest.raises(RuntimeError):
        await create_admin(email="root@example.com", password="not-the-password")


@pytest.mark.asyncio
async def test_missing_credentials_abort(monkeypatch):
    monkeypatch.delenv("ADMIN_EMAIL", raising=False)
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)

    with pytest.raises(SystemExit):
        await create_admin()
