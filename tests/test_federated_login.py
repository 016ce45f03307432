import time

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jose import jwk, jwt
from sqlalchemy import func, select

from storefront.auth.constants import GOOGLE_USER_ABOUT
from storefront.auth.federation import GoogleTokenVerifier, extract_profile, get_google_verifier
from storefront.common.custom_exceptions import InvalidFederatedToken
from storefront.config.settings import config_settings
from storefront.db.connection import async_session
from storefront.main import app
from storefront.schema.full_schema import Users

CLIENT_ID = config_settings.GOOGLE_CLIENT_ID
CERTS_URL = config_settings.GOOGLE_CERTS_URL
ISSUER = "https://accounts.google.com"


def _rsa_pem():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


class FakeGoogle:
    """Signs ID tokens and serves the matching JWKS through an httpx mock transport."""

    def __init__(self, kid="kid-1"):
        self.kid = kid
        self.private_pem = _rsa_pem()
        self.fetches = 0

    def jwks(self):
        public = jwk.construct(self.private_pem, algorithm="RS256").public_key().to_dict()
        public.update({"kid": self.kid, "use": "sig"})
        return {"keys": [public]}

    def handler(self, request: httpx.Request) -> httpx.Response:
        assert str(request.url) == CERTS_URL
        self.fetches += 1
        return httpx.Response(200, json=self.jwks(), headers={"Cache-Control": "public, max-age=3600"})

    def transport(self):
        return httpx.MockTransport(self.handler)

    def id_token(self, email="gina@example.com", aud=CLIENT_ID, iss=ISSUER, expires_in=600, **extra):
        now = int(time.time())
        claims = {"iss": iss, "aud": aud, "sub": "10769150350006150715113082367", "email": email,
                  "email_verified": True, "name": "Gina Google", "iat": now, "exp": now + expires_in}
        claims.update(extra)
        return jwt.encode(claims, self.private_pem, algorithm="RS256", headers={"kid": self.kid})


@pytest.fixture
def google():
    return FakeGoogle()


@pytest.fixture
def verifier(google):
    return GoogleTokenVerifier(CLIENT_ID, CERTS_URL, [ISSUER, "accounts.google.com"], transport=google.transport())


@pytest.mark.asyncio
async def test_valid_token_is_accepted(google, verifier):
    claims = await verifier.verify(google.id_token())

    assert claims["email"] == "gina@example.com"
    assert claims["aud"] == CLIENT_ID


@pytest.mark.asyncio
async def test_signing_keys_are_cached(google, verifier):
    await verifier.verify(google.id_token())
    await verifier.verify(google.id_token(email="other@example.com"))

    assert google.fetches == 1


@pytest.mark.asyncio
async def test_unknown_kid_forces_one_reload(google):
    verifier = GoogleTokenVerifier(CLIENT_ID, CERTS_URL, [ISSUER], transport=google.transport(),
                                   min_reload_seconds=0)
    await verifier.verify(google.id_token())

    rotated = FakeGoogle(kid="kid-2")
    google.kid, google.private_pem = rotated.kid, rotated.private_pem

    claims = await verifier.verify(google.id_token())
    assert claims["email"] == "gina@example.com"
    assert google.fetches == 2


@pytest.mark.asyncio
async def test_unknown_kids_cannot_force_repeated_reloads(google, verifier):
    await verifier.verify(google.id_token())

    for n in range(5):
        stranger = FakeGoogle(kid=f"made-up-{n}")
        with pytest.raises(InvalidFederatedToken):
            await verifier.verify(stranger.id_token())

    assert google.fetches == 1


@pytest.mark.asyncio
async def test_token_without_kid_never_forces_a_reload(google):
    verifier = GoogleTokenVerifier(CLIENT_ID, CERTS_URL, [ISSUER], transport=google.transport(),
                                   min_reload_seconds=0)
    await verifier.verify(google.id_token())
    now = int(time.time())
    no_kid = jwt.encode({"iss": ISSUER, "aud": CLIENT_ID, "email": "gina@example.com", "exp": now + 600},
                        google.private_pem, algorithm="RS256")

    for _ in range(3):
        with pytest.raises(InvalidFederatedToken):
            await verifier.verify(no_kid)

    assert google.fetches == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides", [
    {"aud": "someone-else.apps.googleusercontent.com"},
    {"iss": "https://evil.example.com"},
    {"expires_in": -60},
])
async def test_bad_claims_are_rejected(google, verifier, overrides):
    with pytest.raises(InvalidFederatedToken):
        await verifier.verify(google.id_token(**overrides))


@pytest.mark.asyncio
async def test_token_signed_by_stranger_is_rejected(google, verifier):
    stranger = FakeGoogle(kid=google.kid)

    with pytest.raises(InvalidFederatedToken):
        await verifier.verify(stranger.id_token())


@pytest.mark.asyncio
async def test_malformed_token_is_rejected(verifier):
    with pytest.raises(InvalidFederatedToken):
        await verifier.verify("definitely-not-a-jwt")


@pytest.mark.asyncio
async def test_unconfigured_client_id_rejects_everything(google):
    unconfigured = GoogleTokenVerifier(None, CERTS_URL, [ISSUER], transport=google.transport())

    with pytest.raises(InvalidFederatedToken):
        await unconfigured.verify(google.id_token())
    assert google.fetches == 0


def test_profile_requires_verified_email():
    with pytest.raises(InvalidFederatedToken):
        extract_profile({"email": "gina@example.com", "email_verified": False})
    with pytest.raises(InvalidFederatedToken):
        extract_profile({"name": "No Email"})

    profile = extract_profile({"email": "Gina@Example.com", "name": "Gina"})
    assert profile.email == "gina@example.com"


async def _user_count(email):
    async with async_session() as s:
        return (await s.execute(select(func.count()).select_from(Users).where(Users.email == email))).scalar_one()


@pytest.mark.asyncio
async def test_first_google_login_creates_user_then_reuses_it(ac_client, google, verifier):
    app.dependency_overrides[get_google_verifier] = lambda: verifier

    first = await ac_client.post("/auth/login-with-google", json={"id_token": google.id_token()})
    assert first.status_code == 200
    data = first.json()["data"]
    assert data["token"]
    assert "refresh_token" not in data
    assert data["user"]["provider"] == "GOOGLE"
    assert data["user"]["about"] == GOOGLE_USER_ABOUT
    assert data["user"]["roles"] == ["ROLE_NORMAL"]

    second = await ac_client.post("/auth/login-with-google", json={"id_token": google.id_token()})
    assert second.status_code == 200
    assert second.json()["data"]["user"]["user_id"] == data["user"]["user_id"]

    assert await _user_count("gina@example.com") == 1

    me = await ac_client.get("/auth/current", headers={"Authorization": f"Bearer {data['token']}"})
    assert me.status_code == 200


@pytest.mark.asyncio
async def test_google_login_for_password_account_conflicts(ac_client, google, verifier, make_user):
    await make_user(email="gina@example.com")
    app.dependency_overrides[get_google_verifier] = lambda: verifier

    resp = await ac_client.post("/auth/login-with-google", json={"id_token": google.id_token()})

    assert resp.status_code == 409
    assert resp.json()["message"] == "Email is already registered. Try logging in with username and password."
    assert await _user_count("gina@example.com") == 1


@pytest.mark.asyncio
async def test_google_login_with_forged_token(ac_client, google, verifier):
    app.dependency_overrides[get_google_verifier] = lambda: verifier

    resp = await ac_client.post("/auth/login-with-google", json={"id_token": google.id_token(aud="wrong")})

    assert resp.status_code == 401
    assert resp.json()["code"] == "INVALID_FEDERATED_TOKEN"
    assert await _user_count("gina@example.com") == 0
