from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from storefront.auth.tokens import JwtHelper
from storefront.common.custom_exceptions import TokenExpired, TokenInvalid

SECRET = "unit-test-secret-" + "k" * 48


@pytest.fixture
def helper():
    return JwtHelper(SECRET)


def test_issue_carries_subject_and_five_hour_window(helper):
    token = helper.issue("shopper@example.com")
    claims = helper.claims_of(token)

    assert claims["sub"] == "shopper@example.com"
    assert claims["exp"] - claims["iat"] == 5 * 60 * 60
    assert set(claims) == {"sub", "iat", "exp"}
    assert jwt.get_unverified_header(token)["alg"] == "HS512"


def test_subject_and_validate_on_fresh_token(helper):
    token = helper.issue("shopper@example.com")

    assert helper.subject_of(token) == "shopper@example.com"
    assert helper.validate(token) == "shopper@example.com"
    assert helper.is_expired(token) is False


def test_expired_token_is_still_readable_but_reported_expired(helper):
    issued = datetime.now(timezone.utc) - timedelta(hours=6)
    token = helper.issue("late@example.com", issued_at=issued)

    # reading the subject does not enforce expiry, the separate check does
    assert helper.subject_of(token) == "late@example.com"
    assert helper.is_expired(token) is True
    with pytest.raises(TokenExpired):
        helper.validate(token)


def test_expiry_of_matches_issue_time(helper):
    issued = datetime(2030, 1, 1, 12, 0, tzinfo=timezone.utc)
    token = helper.issue("future@example.com", issued_at=issued)

    assert helper.expiry_of(token) == datetime(2030, 1, 1, 17, 0, tzinfo=timezone.utc)


def test_tampered_token_is_rejected(helper):
    token = helper.issue("shopper@example.com")
    header, payload, signature = token.split(".")
    forged = ".".join([header, payload, signature[:-4] + ("AAAA" if signature[-4:] != "AAAA" else "BBBB")])

    with pytest.raises(TokenInvalid):
        helper.subject_of(forged)


def test_token_from_another_secret_is_rejected(helper):
    other = JwtHelper("another-secret-" + "z" * 48)
    token = other.issue("shopper@example.com")

    with pytest.raises(TokenInvalid):
        helper.subject_of(token)
    with pytest.raises(TokenInvalid):
        helper.validate(token)


@pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c"])
def test_garbage_is_rejected(helper, garbage):
    with pytest.raises(TokenInvalid):
        helper.subject_of(garbage)


def test_token_without_subject_is_rejected(helper):
    now = int(datetime.now(timezone.utc).timestamp())
    token = jwt.encode({"iat": now, "exp": now + 60}, SECRET, algorithm="HS512")

    with pytest.raises(TokenInvalid):
        helper.subject_of(token)


def test_empty_secret_is_refused():
    with pytest.raises(ValueError):
        JwtHelper("")
