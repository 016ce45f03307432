import secrets

from email_validator import EmailNotValidError, validate_email
from passlib.context import CryptContext

from storefront.config.settings import config_settings

pwd_context = CryptContext(schemes=[config_settings.PASS_HASH_SCHEME], deprecated="auto")


def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context.verify(plain_password, password_hash)
    except ValueError:
        # hash written by a scheme this context doesn't know
        return False


def normalize_email_address(email: str) -> str:
    """
    Validate and return the normalized, lowercased email.
    Raises ValueError if invalid.
    """
    try:
        v = validate_email(email, check_deliverability=False)
        return v.normalized.lower()
    except EmailNotValidError as e:
        raise ValueError(str(e))


def generate_plain_token(nbytes: int = 48) -> str:
    return secrets.token_urlsafe(nbytes)


def make_refresh_plain() -> str:
    return generate_plain_token(48)
