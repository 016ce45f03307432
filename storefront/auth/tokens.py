from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from storefront.auth.constants import logger
from storefront.common.custom_exceptions import TokenExpired, TokenInvalid
from storefront.config.settings import config_settings

_DECODE_ERRORS = (JWTError, ValueError, TypeError, AttributeError)


class JwtHelper:
    """
    Issues and reads the stateless bearer tokens.

    A token carries exactly three claims: `sub` (the user's email), `iat` and
    `exp = iat + validity`, signed with the shared secret. Reading a token
    (`claims_of`, `subject_of`, `expiry_of`) checks the signature but not the
    expiry; `is_expired` is the separate expiry check, and `validate` does both.
    """

    def __init__(self, secret: str, algorithm: str = "HS512", validity: timedelta = timedelta(hours=5)):
        if not secret:
            raise ValueError("JWT secret must be configured")
        self.secret = secret
        self.algorithm = algorithm
        self.validity = validity

    @classmethod
    def from_settings(cls, settings=config_settings) -> "JwtHelper":
        return cls(
            secret=settings.JWT_SECRET,
            algorithm=settings.JWT_ALGO,
            validity=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )

    def issue(self, subject: str, issued_at: Optional[datetime] = None) -> str:
        iat = issued_at or datetime.now(timezone.utc)
        exp = iat + self.validity
        claims = {
            "sub": subject,
            "iat": int(iat.timestamp()),
            "exp": int(exp.timestamp()),
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def claims_of(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except _DECODE_ERRORS as exc:
            logger.debug("auth.token.decode_failed", extra={"error": type(exc).__name__})
            raise TokenInvalid() from exc

    def subject_of(self, token: str) -> str:
        subject = self.claims_of(token).get("sub")
        if not subject:
            raise TokenInvalid("Token has no subject")
        return subject

    def expiry_of(self, token: str) -> datetime:
        exp = self.claims_of(token).get("exp")
        if exp is None:
            raise TokenInvalid("Token has no expiry")
        return datetime.fromtimestamp(int(exp), tz=timezone.utc)

    def is_expired(self, token: str) -> bool:
        return self.expiry_of(token) < datetime.now(timezone.utc)

    def validate(self, token: str) -> str:
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except _DECODE_ERRORS as exc:
            raise TokenInvalid() from exc
        subject = claims.get("sub")
        if not subject:
            raise TokenInvalid("Token has no subject")
        return subject


jwt_helper = JwtHelper.from_settings()


def get_jwt_helper() -> JwtHelper:
    return jwt_helper
