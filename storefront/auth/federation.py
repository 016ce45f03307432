import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import httpx
from jose import JWTError, jwt

from storefront.auth.constants import logger
from storefront.common.custom_exceptions import InvalidFederatedToken
from storefront.common.retries import retry_async
from storefront.config.settings import config_settings

_MAX_AGE_RE = re.compile(r"max-age=(\d+)")


@dataclass(frozen=True)
class FederatedProfile:
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None


def _find_key(keys: List[Dict[str, Any]], kid: Optional[str]) -> Optional[Dict[str, Any]]:
    for key in keys:
        if key.get("kid") == kid:
            return key
    return None


class GoogleTokenVerifier:
    """
    Verifies Google-issued ID tokens.

    The provider's signing keys (a JWKS document) are downloaded with httpx and
    kept until the `max-age` the provider advertises runs out. A token whose
    `kid` is not in the cached set triggers one forced reload, which covers key
    rotation on Google's side. Forced reloads are at least `min_reload_seconds`
    apart, and tokens with no `kid` never force one. The audience must equal
    our client id and the issuer must be one of the configured Google issuers.
    """

    ALGORITHMS = ["RS256"]

    def __init__(self, client_id: Optional[str], certs_url: str, issuers: Sequence[str],
                 timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None,
                 default_cache_seconds: int = 300, min_reload_seconds: float = 60.0):
        self.client_id = client_id
        self.certs_url = certs_url
        self.issuers = tuple(issuers)
        self.timeout = timeout
        self._transport = transport
        self._default_cache_seconds = default_cache_seconds
        self._min_reload_seconds = min_reload_seconds
        self._keys: Optional[List[Dict[str, Any]]] = None
        self._keys_expire_at = 0.0
        self._loaded_at: Optional[float] = None

    @classmethod
    def from_settings(cls, settings=config_settings) -> "GoogleTokenVerifier":
        return cls(
            client_id=settings.GOOGLE_CLIENT_ID,
            certs_url=settings.GOOGLE_CERTS_URL,
            issuers=settings.GOOGLE_ISSUERS,
            timeout=settings.FEDERATION_TIMEOUT_SECONDS,
            min_reload_seconds=settings.FEDERATION_MIN_RELOAD_SECONDS,
        )

    async def _download_keys(self) -> List[Dict[str, Any]]:
        async def _get() -> httpx.Response:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(self.certs_url)
                resp.raise_for_status()
                return resp

        resp = await retry_async(_get, op_name="federation.jwks")

        max_age = self._default_cache_seconds
        match = _MAX_AGE_RE.search(resp.headers.get("cache-control", ""))
        if match:
            max_age = int(match.group(1))

        self._keys = list(resp.json().get("keys", []))
        self._loaded_at = time.monotonic()
        self._keys_expire_at = self._loaded_at + max_age
        logger.info("federation.jwks.loaded", extra={"keys": len(self._keys), "max_age": max_age})
        return self._keys

    async def signing_keys(self, force_refresh: bool = False) -> List[Dict[str, Any]]:
        if force_refresh or self._keys is None or time.monotonic() >= self._keys_expire_at:
            return await self._download_keys()
        return self._keys

    def _may_force_reload(self) -> bool:
        return self._loaded_at is None or time.monotonic() - self._loaded_at >= self._min_reload_seconds

    async def _key_for(self, kid: Optional[str]) -> Optional[Dict[str, Any]]:
        key = _find_key(await self.signing_keys(), kid)
        if key is not None or kid is None:
            return key
        if not self._may_force_reload():
            logger.debug("federation.jwks.reload_throttled", extra={"kid": kid})
            return None
        return _find_key(await self.signing_keys(force_refresh=True), kid)

    async def verify(self, id_token: str) -> Dict[str, Any]:
        if not self.client_id:
            logger.error("federation.not_configured")
            raise InvalidFederatedToken("Google sign-in is not configured")

        try:
            header = jwt.get_unverified_header(id_token)
        except (JWTError, ValueError, TypeError) as exc:
            logger.warning("federation.token.malformed")
            raise InvalidFederatedToken() from exc

        if header.get("alg") not in self.ALGORITHMS:
            logger.warning("federation.token.bad_alg", extra={"alg": header.get("alg")})
            raise InvalidFederatedToken()

        key = await self._key_for(header.get("kid"))
        if key is None:
            logger.warning("federation.token.unknown_kid", extra={"kid": header.get("kid")})
            raise InvalidFederatedToken()

        try:
            claims = jwt.decode(
                id_token,
                key,
                algorithms=self.ALGORITHMS,
                audience=self.client_id,
                options={"verify_at_hash": False},
            )
        except JWTError as exc:
            logger.warning("federation.token.rejected", extra={"error": type(exc).__name__})
            raise InvalidFederatedToken() from exc

        if claims.get("iss") not in self.issuers:
            logger.warning("federation.token.bad_issuer", extra={"iss": claims.get("iss")})
            raise InvalidFederatedToken()

        return claims


def extract_profile(claims: Dict[str, Any]) -> FederatedProfile:
    email = claims.get("email")
    if not email:
        raise InvalidFederatedToken("Google token carries no email")
    if claims.get("email_verified") is False:
        raise InvalidFederatedToken("Google account email is not verified")
    return FederatedProfile(email=email.strip().lower(), name=claims.get("name"), picture=claims.get("picture"))


google_verifier = GoogleTokenVerifier.from_settings()


def get_google_verifier() -> GoogleTokenVerifier:
    return google_verifier
