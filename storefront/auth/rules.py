import re
from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Pattern, Tuple, Union

from storefront.auth.security import Role

PUBLIC = "PUBLIC"
AUTHENTICATED = "AUTHENTICATED"

Access = Union[str, FrozenSet[Role]]


def _compile(pattern: str) -> Pattern:
    """
    `/users/**` matches `/users` and anything below it, `*` matches one path segment.
    """
    if pattern.endswith("/**"):
        base = pattern[:-3]
        suffix = r"(?:/.*)?"
    else:
        base = pattern
        suffix = ""
    parts = [r"[^/]+" if seg == "*" else re.escape(seg) for seg in base.split("/")]
    return re.compile("^" + "/".join(parts) + suffix + "$")


@dataclass(frozen=True)
class RouteRule:
    method: Optional[str]          # None matches every method
    pattern: str
    access: Access
    regex: Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "regex", _compile(self.pattern))

    def matches(self, method: str, path: str) -> bool:
        if self.method is not None and self.method != method.upper():
            return False
        return self.regex.match(path) is not None


def roles(*names: Role) -> FrozenSet[Role]:
    return frozenset(names)


ADMIN_ONLY = roles(Role.ADMIN)
SHOPPERS = roles(Role.ADMIN, Role.NORMAL)

# First match wins, so narrower rules sit above broader ones.
ROUTE_RULES: Tuple[RouteRule, ...] = (
    RouteRule("GET", "/health", PUBLIC),
    RouteRule("GET", "/docs/**", PUBLIC),
    RouteRule("GET", "/redoc", PUBLIC),
    RouteRule("GET", "/openapi.json", PUBLIC),

    RouteRule("POST", "/auth/generate-token", PUBLIC),
    RouteRule("POST", "/auth/regenerate-token", PUBLIC),
    RouteRule("POST", "/auth/login-with-google", PUBLIC),
    RouteRule(None, "/auth/**", AUTHENTICATED),

    RouteRule("DELETE", "/users/**", ADMIN_ONLY),
    RouteRule("PUT", "/users/**", SHOPPERS),
    RouteRule("GET", "/users/**", PUBLIC),
    RouteRule("POST", "/users", PUBLIC),

    RouteRule("GET", "/products/**", PUBLIC),
    RouteRule(None, "/products/**", ADMIN_ONLY),

    RouteRule("GET", "/categories/**", PUBLIC),
    RouteRule(None, "/categories/**", ADMIN_ONLY),

    RouteRule(None, "/carts/**", SHOPPERS),

    RouteRule("POST", "/orders", SHOPPERS),
    RouteRule("GET", "/orders/users/*", SHOPPERS),
    RouteRule("PUT", "/orders/user/*", SHOPPERS),
    RouteRule(None, "/orders/**", ADMIN_ONLY),

    RouteRule(None, "/payments/**", SHOPPERS),
)


def normalize_path(path: str) -> str:
    if len(path) > 1 and path.endswith("/"):
        return path.rstrip("/") or "/"
    return path


def match_rule(method: str, path: str, rules: Tuple[RouteRule, ...] = ROUTE_RULES) -> Optional[RouteRule]:
    path = normalize_path(path)
    for rule in rules:
        if rule.matches(method, path):
            return rule
    return None


def requires_login(access: Access) -> bool:
    return access != PUBLIC


def is_allowed(access: Access, user_roles: FrozenSet[Role]) -> bool:
    """Role check for an already-authenticated caller."""
    if access in (PUBLIC, AUTHENTICATED):
        return True
    return bool(access & user_roles)
