from typing import Tuple

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.auth.rules import AUTHENTICATED, ROUTE_RULES, RouteRule, is_allowed, match_rule, requires_login
from storefront.common.utils import build_error, json_error
from storefront.middlewares.constants import SECURITY_CONTEXT_ATTR, logger


class AuthorizationMiddleware(BaseHTTPMiddleware):
    """Evaluates the route rule table against the SecurityContext the authentication middleware left behind."""

    def __init__(self, app, *, rules: Tuple[RouteRule, ...] = ROUTE_RULES, default_policy: str = "deny"):
        super().__init__(app)
        self.rules = rules
        self.default_policy = default_policy.lower()

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return await call_next(request)

        path = request.url.path
        rule = match_rule(request.method, path, self.rules)

        if rule is None:
            if self.default_policy == "allow":
                return await call_next(request)
            access = AUTHENTICATED
            deny_authenticated = True
        else:
            access = rule.access
            deny_authenticated = False

        if not requires_login(access):
            return await call_next(request)

        context = getattr(request.state, SECURITY_CONTEXT_ATTR, None)
        if context is None:
            logger.warning("auth.authorization.unauthenticated", extra={"path": path, "method": request.method})
            payload = build_error("Full authentication is required to access this resource",
                                  status.HTTP_401_UNAUTHORIZED, code="UNAUTHENTICATED")
            return json_error(payload, status_code=status.HTTP_401_UNAUTHORIZED,
                              headers={"WWW-Authenticate": "Bearer"})

        if deny_authenticated or not is_allowed(access, context.roles):
            logger.warning("auth.authorization.forbidden", extra={
                "path": path,
                "method": request.method,
                "user_id": context.user_id,
            })
            payload = build_error("Access denied", status.HTTP_403_FORBIDDEN, code="ACCESS_DENIED")
            return json_error(payload, status_code=status.HTTP_403_FORBIDDEN)

        logger.debug("auth.authorization.granted", extra={"path": path, "user_id": context.user_id})
        return await call_next(request)
