from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.auth.constants import BEARER_PREFIX, JWT_HEADER_NAME
from storefront.auth.services import load_security_context
from storefront.auth.tokens import JwtHelper
from storefront.common.custom_exceptions import TokenInvalid
from storefront.middlewares.constants import SECURITY_CONTEXT_ATTR, logger


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """
    Attaches a SecurityContext to the request when it carries a usable bearer token.

    Never rejects anything itself: a missing, malformed or expired token just
    leaves the request anonymous, and AuthorizationMiddleware decides whether
    that is acceptable for the route.
    """

    def __init__(self, app, *, session_maker, jwt_helper: JwtHelper):
        super().__init__(app)
        self.session_maker = session_maker
        self.jwt_helper = jwt_helper

    async def dispatch(self, request: Request, call_next):
        setattr(request.state, SECURITY_CONTEXT_ATTR, None)

        header = request.headers.get(JWT_HEADER_NAME)
        if not header or not header.startswith(BEARER_PREFIX):
            if header:
                logger.info("auth.filter.bad_header", extra={"path": request.url.path})
            return await call_next(request)

        token = header[len(BEARER_PREFIX):]
        subject = None
        try:
            subject = self.jwt_helper.subject_of(token)
        except TokenInvalid:
            logger.info("auth.filter.invalid_token", extra={"path": request.url.path})
        except Exception:
            logger.exception("auth.filter.subject_extraction_failed", extra={"path": request.url.path})

        if subject and getattr(request.state, SECURITY_CONTEXT_ATTR, None) is None:
            async with self.session_maker() as session:
                context = await load_security_context(session, self.jwt_helper, subject, token)
            if context is not None:
                setattr(request.state, SECURITY_CONTEXT_ATTR, context)
                logger.debug("auth.filter.authenticated", extra={
                    "user_id": context.user_id,
                    "path": request.url.path,
                })

        return await call_next(request)
