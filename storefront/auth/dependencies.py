from typing import Optional

from fastapi import Depends, Request

from storefront.auth.security import Role, SecurityContext
from storefront.common.custom_exceptions import AccessDenied, Unauthenticated
from storefront.middlewares.constants import SECURITY_CONTEXT_ATTR


def optional_context(request: Request) -> Optional[SecurityContext]:
    return getattr(request.state, SECURITY_CONTEXT_ATTR, None)


def current_context(context: Optional[SecurityContext] = Depends(optional_context)) -> SecurityContext:
    if context is None:
        raise Unauthenticated()
    return context


def require_roles(*roles: Role):
    async def _checker(context: SecurityContext = Depends(current_context)) -> SecurityContext:
        if not context.has_any_role(*roles):
            raise AccessDenied()
        return context

    return Depends(_checker)


def ensure_self_or_admin(context: SecurityContext, user_id: str) -> None:
    """Shoppers may only act on their own user id; admins act on anyone's."""
    if context.is_admin or context.user_id == user_id:
        return
    raise AccessDenied("You are not allowed to access another user's data")
