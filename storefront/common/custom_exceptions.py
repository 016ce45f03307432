from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.common.constants import request_id_ctx
from storefront.common.logging_setup import get_logger
from storefront.common.utils import build_error, json_error

logger = get_logger("storefront.errors")


class StoreError(Exception):
    """Base of every domain failure; carries the HTTP status it maps to."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "STORE_ERROR"
    default_message = "Request could not be processed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# 401 family
class InvalidCredentials(StoreError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid Username or Password !!"

class TokenInvalid(StoreError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "TOKEN_INVALID"
    default_message = "Invalid token"

class TokenExpired(StoreError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "TOKEN_EXPIRED"
    default_message = "Token is expired"

class InvalidFederatedToken(StoreError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "INVALID_FEDERATED_TOKEN"
    default_message = "Invalid Google token"

class RefreshTokenExpired(StoreError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "REFRESH_TOKEN_EXPIRED"
    default_message = "Refresh Token Expired !!"

class Unauthenticated(StoreError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHENTICATED"
    default_message = "Full authentication is required to access this resource"


class AccessDenied(StoreError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "ACCESS_DENIED"
    default_message = "Access denied"


# 404 family
class ResourceNotFound(StoreError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Resource not found !!"

class UserNotFound(ResourceNotFound):
    code = "USER_NOT_FOUND"
    default_message = "User not found !!"

class CartNotFound(ResourceNotFound):
    code = "CART_NOT_FOUND"
    default_message = "Cart not found !!"

class CartItemNotFound(ResourceNotFound):
    code = "CART_ITEM_NOT_FOUND"
    default_message = "Cart item not found !!"

class RefreshTokenNotFound(ResourceNotFound):
    code = "REFRESH_TOKEN_NOT_FOUND"
    default_message = "Refresh token not found !!"

class ProductNotFound(ResourceNotFound):
    code = "PRODUCT_NOT_FOUND"
    default_message = "Product not found !!"

class CategoryNotFound(ResourceNotFound):
    code = "CATEGORY_NOT_FOUND"
    default_message = "Category not found !!"

class OrderNotFound(ResourceNotFound):
    code = "ORDER_NOT_FOUND"
    default_message = "Order not found !!"


# 400 family
class BadApiRequest(StoreError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"
    default_message = "Bad request"

class EmptyCart(BadApiRequest):
    code = "EMPTY_CART"
    default_message = "Invalid number of items in cart !!"

class InvalidQuantity(BadApiRequest):
    code = "INVALID_QUANTITY"
    default_message = "Requested quantity is not valid !!"

class InvalidStatusTransition(BadApiRequest):
    code = "INVALID_STATUS_TRANSITION"
    default_message = "Status change is not allowed"


# 409 family
class CredentialConflict(StoreError):
    status_code = status.HTTP_409_CONFLICT
    code = "CREDENTIAL_CONFLICT"
    default_message = "Email is already registered. Try logging in with username and password."

class DuplicateEmail(StoreError):
    status_code = status.HTTP_409_CONFLICT
    code = "DUPLICATE_EMAIL"
    default_message = "User with this email already exists"


class PaymentProviderError(StoreError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "PAYMENT_PROVIDER_ERROR"
    default_message = "Payment provider request failed"


async def store_error_handler(request: Request, exc: StoreError):
    rid = request_id_ctx.get(None)
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "request.domain_error",
        extra={
            "code": exc.code,
            "status_code": exc.status_code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    payload = build_error(exc.message, exc.status_code, code=exc.code, request_id=rid)
    return json_error(payload, status_code=exc.status_code)


async def fallback_handler(request: Request, exc: Exception):

    rid = request_id_ctx.get(None)

    logger.error(
        "unexpected.exception",
        extra={
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=exc,
    )

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    payload = build_error("Internal Server Error", status_code, code="SERVER_ERROR", request_id=rid)
    return json_error(payload, status_code=status_code)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    rid = request_id_ctx.get(None)

    fields = {}
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "header")]
        fields[".".join(loc) or "request"] = err.get("msg", "invalid value")

    logger.warning(
        "request.validation_failed",
        extra={
            "fields": list(fields),
            "path": request.url.path,
        },
    )

    status_code = status.HTTP_400_BAD_REQUEST
    payload = build_error("Invalid request", status_code, code="VALIDATION_ERROR", details=fields, request_id=rid)
    return json_error(payload, status_code=status_code)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):

    rid = request_id_ctx.get(None)

    error_code = f"HTTP_{exc.status_code}"
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"

    payload = build_error(message, exc.status_code, code=error_code, request_id=rid)
    return json_error(payload, status_code=exc.status_code, headers=getattr(exc, "headers", None))


def register_all_exceptions(app: FastAPI):

    app.add_exception_handler(
        Exception,  # anything unidentified ends up here as a generic 500
        fallback_handler
    )

    app.add_exception_handler(
        StoreError,
        store_error_handler
    )

    app.add_exception_handler(
        RequestValidationError,
        validation_exception_handler
    )

    app.add_exception_handler(
        StarletteHTTPException,
        http_exception_handler
    )
