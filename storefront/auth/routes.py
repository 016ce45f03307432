from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.constants import logger
from storefront.auth.dependencies import current_context
from storefront.auth.federation import GoogleTokenVerifier, get_google_verifier
from storefront.auth.models import GoogleLoginRequest, JwtRequest, RefreshTokenRequest
from storefront.auth.repository import require_user_by_email
from storefront.auth.security import SecurityContext
from storefront.auth.services import login, login_with_google, regenerate_token, user_out
from storefront.auth.tokens import JwtHelper, get_jwt_helper
from storefront.common.utils import success_response
from storefront.db.dependencies import get_session

auth_router = APIRouter()


@auth_router.post("/generate-token")
async def generate_token(payload: JwtRequest, session: AsyncSession = Depends(get_session),
                         jwt_helper: JwtHelper = Depends(get_jwt_helper)):

    logger.info("login.attempt", extra={"email": payload.email})

    response = await login(session, jwt_helper, payload.email, payload.password)
    return success_response(response.model_dump(mode="json"), 200)


@auth_router.post("/regenerate-token")
async def regenerate(payload: RefreshTokenRequest, session: AsyncSession = Depends(get_session),
                     jwt_helper: JwtHelper = Depends(get_jwt_helper)):

    logger.info("refresh.attempt")

    response = await regenerate_token(session, jwt_helper, payload.refresh_token)
    return success_response(response.model_dump(mode="json"), 200)


@auth_router.post("/login-with-google")
async def google_login(payload: GoogleLoginRequest, session: AsyncSession = Depends(get_session),
                       verifier: GoogleTokenVerifier = Depends(get_google_verifier),
                       jwt_helper: JwtHelper = Depends(get_jwt_helper)):

    logger.info("federation.login.attempt")

    response = await login_with_google(session, verifier, jwt_helper, payload.id_token)
    return success_response(response.model_dump(mode="json", exclude={"refresh_token"}), 200)


@auth_router.get("/current")
async def current_user(context: SecurityContext = Depends(current_context),
                       session: AsyncSession = Depends(get_session)):
    user = await require_user_by_email(session, context.email)
    out = await user_out(session, user)
    return success_response(out.model_dump(mode="json"), 200)
