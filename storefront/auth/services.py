from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.constants import GOOGLE_USER_ABOUT, logger
from storefront.auth.federation import FederatedProfile, GoogleTokenVerifier, extract_profile
from storefront.auth.models import JwtResponse, RefreshTokenOut
from storefront.auth.refresh import create_refresh_token, find_by_token, resolve_user, verify_refresh_token
from storefront.auth.repository import authenticate, get_user_role_names, link_user_role, user_by_email
from storefront.auth.security import Role, SecurityContext
from storefront.auth.tokens import JwtHelper
from storefront.auth.utils import hash_password, normalize_email_address
from storefront.common.custom_exceptions import BadApiRequest, CredentialConflict, DuplicateEmail
from storefront.config.settings import config_settings
from storefront.schema.full_schema import Providers, Users
from storefront.user.models import UserOut


async def user_out(session: AsyncSession, user: Users) -> UserOut:
    roles = await get_user_role_names(session, user.id)
    return UserOut(
        user_id=user.id,
        name=user.name,
        email=user.email,
        gender=user.gender,
        about=user.about,
        image_name=user.image_name,
        provider=user.provider,
        roles=roles,
        created_at=user.created_at,
    )


async def create_user(session: AsyncSession, *, email: str, name: str, password: str,
                      provider: Providers = Providers.SELF, gender: Optional[str] = None,
                      about: Optional[str] = None, image_name: Optional[str] = None,
                      role: str = config_settings.DEFAULT_ROLE) -> Users:
    try:
        email = normalize_email_address(email)
    except ValueError as e:
        raise BadApiRequest(f"Invalid email: {e}")

    if await user_by_email(session, email):
        logger.warning("user.duplicate", extra={"email": email})
        raise DuplicateEmail()

    user = Users(
        email=email,
        name=name,
        password_hash=hash_password(password),
        gender=gender,
        about=about,
        image_name=image_name,
        provider=provider.value,
    )
    session.add(user)
    try:
        await session.flush()
        await link_user_role(session, user.id, role)
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.warning("user.create.integrity_error", extra={"email": email})
        raise DuplicateEmail()

    logger.info("user.created", extra={"user_id": user.id, "email": email, "provider": provider.value})
    return user


async def issue_login_response(session: AsyncSession, jwt_helper: JwtHelper, user: Users,
                               with_refresh: bool = True) -> JwtResponse:
    token = jwt_helper.issue(user.email)
    refresh = None
    if with_refresh:
        row = await create_refresh_token(session, user.email)
        refresh = RefreshTokenOut.model_validate(row)
    return JwtResponse(token=token, user=await user_out(session, user), refresh_token=refresh)


async def login(session: AsyncSession, jwt_helper: JwtHelper, email: str, password: str) -> JwtResponse:
    user = await authenticate(session, email, password)
    response = await issue_login_response(session, jwt_helper, user)
    logger.info("auth.login.success", extra={"user_id": user.id})
    return response


async def regenerate_token(session: AsyncSession, jwt_helper: JwtHelper, refresh_value: str) -> JwtResponse:
    row = await find_by_token(session, refresh_value)
    row = await verify_refresh_token(session, row)
    user = await resolve_user(session, row)

    # rotating here means the presented value can be used once
    response = await issue_login_response(session, jwt_helper, user)
    logger.info("auth.refresh.success", extra={"user_id": user.id})
    return response


async def resolve_federated_user(session: AsyncSession, profile: FederatedProfile,
                                 default_password: str = config_settings.GOOGLE_DEFAULT_PASSWORD) -> Users:
    user = await user_by_email(session, profile.email)
    if user is not None:
        if user.provider != Providers.GOOGLE.value:
            logger.warning("federation.login.provider_conflict", extra={"email": profile.email,
                                                                         "provider": user.provider})
            raise CredentialConflict()
        return user

    return await create_user(
        session,
        email=profile.email,
        name=profile.name or profile.email.split("@", 1)[0],
        password=default_password,
        provider=Providers.GOOGLE,
        about=GOOGLE_USER_ABOUT,
        image_name=profile.picture,
    )


async def login_with_google(session: AsyncSession, verifier: GoogleTokenVerifier, jwt_helper: JwtHelper,
                            id_token: str,
                            default_password: str = config_settings.GOOGLE_DEFAULT_PASSWORD) -> JwtResponse:
    claims = await verifier.verify(id_token)
    profile = extract_profile(claims)

    user = await resolve_federated_user(session, profile, default_password)
    user = await authenticate(session, user.email, default_password)

    response = await issue_login_response(session, jwt_helper, user, with_refresh=False)
    logger.info("federation.login.success", extra={"user_id": user.id})
    return response


async def load_security_context(session: AsyncSession, jwt_helper: JwtHelper, subject: str,
                                token: str) -> Optional[SecurityContext]:
    user = await user_by_email(session, subject)
    if user is None:
        logger.warning("auth.filter.unknown_subject", extra={"email": subject})
        return None

    if user.email != subject or jwt_helper.is_expired(token):
        logger.info("auth.filter.validation_failed", extra={"user_id": user.id})
        return None

    roles = Role.parse(await get_user_role_names(session, user.id))
    return SecurityContext(user_id=user.id, email=user.email, roles=roles, token=token)
