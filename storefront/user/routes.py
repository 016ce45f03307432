from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.dependencies import current_context, ensure_self_or_admin, require_roles
from storefront.auth.repository import require_user_by_email, require_user_by_id
from storefront.auth.security import Role, SecurityContext
from storefront.auth.services import create_user, user_out
from storefront.auth.utils import hash_password
from storefront.common.logging_setup import get_logger
from storefront.common.pagination import PageParams, fetch_page, page_params
from storefront.common.utils import message_response, success_response
from storefront.db.dependencies import get_session
from storefront.schema.full_schema import Providers
from storefront.user.models import UserCreateIn, UserUpdateIn
from storefront.user.repository import USER_SORTABLE, delete_user_cascade, users_by_keyword_query, users_query

logger = get_logger("storefront.user")

user_router = APIRouter()


@user_router.post("", status_code=status.HTTP_201_CREATED)
async def register_user(payload: UserCreateIn, session: AsyncSession = Depends(get_session)):

    logger.info("signup.attempt", extra={"email": payload.email})

    user = await create_user(
        session,
        email=payload.email,
        name=payload.name,
        password=payload.password,
        provider=Providers.SELF,
        gender=payload.gender,
        about=payload.about,
        image_name=payload.image_name,
    )
    out = await user_out(session, user)
    return success_response(out.model_dump(mode="json"), status.HTTP_201_CREATED)


@user_router.put("/{user_id}")
async def update_user(user_id: str, payload: UserUpdateIn,
                      context: SecurityContext = Depends(current_context),
                      session: AsyncSession = Depends(get_session)):
    ensure_self_or_admin(context, user_id)
    user = await require_user_by_id(session, user_id)

    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    password = updates.pop("password", None)
    for field_name, value in updates.items():
        setattr(user, field_name, value)
    if password:
        user.password_hash = hash_password(password)

    await session.commit()
    logger.info("user.updated", extra={"user_id": user_id, "fields": sorted(updates) + (["password"] if password else [])})

    out = await user_out(session, user)
    return success_response(out.model_dump(mode="json"))


@user_router.delete("/{user_id}", dependencies=[require_roles(Role.ADMIN)])
async def delete_user(user_id: str, session: AsyncSession = Depends(get_session)):
    await require_user_by_id(session, user_id)
    await delete_user_cascade(session, user_id)
    await session.commit()

    logger.info("user.deleted", extra={"user_id": user_id})
    return message_response("User is successfully deleted !!")


@user_router.get("")
async def list_users(params: PageParams = Depends(page_params("name")),
                     session: AsyncSession = Depends(get_session)):
    page = await fetch_page(session, users_query(), params, USER_SORTABLE)
    page["content"] = [(await user_out(session, u)).model_dump(mode="json") for u in page["content"]]
    return success_response(page)


@user_router.get("/email/{email}")
async def get_user_by_email(email: str, session: AsyncSession = Depends(get_session)):
    user = await require_user_by_email(session, email.strip().lower())
    out = await user_out(session, user)
    return success_response(out.model_dump(mode="json"))


@user_router.get("/search/{keywords}")
async def search_users(keywords: str, params: PageParams = Depends(page_params("name")),
                       session: AsyncSession = Depends(get_session)):
    page = await fetch_page(session, users_by_keyword_query(keywords), params, USER_SORTABLE)
    page["content"] = [(await user_out(session, u)).model_dump(mode="json") for u in page["content"]]
    return success_response(page)


@user_router.get("/{user_id}")
async def get_user(user_id: str, session: AsyncSession = Depends(get_session)):
    user = await require_user_by_id(session, user_id)
    out = await user_out(session, user)
    return success_response(out.model_dump(mode="json"))
