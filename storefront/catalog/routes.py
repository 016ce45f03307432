from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.dependencies import require_roles
from storefront.auth.security import Role
from storefront.catalog.models import CategoryIn, CategoryOut, ProductIn, ProductOut, ProductUpdateIn
from storefront.catalog.repository import (CATEGORY_SORTABLE, PRODUCT_SORTABLE, categories_query, detach_category,
                                           drop_product_from_carts, products_query, require_category,
                                           require_product)
from storefront.common.custom_exceptions import BadApiRequest
from storefront.common.logging_setup import get_logger
from storefront.common.pagination import PageParams, fetch_page, page_params
from storefront.common.utils import message_response, success_response
from storefront.db.dependencies import get_session
from storefront.schema.full_schema import Category, OrderItem, Product

logger = get_logger("storefront.catalog")

categories_router = APIRouter()
products_router = APIRouter()

admin_only = [require_roles(Role.ADMIN)]


def _product(p: Product) -> dict:
    return ProductOut.model_validate(p).model_dump(mode="json")


def _category(c: Category) -> dict:
    return CategoryOut.model_validate(c).model_dump(mode="json")


# ---------------------------------------------------------------- categories

@categories_router.post("", status_code=status.HTTP_201_CREATED, dependencies=admin_only)
async def create_category(payload: CategoryIn, session: AsyncSession = Depends(get_session)):
    category = Category(**payload.model_dump())
    session.add(category)
    await session.commit()
    logger.info("category.created", extra={"category_id": category.id})
    return success_response(_category(category), status.HTTP_201_CREATED)


@categories_router.put("/{category_id}", dependencies=admin_only)
async def update_category(category_id: str, payload: CategoryIn, session: AsyncSession = Depends(get_session)):
    category = await require_category(session, category_id)
    for field_name, value in payload.model_dump().items():
        setattr(category, field_name, value)
    await session.commit()
    return success_response(_category(category))


@categories_router.delete("/{category_id}", dependencies=admin_only)
async def delete_category(category_id: str, session: AsyncSession = Depends(get_session)):
    category = await require_category(session, category_id)
    await detach_category(session, category_id)
    await session.delete(category)
    await session.commit()
    logger.info("category.deleted", extra={"category_id": category_id})
    return message_response("Category is deleted successfully !!")


@categories_router.get("")
async def list_categories(params: PageParams = Depends(page_params("title")),
                          session: AsyncSession = Depends(get_session)):
    page = await fetch_page(session, categories_query(), params, CATEGORY_SORTABLE)
    page["content"] = [_category(c) for c in page["content"]]
    return success_response(page)


@categories_router.get("/{category_id}")
async def get_category(category_id: str, session: AsyncSession = Depends(get_session)):
    return success_response(_category(await require_category(session, category_id)))


@categories_router.post("/{category_id}/products", status_code=status.HTTP_201_CREATED, dependencies=admin_only)
async def create_product_in_category(category_id: str, payload: ProductIn,
                                     session: AsyncSession = Depends(get_session)):
    await require_category(session, category_id)
    product = Product(**payload.model_dump(exclude={"category_id"}), category_id=category_id)
    session.add(product)
    await session.commit()
    logger.info("product.created", extra={"product_id": product.id, "category_id": category_id})
    return success_response(_product(product), status.HTTP_201_CREATED)


@categories_router.put("/{category_id}/products/{product_id}", dependencies=admin_only)
async def assign_category(category_id: str, product_id: str, session: AsyncSession = Depends(get_session)):
    await require_category(session, category_id)
    product = await require_product(session, product_id)
    product.category_id = category_id
    await session.commit()
    return success_response(_product(product))


@categories_router.get("/{category_id}/products")
async def products_of_category(category_id: str, params: PageParams = Depends(page_params("title")),
                               session: AsyncSession = Depends(get_session)):
    await require_category(session, category_id)
    page = await fetch_page(session, products_query(category_id=category_id), params, PRODUCT_SORTABLE)
    page["content"] = [_product(p) for p in page["content"]]
    return success_response(page)


# ------------------------------------------------------------------ products

@products_router.post("", status_code=status.HTTP_201_CREATED, dependencies=admin_only)
async def create_product(payload: ProductIn, session: AsyncSession = Depends(get_session)):
    if payload.category_id:
        await require_category(session, payload.category_id)
    product = Product(**payload.model_dump())
    session.add(product)
    await session.commit()
    logger.info("product.created", extra={"product_id": product.id})
    return success_response(_product(product), status.HTTP_201_CREATED)


@products_router.put("/{product_id}", dependencies=admin_only)
async def update_product(product_id: str, payload: ProductUpdateIn, session: AsyncSession = Depends(get_session)):
    product = await require_product(session, product_id)
    updates = payload.model_dump(exclude_unset=True, exclude_none=True)
    for field_name, value in updates.items():
        setattr(product, field_name, value)
    if product.discounted_price > product.price:
        raise BadApiRequest("discounted_price must not exceed price")
    await session.commit()
    logger.info("product.updated", extra={"product_id": product_id, "fields": sorted(updates)})
    return success_response(_product(product))


@products_router.delete("/{product_id}", dependencies=admin_only)
async def delete_product(product_id: str, session: AsyncSession = Depends(get_session)):
    product = await require_product(session, product_id)

    ordered = (await session.execute(select(OrderItem.id).where(OrderItem.product_id == product_id).limit(1))).first()
    if ordered:
        raise BadApiRequest("Product is part of existing orders and cannot be deleted")

    await drop_product_from_carts(session, product_id)
    await session.delete(product)
    await session.commit()
    logger.info("product.deleted", extra={"product_id": product_id})
    return message_response("Product is deleted successfully !!")


@products_router.get("")
async def list_products(params: PageParams = Depends(page_params("title")),
                        session: AsyncSession = Depends(get_session)):
    page = await fetch_page(session, products_query(), params, PRODUCT_SORTABLE)
    page["content"] = [_product(p) for p in page["content"]]
    return success_response(page)


@products_router.get("/live")
async def list_live_products(params: PageParams = Depends(page_params("title")),
                             session: AsyncSession = Depends(get_session)):
    page = await fetch_page(session, products_query(live_only=True), params, PRODUCT_SORTABLE)
    page["content"] = [_product(p) for p in page["content"]]
    return success_response(page)


@products_router.get("/search/{query}")
async def search_products(query: str, params: PageParams = Depends(page_params("title")),
                          session: AsyncSession = Depends(get_session)):
    page = await fetch_page(session, products_query(keyword=query), params, PRODUCT_SORTABLE)
    page["content"] = [_product(p) for p in page["content"]]
    return success_response(page)


@products_router.get("/{product_id}")
async def get_product(product_id: str, session: AsyncSession = Depends(get_session)):
    return success_response(_product(await require_product(session, product_id)))
