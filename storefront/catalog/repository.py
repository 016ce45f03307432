from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.common.custom_exceptions import CategoryNotFound, ProductNotFound
from storefront.schema.full_schema import CartItem, Category, Product

PRODUCT_SORTABLE = {
    "title": Product.title,
    "price": Product.price,
    "discounted_price": Product.discounted_price,
    "added_date": Product.added_date,
}

CATEGORY_SORTABLE = {
    "title": Category.title,
}


async def require_product(session: AsyncSession, product_id: str) -> Product:
    product = await session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(f"Product not found with given id : {product_id}")
    return product


async def require_category(session: AsyncSession, category_id: str) -> Category:
    category = await session.get(Category, category_id)
    if category is None:
        raise CategoryNotFound(f"Category not found with given id : {category_id}")
    return category


def products_query(live_only: bool = False, keyword: Optional[str] = None, category_id: Optional[str] = None):
    stmt = select(Product)
    if live_only:
        stmt = stmt.where(Product.live.is_(True))
    if keyword:
        stmt = stmt.where(Product.title.ilike(f"%{keyword}%"))
    if category_id:
        stmt = stmt.where(Product.category_id == category_id)
    return stmt


def categories_query():
    return select(Category)


async def detach_category(session: AsyncSession, category_id: str) -> None:
    await session.execute(
        update(Product).where(Product.category_id == category_id).values(category_id=None)
        .execution_options(synchronize_session=False)
    )


async def drop_product_from_carts(session: AsyncSession, product_id: str) -> None:
    await session.execute(
        delete(CartItem).where(CartItem.product_id == product_id).execution_options(synchronize_session=False)
    )
