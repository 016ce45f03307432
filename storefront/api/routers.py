from fastapi import APIRouter
from storefront.auth.routes import auth_router
from storefront.user.routes import user_router
from storefront.catalog.routes import categories_router, products_router
from storefront.cart.routes import carts_router
from storefront.orders.routes import orders_router, orders_admin_router
from storefront.payments.routes import payments_router
from storefront.common.routes import home_router


public_routers = APIRouter()

public_routers.include_router(auth_router, prefix="/auth", tags=["auth"])
public_routers.include_router(user_router, prefix="/users", tags=["users"])
public_routers.include_router(categories_router, prefix="/categories", tags=["categories"])
public_routers.include_router(products_router, prefix="/products", tags=["products"])
public_routers.include_router(carts_router, prefix="/carts", tags=["carts"])
public_routers.include_router(orders_router, prefix="/orders", tags=["orders"])
public_routers.include_router(payments_router, prefix="/payments", tags=["payments"])
public_routers.include_router(home_router, tags=["home"])

#--------------------------------------------------------------------------------------------------------

admin_routers = APIRouter()

admin_routers.include_router(orders_admin_router, prefix="/orders", tags=["orders-admin"])
