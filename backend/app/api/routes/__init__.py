"""API routes."""

from fastapi import APIRouter

from app.api.routes import (
    admin_orders,
    admin_sessions,
    auth,
    cart,
    desks,
    menu,
    orders,
    sessions,
)

api_router = APIRouter()

# Customer-facing (ordering session headers)
api_router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
api_router.include_router(menu.router, prefix="/menu", tags=["menu"])
api_router.include_router(cart.router, prefix="/cart", tags=["cart"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])

# Staff (Bearer JWT)
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(admin_orders.router, prefix="/admin", tags=["admin-orders"])
api_router.include_router(desks.router, prefix="/admin", tags=["admin-desks"])
api_router.include_router(admin_sessions.router, prefix="/admin/sessions", tags=["admin-sessions"])
