"""Staff order management routes."""

import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Query

from app.api.deps import Cache
from app.core.rbac import RequireStaff
from app.core.realtime import Events, ws_manager
from app.db.session import DbSession
from app.schemas.order import OrderResponse, OrderStats, OrderStatusUpdate
from app.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/orders", response_model=List[OrderResponse])
def list_orders(
    current_user: RequireStaff,
    db: DbSession,
    cache: Cache,
    status: Optional[str] = Query(None),
):
    """All orders of the staff member's shop, newest first."""
    return OrderService(db, cache).list(current_user.shop_id, status=status)


@router.get("/orders/stats", response_model=OrderStats)
def order_stats(current_user: RequireStaff, db: DbSession, cache: Cache):
    return OrderService(db, cache).stats(current_user.shop_id)


@router.get("/orders/{order_id}", response_model=OrderResponse)
def get_order(order_id: int, current_user: RequireStaff, db: DbSession, cache: Cache):
    return OrderService(db, cache).get(order_id, current_user.shop_id)


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    current_user: RequireStaff,
    db: DbSession,
    cache: Cache,
    background_tasks: BackgroundTasks,
):
    """Advance or cancel an order."""
    order = OrderService(db, cache).update_status(order_id, current_user.shop_id, body.status)
    payload = OrderResponse.model_validate(order)
    background_tasks.add_task(
        ws_manager.publish,
        current_user.shop_id,
        Events.ORDER_STATUS_CHANGED,
        payload.model_dump(mode="json"),
    )
    return payload


@router.get("/customers/{customer_id}/orders", response_model=List[OrderResponse])
def list_customer_orders(customer_id: int, current_user: RequireStaff, db: DbSession, cache: Cache):
    return OrderService(db, cache).list_for_customer(customer_id, current_user.shop_id)
