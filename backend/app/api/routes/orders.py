"""Customer order routes: checkout and order tracking."""

import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Request, status

from app.api.deps import Cache, CustomerContextDep, PersistedCustomerContext
from app.core.errors import NotFound
from app.core.rate_limit import limiter
from app.core.realtime import Events, ws_manager
from app.db.session import DbSession
from app.schemas.order import CheckoutRequest, OrderResponse
from app.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def place_order(
    request: Request,
    body: CheckoutRequest,
    context: PersistedCustomerContext,
    db: DbSession,
    cache: Cache,
    background_tasks: BackgroundTasks,
):
    """Turn the session's cart into an order."""
    order = OrderService(db, cache).checkout(
        context.session_id,
        context.table_number,
        context.shop_id,
        customer_name=body.customer_name,
        customer_phone=body.customer_phone,
        notes=body.notes,
    )
    payload = OrderResponse.model_validate(order)
    background_tasks.add_task(
        ws_manager.publish, order.shop_id, Events.ORDER_CREATED, payload.model_dump(mode="json")
    )
    return payload


@router.get("", response_model=List[OrderResponse])
@limiter.limit("60/minute")
def list_session_orders(request: Request, context: CustomerContextDep, db: DbSession, cache: Cache):
    """The session's orders that have not been settled."""
    return OrderService(db, cache).list_for_session(context.session_id, context.shop_id)


@router.get("/{order_id}", response_model=OrderResponse)
@limiter.limit("60/minute")
def get_session_order(
    request: Request,
    order_id: int,
    context: CustomerContextDep,
    db: DbSession,
    cache: Cache,
):
    order = OrderService(db, cache).get(order_id, context.shop_id)
    if order.session_id != context.session_id:
        raise NotFound(f"Order {order_id} not found")
    return order
