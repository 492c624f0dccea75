"""Staff desk (table) management routes."""

import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Response, status

from app.api.deps import Cache
from app.core.rbac import RequireAdmin, RequireStaff
from app.core.realtime import Events, ws_manager
from app.db.session import DbSession
from app.schemas.desk import (
    DeskCreate,
    DeskResponse,
    DeskStatusUpdate,
    DeskUpdate,
    ReleaseResponse,
    TableResetResponse,
)
from app.schemas.order import OrderResponse
from app.services.desk_service import DeskService

logger = logging.getLogger(__name__)

router = APIRouter()


def _desk_event(background_tasks: BackgroundTasks, desk: DeskResponse):
    background_tasks.add_task(
        ws_manager.publish, desk.shop_id, Events.DESK_UPDATED, desk.model_dump(mode="json")
    )


@router.get("/desks", response_model=List[DeskResponse])
def list_desks(current_user: RequireStaff, db: DbSession, cache: Cache):
    """Desks with occupancy computed from their orders."""
    views = DeskService(db, cache).list_with_status(current_user.shop_id)
    return [DeskResponse.model_validate(v) for v in views]


@router.post("/desks", response_model=DeskResponse, status_code=status.HTTP_201_CREATED)
def create_desk(body: DeskCreate, current_user: RequireStaff, db: DbSession, cache: Cache):
    view = DeskService(db, cache).create(
        current_user.shop_id,
        body.name,
        capacity=body.capacity,
        number=body.number,
        area=body.area,
    )
    return DeskResponse.model_validate(view)


@router.get("/desks/{desk_id}", response_model=DeskResponse)
def get_desk(desk_id: int, current_user: RequireStaff, db: DbSession, cache: Cache):
    return DeskResponse.model_validate(DeskService(db, cache).get(desk_id, current_user.shop_id))


@router.put("/desks/{desk_id}", response_model=DeskResponse)
def update_desk(desk_id: int, body: DeskUpdate, current_user: RequireStaff, db: DbSession, cache: Cache):
    view = DeskService(db, cache).update(
        desk_id, current_user.shop_id, **body.model_dump(exclude_unset=True)
    )
    return DeskResponse.model_validate(view)


@router.delete("/desks/{desk_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_desk(desk_id: int, current_user: RequireAdmin, db: DbSession, cache: Cache):
    DeskService(db, cache).delete(desk_id, current_user.shop_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/desks/{desk_id}/status", response_model=DeskResponse)
def set_desk_status(
    desk_id: int,
    body: DeskStatusUpdate,
    current_user: RequireStaff,
    db: DbSession,
    cache: Cache,
    background_tasks: BackgroundTasks,
):
    """Manual override of the stored occupied/available flag."""
    view = DeskService(db, cache).toggle_status(desk_id, current_user.shop_id, body.status)
    desk = DeskResponse.model_validate(view)
    _desk_event(background_tasks, desk)
    return desk


@router.post("/desks/{desk_id}/release", response_model=ReleaseResponse)
def release_desk(
    desk_id: int,
    current_user: RequireStaff,
    db: DbSession,
    cache: Cache,
    background_tasks: BackgroundTasks,
):
    """Settle the bill: complete and mark paid every order occupying the desk."""
    orders = DeskService(db, cache).complete_and_pay(desk_id, current_user.shop_id)
    result = ReleaseResponse(
        desk_id=desk_id,
        released_count=len(orders),
        orders=[OrderResponse.model_validate(o) for o in orders],
    )
    background_tasks.add_task(
        ws_manager.publish, current_user.shop_id, Events.DESK_RELEASED, result.model_dump(mode="json")
    )
    return result


@router.post("/tables/{table_number}/reset", response_model=TableResetResponse)
def reset_table(
    table_number: str,
    current_user: RequireStaff,
    db: DbSession,
    cache: Cache,
    background_tasks: BackgroundTasks,
):
    """Cancel pending orders, clear carts and expire sessions at a table."""
    result = DeskService(db, cache).reset_table(table_number, current_user.shop_id)
    background_tasks.add_task(
        ws_manager.publish, current_user.shop_id, Events.DESK_UPDATED, result
    )
    return result
