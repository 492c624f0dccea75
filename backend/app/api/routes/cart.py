"""Customer cart routes. Identified by the ordering session headers."""

from decimal import Decimal

from fastapi import APIRouter, Request, Response, status

from app.api.deps import Cache, CustomerContextDep, PersistedCustomerContext
from app.core.rate_limit import limiter
from app.db.session import DbSession
from app.schemas.cart import CartItemCreate, CartLineResponse, CartQuantityUpdate, CartResponse
from app.services.cart_service import CartService

router = APIRouter()


def _cart_response(service: CartService, session_id: str) -> CartResponse:
    lines = service.items(session_id)
    return CartResponse(
        items=[CartLineResponse.model_validate(line) for line in lines],
        item_count=sum(line.quantity for line in lines),
        subtotal=sum((line.line_total for line in lines), Decimal("0")),
    )


@router.get("", response_model=CartResponse)
@limiter.limit("120/minute")
def read_cart(request: Request, context: CustomerContextDep, db: DbSession, cache: Cache):
    return _cart_response(CartService(db, cache), context.session_id)


@router.post("", response_model=CartLineResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("60/minute")
def add_to_cart(
    request: Request,
    body: CartItemCreate,
    context: PersistedCustomerContext,
    db: DbSession,
    cache: Cache,
):
    """Add an item; an identical item/customization/instructions row is merged."""
    line = CartService(db, cache).add(
        context.session_id,
        context.shop_id,
        body.menu_item_id,
        quantity=body.quantity,
        customizations=body.customizations,
        special_instructions=body.special_instructions,
    )
    return CartLineResponse.model_validate(line)


@router.patch("/{cart_item_id}", response_model=CartResponse)
@limiter.limit("60/minute")
def update_cart_item(
    request: Request,
    cart_item_id: int,
    body: CartQuantityUpdate,
    context: PersistedCustomerContext,
    db: DbSession,
    cache: Cache,
):
    """Change a row's quantity; 0 removes it. Returns the whole cart."""
    service = CartService(db, cache)
    service.update_quantity(context.session_id, cart_item_id, body.quantity)
    return _cart_response(service, context.session_id)


@router.delete("/{cart_item_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("60/minute")
def remove_cart_item(
    request: Request,
    cart_item_id: int,
    context: PersistedCustomerContext,
    db: DbSession,
    cache: Cache,
):
    CartService(db, cache).remove(context.session_id, cart_item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("")
@limiter.limit("30/minute")
def clear_cart(request: Request, context: PersistedCustomerContext, db: DbSession, cache: Cache):
    return {"cleared": CartService(db, cache).clear(context.session_id)}
