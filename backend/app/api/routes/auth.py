"""Staff authentication routes."""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from app.core.config import settings
from app.core.rate_limit import limiter
from app.core.rbac import CurrentUser
from app.core.security import create_staff_token, verify_password
from app.db.session import DbSession
from app.models.user import User
from app.schemas.auth import LoginRequest, Token, UserResponse

logger = logging.getLogger("auth")

router = APIRouter()


@router.post("/login", response_model=Token)
@limiter.limit("5/minute")
def login(request: Request, login_request: LoginRequest, db: DbSession):
    """Authenticate a staff member and return a JWT scoped to their shop."""
    client_ip = request.client.host if request.client else "unknown"
    shop_id = login_request.shop_id or settings.default_shop_id
    user = db.query(User).filter(
        User.username == login_request.username,
        User.shop_id == shop_id,
    ).first()

    if not user or not verify_password(login_request.password, user.password_hash):
        logger.warning(
            f"Failed login attempt for {login_request.username} (shop {shop_id}) from IP: {client_ip}"
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )
    if not user.is_active:
        logger.warning(f"Login attempt for inactive user: {user.username} (ID: {user.id}) from IP: {client_ip}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is inactive",
        )

    logger.info(f"Successful login: {user.username} (ID: {user.id}, role: {user.role.value}) from IP: {client_ip}")
    token = create_staff_token(user.id, user.username, user.role.value, user.shop_id)
    return Token(access_token=token)


@router.get("/me", response_model=UserResponse)
def read_current_user(current_user: CurrentUser, db: DbSession):
    """Return the authenticated user."""
    user = db.query(User).filter(
        User.id == current_user.user_id,
        User.shop_id == current_user.shop_id,
    ).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user
