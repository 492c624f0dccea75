"""Role-Based Access Control (RBAC) utilities for staff routes."""

from enum import Enum
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status

from app.core.security import decode_access_token
from app.db.session import DbSession


class UserRole(str, Enum):
    """User roles for RBAC."""

    ADMIN = "admin"
    STAFF = "staff"
    CUSTOMER = "customer"


# Role hierarchy: admin > staff > customer
ROLE_HIERARCHY = {
    UserRole.ADMIN: 3,
    UserRole.STAFF: 2,
    UserRole.CUSTOMER: 1,
}


class TokenData:
    """Decoded token data.

    Attributes:
        user_id: The user's database ID.
        username: The user's login name.
        role: The user's role (admin/staff/customer).
        shop_id: The tenant every staff query is scoped to.
    """

    def __init__(self, user_id: int, username: str, role: UserRole, shop_id: int):
        self.user_id = user_id
        self.id = user_id
        self.username = username
        self.role = role
        self.shop_id = shop_id


def token_data_from_payload(payload: Optional[dict]) -> Optional[TokenData]:
    """Build TokenData from a decoded JWT payload, or None if incomplete."""
    if not payload:
        return None
    user_id = payload.get("sub")
    username = payload.get("username")
    role = payload.get("role")
    shop_id = payload.get("shop_id")
    if user_id is None or username is None or role is None or shop_id is None:
        return None
    try:
        user_role = UserRole(role)
    except ValueError:
        return None
    return TokenData(user_id=int(user_id), username=username, role=user_role, shop_id=int(shop_id))


async def get_current_user(request: Request, db: DbSession) -> TokenData:
    """Get the current authenticated user from the Bearer token."""
    payload = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = token_data_from_payload(payload)
    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    # Verify user is still active in the database
    from app.models.user import User
    user = db.query(User).filter(
        User.id == token_data.user_id,
        User.shop_id == token_data.shop_id,
    ).first()
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is disabled",
        )

    return token_data


def require_role(minimum_role: UserRole):
    """Dependency to require a minimum role level."""

    async def role_checker(
        current_user: Annotated[TokenData, Depends(get_current_user)]
    ) -> TokenData:
        user_level = ROLE_HIERARCHY.get(current_user.role, 0)
        required_level = ROLE_HIERARCHY.get(minimum_role, 0)

        if user_level < required_level:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role {minimum_role.value} or higher",
            )
        return current_user

    return role_checker


RequireAdmin = Annotated[TokenData, Depends(require_role(UserRole.ADMIN))]
RequireStaff = Annotated[TokenData, Depends(require_role(UserRole.STAFF))]
CurrentUser = Annotated[TokenData, Depends(get_current_user)]
