# aishe_portal/services/auth_service.py

from sqlalchemy.ext.asyncio import AsyncSession

from aishe_portal.core.errors import ForbiddenError, NotFoundError, UnauthorizedError, ValidationError
from aishe_portal.core.security import create_access_token, verify_password
from aishe_portal.models.user import DepartmentUser, PortalUser, UserRole
from aishe_portal.schemas.user import UserRead
from aishe_portal.services.user_service import get_user_by_username


# ============================================================================
# AUTHENTICATE (any role)
# ============================================================================
async def authenticate_user(
    session: AsyncSession,
    role: UserRole,
    username: str,
    password: str,
) -> PortalUser:
    username = (username or "").strip()
    if not username or not password:
        raise ValidationError("Username and password are required")

    user = await get_user_by_username(session, role, username)
    if not user:
        raise NotFoundError("No account found")

    # Lock wins over credentials
    if isinstance(user, DepartmentUser) and user.locked:
        raise ForbiddenError("Account locked by Nodal Officer")

    if not verify_password(password, user.password):
        raise UnauthorizedError("Invalid username or password")

    return user


# ============================================================================
# CREATE LOGIN RESPONSE
# ============================================================================
def create_login_response(user: PortalUser, role: UserRole) -> dict:
    token = create_access_token(
        {"id": user.id, "username": user.username, "role": role.value}
    )

    user_read = UserRead.model_validate(user).model_dump(exclude_none=True)
    user_read["role"] = user.role or role.value
    user_read["user_type"] = role.value

    return {
        "success": True,
        "message": "Login successful",
        "token": token,
        "user": user_read,
    }
