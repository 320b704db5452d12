# aishe_portal/api/deps.py

from typing import AsyncGenerator
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from aishe_portal.core.database import get_session
from aishe_portal.core.errors import ForbiddenError
from aishe_portal.core.maintenance import MaintenanceGate
from aishe_portal.core.security import TokenError, decode_token, extract_bearer_token
from aishe_portal.models.user import PortalUser, UserRole
from aishe_portal.services.user_service import get_user_by_id


# ------------------------------------------------------------
# DB Session
# ------------------------------------------------------------
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


def get_maintenance_gate(request: Request) -> MaintenanceGate:
    return request.app.state.maintenance_gate


# ------------------------------------------------------------
# Authenticated principal
# ------------------------------------------------------------
class CurrentUser:
    def __init__(self, user: PortalUser, role: UserRole):
        self.user = user
        self.role = role


async def get_current_user(
    authorization: str | None = Header(default=None),
    session: AsyncSession = Depends(get_db_session),
) -> CurrentUser:
    token = extract_bearer_token(authorization)
    payload = decode_token(token)

    try:
        role = UserRole(payload.get("role"))
        user_id = int(payload.get("id"))
    except (TypeError, ValueError):
        raise TokenError("Invalid token payload")

    user = await get_user_by_id(session, role, user_id)
    if not user:
        raise TokenError("User not found")

    return CurrentUser(user, role)


# ------------------------------------------------------------
# Role-based access control
# ------------------------------------------------------------
def role_required(*allowed_roles: UserRole):
    allowed = {UserRole(r) for r in allowed_roles}

    async def checker(current: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current.role not in allowed:
            raise ForbiddenError(f"Access denied for role '{current.role.value}'")
        return current

    return checker


require_admin = role_required(UserRole.Admin)
