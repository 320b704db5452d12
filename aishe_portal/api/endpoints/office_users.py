# aishe_portal/api/endpoints/office_users.py

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from aishe_portal.api.deps import get_db_session, require_admin
from aishe_portal.core.errors import NotFoundError
from aishe_portal.models.user import UserRole
from aishe_portal.schemas.user import UserCreate, UserRead, UserUpdate
from aishe_portal.services.user_service import (
    create_user,
    delete_user,
    get_user_by_id,
    list_users,
    update_user,
)

router = APIRouter(
    prefix="/api/office-user",
    tags=["Office Users"],
    dependencies=[Depends(require_admin)],
)


def _read(user) -> dict:
    return UserRead.model_validate(user).model_dump(exclude_none=True)


@router.get("/")
async def get_all_office_users(
    academic_year: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_db_session),
):
    users = await list_users(session, UserRole.Office, academic_year=academic_year)
    return {"success": True, "users": [_read(u) for u in users]}


@router.get("/{user_id}")
async def get_office_user(user_id: int, session: AsyncSession = Depends(get_db_session)):
    user = await get_user_by_id(session, UserRole.Office, user_id)
    if not user:
        raise NotFoundError("Office user not found")
    return {"success": True, "user": _read(user)}


@router.post("/")
async def add_office_user(data: UserCreate, session: AsyncSession = Depends(get_db_session)):
    user = await create_user(session, UserRole.Office, data)
    return {"success": True, "message": "Office user added successfully", "user": _read(user)}


@router.put("/{user_id}")
async def edit_office_user(
    user_id: int,
    data: UserUpdate,
    session: AsyncSession = Depends(get_db_session),
):
    user = await update_user(session, UserRole.Office, user_id, data)
    return {"success": True, "message": "Office user updated successfully", "user": _read(user)}


@router.delete("/{user_id}")
async def remove_office_user(user_id: int, session: AsyncSession = Depends(get_db_session)):
    await delete_user(session, UserRole.Office, user_id)
    return {"success": True, "message": "Office user deleted successfully"}
