# aishe_portal/api/endpoints/admins.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from aishe_portal.api.deps import get_db_session, require_admin
from aishe_portal.core.errors import NotFoundError
from aishe_portal.models.user import UserRole
from aishe_portal.schemas.user import AcademicYearUpdate, UserCreate, UserRead, UserUpdate
from aishe_portal.services.user_service import (
    create_user,
    delete_user,
    get_user_by_id,
    list_users,
    update_academic_year_for_all,
    update_user,
)

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin Management"],
    dependencies=[Depends(require_admin)],
)


def _read(user) -> dict:
    return UserRead.model_validate(user).model_dump(exclude_none=True)


@router.get("/all")
async def get_all_admins(session: AsyncSession = Depends(get_db_session)):
    admins = await list_users(session, UserRole.Admin)
    return {"success": True, "admins": [_read(a) for a in admins]}


# -------------------------------------------------------------------
# ACADEMIC YEAR (propagates to department, office and admin rows)
# -------------------------------------------------------------------
@router.post("/update-academic-year")
async def update_academic_year(
    payload: AcademicYearUpdate,
    session: AsyncSession = Depends(get_db_session),
):
    await update_academic_year_for_all(session, payload.newAcademicYear)
    return {"success": True, "message": "Academic year updated for all users"}


@router.get("/{admin_id}")
async def get_admin(admin_id: int, session: AsyncSession = Depends(get_db_session)):
    admin = await get_user_by_id(session, UserRole.Admin, admin_id)
    if not admin:
        raise NotFoundError("Admin not found")
    return {"success": True, "admin": _read(admin)}


@router.post("/")
async def add_admin(data: UserCreate, session: AsyncSession = Depends(get_db_session)):
    admin = await create_user(session, UserRole.Admin, data)
    return {"success": True, "message": "Admin added successfully", "admin": _read(admin)}


@router.put("/{admin_id}")
async def edit_admin(
    admin_id: int,
    data: UserUpdate,
    session: AsyncSession = Depends(get_db_session),
):
    admin = await update_user(session, UserRole.Admin, admin_id, data)
    return {"success": True, "message": "Admin updated successfully", "admin": _read(admin)}


@router.delete("/{admin_id}")
async def remove_admin(admin_id: int, session: AsyncSession = Depends(get_db_session)):
    await delete_user(session, UserRole.Admin, admin_id)
    return {"success": True, "message": "Admin deleted successfully"}
