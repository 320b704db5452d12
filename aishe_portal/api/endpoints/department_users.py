# aishe_portal/api/endpoints/department_users.py

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from aishe_portal.api.deps import get_db_session, require_admin
from aishe_portal.core.errors import NotFoundError
from aishe_portal.models.user import UserRole
from aishe_portal.schemas.user import LockRequest, UserCreate, UserRead, UserUpdate
from aishe_portal.services.user_service import (
    create_user,
    degree_levels,
    delete_user,
    distinct_academic_years,
    get_user_by_id,
    latest_department_user,
    list_users,
    set_locked,
    update_user,
)

router = APIRouter(
    prefix="/api/department-user",
    tags=["Department Users"],
    dependencies=[Depends(require_admin)],
)


def _read(user) -> dict:
    return UserRead.model_validate(user).model_dump(exclude_none=True)


@router.get("/")
async def get_all_department_users(
    academic_year: Optional[str] = Query(None),
    dept_id: Optional[int] = Query(None),
    session: AsyncSession = Depends(get_db_session),
):
    users = await list_users(session, UserRole.Department, academic_year=academic_year, dept_id=dept_id)
    return {"success": True, "users": [_read(u) for u in users]}


# -------------------------------------------------------------------
# LOOKUPS (declared before /{user_id})
# -------------------------------------------------------------------
@router.get("/distinct/years")
async def get_distinct_academic_years(session: AsyncSession = Depends(get_db_session)):
    return {"success": True, "years": await distinct_academic_years(session)}


@router.get("/academic-year/{dept_id}")
async def get_academic_year(dept_id: int, session: AsyncSession = Depends(get_db_session)):
    user = await latest_department_user(session, dept_id)
    if not user or not user.academic_year:
        return {"success": False, "years": []}
    return {"success": True, "academic_year": user.academic_year}


@router.get("/hod/{dept_id}")
async def get_hod_name(dept_id: int, session: AsyncSession = Depends(get_db_session)):
    user = await latest_department_user(session, dept_id)
    if not user or not user.hod:
        return {"success": False, "hod_name": None, "message": "HOD name not found"}
    return {"success": True, "hod_name": user.hod}


@router.get("/degree-levels/{dept_id}")
async def get_degree_levels(dept_id: int, session: AsyncSession = Depends(get_db_session)):
    return {"success": True, "degree_levels": await degree_levels(session, dept_id)}


# -------------------------------------------------------------------
# CRUD
# -------------------------------------------------------------------
@router.get("/{user_id}")
async def get_department_user(user_id: int, session: AsyncSession = Depends(get_db_session)):
    user = await get_user_by_id(session, UserRole.Department, user_id)
    if not user:
        raise NotFoundError("Department user not found")
    return {"success": True, "user": _read(user)}


@router.post("/")
async def add_department_user(data: UserCreate, session: AsyncSession = Depends(get_db_session)):
    user = await create_user(session, UserRole.Department, data)
    return {"success": True, "message": "Department user added successfully", "user": _read(user)}


@router.put("/{user_id}")
async def edit_department_user(
    user_id: int,
    data: UserUpdate,
    session: AsyncSession = Depends(get_db_session),
):
    user = await update_user(session, UserRole.Department, user_id, data)
    return {"success": True, "message": "Department user updated successfully", "user": _read(user)}


@router.delete("/{user_id}")
async def remove_department_user(user_id: int, session: AsyncSession = Depends(get_db_session)):
    await delete_user(session, UserRole.Department, user_id)
    return {"success": True, "message": "Department user deleted successfully"}


@router.patch("/{user_id}/lock")
async def toggle_lock(
    user_id: int,
    payload: LockRequest,
    session: AsyncSession = Depends(get_db_session),
):
    user = await set_locked(session, user_id, payload.locked)
    state = "locked" if user.locked else "unlocked"
    return {"success": True, "message": f"Department user {state}", "locked": user.locked}
