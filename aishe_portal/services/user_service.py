# aishe_portal/services/user_service.py
#
# One set of role-parametrised queries over the admin / department / office /
# principal tables.

from sqlmodel import select
from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from aishe_portal.core.errors import ConflictError, NotFoundError, ValidationError
from aishe_portal.core.retry import with_retry
from aishe_portal.core.security import hash_password
from aishe_portal.models.user import (
    AdminUser,
    DepartmentUser,
    OfficeUser,
    PortalUser,
    UserRole,
    model_for_role,
)
from aishe_portal.schemas.user import UserCreate, UserUpdate


def normalize_email(email: str | None) -> str:
    return str(email or "").strip().lower()


# ============================================================================
# FETCH
# ============================================================================
@with_retry()
async def get_user_by_id(session: AsyncSession, role: UserRole, user_id: int) -> PortalUser | None:
    model = model_for_role(role)
    result = await session.execute(select(model).where(model.id == user_id))
    return result.scalar_one_or_none()


@with_retry()
async def get_user_by_username(session: AsyncSession, role: UserRole, username: str) -> PortalUser | None:
    model = model_for_role(role)
    result = await session.execute(select(model).where(model.username == username))
    return result.scalar_one_or_none()


@with_retry()
async def get_user_by_email(session: AsyncSession, role: UserRole, email: str) -> PortalUser | None:
    model = model_for_role(role)
    result = await session.execute(select(model).where(model.email == normalize_email(email)))
    return result.scalar_one_or_none()


@with_retry()
async def list_users(
    session: AsyncSession,
    role: UserRole,
    academic_year: str | None = None,
    dept_id: int | None = None,
) -> list[PortalUser]:
    model = model_for_role(role)
    query = select(model).order_by(model.id)

    if academic_year:
        query = query.where(model.academic_year == academic_year)
    if dept_id is not None and model is DepartmentUser:
        query = query.where(DepartmentUser.dept_id == dept_id)

    result = await session.execute(query)
    return list(result.scalars().all())


async def _ensure_unique(
    session: AsyncSession,
    role: UserRole,
    username: str,
    email: str,
    exclude_id: int | None = None,
) -> None:
    model = model_for_role(role)
    query = select(model.id).where(or_(model.username == username, model.email == email))
    if exclude_id is not None:
        query = query.where(model.id != exclude_id)

    result = await session.execute(query)
    if result.first() is not None:
        raise ConflictError("Username or Email already exists")


def _apply_role_fields(user: PortalUser, data: UserCreate | UserUpdate) -> None:
    if isinstance(user, DepartmentUser):
        user.dept_id = data.dept_id
        user.department = data.department
        user.hod = data.hod
        user.degree_level = data.degree_level
    elif isinstance(user, OfficeUser):
        user.office = data.office


# ============================================================================
# CREATE
# ============================================================================
async def create_user(session: AsyncSession, role: UserRole, data: UserCreate) -> PortalUser:
    if not data.password:
        raise ValidationError("All fields including password are required")

    username = data.username.strip()
    email = normalize_email(data.email)

    await _ensure_unique(session, role, username, email)

    model = model_for_role(role)
    user = model(
        username=username,
        email=email,
        name=data.name,
        mobile=data.mobile,
        role=data.role,
        academic_year=data.academic_year,
        password=hash_password(data.password),
    )
    _apply_role_fields(user, data)

    session.add(user)

    try:
        await session.commit()
        await session.refresh(user)
        return user

    except IntegrityError:
        await session.rollback()
        raise ConflictError("Username or Email already exists")


# ============================================================================
# UPDATE
# ============================================================================
async def update_user(
    session: AsyncSession,
    role: UserRole,
    user_id: int,
    data: UserUpdate,
) -> PortalUser:
    user = await get_user_by_id(session, role, user_id)
    if not user:
        raise NotFoundError(f"{role.value.capitalize()} user not found")

    username = data.username.strip()
    email = normalize_email(data.email)
    await _ensure_unique(session, role, username, email, exclude_id=user.id)

    user.username = username
    user.email = email
    user.name = data.name
    user.mobile = data.mobile
    user.role = data.role
    user.academic_year = data.academic_year
    _apply_role_fields(user, data)

    if data.password and data.password.strip():
        user.password = hash_password(data.password)

    session.add(user)

    try:
        await session.commit()
        await session.refresh(user)
        return user

    except IntegrityError:
        await session.rollback()
        raise ConflictError("Username or Email already exists")


async def set_password(session: AsyncSession, user: PortalUser, new_password: str) -> None:
    """Stage a new hash; the caller owns the commit."""
    user.password = hash_password(new_password)
    session.add(user)


# ============================================================================
# DELETE
# ============================================================================
async def delete_user(session: AsyncSession, role: UserRole, user_id: int) -> None:
    user = await get_user_by_id(session, role, user_id)
    if not user:
        raise NotFoundError(f"{role.value.capitalize()} user not found")

    await session.delete(user)
    await session.commit()


# ============================================================================
# DEPARTMENT USERS
# ============================================================================
async def set_locked(session: AsyncSession, user_id: int, locked: bool) -> DepartmentUser:
    user = await get_user_by_id(session, UserRole.Department, user_id)
    if not user:
        raise NotFoundError("Department user not found")

    user.locked = locked
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def update_academic_year_for_all(session: AsyncSession, academic_year: str) -> None:
    if not academic_year or not academic_year.strip():
        raise ValidationError("New academic year is required")

    for model in (DepartmentUser, OfficeUser, AdminUser):
        await session.execute(update(model).values(academic_year=academic_year.strip()))
    await session.commit()


@with_retry()
async def distinct_academic_years(session: AsyncSession) -> list[str]:
    result = await session.execute(
        select(DepartmentUser.academic_year)
        .where(DepartmentUser.academic_year.is_not(None))
        .distinct()
        .order_by(DepartmentUser.academic_year.desc())
    )
    return [row for row in result.scalars().all()]


@with_retry()
async def latest_department_user(session: AsyncSession, dept_id: int) -> DepartmentUser | None:
    result = await session.execute(
        select(DepartmentUser)
        .where(DepartmentUser.dept_id == dept_id)
        .order_by(DepartmentUser.academic_year.desc())
        .limit(1)
    )
    return result.scalars().first()


@with_retry()
async def degree_levels(session: AsyncSession, dept_id: int) -> list[str]:
    result = await session.execute(
        select(DepartmentUser.degree_level)
        .where(DepartmentUser.dept_id == dept_id)
        .distinct()
    )
    return [level for level in result.scalars().all() if level]
