from datetime import timedelta

import pytest
from sqlmodel import select

from aishe_portal.core.database import AsyncSessionLocal
from aishe_portal.models.app_setting import AppSetting
from aishe_portal.models.clock import as_utc, utcnow
from aishe_portal.models.password_reset import PasswordReset
from aishe_portal.models.user import USER_MODELS, UserRole
from aishe_portal.services.settings_service import set_maintenance_status


def test_utcnow_is_timezone_aware():
    assert utcnow().utcoffset() == timedelta(0)


def test_timestamp_columns_are_timezone_aware():
    columns = [model.__table__.c.created_at for model in USER_MODELS.values()]
    columns += [
        PasswordReset.__table__.c.created_at,
        PasswordReset.__table__.c.expires_at,
        AppSetting.__table__.c.updated_at,
    ]
    for column in columns:
        assert column.type.timezone is True


@pytest.mark.asyncio
async def test_reset_row_round_trips_as_utc(session):
    created = utcnow()
    session.add(
        PasswordReset(
            email="user@example.com",
            otp="482913",
            expires_at=created + timedelta(minutes=10),
            created_at=created,
        )
    )
    await session.commit()

    async with AsyncSessionLocal() as fresh:
        row = (await fresh.execute(select(PasswordReset))).scalars().one()

    assert as_utc(row.created_at) == created
    assert as_utc(row.expires_at) == created + timedelta(minutes=10)


@pytest.mark.asyncio
@pytest.mark.parametrize("role", list(UserRole))
async def test_every_user_table_accepts_inserts(make_user, role):
    user = await make_user(role, f"{role.value}-user", f"{role.value}@example.com")

    async with AsyncSessionLocal() as fresh:
        stored = await fresh.get(USER_MODELS[role], user.id)

    assert stored.username == f"{role.value}-user"
    assert as_utc(stored.created_at) <= utcnow()


@pytest.mark.asyncio
async def test_settings_upsert_stamps_updated_at(session):
    await set_maintenance_status(session, True, "upgrade")
    await set_maintenance_status(session, False, "")

    async with AsyncSessionLocal() as fresh:
        rows = (await fresh.execute(select(AppSetting))).scalars().all()

    assert {r.name: r.value for r in rows} == {"maintenance_mode": "0", "maintenance_message": ""}
    assert all(as_utc(r.updated_at) <= utcnow() for r in rows)
