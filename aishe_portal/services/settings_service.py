# aishe_portal/services/settings_service.py

from sqlmodel import select
from sqlalchemy.ext.asyncio import AsyncSession

from aishe_portal.core.retry import with_retry
from aishe_portal.models.app_setting import AppSetting, MAINTENANCE_MESSAGE, MAINTENANCE_MODE
from aishe_portal.models.clock import utcnow
from aishe_portal.schemas.maintenance import MaintenanceStatus


def _is_enabled(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true")


@with_retry()
async def get_maintenance_status(session: AsyncSession) -> MaintenanceStatus:
    result = await session.execute(
        select(AppSetting).where(AppSetting.name.in_([MAINTENANCE_MODE, MAINTENANCE_MESSAGE]))
    )
    values = {row.name: row.value for row in result.scalars().all()}

    return MaintenanceStatus(
        enabled=_is_enabled(values.get(MAINTENANCE_MODE)),
        message=values.get(MAINTENANCE_MESSAGE) or "",
    )


async def _upsert(session: AsyncSession, name: str, value: str) -> None:
    setting = await session.get(AppSetting, name)
    if setting is None:
        setting = AppSetting(name=name, value=value)
    else:
        setting.value = value
        setting.updated_at = utcnow()
    session.add(setting)


async def set_maintenance_status(
    session: AsyncSession,
    enabled: bool,
    message: str | None = "",
) -> MaintenanceStatus:
    message = str(message or "")

    await _upsert(session, MAINTENANCE_MODE, "1" if enabled else "0")
    await _upsert(session, MAINTENANCE_MESSAGE, message)
    await session.commit()

    return MaintenanceStatus(enabled=bool(enabled), message=message)
