# aishe_portal/api/endpoints/maintenance.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from aishe_portal.api.deps import CurrentUser, get_db_session, get_maintenance_gate, require_admin
from aishe_portal.core.maintenance import MaintenanceGate
from aishe_portal.schemas.maintenance import MaintenanceUpdate
from aishe_portal.services.settings_service import get_maintenance_status, set_maintenance_status

router = APIRouter(prefix="/api/admin/maintenance", tags=["Maintenance"])


@router.get("")
async def read_maintenance(session: AsyncSession = Depends(get_db_session)):
    status = await get_maintenance_status(session)
    return {"success": True, "maintenance": status.model_dump()}


@router.post("")
async def toggle_maintenance(
    payload: MaintenanceUpdate,
    session: AsyncSession = Depends(get_db_session),
    gate: MaintenanceGate = Depends(get_maintenance_gate),
    current: CurrentUser = Depends(require_admin),
):
    status = await set_maintenance_status(session, payload.resolved_enabled(), payload.message)

    # Apply in this process now instead of after the cache window
    gate.set(status)

    logger.info(
        f"Maintenance mode {'enabled' if status.enabled else 'disabled'} by '{current.user.username}'"
    )
    return {"success": True, "maintenance": status.model_dump()}
