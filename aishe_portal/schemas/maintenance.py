from typing import Optional
from pydantic import BaseModel


class MaintenanceStatus(BaseModel):
    enabled: bool
    message: str = ""


class MaintenanceUpdate(BaseModel):
    enabled: Optional[bool] = None
    # legacy key used by the old admin dashboard
    maintenance: Optional[bool] = None
    message: Optional[str] = ""

    def resolved_enabled(self) -> bool:
        if self.enabled is not None:
            return self.enabled
        return bool(self.maintenance)
