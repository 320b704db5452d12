from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, String, Text
from datetime import datetime

from aishe_portal.models.clock import utcnow

MAINTENANCE_MODE = "maintenance_mode"
MAINTENANCE_MESSAGE = "maintenance_message"


class AppSetting(SQLModel, table=True):
    __tablename__ = "app_settings"

    name: str = Field(sa_column=Column(String(64), primary_key=True))
    value: str = Field(sa_column=Column(Text, nullable=False))
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
