# aishe_portal/models/password_reset.py

from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime
from datetime import datetime
from typing import Optional

from aishe_portal.models.clock import utcnow


class PasswordReset(SQLModel, table=True):
    """
    One row per OTP request. Rows are never deleted: an older row for the
    same email is simply never matched once it expires or is used.
    """

    __tablename__ = "password_resets"

    id: Optional[int] = Field(default=None, primary_key=True)

    # Not a foreign key; matches whichever user table requested the reset
    email: str = Field(max_length=255, nullable=False, index=True)
    otp: str = Field(max_length=6, nullable=False)

    expires_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    used: bool = Field(default=False, nullable=False)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
