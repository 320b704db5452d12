# aishe_portal/models/user.py

from sqlmodel import SQLModel, Field
from sqlalchemy import DateTime
from datetime import datetime
from enum import Enum
from typing import Optional

from aishe_portal.models.clock import utcnow


class UserRole(str, Enum):
    Admin = "admin"
    Department = "department"
    Office = "office"
    Principal = "principal"


class PortalUser(SQLModel):
    """Columns shared by every role table. Not a table itself."""

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(max_length=100, nullable=False, unique=True, index=True)
    email: str = Field(max_length=255, nullable=False, unique=True, index=True)
    name: str = Field(max_length=255, nullable=False)
    mobile: Optional[str] = Field(default=None, max_length=20)
    role: Optional[str] = Field(default=None, max_length=50)
    academic_year: Optional[str] = Field(default=None, max_length=20)

    # bcrypt digest
    password: str = Field(nullable=False)

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
        nullable=False,
    )


class AdminUser(PortalUser, table=True):
    __tablename__ = "admin"


class DepartmentUser(PortalUser, table=True):
    __tablename__ = "department_users"

    dept_id: Optional[int] = Field(default=None, index=True)
    department: Optional[str] = Field(default=None, max_length=255)
    hod: Optional[str] = Field(default=None, max_length=255)
    degree_level: Optional[str] = Field(default=None, max_length=50)

    # Set by the Nodal Officer; locked accounts cannot log in
    locked: bool = Field(default=False, nullable=False)


class OfficeUser(PortalUser, table=True):
    __tablename__ = "office_users"

    office: Optional[str] = Field(default=None, max_length=255)


class PrincipalUser(PortalUser, table=True):
    __tablename__ = "principal_users"


USER_MODELS: dict[UserRole, type[PortalUser]] = {
    UserRole.Admin: AdminUser,
    UserRole.Department: DepartmentUser,
    UserRole.Office: OfficeUser,
    UserRole.Principal: PrincipalUser,
}


def model_for_role(role: UserRole) -> type[PortalUser]:
    return USER_MODELS[UserRole(role)]
