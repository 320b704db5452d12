from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr


# ---------------------------------------------------------
# BASE
# ---------------------------------------------------------
class UserBase(BaseModel):
    username: str
    email: EmailStr
    name: str
    mobile: str
    role: str
    academic_year: Optional[str] = None


# ---------------------------------------------------------
# CREATE USER (Admin creates any user)
# ---------------------------------------------------------
class UserCreate(UserBase):
    password: str

    # Department users only
    dept_id: Optional[int] = None
    department: Optional[str] = None
    hod: Optional[str] = None
    degree_level: Optional[str] = None

    # Office users only
    office: Optional[str] = None


# ---------------------------------------------------------
# UPDATE USER (Admin edits; blank password keeps the old one)
# ---------------------------------------------------------
class UserUpdate(UserBase):
    password: Optional[str] = None

    dept_id: Optional[int] = None
    department: Optional[str] = None
    hod: Optional[str] = None
    degree_level: Optional[str] = None
    office: Optional[str] = None


# ---------------------------------------------------------
# READ USER (response; never carries the password hash)
# ---------------------------------------------------------
class UserRead(BaseModel):
    id: int
    username: str
    email: str
    name: str
    mobile: Optional[str] = None
    role: Optional[str] = None
    academic_year: Optional[str] = None

    dept_id: Optional[int] = None
    department: Optional[str] = None
    hod: Optional[str] = None
    degree_level: Optional[str] = None
    locked: Optional[bool] = None
    office: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class LockRequest(BaseModel):
    locked: bool


class AcademicYearUpdate(BaseModel):
    newAcademicYear: str
