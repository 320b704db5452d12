from pydantic import BaseModel, ConfigDict, Field

from aishe_portal.models.user import UserRole


# -------------------------------------------------------------------
# LOGIN REQUEST
# -------------------------------------------------------------------
class LoginRequest(BaseModel):
    username: str
    password: str
    role: UserRole = UserRole.Department

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {"username": "physics", "password": "password123", "role": "department"},
                {"username": "nodal", "password": "password123", "role": "admin"},
            ]
        }
    )


class AdminLoginRequest(BaseModel):
    username: str
    password: str


# -------------------------------------------------------------------
# PASSWORD RESET (OTP)
# -------------------------------------------------------------------
class ForgotPasswordRequest(BaseModel):
    email: str
    role: UserRole = UserRole.Department


class VerifyOTPRequest(BaseModel):
    email: str
    otp: str
    role: UserRole = UserRole.Department

    # Some clients send the code as a JSON number
    model_config = ConfigDict(coerce_numbers_to_str=True)


class ResetPasswordRequest(BaseModel):
    email: str
    otp: str
    # Frontend sends camelCase
    new_password: str = Field(alias="newPassword")
    role: UserRole = UserRole.Department

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)
