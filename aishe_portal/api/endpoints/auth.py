# aishe_portal/api/endpoints/auth.py

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from aishe_portal.api.deps import CurrentUser, get_current_user, get_db_session
from aishe_portal.core.config import settings
from aishe_portal.core.errors import ServiceUnavailableError
from aishe_portal.core.rate_limiter import limiter
from aishe_portal.models.user import UserRole
from aishe_portal.schemas.auth import (
    AdminLoginRequest,
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    VerifyOTPRequest,
)
from aishe_portal.schemas.user import UserRead
from aishe_portal.services.auth_service import authenticate_user, create_login_response
from aishe_portal.services.email_service import (
    EmailDispatcher,
    get_email_dispatcher,
    send_password_changed_email,
    send_password_reset_email,
)
from aishe_portal.services.password_reset_service import (
    finalize_password_reset,
    request_password_reset,
    verify_reset_otp,
)

router = APIRouter(prefix="/api", tags=["Auth"])


# -------------------------------------------------------------------
# LOGIN (every role)
# -------------------------------------------------------------------
@router.post("/login")
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_db_session),
):
    user = await authenticate_user(session, payload.role, payload.username, payload.password)
    logger.info(f"{payload.role.value} user '{user.username}' logged in")
    return create_login_response(user, payload.role)


@router.post("/admin/login")
async def admin_login(
    payload: AdminLoginRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Admin-only login; not blocked by maintenance mode."""
    user = await authenticate_user(session, UserRole.Admin, payload.username, payload.password)
    logger.info(f"admin user '{user.username}' logged in")
    return create_login_response(user, UserRole.Admin)


@router.get("/me")
async def me(current: CurrentUser = Depends(get_current_user)):
    user = UserRead.model_validate(current.user).model_dump(exclude_none=True)
    user["user_type"] = current.role.value
    return {"success": True, "user": user}


# -------------------------------------------------------------------
# PUBLIC FORGOT PASSWORD ENDPOINTS
# -------------------------------------------------------------------
@router.post("/forgot-password", tags=["Password Reset"])
@limiter.limit(settings.OTP_REQUEST_RATE_LIMIT)
async def forgot_password(
    request: Request,
    payload: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    """
    Persists a 6-digit OTP and acknowledges immediately.
    The email goes out after the response is sent.
    """
    user, otp, masked_email = await request_password_reset(session, payload.email, payload.role)

    if not dispatcher.is_configured:
        logger.error("forgot-password: EMAIL_USER/EMAIL_PASS not configured")
        if settings.is_production:
            raise ServiceUnavailableError(
                "Email service not configured. Please contact the administrator."
            )
        return {
            "success": True,
            "message": "Reset code generated (email service disabled in this environment)",
            "maskedEmail": masked_email,
            "otpForTesting": otp,
        }

    background_tasks.add_task(send_password_reset_email, dispatcher, user.email, otp)

    return {
        "success": True,
        "message": "Reset code generated. Check your email shortly.",
        "maskedEmail": masked_email,
    }


@router.post("/verify-otp", tags=["Password Reset"])
async def verify_otp(
    payload: VerifyOTPRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Checks the OTP without consuming it."""
    await verify_reset_otp(session, payload.email, payload.otp, payload.role)
    return {"success": True, "message": "OTP verified successfully"}


@router.post("/reset-password", tags=["Password Reset"])
async def reset_password(
    payload: ResetPasswordRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_db_session),
    dispatcher: EmailDispatcher = Depends(get_email_dispatcher),
):
    user = await finalize_password_reset(
        session,
        payload.email,
        payload.otp,
        payload.new_password,
        payload.role,
    )

    # Best effort; a failed confirmation never fails the reset
    background_tasks.add_task(
        send_password_changed_email, dispatcher, user.email, user.name, user.username
    )

    return {"success": True, "message": "Password reset successfully."}
