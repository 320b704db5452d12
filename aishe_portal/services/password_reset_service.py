# aishe_portal/services/password_reset_service.py

import re
import secrets
from datetime import datetime, timedelta

from sqlmodel import select
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from aishe_portal.core.config import settings
from aishe_portal.core.errors import InvalidOrExpiredOtpError, NotFoundError, ValidationError
from aishe_portal.core.retry import with_retry
from aishe_portal.models.clock import as_utc, utcnow
from aishe_portal.models.password_reset import PasswordReset
from aishe_portal.models.user import PortalUser, UserRole
from aishe_portal.services.user_service import get_user_by_email, normalize_email, set_password

_MASK_PATTERN = re.compile(r"^(.{2})(.*)(@.*)$")


def generate_otp() -> str:
    """Uniform 6-digit code in 100000..999999."""
    return f"{100000 + secrets.randbelow(900000)}"


def mask_email(email: str) -> str:
    return _MASK_PATTERN.sub(r"\1***\3", email)


def _now(now: datetime | None) -> datetime:
    return as_utc(now) if now is not None else utcnow()


async def _require_user(session: AsyncSession, role: UserRole, email: str) -> PortalUser:
    user = await get_user_by_email(session, role, email)
    if not user:
        raise NotFoundError("No account found")
    return user


@with_retry()
async def find_valid_reset(
    session: AsyncSession,
    email: str,
    otp: str,
    now: datetime | None = None,
) -> PasswordReset | None:
    """
    Newest unused, unexpired row matching email and code exactly.
    Older rows for the same email can still match while they are valid.
    """
    result = await session.execute(
        select(PasswordReset)
        .where(
            (PasswordReset.email == email) &
            (PasswordReset.otp == otp) &
            (PasswordReset.used == False) &  # noqa: E712
            (PasswordReset.expires_at > _now(now))
        )
        .order_by(PasswordReset.created_at.desc(), PasswordReset.id.desc())
        .limit(1)
    )
    return result.scalars().first()


# ============================================================================
# 1. REQUEST RESET
# ============================================================================
async def request_password_reset(
    session: AsyncSession,
    email: str,
    role: UserRole = UserRole.Department,
    now: datetime | None = None,
) -> tuple[PortalUser, str, str]:
    """
    Persist a fresh OTP for the account and return (user, otp, masked_email).
    Delivery is the caller's business.
    """
    email = normalize_email(email)
    if not email:
        raise ValidationError("Email is required")

    user = await _require_user(session, role, email)

    otp = generate_otp()
    reset = PasswordReset(
        email=email,
        otp=otp,
        expires_at=_now(now) + timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
        used=False,
        created_at=_now(now),
    )
    session.add(reset)
    await session.commit()

    return user, otp, mask_email(email)


# ============================================================================
# 2. VERIFY (no side effects)
# ============================================================================
async def verify_reset_otp(
    session: AsyncSession,
    email: str,
    otp: str,
    role: UserRole = UserRole.Department,
    now: datetime | None = None,
) -> PortalUser:
    email = normalize_email(email)
    otp = str(otp or "").strip()
    if not email or not otp:
        raise ValidationError("Email and OTP are required")

    user = await _require_user(session, role, email)

    if await find_valid_reset(session, email, otp, now=now) is None:
        raise InvalidOrExpiredOtpError()

    return user


# ============================================================================
# 3. RESET (re-validates, then consumes exactly the matched row)
# ============================================================================
async def finalize_password_reset(
    session: AsyncSession,
    email: str,
    otp: str,
    new_password: str,
    role: UserRole = UserRole.Department,
    now: datetime | None = None,
) -> PortalUser:
    email = normalize_email(email)
    otp = str(otp or "").strip()
    new_password = str(new_password or "")

    if not email or not otp or not new_password:
        raise ValidationError("Email, OTP, and new password are required")

    if len(new_password) < settings.PASSWORD_MIN_LENGTH:
        raise ValidationError(
            f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters"
        )

    user = await _require_user(session, role, email)

    reset = await find_valid_reset(session, email, otp, now=now)
    if reset is None:
        raise InvalidOrExpiredOtpError()

    # Conditional consume: a concurrent reset that got here first leaves 0 rows
    consumed = await session.execute(
        update(PasswordReset)
        .where((PasswordReset.id == reset.id) & (PasswordReset.used == False))  # noqa: E712
        .values(used=True)
    )
    if consumed.rowcount != 1:
        await session.rollback()
        raise InvalidOrExpiredOtpError()

    await set_password(session, user, new_password)
    await session.commit()
    await session.refresh(user)

    return user
