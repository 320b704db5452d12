from datetime import timedelta

import pytest
import pytest_asyncio
from sqlalchemy import update
from sqlmodel import select

import aishe_portal.services.password_reset_service as password_reset_service

from aishe_portal.core.database import AsyncSessionLocal
from aishe_portal.core.errors import InvalidOrExpiredOtpError, NotFoundError, ValidationError
from aishe_portal.core.security import verify_password
from aishe_portal.models.clock import as_utc, utcnow
from aishe_portal.models.password_reset import PasswordReset
from aishe_portal.models.user import UserRole
from aishe_portal.services.password_reset_service import (
    finalize_password_reset,
    generate_otp,
    mask_email,
    request_password_reset,
    verify_reset_otp,
)
from aishe_portal.services.user_service import get_user_by_email


def test_generate_otp_is_six_digits():
    for _ in range(200):
        otp = generate_otp()
        assert len(otp) == 6 and otp.isdigit()
        assert 100000 <= int(otp) <= 999999


def test_mask_email():
    assert mask_email("user@example.com") == "us***@example.com"
    assert mask_email("ab@example.com") == "ab***@example.com"


@pytest_asyncio.fixture
async def dept_user(make_user):
    return await make_user(UserRole.Department, "physics", "user@example.com", "oldpassword1")


async def _rows(session, email):
    result = await session.execute(select(PasswordReset).where(PasswordReset.email == email))
    return result.scalars().all()


@pytest.mark.asyncio
async def test_request_persists_code_with_ten_minute_expiry(session, dept_user):
    now = utcnow()
    user, otp, masked = await request_password_reset(session, "  USER@Example.com ", now=now)

    assert user.id == dept_user.id
    assert masked == "us***@example.com"

    rows = await _rows(session, "user@example.com")
    assert len(rows) == 1
    assert rows[0].otp == otp
    assert rows[0].used is False
    assert as_utc(rows[0].expires_at) - now == timedelta(minutes=10)


@pytest.mark.asyncio
async def test_request_unknown_email(session, dept_user):
    with pytest.raises(NotFoundError):
        await request_password_reset(session, "nobody@example.com")


@pytest.mark.asyncio
async def test_request_requires_email(session):
    with pytest.raises(ValidationError):
        await request_password_reset(session, "   ")


@pytest.mark.asyncio
async def test_verify_is_repeatable_until_expiry(session, dept_user):
    now = utcnow()
    _, otp, _ = await request_password_reset(session, "user@example.com", now=now)

    for minutes in (0, 1, 5, 9):
        await verify_reset_otp(session, "user@example.com", otp, now=now + timedelta(minutes=minutes))

    with pytest.raises(InvalidOrExpiredOtpError):
        await verify_reset_otp(session, "user@example.com", otp, now=now + timedelta(minutes=10, seconds=1))

    # verification never consumes
    rows = await _rows(session, "user@example.com")
    assert all(not r.used for r in rows)


@pytest.mark.asyncio
async def test_verify_wrong_code(session, dept_user):
    _, otp, _ = await request_password_reset(session, "user@example.com")
    wrong = "000000" if otp != "000000" else "111111"

    with pytest.raises(InvalidOrExpiredOtpError):
        await verify_reset_otp(session, "user@example.com", wrong)


@pytest.mark.asyncio
async def test_verify_unknown_user(session, dept_user):
    with pytest.raises(NotFoundError):
        await verify_reset_otp(session, "ghost@example.com", "123456")


@pytest.mark.asyncio
async def test_reset_consumes_only_the_matched_row(session, dept_user):
    _, first, _ = await request_password_reset(session, "user@example.com")
    _, second, _ = await request_password_reset(session, "user@example.com")

    user = await finalize_password_reset(session, "user@example.com", second, "brandnewpass")
    assert verify_password("brandnewpass", user.password)
    assert not verify_password("oldpassword1", user.password)

    rows = sorted(await _rows(session, "user@example.com"), key=lambda r: r.id)
    assert [r.otp for r in rows] == [first, second]
    assert rows[1].used is True
    assert rows[0].used is False


@pytest.mark.asyncio
async def test_consumed_code_no_longer_verifies(session, dept_user):
    _, otp, _ = await request_password_reset(session, "user@example.com")
    await finalize_password_reset(session, "user@example.com", otp, "brandnewpass")

    with pytest.raises(InvalidOrExpiredOtpError):
        await verify_reset_otp(session, "user@example.com", otp)
    with pytest.raises(InvalidOrExpiredOtpError):
        await finalize_password_reset(session, "user@example.com", otp, "anotherpass1")


@pytest.mark.asyncio
async def test_reset_rejects_expired_code(session, dept_user):
    now = utcnow()
    _, otp, _ = await request_password_reset(session, "user@example.com", now=now)

    with pytest.raises(InvalidOrExpiredOtpError):
        await finalize_password_reset(
            session, "user@example.com", otp, "brandnewpass", now=now + timedelta(minutes=11)
        )


@pytest.mark.asyncio
async def test_reset_enforces_minimum_length(session, dept_user):
    _, otp, _ = await request_password_reset(session, "user@example.com")

    with pytest.raises(ValidationError) as exc:
        await finalize_password_reset(session, "user@example.com", otp, "short")
    assert "at least 8" in exc.value.message

    # code still usable after the rejected attempt
    await verify_reset_otp(session, "user@example.com", otp)


@pytest.mark.asyncio
async def test_reset_for_other_role_table(session, make_user):
    await make_user(UserRole.Office, "office1", "office@example.com", "oldpassword1")
    _, otp, _ = await request_password_reset(session, "office@example.com", role=UserRole.Office)

    user = await finalize_password_reset(
        session, "office@example.com", otp, "officepass99", role=UserRole.Office
    )
    assert verify_password("officepass99", user.password)


@pytest.mark.asyncio
async def test_reset_loses_when_code_is_consumed_concurrently(session, dept_user, monkeypatch):
    _, otp, _ = await request_password_reset(session, "user@example.com")
    lookup = password_reset_service.find_valid_reset

    async def lookup_then_consume_elsewhere(*args, **kwargs):
        reset = await lookup(*args, **kwargs)
        # a competing reset commits between this lookup and the consume
        async with AsyncSessionLocal() as other:
            await other.execute(
                update(PasswordReset).where(PasswordReset.id == reset.id).values(used=True)
            )
            await other.commit()
        return reset

    monkeypatch.setattr(password_reset_service, "find_valid_reset", lookup_then_consume_elsewhere)

    with pytest.raises(InvalidOrExpiredOtpError):
        await finalize_password_reset(session, "user@example.com", otp, "brandnewpass")

    async with AsyncSessionLocal() as fresh:
        user = await get_user_by_email(fresh, UserRole.Department, "user@example.com")
        assert verify_password("oldpassword1", user.password)
        assert not verify_password("brandnewpass", user.password)


@pytest.mark.asyncio
async def test_second_reset_with_same_code_fails(session, dept_user):
    _, otp, _ = await request_password_reset(session, "user@example.com")

    async with AsyncSessionLocal() as first, AsyncSessionLocal() as second:
        await finalize_password_reset(first, "user@example.com", otp, "firstpass1")
        with pytest.raises(InvalidOrExpiredOtpError):
            await finalize_password_reset(second, "user@example.com", otp, "secondpass2")

    async with AsyncSessionLocal() as fresh:
        user = await get_user_by_email(fresh, UserRole.Department, "user@example.com")
        assert verify_password("firstpass1", user.password)
