"""Tests for the forgot-password / change-password flow."""

import asyncio
import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from app.core.exceptions import (InputValidationError,
                                 InvalidOrExpiredTokenError, NotFoundError)
from app.core.security import (TokenConfig, TokenService, get_password_hash,
                               token_service, verify_password)
from app.crud.users import UserStore
from app.services import password_reset
from app.services.password_reset import RESET_SUBJECT, PasswordResetService

FORGOT = "/api/v1/users/forgot-password"
CHANGE = "/api/v1/users/change-password/{token}"


async def _request_reset(client: AsyncClient, db_session, user) -> str:
    resp = await client.post(FORGOT, json={"email": user.email})
    assert resp.status_code == 200
    await db_session.refresh(user)
    assert user.reset_token is not None
    return user.reset_token


async def _change(client: AsyncClient, token: str, new: str, confirm: str | None = None):
    return await client.post(
        CHANGE.format(token=token),
        json={"newPassword": new, "confirmPassword": new if confirm is None else confirm},
    )


async def _login(client: AsyncClient, email: str, password: str) -> int:
    resp = await client.post("/api/v1/users/login", json={"email": email, "password": password})
    return resp.status_code


# ── Request step ────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_forgot_password_stores_token_and_mails_link(
    async_client: AsyncClient, db_session, user, mailer
):
    before = datetime.now(timezone.utc)
    resp = await async_client.post(FORGOT, json={"email": user.email})
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Password reset link sent successfully"}

    await db_session.refresh(user)
    assert user.reset_token
    assert user.reset_token not in resp.text

    expires = user.reset_token_expires_at
    if expires.tzinfo is None:
        expires = expires.replace(tzinfo=timezone.utc)
    assert before + timedelta(minutes=59) < expires <= datetime.now(timezone.utc) + timedelta(hours=1)

    assert len(mailer.sent) == 1
    to, subject, body = mailer.sent[0]
    assert to == user.email
    assert subject == RESET_SUBJECT
    assert f"http://test/api/v1/users/change-password/{user.reset_token}" in body


@pytest.mark.asyncio
async def test_forgot_password_unknown_email_is_404(async_client: AsyncClient, mailer):
    resp = await async_client.post(FORGOT, json={"email": "nobody@example.com"})
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "User not found"}
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_mail_failure_is_500_and_token_stays_usable(
    async_client: AsyncClient, db_session, user, mailer
):
    mailer.fail = True
    resp = await async_client.post(FORGOT, json={"email": user.email})
    assert resp.status_code == 500
    assert resp.json()["success"] is False

    await db_session.refresh(user)
    assert user.reset_token is not None

    mailer.fail = False
    token = await _request_reset(async_client, db_session, user)
    assert (await _change(async_client, token, "NewPass123!")).status_code == 200


# ── Verify-and-consume step ─────────────────────────────────────────
@pytest.mark.asyncio
async def test_reset_token_is_single_use(async_client: AsyncClient, db_session, user):
    t1 = await _request_reset(async_client, db_session, user)

    resp = await _change(async_client, t1, "NewPass123!")
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Password reset successfully"}

    await db_session.refresh(user)
    assert user.reset_token is None
    assert user.reset_token_expires_at is None
    assert await _login(async_client, user.email, "NewPass123!") == 200
    assert await _login(async_client, user.email, "Password123!") == 401

    replay = await _change(async_client, t1, "Another1!")
    assert replay.status_code == 400
    assert replay.json() == {"success": False, "message": "Token expired or invalid"}
    assert await _login(async_client, user.email, "NewPass123!") == 200


@pytest.mark.asyncio
async def test_newer_request_supersedes_older_token(async_client: AsyncClient, db_session, user):
    t1 = await _request_reset(async_client, db_session, user)
    t2 = await _request_reset(async_client, db_session, user)
    assert t1 != t2

    assert (await _change(async_client, t1, "NewPass123!")).status_code == 400
    assert (await _change(async_client, t2, "NewPass123!")).status_code == 200


@pytest.mark.asyncio
async def test_mismatched_passwords_are_400(async_client: AsyncClient, db_session, user):
    token = await _request_reset(async_client, db_session, user)
    resp = await _change(async_client, token, "NewPass123!", "Different123!")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Passwords do not match"

    await db_session.refresh(user)
    assert user.reset_token == token


@pytest.mark.asyncio
async def test_stored_expiry_is_enforced(async_client: AsyncClient, db_session, user):
    token = await _request_reset(async_client, db_session, user)
    user.reset_token_expires_at = datetime.now(timezone.utc) - timedelta(seconds=1)
    await db_session.commit()

    assert (await _change(async_client, token, "NewPass123!")).status_code == 400


@pytest.mark.asyncio
async def test_valid_but_unrequested_token_is_rejected(async_client: AsyncClient, user):
    token = token_service.issue_reset_token(user.id)
    assert (await _change(async_client, token, "NewPass123!")).status_code == 400


@pytest.mark.asyncio
async def test_token_bound_to_its_subject(async_client: AsyncClient, db_session, user, make_user):
    other = await make_user(email="other@example.com")
    await _request_reset(async_client, db_session, user)
    forged_for_user = token_service.issue_reset_token(other.id)
    assert (await _change(async_client, forged_for_user, "NewPass123!")).status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("kind", ["access", "expired", "foreign", "garbage"])
async def test_unverifiable_tokens_are_rejected(async_client: AsyncClient, db_session, user, kind):
    stored = await _request_reset(async_client, db_session, user)
    token = {
        "access": token_service.issue_access_token(user.id),
        "expired": token_service.issue(user.id, timedelta(seconds=-1), "reset"),
        "foreign": TokenService(TokenConfig(secret_key="other")).issue_reset_token(user.id),
        "garbage": "not.a.token",
    }[kind]
    # Even a matching stored value does not rescue a token that fails verification
    user.reset_token = token
    await db_session.commit()

    resp = await _change(async_client, token, "NewPass123!")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Token expired or invalid"
    assert stored != token


# ── Service unit tests ──────────────────────────────────────────────
def _service(users) -> tuple[PasswordResetService, AsyncMock]:
    mailer = AsyncMock()
    return PasswordResetService(users, token_service, mailer, "http://test/reset"), mailer


@pytest.mark.asyncio
async def test_mismatch_never_touches_the_store():
    users = AsyncMock(spec=UserStore)
    service, mailer = _service(users)
    with pytest.raises(InputValidationError):
        await service.change_password("whatever", "NewPass123!", "Other123!")
    assert users.mock_calls == []
    mailer.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_email_sends_nothing():
    users = AsyncMock(spec=UserStore)
    users.get_by_email.return_value = None
    service, mailer = _service(users)
    with pytest.raises(NotFoundError):
        await service.request_reset("ghost@example.com")
    users.save.assert_not_awaited()
    mailer.send.assert_not_awaited()


@pytest.mark.asyncio
async def test_mail_is_sent_only_after_the_token_is_saved(make_user):
    user = await make_user(email="order@example.com")
    users = AsyncMock(spec=UserStore)
    users.get_by_email.return_value = user
    service, mailer = _service(users)

    async def _send(to, subject, body):
        users.save.assert_awaited_once_with(user)
        assert user.reset_token in body

    mailer.send.side_effect = _send
    await service.request_reset(user.email)
    mailer.send.assert_awaited_once()


# ── Racing and blocking ─────────────────────────────────────────────
@pytest.mark.asyncio
async def test_concurrent_changes_consume_the_token_once(
    async_client: AsyncClient, db_session, user
):
    token = await _request_reset(async_client, db_session, user)

    first, second = await asyncio.gather(
        _change(async_client, token, "FirstPass123!"),
        _change(async_client, token, "SecondPass123!"),
    )
    assert sorted([first.status_code, second.status_code]) == [200, 400]

    winner = "FirstPass123!" if first.status_code == 200 else "SecondPass123!"
    loser = "SecondPass123!" if winner == "FirstPass123!" else "FirstPass123!"
    assert await _login(async_client, user.email, winner) == 200
    assert await _login(async_client, user.email, loser) == 401


@pytest.mark.asyncio
async def test_new_password_is_hashed_off_the_event_loop(
    async_client: AsyncClient, db_session, user, monkeypatch
):
    token = await _request_reset(async_client, db_session, user)
    loop_thread = threading.get_ident()
    hashed_on = []

    def _hash(plain: str) -> str:
        hashed_on.append(threading.get_ident())
        return get_password_hash(plain)

    monkeypatch.setattr(password_reset, "get_password_hash", _hash)
    assert (await _change(async_client, token, "NewPass123!")).status_code == 200
    assert hashed_on and loop_thread not in hashed_on


@pytest.mark.asyncio
async def test_unmatched_consume_is_invalid_token(make_user):
    user = await make_user(email="stale@example.com")
    users = AsyncMock(spec=UserStore)
    users.consume_reset_token.return_value = False
    service, _ = _service(users)
    token = token_service.issue_reset_token(user.id)

    with pytest.raises(InvalidOrExpiredTokenError):
        await service.change_password(token, "NewPass123!", "NewPass123!")
    sub, consumed_token, _now, new_hash = users.consume_reset_token.await_args.args
    assert (sub, consumed_token) == (user.id, token)
    assert verify_password("NewPass123!", new_hash)
