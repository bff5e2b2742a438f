import pytest
from sqlalchemy import select
from session_service.models.activity_log_model import ActivityLog
from session_service.models.session_model import UserSession
from session_service.utils.jwt import decode_access_token
from conftest import CHROME_UA, IPHONE_UA


async def _login(client, email="student@test.com", password="strongpass123", user_agent=CHROME_UA):
    response = await client.post(
        "/auth/login",
        params={"email": email, "password": password},
        headers={"user-agent": user_agent, "X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
    )
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


# -------------------------------------------------------------------
# 1. LOGIN TESTS
# -------------------------------------------------------------------

@pytest.mark.asyncio
async def test_login_success_creates_session(async_client, db_session, test_user):
    token = await _login(async_client)

    claims = decode_access_token(token)
    assert claims["sub"] == str(test_user.id)

    result = await db_session.execute(
        select(UserSession).where(UserSession.session_token == claims["sid"])
    )
    session = result.scalar_one()
    assert session.user_id == test_user.id
    assert session.ip_address == "203.0.113.7"
    assert session.device == "desktop"
    assert session.login_method == "credentials"
    assert session.is_active is True


@pytest.mark.asyncio
async def test_login_records_activity(async_client, db_session, test_user):
    await _login(async_client)

    result = await db_session.execute(
        select(ActivityLog.activity_type).where(ActivityLog.user_id == test_user.id)
    )
    assert "login_success" in result.scalars().all()


@pytest.mark.asyncio
async def test_login_failure_wrong_password(async_client, test_user):
    res = await async_client.post(
        "/auth/login", params={"email": "student@test.com", "password": "wrong"}
    )
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_login_failure_unknown_email(async_client):
    res = await async_client.post(
        "/auth/login", params={"email": "nope@test.com", "password": "strongpass123"}
    )
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_login_missing_params(async_client):
    res = await async_client.post("/auth/login", params={"email": "student@test.com"})
    assert res.status_code == 422


@pytest.mark.asyncio
async def test_login_inactive_user(async_client, db_session, test_user):
    test_user.is_active = False
    await db_session.commit()

    res = await async_client.post(
        "/auth/login", params={"email": "student@test.com", "password": "strongpass123"}
    )
    assert res.status_code == 403


@pytest.mark.asyncio
async def test_token_grants_access(async_client, test_user):
    token = await _login(async_client)

    res = await async_client.get("/users/me", headers=_auth(token))

    assert res.status_code == 200
    assert res.json()["email"] == "student@test.com"


@pytest.mark.asyncio
async def test_missing_token_is_rejected(async_client):
    res = await async_client.get("/users/me")
    assert res.status_code == 401


# -------------------------------------------------------------------
# 2. LOGOUT TESTS
# -------------------------------------------------------------------

@pytest.mark.asyncio
async def test_logout_revokes_session(async_client, db_session, test_user):
    token = await _login(async_client)

    res = await async_client.post("/auth/logout", headers=_auth(token))
    assert res.status_code == 200
    assert res.json()["message"] == "Logged out successfully"

    sid = decode_access_token(token)["sid"]
    result = await db_session.execute(
        select(UserSession.is_active).where(UserSession.session_token == sid)
    )
    assert result.scalar_one() is False

    after = await async_client.get("/users/me", headers=_auth(token))
    assert after.status_code == 401
    assert after.headers["x-session-reason"] == "inactive"


@pytest.mark.asyncio
async def test_logout_twice_is_harmless(async_client, test_user):
    token = await _login(async_client)

    assert (await async_client.post("/auth/logout", headers=_auth(token))).status_code == 200
    assert (await async_client.post("/auth/logout", headers=_auth(token))).status_code == 200


# -------------------------------------------------------------------
# 3. PASSWORD CHANGE
# -------------------------------------------------------------------

@pytest.mark.asyncio
async def test_password_change_logs_out_other_devices(async_client, test_user):
    desktop = await _login(async_client)
    phone = await _login(async_client, user_agent=IPHONE_UA)
    tablet = await _login(async_client, user_agent=IPHONE_UA)

    res = await async_client.put(
        "/auth/password",
        json={
            "current_password": "strongpass123",
            "new_password": "evenstronger456",
            "confirm_password": "evenstronger456",
        },
        headers=_auth(desktop),
    )

    assert res.status_code == 200, res.text
    body = res.json()
    assert body["success"] is True
    assert body["revoked_sessions"] == 2

    assert (await async_client.get("/users/me", headers=_auth(desktop))).status_code == 200
    for token in (phone, tablet):
        assert (await async_client.get("/users/me", headers=_auth(token))).status_code == 401

    await _login(async_client, password="evenstronger456")


@pytest.mark.asyncio
async def test_password_change_wrong_current(async_client, test_user):
    token = await _login(async_client)

    res = await async_client.put(
        "/auth/password",
        json={"current_password": "nope", "new_password": "another123", "confirm_password": "another123"},
        headers=_auth(token),
    )
    assert res.status_code == 400
    assert res.json()["detail"] == "Current password is incorrect"


@pytest.mark.asyncio
async def test_password_change_same_password(async_client, test_user):
    token = await _login(async_client)

    res = await async_client.put(
        "/auth/password",
        json={
            "current_password": "strongpass123",
            "new_password": "strongpass123",
            "confirm_password": "strongpass123",
        },
        headers=_auth(token),
    )
    assert res.status_code == 400


@pytest.mark.asyncio
async def test_password_change_mismatched_confirmation(async_client, test_user):
    token = await _login(async_client)

    res = await async_client.put(
        "/auth/password",
        json={"current_password": "strongpass123", "new_password": "abcdef12", "confirm_password": "abcdef13"},
        headers=_auth(token),
    )
    assert res.status_code == 422
