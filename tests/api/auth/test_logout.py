from models.refresh_tokens import RefreshToken
from models.audit_logs import AuditLog

TEST_PASSWORD = "TestPassword123!"


async def login_tokens(client, user):
    response = await client.post("/auth/token", data={
        "username": user.email,
        "password": TEST_PASSWORD
    })
    assert response.status_code == 200
    return response.json()


async def test_logout_success(client, active_user):
    tokens = await login_tokens(client, active_user)

    response = await client.post("/auth/logout", json={"refresh_token": tokens["refresh_token"]})

    assert response.status_code == 200
    assert "logged out" in response.json()["message"].lower()

    response = await client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 401


async def test_logout_is_idempotent(client, active_user, session):
    tokens = await login_tokens(client, active_user)

    first = await client.post("/auth/logout", json={"refresh_token": tokens["refresh_token"]})
    second = await client.post("/auth/logout", json={"refresh_token": tokens["refresh_token"]})

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()

    revocations = session.query(AuditLog).filter(AuditLog.action == "SessionRevoked").count()
    assert revocations == 1


async def test_logout_with_unknown_token(client, session):
    response = await client.post("/auth/logout", json={"refresh_token": "invalid_token_format"})

    assert response.status_code == 200
    assert session.query(AuditLog).count() == 0


async def test_logout_with_empty_token(client):
    response = await client.post("/auth/logout", json={"refresh_token": ""})

    assert response.status_code == 422


async def test_logout_does_not_affect_other_tokens(client, active_user):
    token1 = (await login_tokens(client, active_user))["refresh_token"]
    token2 = (await login_tokens(client, active_user))["refresh_token"]

    await client.post("/auth/logout", json={"refresh_token": token1})

    response = await client.post("/auth/refresh", json={"refresh_token": token2})
    assert response.status_code == 200


async def test_logout_all_revokes_every_session(client, active_user, session):
    first = await login_tokens(client, active_user)
    second = await login_tokens(client, active_user)

    response = await client.post(
        "/auth/logout-all",
        headers={"Authorization": f"Bearer {second['access_token']}"}
    )

    assert response.status_code == 200
    assert response.json()["sessions_revoked"] == 2
    assert session.query(RefreshToken).filter(RefreshToken.revoked_at.is_(None)).count() == 0

    for tokens in (first, second):
        refreshed = await client.post("/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert refreshed.status_code == 401


async def test_logout_all_requires_access_token(client):
    response = await client.post("/auth/logout-all")

    assert response.status_code == 401


async def test_logout_all_rejects_garbage_bearer(client):
    response = await client.post("/auth/logout-all", headers={"Authorization": "Bearer nonsense"})

    assert response.status_code == 401
