from jose import jwt
from core.config import settings
from models.refresh_tokens import RefreshToken
from utils.hashing import hash_token

TEST_PASSWORD = "TestPassword123!"


async def login(client, email, password=TEST_PASSWORD):
    return await client.post("/auth/token", data={"username": email, "password": password})


async def test_login_issues_token_pair(client, active_user, session):
    response = await login(client, active_user.email)

    assert response.status_code == 200
    tokens = response.json()
    assert tokens["token_type"] == "bearer"

    payload = jwt.decode(tokens["access_token"], settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    assert payload["sub"] == str(active_user.id)
    assert payload["name"] == active_user.display_name
    assert payload["role"] == active_user.role
    assert payload["type"] == "access"

    stored = session.query(RefreshToken).filter(
        RefreshToken.token_hash == hash_token(tokens["refresh_token"])
    ).one()
    assert stored.user_id == active_user.id
    assert stored.revoked_at is None


async def test_login_wrong_password(client, active_user):
    response = await login(client, active_user.email, "WrongPassword1")

    assert response.status_code == 401


async def test_login_unknown_user(client, session):
    response = await login(client, "nobody@example.com")

    assert response.status_code == 401


async def test_login_inactive_user(client, active_user, session):
    active_user.is_active = False
    session.commit()

    response = await login(client, active_user.email)

    assert response.status_code == 403
    assert session.query(RefreshToken).count() == 0


async def test_each_login_is_a_separate_session(client, active_user, session):
    first = (await login(client, active_user.email)).json()
    second = (await login(client, active_user.email)).json()

    assert first["refresh_token"] != second["refresh_token"]
    assert session.query(RefreshToken).count() == 2
