import logging

import pytest
from httpx import ASGITransport, AsyncClient

from main import app
from services.errors import StoreUnavailable, TokenEntropyError
from utils.deps import get_session_service


class FailingSessionService:
    """Session service whose every call fails with the given error."""

    def __init__(self, error: Exception):
        self.error = error

    def rotate(self, presented_token):
        raise self.error

    def revoke(self, presented_token):
        raise self.error


@pytest.fixture
async def failing_client():
    """
    Client whose session service raises; unhandled errors come back as responses.
    """
    def use(error):
        app.dependency_overrides[get_session_service] = lambda: FailingSessionService(error)

    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test"
    ) as ac:
        yield ac, use

    app.dependency_overrides.clear()


async def test_store_unavailable_returns_503_with_retry_after(failing_client, caplog):
    client, use = failing_client
    use(StoreUnavailable("connection refused"))

    with caplog.at_level(logging.WARNING):
        response = await client.post("/auth/refresh", json={"refresh_token": "anything"},
                                     headers={"X-Request-ID": "store-down-1"})

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "5"
    assert response.json() == {"detail": "Service temporarily unavailable"}

    warnings = [r for r in caplog.records if r.getMessage() == "Session store unavailable"]
    assert len(warnings) == 1
    assert warnings[0].path == "/auth/refresh"
    assert warnings[0].request_id == "store-down-1"


async def test_store_unavailable_on_logout_returns_503(failing_client):
    client, use = failing_client
    use(StoreUnavailable("connection refused"))

    response = await client.post("/auth/logout", json={"refresh_token": "anything"})

    assert response.status_code == 503
    assert response.headers["Retry-After"] == "5"


async def test_token_entropy_error_returns_generic_500(failing_client, caplog):
    client, use = failing_client
    use(TokenEntropyError("refresh token hash collided twice in a row"))

    with caplog.at_level(logging.ERROR):
        response = await client.post("/auth/refresh", json={"refresh_token": "anything"})

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}

    critical = [r for r in caplog.records if r.levelno == logging.CRITICAL]
    assert len(critical) == 1
    assert critical[0].error_type == "TokenEntropyError"
    assert "collided" not in response.text
