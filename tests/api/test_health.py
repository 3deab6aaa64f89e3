from middleware.rate_limiter import limiter
from core.config import settings


def test_rate_limiter_disabled_in_testing():
    assert settings.ENV == "testing"
    assert limiter.enabled is False


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "Healthy"}
    assert response.headers["X-Request-ID"]


async def test_request_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "trace-123"})

    assert response.headers["X-Request-ID"] == "trace-123"
