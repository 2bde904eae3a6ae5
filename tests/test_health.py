"""Tests for /api/v1/health."""


class TestHealth:
    def test_all_up(self, client):
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": "up", "redis": "up"}

    def test_redis_down(self, client, fake_redis):
        fake_redis.available = False
        assert client.get("/api/v1/health").json()["redis"] == "down"

    def test_unknown_route_uses_error_envelope(self, client):
        response = client.get("/api/v1/nope")
        assert response.status_code == 404
        error = response.json()["error"]
        assert error["statusCode"] == 404
        assert error["path"] == "/api/v1/nope"
        assert error["timestamp"].endswith("Z")

    def test_request_id_is_echoed(self, client):
        response = client.get("/api/v1/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"
        assert client.get("/api/v1/health").headers["X-Request-ID"]
