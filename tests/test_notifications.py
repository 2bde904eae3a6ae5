"""Tests for /api/v1/notifications."""

from datetime import datetime, timedelta, timezone

API = "/api/v1/notifications"


def notify(client, headers, **overrides):
    body = {"type": "info", "message": "Maintenance tonight", "targetRoles": ["learner"]}
    body.update(overrides)
    return client.post(API, json=body, headers=headers)


class TestNotifications:
    def test_admin_creates(self, client, auth_headers, admin):
        response = notify(client, auth_headers(admin))
        assert response.status_code == 201
        body = response.json()
        assert body["targetRoles"] == ["learner"]
        assert body["expiresAt"] is None

    def test_only_admins_create(self, client, auth_headers, manager):
        assert notify(client, auth_headers(manager)).status_code == 403

    def test_feed_is_filtered_by_role(self, client, auth_headers, admin, learner, manager):
        notify(client, auth_headers(admin), message="For learners")
        notify(client, auth_headers(admin), message="For staff", targetRoles=["manager", "admin"])

        learner_feed = client.get(API, headers=auth_headers(learner)).json()
        assert [n["message"] for n in learner_feed] == ["For learners"]

        manager_feed = client.get(API, headers=auth_headers(manager)).json()
        assert [n["message"] for n in manager_feed] == ["For staff"]

    def test_expired_are_hidden(self, client, auth_headers, admin, learner):
        past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
        future = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
        notify(client, auth_headers(admin), message="old", expiresAt=past)
        notify(client, auth_headers(admin), message="current", expiresAt=future)

        feed = client.get(API, headers=auth_headers(learner)).json()
        assert [n["message"] for n in feed] == ["current"]

    def test_invalid_type(self, client, auth_headers, admin):
        assert notify(client, auth_headers(admin), type="urgent").status_code == 400

    def test_requires_login(self, client):
        assert client.get(API).status_code == 401
