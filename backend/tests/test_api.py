"""
HTTP-level tests for the DealDine API routes.

Collaborators are swapped in through app.dependency_overrides, so nothing
touches Supabase, Gmail, Claude or SMTP.
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock, patch

from app.dependencies import (
    get_extraction_client,
    get_gmail_factory,
    get_notifier,
    get_store,
)
from app.exceptions import ConfigurationError, GmailAPIError, StorageError
from app.main import app, get_cors_origins
from app.models.deal import Deal
from app.models.notification import SweepResult
from app.models.user import RestaurantPreference, User


USER = User(id="user-1", email="diner@example.com", gmail_tokens={"token": "t"})


def _deal(**overrides) -> Deal:
    data = {
        "id": "deal-1",
        "user_id": "user-1",
        "email_id": "msg-1",
        "restaurant": "KFC",
        "deal_description": "$5 Fill Up",
        "savings": 3.99,
        "expiry_date": date(2026, 10, 21),
    }
    data.update(overrides)
    return Deal(**data)


@pytest.fixture
def store():
    store = MagicMock()
    store.get_user_by_email = AsyncMock(return_value=USER)
    store.list_user_deals = AsyncMock(return_value=[_deal()])
    store.mark_deal_used = AsyncMock(return_value=True)
    store.get_restaurant_preferences = AsyncMock(return_value=[])
    store.update_restaurant_preference = AsyncMock(return_value=None)
    store.upsert_user_tokens = AsyncMock(return_value=None)
    return store


@pytest.fixture
def gmail():
    return MagicMock()


@pytest.fixture
def client(store, gmail):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_extraction_client] = lambda: MagicMock()
    app.dependency_overrides[get_gmail_factory] = lambda: (lambda tokens: gmail)
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:

    def test_root(self, client):
        assert client.get("/").json()["message"] == "DealDine API"

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "dealdine-backend"}

    def test_health_db_without_store_is_503(self, client):
        app.state.store = None

        assert client.get("/health/db").status_code == 503


class TestCorsOrigins:

    def test_frontend_and_extra_origins_deduplicated(self, monkeypatch):
        monkeypatch.setenv("FRONTEND_URL", "https://dealdine.app/")
        monkeypatch.setenv("CORS_ORIGINS", "https://dealdine.app, https://preview.dealdine.app")

        assert get_cors_origins() == ["https://dealdine.app", "https://preview.dealdine.app"]


class TestScanDeals:

    def test_returns_count_and_deals(self, client, store, gmail):
        with patch("app.routers.deals.scan_user_deals", new=AsyncMock(return_value=[_deal(), _deal(id="deal-2")])) as mock_scan:
            response = client.post("/api/scan-deals", json={"userEmail": "diner@example.com"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["dealsProcessed"] == 2
        assert [d["id"] for d in body["deals"]] == ["deal-1", "deal-2"]
        assert mock_scan.call_args[0][0] == USER
        assert mock_scan.call_args[0][1] is gmail

    def test_unknown_user_is_401(self, client, store):
        store.get_user_by_email = AsyncMock(return_value=None)

        response = client.post("/api/scan-deals", json={"userEmail": "nobody@example.com"})

        assert response.status_code == 401
        assert response.json()["detail"] == "User not authenticated"

    def test_user_without_tokens_is_401(self, client, store):
        store.get_user_by_email = AsyncMock(return_value=User(id="u2", email="new@example.com"))

        response = client.post("/api/scan-deals", json={"userEmail": "new@example.com"})

        assert response.status_code == 401

    def test_gmail_search_failure_is_502(self, client):
        with patch("app.routers.deals.scan_user_deals", new=AsyncMock(side_effect=GmailAPIError("invalid_grant"))):
            response = client.post("/api/scan-deals", json={"userEmail": "diner@example.com"})

        assert response.status_code == 502

    def test_missing_google_config_is_503(self, client):
        def _factory(tokens):
            raise ConfigurationError("GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET must be set")

        app.dependency_overrides[get_gmail_factory] = lambda: _factory

        response = client.post("/api/scan-deals", json={"userEmail": "diner@example.com"})

        assert response.status_code == 503

    def test_storage_failure_is_500(self, client, store):
        store.get_user_by_email = AsyncMock(side_effect=StorageError("db down"))

        response = client.post("/api/scan-deals", json={"userEmail": "diner@example.com"})

        assert response.status_code == 500

    def test_missing_body_field_is_422(self, client):
        assert client.post("/api/scan-deals", json={}).status_code == 422


class TestListDeals:

    def test_lists_deals_with_filters(self, client, store):
        response = client.get(
            "/api/deals/diner@example.com",
            params={"restaurant": "KFC", "minSavings": "2.5", "expiringSoon": "true"},
        )

        assert response.status_code == 200
        deals = response.json()["deals"]
        assert deals[0]["restaurant"] == "KFC"
        assert deals[0]["expiry_date"] == "2026-10-21"

        user_id, filters = store.list_user_deals.call_args[0]
        assert user_id == "user-1"
        assert filters.restaurant == "KFC"
        assert filters.min_savings == 2.5
        assert filters.expiring_soon is True

    def test_no_filters(self, client, store):
        client.get("/api/deals/diner@example.com")

        filters = store.list_user_deals.call_args[0][1]
        assert filters.restaurant is None
        assert filters.min_savings is None
        assert filters.expiring_soon is False

    def test_unknown_user_is_404(self, client, store):
        store.get_user_by_email = AsyncMock(return_value=None)

        assert client.get("/api/deals/nobody@example.com").status_code == 404


class TestUseDeal:

    def test_marks_deal_used(self, client, store):
        response = client.post("/api/deals/deal-1/use")

        assert response.status_code == 200
        assert response.json() == {"success": True}
        store.mark_deal_used.assert_awaited_once_with("deal-1")

    def test_unknown_deal_is_404(self, client, store):
        store.mark_deal_used = AsyncMock(return_value=False)

        assert client.post("/api/deals/missing/use").status_code == 404


class TestRestaurantPreferences:

    def test_get_preferences(self, client, store):
        store.get_restaurant_preferences = AsyncMock(return_value=[
            RestaurantPreference(id="p1", user_id="user-1", restaurant="Subway", is_selected=False)
        ])

        response = client.get("/api/preferences/restaurants/diner@example.com")

        assert response.status_code == 200
        assert response.json()["preferences"][0]["restaurant"] == "Subway"
        assert response.json()["preferences"][0]["is_selected"] is False

    def test_update_preference(self, client, store):
        response = client.post(
            "/api/preferences/restaurants",
            json={"userEmail": "diner@example.com", "restaurant": "Subway", "isSelected": False},
        )

        assert response.status_code == 200
        store.update_restaurant_preference.assert_awaited_once_with("user-1", "Subway", False)

    def test_update_for_unknown_user_is_404(self, client, store):
        store.get_user_by_email = AsyncMock(return_value=None)

        response = client.post(
            "/api/preferences/restaurants",
            json={"userEmail": "nobody@example.com", "restaurant": "Subway"},
        )

        assert response.status_code == 404


class TestNotificationCheck:

    def test_runs_sweep_and_reports_counts(self, client):
        notifier = MagicMock()
        notifier.run_sweep = AsyncMock(return_value=SweepResult(
            users_checked=3, notifications_sent=1, deals_notified=2
        ))
        app.dependency_overrides[get_notifier] = lambda: notifier

        response = client.post("/api/notifications/check")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Notification check completed"
        assert body["result"]["notificationsSent"] == 1
        assert body["result"]["dealsNotified"] == 2

    def test_sweep_failure_is_500(self, client):
        notifier = MagicMock()
        notifier.run_sweep = AsyncMock(side_effect=StorageError("db down"))
        app.dependency_overrides[get_notifier] = lambda: notifier

        assert client.post("/api/notifications/check").status_code == 500

    def test_unconfigured_notifier_is_503(self, client):
        app.state.notifier = None

        assert client.post("/api/notifications/check").status_code == 503


class TestGoogleAuth:

    def test_auth_url(self, client):
        with patch("app.routers.auth.get_authorization_url", return_value="https://accounts.google.com/o/oauth2/auth?x=1"):
            response = client.get("/auth/google")

        assert response.status_code == 200
        assert response.json() == {"authUrl": "https://accounts.google.com/o/oauth2/auth?x=1"}

    def test_auth_url_without_config_is_503(self, client):
        with patch("app.routers.auth.get_authorization_url", side_effect=ConfigurationError("missing")):
            assert client.get("/auth/google").status_code == 503

    def test_callback_stores_tokens_and_redirects(self, client, store, monkeypatch):
        monkeypatch.setenv("FRONTEND_URL", "https://dealdine.app")
        tokens = {"token": "t", "refresh_token": "r"}

        with patch("app.routers.auth.exchange_code", new=AsyncMock(return_value=(tokens, "diner@example.com"))):
            response = client.get("/auth/google/callback", params={"code": "abc"}, follow_redirects=False)

        assert response.status_code in (302, 307)
        assert response.headers["location"] == "https://dealdine.app?auth=success"
        store.upsert_user_tokens.assert_awaited_once_with("diner@example.com", tokens)

    def test_callback_failure_redirects_with_error(self, client, store, monkeypatch):
        monkeypatch.setenv("FRONTEND_URL", "https://dealdine.app")

        with patch("app.routers.auth.exchange_code", new=AsyncMock(side_effect=RuntimeError("invalid_grant"))):
            response = client.get("/auth/google/callback", params={"code": "bad"}, follow_redirects=False)

        assert response.headers["location"] == "https://dealdine.app?auth=error"
        store.upsert_user_tokens.assert_not_called()
