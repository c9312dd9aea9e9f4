"""
Shared fixtures for the push-enricher test suite.

Run:  pytest tests/ -v
"""

import httpx
import pytest

from push_enricher.api_client import BackendClient
from push_enricher.config import AppConfig, FallbackConfig, ServerConfig, SettingsConfig
from push_enricher.models import NotificationContent, NotificationRequest
from push_enricher.notification_center import NotificationCenter
from push_enricher.service import NotificationService
from push_enricher.settings import SQLiteSettingsStore

HOST = "backend.example.com"
TOKEN_PATH = "/auth/realms/master/protocol/openid-connect/token"
DETAIL_PATH = "/api/master/notification/alert"

DETAIL_RECORD = {
    "title": "Door open",
    "message": "The front door has been open for 10 minutes",
    "appUrl": "#!assets/door",
    "id": 42,
    "actions": [
        {"title": "Close door", "type": "actuator", "assetId": "door-1", "value": "CLOSE"},
        {"title": "Open app", "type": "deep link"},
    ],
}


@pytest.fixture
def server_config():
    return ServerConfig(
        host=HOST,
        scheme="https",
        realm="master",
        client_id="openremote",
        detail_url=f"https://{HOST}{DETAIL_PATH}",
        ack_url=f"https://{HOST}{DETAIL_PATH}/{{alert_id}}/ack",
        request_timeout=5.0,
    )


@pytest.fixture
def app_config(server_config, tmp_path):
    return AppConfig(
        server=server_config,
        settings=SettingsConfig(
            backend="sqlite",
            db_path=str(tmp_path / "settings.db"),
            table_name="shared_settings",
            refresh_token_key="refreshToken",
        ),
        fallback=FallbackConfig(
            title="You received an alarm",
            body="Please open application to check what's happening",
        ),
        category_identifier="openremoteNotification",
        extension_timeout=5.0,
    )


@pytest.fixture
def settings(app_config):
    store = SQLiteSettingsStore(app_config.settings.db_path)
    store.save_refresh_token("stored-refresh-token")
    return store


@pytest.fixture
def center():
    return NotificationCenter()


@pytest.fixture
def notification_request():
    return NotificationRequest(
        identifier="req-1",
        content=NotificationContent(title="Alarm", body="", user_info={"alertId": 7, "origin": "push"}),
    )


class FakeBackend:
    """Serves canned token and detail responses and records requests."""

    def __init__(self, token_response=None, detail_response=None):
        self.token_response = token_response or httpx.Response(
            200, json={"access_token": "access-123", "expires_in": 300}
        )
        self.detail_response = detail_response or httpx.Response(200, json=[DETAIL_RECORD])
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == TOKEN_PATH:
            return self.token_response
        if request.url.path == DETAIL_PATH:
            return self.detail_response
        if request.url.path.endswith("/ack"):
            return httpx.Response(204)
        return httpx.Response(404, json={"error": "not found"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def make_service(app_config, settings, center):
    def _make(backend: FakeBackend) -> NotificationService:
        client = BackendClient(app_config.server, transport=backend.transport())
        return NotificationService(app_config, settings, client, center)
    return _make
