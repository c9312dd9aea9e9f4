"""Tests for the push-enricher command line and the Lambda handler."""

import json
from unittest.mock import MagicMock, patch

import pytest

from conftest import FakeBackend
from push_enricher.api_client import BackendClient
from push_enricher.handler import lambda_handler
from push_enricher.main import main
from push_enricher.service import NotificationService
from push_enricher.settings import SQLiteSettingsStore


def _fake_create_service(backend):
    def _create(config, settings, notification_center=None):
        client = BackendClient(config.server, transport=backend.transport())
        return NotificationService(config, settings, client, notification_center)
    return _create


def _printed_json(out):
    lines = out.splitlines()
    start = lines.index("{")
    return json.loads("\n".join(lines[start:]))


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "shared.db")


@pytest.fixture(autouse=True)
def env(monkeypatch, db_path):
    monkeypatch.setenv("SERVER_HOST", "backend.example.com")
    monkeypatch.setenv("SETTINGS_BACKEND", "sqlite")
    monkeypatch.setenv("SETTINGS_DB_PATH", db_path)
    for name in ("SERVER_REALM", "SERVER_SCHEME", "ALERT_DETAIL_URL", "ALERT_ACK_URL", "REFRESH_TOKEN_KEY"):
        monkeypatch.delenv(name, raising=False)


PUSH_PAYLOAD = {"aps": {"alert": {"title": "Alarm", "body": ""}, "mutable-content": 1}, "alertId": 42}


class TestCommandLine:

    def test_store_and_clear_token(self, db_path):
        assert main(["store-token", "refresh-1"]) == 0
        assert SQLiteSettingsStore(db_path).get_refresh_token() == "refresh-1"

        assert main(["clear-token"]) == 0
        assert SQLiteSettingsStore(db_path).get_refresh_token() is None

    def test_missing_configuration(self, monkeypatch):
        monkeypatch.delenv("SERVER_HOST")
        assert main(["clear-token"]) == 2

    def test_enrich_prints_content(self, db_path, tmp_path, capsys):
        SQLiteSettingsStore(db_path).save_refresh_token("refresh-1")
        payload_file = tmp_path / "payload.json"
        payload_file.write_text(json.dumps(PUSH_PAYLOAD), encoding="utf-8")

        with patch("push_enricher.main.create_service", _fake_create_service(FakeBackend())):
            assert main(["enrich", "--payload", str(payload_file), "--identifier", "req-9"]) == 0

        output = _printed_json(capsys.readouterr().out)
        assert output["content"]["title"] == "Door open"
        assert output["content"]["category"] == "openremoteNotification"
        assert output["categories"][0]["actions"][0] == {
            "identifier": "actuator", "title": "Close door", "options": ["destructive"],
        }

    def test_enrich_unreadable_payload(self, tmp_path):
        assert main(["enrich", "--payload", str(tmp_path / "missing.json")]) == 1

    def test_enrich_malformed_payload(self, tmp_path):
        payload_file = tmp_path / "payload.json"
        payload_file.write_text(json.dumps({"aps": ["alert"]}), encoding="utf-8")
        with patch("push_enricher.main.create_service") as create_service:
            assert main(["enrich", "--payload", str(payload_file)]) == 1
        create_service.assert_not_called()

    def test_ack(self, db_path):
        SQLiteSettingsStore(db_path).save_refresh_token("refresh-1")
        backend = FakeBackend()
        with patch("push_enricher.main.create_service", _fake_create_service(backend)):
            assert main(["ack", "42"]) == 0

        assert backend.requests[-1].method == "PUT"
        assert backend.requests[-1].url.path == "/api/master/notification/alert/42/ack"

    def test_ack_without_token(self):
        backend = FakeBackend()
        with patch("push_enricher.main.create_service", _fake_create_service(backend)):
            assert main(["ack", "42"]) == 1
        assert backend.requests == []


class TestLambdaHandler:

    def _context(self, remaining_ms=3000):
        context = MagicMock()
        context.get_remaining_time_in_millis.return_value = remaining_ms
        return context

    def test_enriches_payload(self, db_path):
        SQLiteSettingsStore(db_path).save_refresh_token("refresh-1")
        with patch("push_enricher.handler.create_service", _fake_create_service(FakeBackend())):
            response = lambda_handler(PUSH_PAYLOAD, self._context())

        assert response["statusCode"] == 200
        body = json.loads(response["body"])
        assert body["content"]["title"] == "Door open"
        assert body["content"]["userInfo"]["alertId"] == 42

    def test_wrapped_event_with_error(self, db_path):
        with patch("push_enricher.handler.create_service", _fake_create_service(FakeBackend())):
            response = lambda_handler({"payload": PUSH_PAYLOAD, "identifier": "req-1"}, self._context())

        body = json.loads(response["body"])
        assert body["content"]["title"] == "Alarm"
        assert body["content"]["body"] == "no refresh token stored under 'refreshToken'"

    def test_no_time_left_delivers_fallback(self, db_path):
        SQLiteSettingsStore(db_path).save_refresh_token("refresh-1")
        with patch("push_enricher.handler.create_service", _fake_create_service(FakeBackend())):
            response = lambda_handler(PUSH_PAYLOAD, self._context(remaining_ms=500))

        body = json.loads(response["body"])
        assert body["content"]["title"] == "You received an alarm"

    def test_misconfigured(self, monkeypatch):
        monkeypatch.delenv("SERVER_HOST")
        response = lambda_handler(PUSH_PAYLOAD, self._context())
        assert response["statusCode"] == 500

    @pytest.mark.parametrize("event", [
        {"payload": "hello"},
        {"aps": "alert"},
        {"aps": {"alert": 5}},
    ])
    def test_malformed_event(self, event):
        with patch("push_enricher.handler.create_service") as create_service:
            response = lambda_handler(event, self._context())

        assert response["statusCode"] == 400
        assert "Invalid push payload" in json.loads(response["body"])["message"]
        create_service.assert_not_called()
