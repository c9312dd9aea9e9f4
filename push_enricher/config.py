"""Configuration management."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass
class ServerConfig:
    """Backend server configuration."""
    host: str
    scheme: str
    realm: str
    client_id: str        # OAuth client used for the refresh grant
    detail_url: str       # alert detail resource
    ack_url: str          # template with an {alert_id} placeholder
    request_timeout: float
    ca_bundle: Optional[str] = None  # CA bundle for hosts other than `host`

    @property
    def token_url(self) -> str:
        return f"{self.scheme}://{self.host}/auth/realms/{self.realm}/protocol/openid-connect/token"


@dataclass
class SettingsConfig:
    """Shared persisted settings configuration."""
    backend: str          # "sqlite" or "dynamodb"
    db_path: str
    table_name: str
    refresh_token_key: str


@dataclass
class FallbackConfig:
    """Content shown when the host deadline expires before enrichment finishes."""
    title: str
    body: str


@dataclass
class AppConfig:
    """Complete application configuration."""
    server: ServerConfig
    settings: SettingsConfig
    fallback: FallbackConfig
    category_identifier: str
    extension_timeout: float


DEFAULT_FALLBACK_TITLE = "You received an alarm"
DEFAULT_FALLBACK_BODY = "Please open application to check what's happening"
DEFAULT_CATEGORY = "openremoteNotification"
SETTINGS_BACKENDS = ("sqlite", "dynamodb")


def load_config() -> AppConfig:
    """
    Load configuration from environment variables.

    Raises:
        ValueError: If required configuration values are missing or invalid.
    """
    host = os.getenv("SERVER_HOST")
    if not host:
        raise ValueError("Missing required environment variables: SERVER_HOST")

    scheme = os.getenv("SERVER_SCHEME", "https")
    realm = os.getenv("SERVER_REALM", "master")
    client_id = os.getenv("OAUTH_CLIENT_ID", "openremote")

    # URLs default to the backend's notification resource for the realm
    detail_url = os.getenv(
        "ALERT_DETAIL_URL",
        f"{scheme}://{host}/api/{realm}/notification/alert"
    )
    ack_url = os.getenv(
        "ALERT_ACK_URL",
        f"{scheme}://{host}/api/{realm}/notification/alert/{{alert_id}}/ack"
    )
    if "{alert_id}" not in ack_url:
        raise ValueError("ALERT_ACK_URL must contain an {alert_id} placeholder")

    request_timeout = float(os.getenv("REQUEST_TIMEOUT", "10"))
    ca_bundle = os.getenv("TLS_CA_BUNDLE") or None

    settings_backend = os.getenv("SETTINGS_BACKEND", "sqlite").lower()
    if settings_backend not in SETTINGS_BACKENDS:
        raise ValueError(
            f"Unknown SETTINGS_BACKEND '{settings_backend}'. "
            f"Expected one of: {', '.join(SETTINGS_BACKENDS)}"
        )

    return AppConfig(
        server=ServerConfig(
            host=host,
            scheme=scheme,
            realm=realm,
            client_id=client_id,
            detail_url=detail_url,
            ack_url=ack_url,
            request_timeout=request_timeout,
            ca_bundle=ca_bundle,
        ),
        settings=SettingsConfig(
            backend=settings_backend,
            db_path=os.getenv("SETTINGS_DB_PATH", "shared_settings.db"),
            table_name=os.getenv("SETTINGS_TABLE", "shared_settings"),
            refresh_token_key=os.getenv("REFRESH_TOKEN_KEY", "refreshToken"),
        ),
        fallback=FallbackConfig(
            title=os.getenv("FALLBACK_TITLE", DEFAULT_FALLBACK_TITLE),
            body=os.getenv("FALLBACK_BODY", DEFAULT_FALLBACK_BODY),
        ),
        category_identifier=os.getenv("NOTIFICATION_CATEGORY", DEFAULT_CATEGORY),
        extension_timeout=float(os.getenv("EXTENSION_TIMEOUT", "25")),
    )
