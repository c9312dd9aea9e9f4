"""Notification enrichment: replaces push content with the backend's alert details."""

import asyncio
import logging
import threading
from typing import Any, Callable, Dict, Optional

from .api_client import BackendClient
from .config import AppConfig
from .errors import EnrichmentError, MissingRefreshTokenError
from .models import (
    ACTION_ACTUATOR,
    ACTION_DEEP_LINK,
    ActionOption,
    DetailRecord,
    NotificationAction,
    NotificationCategory,
    NotificationContent,
    NotificationRequest,
)
from .notification_center import NotificationCenter
from .settings import SettingsStore

logger = logging.getLogger(__name__)

ContentHandler = Callable[[NotificationContent], None]


class _OnceHandler:
    """Wraps the host's content handler so it runs at most once."""

    def __init__(self, handler: ContentHandler):
        self._handler = handler
        self._lock = threading.Lock()
        self.called = False

    def __call__(self, content: NotificationContent) -> bool:
        with self._lock:
            if self.called:
                logger.warning("Content handler already called; dropping second delivery")
                return False
            self.called = True
        self._handler(content)
        return True


def _set_or_remove(user_info: Dict[str, Any], key: str, value: Any) -> None:
    if value is None:
        user_info.pop(key, None)
    else:
        user_info[key] = value


class NotificationService:
    """
    Rewrites an incoming notification before the host displays it.

    One instance handles one request: ``did_receive`` (or ``run``) starts the
    work, ``service_extension_time_will_expire`` is the host's deadline signal.
    """

    def __init__(
        self,
        config: AppConfig,
        settings: SettingsStore,
        client: BackendClient,
        notification_center: Optional[NotificationCenter] = None,
    ):
        self.config = config
        self.settings = settings
        self.client = client
        self.notification_center = notification_center or NotificationCenter.current()
        self.content_handler: Optional[_OnceHandler] = None
        self.best_attempt_content: Optional[NotificationContent] = None

    def _begin(self, request: NotificationRequest, content_handler: ContentHandler) -> None:
        self.content_handler = _OnceHandler(content_handler)
        self.best_attempt_content = request.content.mutable_copy()
        logger.info(
            f"Enriching notification {request.identifier}, payload: {self.best_attempt_content.user_info}"
        )

    async def did_receive(self, request: NotificationRequest, content_handler: ContentHandler) -> None:
        """
        Enrich ``request`` and hand the result to ``content_handler`` exactly once.

        Failures never propagate: the notification body is replaced by a
        description of what went wrong instead.
        """
        self._begin(request, content_handler)
        await self._enrich(request)

    async def run(
        self,
        request: NotificationRequest,
        content_handler: ContentHandler,
        timeout: float,
    ) -> None:
        """Like ``did_receive``, but signals expiry once ``timeout`` seconds have passed."""
        self._begin(request, content_handler)
        try:
            await asyncio.wait_for(self._enrich(request), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Enrichment of {request.identifier} did not finish within {timeout}s")
            self.service_extension_time_will_expire()

    def service_extension_time_will_expire(self) -> None:
        """Deliver the fallback content if nothing has been delivered yet."""
        logger.info("Notification service time has expired")
        handler, content = self.content_handler, self.best_attempt_content
        if handler is None or content is None or handler.called:
            return
        content.title = self.config.fallback.title
        content.body = self.config.fallback.body
        handler(content)

    async def _enrich(self, request: NotificationRequest) -> None:
        content = self.best_attempt_content
        try:
            record = await self._fetch_detail()
            if self.content_handler.called:
                logger.info(f"Discarding late alert details for {request.identifier}")
                return
            self._apply(content, record)
        except EnrichmentError as e:
            if self.content_handler.called:
                return
            logger.warning(f"Could not enrich notification {request.identifier}: {e.description}")
            content.body = e.description
        except Exception as e:
            if self.content_handler.called:
                return
            logger.error(f"Unexpected error enriching {request.identifier}: {e}", exc_info=True)
            content.body = str(e) or type(e).__name__
        self.content_handler(content)

    async def _fetch_detail(self) -> DetailRecord:
        # Store reads may block (DynamoDB, locked SQLite file)
        loop = asyncio.get_running_loop()
        refresh_token = await loop.run_in_executor(None, self.settings.get_refresh_token)
        if not refresh_token:
            raise MissingRefreshTokenError(self.settings.refresh_token_key)
        access_token = await self.client.refresh_access_token(refresh_token)
        records = await self.client.fetch_alert_details(access_token)
        return records[0]

    def _apply(self, content: NotificationContent, record: DetailRecord) -> None:
        content.category_identifier = self.config.category_identifier
        content.title = record.title
        content.body = record.message
        _set_or_remove(content.user_info, "appUrl", record.app_url)
        _set_or_remove(content.user_info, "alertId", record.id)

        actions = []
        for action in record.actions:
            if action.type == ACTION_ACTUATOR:
                content.user_info["actions"] = action.raw
                actions.append(NotificationAction(action.type, action.title, (ActionOption.DESTRUCTIVE,)))
            elif action.type == ACTION_DEEP_LINK:
                actions.append(NotificationAction(action.type, action.title, (ActionOption.FOREGROUND,)))
            else:
                logger.debug(f"Ignoring action '{action.title}' of unknown type '{action.type}'")

        category = NotificationCategory(
            identifier=self.config.category_identifier,
            actions=tuple(actions),
        )
        self.notification_center.set_notification_categories({category})


def create_service(
    config: AppConfig,
    settings: SettingsStore,
    notification_center: Optional[NotificationCenter] = None,
) -> NotificationService:
    """Create a notification service wired to the configured backend."""
    client = BackendClient(config.server)
    return NotificationService(config, settings, client, notification_center)
