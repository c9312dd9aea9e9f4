"""Command-line entry point for the notification enrichment service."""

import argparse
import asyncio
import json
import logging
import os
import sys
import uuid

from .config import AppConfig, load_config
from .errors import EnrichmentError, MissingRefreshTokenError
from .models import NotificationContent, NotificationRequest
from .notification_center import NotificationCenter
from .service import create_service
from .settings import SettingsStore, create_settings_store

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


def _read_payload(path):
    if path and path != "-":
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    return json.load(sys.stdin)


def run_enrich(config: AppConfig, settings: SettingsStore, args) -> int:
    """Enrich one push payload and print what would be displayed."""
    try:
        payload = _read_payload(args.payload)
    except (OSError, ValueError) as e:
        logger.error(f"Could not read push payload: {e}")
        return 1
    try:
        content = NotificationContent.from_push_payload(payload)
    except ValueError as e:
        logger.error(f"Invalid push payload: {e}")
        return 1

    request = NotificationRequest(
        identifier=args.identifier or str(uuid.uuid4()),
        content=content,
    )
    center = NotificationCenter()
    service = create_service(config, settings, center)
    delivered = []
    timeout = args.timeout if args.timeout is not None else config.extension_timeout

    asyncio.run(service.run(request, delivered.append, timeout))

    output = {
        "content": delivered[0].to_dict(),
        "categories": [category.to_dict() for category in center.categories()],
    }
    print(json.dumps(output, indent=2, default=str))
    return 0


def run_ack(config: AppConfig, settings: SettingsStore, args) -> int:
    """Acknowledge an alert on behalf of the stored user."""
    service = create_service(config, settings)

    async def _ack():
        refresh_token = settings.get_refresh_token()
        if not refresh_token:
            raise MissingRefreshTokenError(settings.refresh_token_key)
        access_token = await service.client.refresh_access_token(refresh_token)
        await service.client.acknowledge_alert(access_token, args.alert_id)

    try:
        asyncio.run(_ack())
    except EnrichmentError as e:
        logger.error(f"Could not acknowledge alert {args.alert_id}: {e.description}")
        return 1
    logger.info(f"Alert {args.alert_id} acknowledged.")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Enrich push notifications with alert details from the backend"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    enrich = subparsers.add_parser("enrich", help="Enrich a push payload and print the result")
    enrich.add_argument(
        "--payload",
        default="-",
        help="Path to the APNs payload JSON (default: read from stdin)"
    )
    enrich.add_argument(
        "--identifier",
        default=None,
        help="Notification request identifier (default: random UUID)"
    )
    enrich.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds before the fallback content is delivered (default: EXTENSION_TIMEOUT)"
    )

    store = subparsers.add_parser("store-token", help="Store the offline refresh token")
    store.add_argument("token", help="Refresh token handed over by the application")

    subparsers.add_parser("clear-token", help="Remove the stored refresh token")

    ack = subparsers.add_parser("ack", help="Acknowledge a queued alert")
    ack.add_argument("alert_id", help="Identifier of the alert to acknowledge")
    return parser


def main(argv=None) -> int:
    """Main entry point with command-line argument parsing."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config()
        settings = create_settings_store(config.settings)
    except (ValueError, EnrichmentError) as e:
        logger.error(f"Configuration error: {e}")
        return 2

    try:
        if args.command == "enrich":
            return run_enrich(config, settings, args)
        if args.command == "store-token":
            settings.save_refresh_token(args.token)
            return 0
        if args.command == "clear-token":
            settings.clear_refresh_token()
            return 0
        return run_ack(config, settings, args)
    except (ValueError, EnrichmentError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
