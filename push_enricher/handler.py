"""
Lambda function that enriches a push payload before delivery.
Invoked with the raw APNs payload (or ``{"payload": ..., "identifier": ...}``).
"""

import asyncio
import json
import logging
import uuid
from typing import Any, Dict

from .config import load_config
from .errors import EnrichmentError
from .models import NotificationContent, NotificationRequest
from .notification_center import NotificationCenter
from .service import create_service
from .settings import create_settings_store

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Seconds kept back from the invocation deadline to return the fallback content
DEADLINE_MARGIN = 1.0
DEFAULT_TIMEOUT = 25.0


def _remaining_seconds(context: Any) -> float:
    get_remaining = getattr(context, 'get_remaining_time_in_millis', None)
    if get_remaining is None:
        return DEFAULT_TIMEOUT
    return max(get_remaining() / 1000.0 - DEADLINE_MARGIN, 0.0)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Enrich one notification.

    Returns the delivered content and the registered categories.
    """
    try:
        config = load_config()
        settings = create_settings_store(config.settings)
    except (ValueError, EnrichmentError) as e:
        logger.error(f"Error building notification service: {e}", exc_info=True)
        return {
            'statusCode': 500,
            'body': json.dumps({'message': 'Service misconfigured'})
        }

    if not isinstance(event, dict):
        event = {'payload': event}
    try:
        content = NotificationContent.from_push_payload(event.get('payload', event))
    except ValueError as e:
        logger.warning(f"Rejecting malformed push event: {e}")
        return {
            'statusCode': 400,
            'body': json.dumps({'message': f'Invalid push payload: {e}'})
        }

    request = NotificationRequest(
        identifier=event.get('identifier') or str(uuid.uuid4()),
        content=content,
    )

    center = NotificationCenter()
    service = create_service(config, settings, center)
    delivered = []
    timeout = min(_remaining_seconds(context), config.extension_timeout)
    asyncio.run(service.run(request, delivered.append, timeout))

    return {
        'statusCode': 200,
        'body': json.dumps({
            'content': delivered[0].to_dict(),
            'categories': [category.to_dict() for category in center.categories()],
        }, default=str)
    }
