"""HTTP client for the backend token and alert resources."""

import logging
from typing import List, Optional

import httpx

from .config import ServerConfig
from .errors import (
    AlertDecodeError,
    AlertRequestError,
    TokenRequestError,
    TokenResponseError,
)
from .models import DetailRecord
from .trust import TrustPolicy

logger = logging.getLogger(__name__)


def _describe(error: Exception) -> str:
    return str(error) or type(error).__name__


class BackendClient:
    """Talks to the OpenID Connect token endpoint and the alert resource."""

    def __init__(
        self,
        config: ServerConfig,
        trust_policy: Optional[TrustPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the backend client.

        Args:
            config: Server configuration.
            trust_policy: TLS trust policy; defaults to pinning ``config.host``.
            transport: Optional transport replacing the network (used in tests).
        """
        self.config = config
        self.trust_policy = trust_policy or TrustPolicy(config.host, config.ca_bundle)
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        if self.transport is not None:
            return httpx.AsyncClient(transport=self.transport, timeout=self.config.request_timeout)
        return httpx.AsyncClient(
            mounts=self.trust_policy.mounts(),
            verify=self.trust_policy.default_verify(),
            timeout=self.config.request_timeout,
        )

    async def refresh_access_token(self, refresh_token: str) -> str:
        """
        Exchange a refresh token for an access token.

        Args:
            refresh_token: The stored offline refresh token.

        Returns:
            The access token.

        Raises:
            TokenRequestError: If the endpoint is unreachable or the body is not JSON.
            TokenResponseError: If the response carries no access token.
        """
        url = self.config.token_url
        form = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.config.client_id,
        }
        logger.info(f"Refreshing access token at {url}")
        async with self._client() as client:
            try:
                response = await client.post(
                    url,
                    data=form,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
            except httpx.RequestError as e:
                logger.error(f"Token request error: {e}")
                raise TokenRequestError(f"token request failed: {_describe(e)}") from e

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(f"Token response is not JSON (HTTP {response.status_code})")
            raise TokenRequestError(
                f"could not decode token response (HTTP status {response.status_code}): {e}"
            ) from e

        if not isinstance(payload, dict):
            payload = {}
        access_token = payload.get("access_token")
        if not access_token or not isinstance(access_token, str):
            logger.warning(f"Token response without access_token (HTTP {response.status_code})")
            raise TokenResponseError(response.status_code, payload)
        return access_token

    async def fetch_alert_details(self, access_token: str) -> List[DetailRecord]:
        """
        Fetch the alert detail records for the current user.

        Returns:
            A non-empty list of detail records; the first one is always well formed.

        Raises:
            AlertRequestError: If the resource is unreachable or answers with an error status.
            AlertDecodeError: If the body is not a non-empty list of detail records.
        """
        url = self.config.detail_url
        logger.info(f"Fetching alert details from {url}")
        async with self._client() as client:
            try:
                response = await client.get(url, headers={"Authorization": f"Bearer {access_token}"})
            except httpx.RequestError as e:
                logger.error(f"Alert request error: {e}")
                raise AlertRequestError(f"alert request failed: {_describe(e)}") from e

        if not response.is_success:
            logger.warning(f"Alert request rejected (HTTP {response.status_code})")
            raise AlertRequestError(
                f"alert request failed with HTTP status {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AlertDecodeError(f"invalid JSON: {e}") from e
        if not isinstance(data, list) or not data:
            raise AlertDecodeError("expected a non-empty list")

        try:
            records = [DetailRecord.from_dict(data[0])]
        except ValueError as e:
            raise AlertDecodeError(str(e)) from e

        for index, item in enumerate(data[1:], start=1):
            try:
                records.append(DetailRecord.from_dict(item))
            except ValueError as e:
                logger.debug(f"Skipping malformed detail record {index}: {e}")
        logger.info(f"Received {len(records)} alert detail record(s)")
        return records

    async def acknowledge_alert(self, access_token: str, alert_id) -> None:
        """
        Acknowledge a queued alert for the current user.

        Raises:
            AlertRequestError: If the request fails or is rejected.
        """
        url = self.config.ack_url.format(alert_id=alert_id)
        logger.info(f"Acknowledging alert {alert_id}")
        async with self._client() as client:
            try:
                response = await client.put(url, headers={"Authorization": f"Bearer {access_token}"})
            except httpx.RequestError as e:
                logger.error(f"Acknowledge request error: {e}")
                raise AlertRequestError(f"acknowledge request failed: {_describe(e)}") from e

        if not response.is_success:
            raise AlertRequestError(
                f"acknowledge request failed with HTTP status {response.status_code}",
                status_code=response.status_code,
            )
