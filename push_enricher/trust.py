"""TLS trust decisions for the backend host."""

import logging
import ssl
from enum import Enum
from typing import Dict, Optional

import httpx

logger = logging.getLogger(__name__)

SERVER_TRUST = "server_trust"


class TrustDisposition(Enum):
    USE_CREDENTIAL = "use_credential"      # accept the presented certificate
    DEFAULT_HANDLING = "default_handling"  # normal certificate validation


class TrustPolicy:
    """Accepts any certificate presented by the pinned host."""

    def __init__(self, pinned_host: str, ca_bundle: Optional[str] = None):
        self.pinned_host = pinned_host.lower()
        self.ca_bundle = ca_bundle

    def evaluate(self, host: str, authentication_method: str = SERVER_TRUST) -> TrustDisposition:
        """
        Decide how to answer an authentication challenge.

        Args:
            host: Host that issued the challenge.
            authentication_method: Kind of challenge; only server trust is handled.

        Returns:
            USE_CREDENTIAL for server-trust challenges from the pinned host,
            DEFAULT_HANDLING for everything else.
        """
        if authentication_method == SERVER_TRUST and host.lower() == self.pinned_host:
            return TrustDisposition.USE_CREDENTIAL
        return TrustDisposition.DEFAULT_HANDLING

    def default_verify(self):
        """Verification setting for hosts other than the pinned one."""
        if self.ca_bundle:
            return ssl.create_default_context(cafile=self.ca_bundle)
        return True

    def mounts(self) -> Dict[str, httpx.AsyncBaseTransport]:
        """Transports keyed by URL pattern: the pinned host skips verification."""
        if self.evaluate(self.pinned_host, SERVER_TRUST) is not TrustDisposition.USE_CREDENTIAL:
            return {}
        logger.debug(f"Accepting any server certificate from {self.pinned_host}")
        return {f"all://{self.pinned_host}": httpx.AsyncHTTPTransport(verify=False)}
