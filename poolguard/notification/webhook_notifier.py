from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import requests

from poolguard.domain.models import SeverityLevel
from poolguard.notification.base import NotificationEvent, should_notify

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebhookConfig:
    """
    Configuration for the alert webhook.

    Parameters
    ----------
    url
        Receiving endpoint.
    timeout_s
        HTTP request timeout in seconds.
    verify_tls
        Whether to verify TLS certificates.
    auth_header
        Optional Authorization header value. A bare token is sent as
        ``Bearer <token>``.
    min_severity
        Events below this severity are not posted.
    """

    url: str
    timeout_s: float = 3.0
    verify_tls: bool = True
    auth_header: Optional[str] = None
    min_severity: SeverityLevel = SeverityLevel.CAUTION


class WebhookNotifier:
    """
    POST alert notifications to an HTTP endpoint as JSON.

    HTTP errors are surfaced via ``raise_for_status()``; the monitor logs them
    and carries on.
    """

    def __init__(self, cfg: WebhookConfig):
        self._cfg = cfg

    @property
    def authorization(self) -> Optional[str]:
        auth = self._cfg.auth_header
        if auth and not auth.startswith("Bearer "):
            return f"Bearer {auth}"
        return auth

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        auth = self.authorization
        if auth:
            headers["Authorization"] = auth
        return headers

    def notify(self, event: NotificationEvent) -> None:
        """
        POST the event payload to the configured endpoint.

        Raises
        ------
        requests.HTTPError
            If the HTTP response status indicates an error.
        requests.RequestException
            For network-related errors.
        """
        if not should_notify(event, self._cfg.min_severity):
            logger.debug("skipping %s notification for %s", event.severity, event.pool_id)
            return

        r = requests.post(
            self._cfg.url,
            json=event.payload,
            headers=self._headers(),
            timeout=self._cfg.timeout_s,
            verify=self._cfg.verify_tls,
        )
        r.raise_for_status()
