from __future__ import annotations

from typing import List, Optional

from poolguard.core.config.yaml_config import EngineConfig, load_engine_config
from poolguard.notification.base import Notifier
from poolguard.notification.webhook_notifier import WebhookConfig, WebhookNotifier
from poolguard.services.monitor import PoolComplianceMonitor


def build_notifiers(cfg: EngineConfig) -> List[Notifier]:
    notifiers: List[Notifier] = []
    if cfg.webhook is not None:
        notifiers.append(
            WebhookNotifier(
                WebhookConfig(
                    url=cfg.webhook.url,
                    auth_header=cfg.webhook.auth_header,
                    timeout_s=cfg.webhook.timeout_s,
                    verify_tls=cfg.webhook.verify_tls,
                    min_severity=cfg.webhook.min_severity,
                )
            )
        )
    return notifiers


def build_monitor(config_path: Optional[str] = None) -> PoolComplianceMonitor:
    """Load configuration and wire a monitor with its notifiers."""
    cfg = load_engine_config(config_path)
    return PoolComplianceMonitor(config=cfg, notifiers=build_notifiers(cfg))
