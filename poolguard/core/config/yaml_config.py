from __future__ import annotations

import math
import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from poolguard.config.settings import Settings
from poolguard.core.catalog.range_catalog import RangeCatalog, default_catalog
from poolguard.domain.errors import ConfigError
from poolguard.domain.models import ChemicalParameter, ParameterRange, PoolCategory, SeverityLevel

CONFIG_ENV_VAR = "POOLGUARD_CONFIG"


@dataclass(frozen=True)
class WebhookConfigData:
    """Webhook notifier configuration (URL + auth)."""
    url: str
    auth_header: Optional[str] = None
    timeout_s: float = 3.0
    verify_tls: bool = True
    min_severity: SeverityLevel = SeverityLevel.CAUTION


@dataclass(frozen=True)
class EngineConfig:
    """
    Root engine configuration.

    Built from the defaults in `Settings`, with any values present in
    config.yaml applied on top. Range entries in the file replace the default
    entry with the same ``(parameter, category, usage)``.
    """
    catalog: RangeCatalog
    noise_thresholds: Dict[ChemicalParameter, float]
    alert_cooldown: timedelta
    required_parameters: Tuple[ChemicalParameter, ...]
    max_reading_age: timedelta
    history_size: int
    webhook: Optional[WebhookConfigData] = None


def default_engine_config() -> EngineConfig:
    """Engine configuration using only built-in defaults."""
    s = Settings()
    return EngineConfig(
        catalog=default_catalog(s),
        noise_thresholds=s.noise_thresholds(),
        alert_cooldown=s.alert_cooldown,
        required_parameters=s.required_parameters,
        max_reading_age=s.max_reading_age,
        history_size=s.history_size,
    )


def _read_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError("config.yaml must contain a YAML mapping at the root")
    return data


def _resolve_default_config_path() -> Path:
    """
    Resolve config.yaml location.

    Priority:
    1) POOLGUARD_CONFIG env var if provided
    2) ./config.yaml in current working directory
    """
    env = os.getenv(CONFIG_ENV_VAR)
    if env:
        return Path(env).expanduser().resolve()
    return Path("config.yaml").resolve()


def _parameter(name: Any) -> ChemicalParameter:
    try:
        return ChemicalParameter(str(name))
    except ValueError:
        raise ConfigError(f"unknown chemical parameter: {name!r}") from None


def _category(name: Any) -> PoolCategory:
    try:
        return PoolCategory(str(name))
    except ValueError:
        raise ConfigError(f"unknown pool category: {name!r}") from None


def _severity(name: Any) -> SeverityLevel:
    try:
        return SeverityLevel(str(name))
    except ValueError:
        raise ConfigError(f"unknown severity: {name!r}") from None


def _pair(item: Dict[str, Any], band: str) -> Tuple[float, float]:
    """Read a ``[min, max]`` pair; null means unbounded on that side."""
    raw = item.get(band)
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise ConfigError(f"range {item.get('parameter')!r}: '{band}' must be a [min, max] pair")
    lo = -math.inf if raw[0] is None else float(raw[0])
    hi = math.inf if raw[1] is None else float(raw[1])
    return lo, hi


def _parse_range(item: Any) -> ParameterRange:
    if not isinstance(item, dict):
        raise ConfigError("each entry under 'ranges' must be a mapping")
    if "parameter" not in item or "category" not in item:
        raise ConfigError("range entries need 'parameter' and 'category'")

    safe_min, safe_max = _pair(item, "safe")
    caution_min, caution_max = _pair(item, "caution")
    critical_min, critical_max = _pair(item, "critical")
    usage = item.get("usage")

    return ParameterRange(
        parameter=_parameter(item["parameter"]),
        category=_category(item["category"]),
        safe_min=safe_min,
        safe_max=safe_max,
        caution_min=caution_min,
        caution_max=caution_max,
        critical_min=critical_min,
        critical_max=critical_max,
        unit=str(item.get("unit", "")),
        usage=str(usage) if usage is not None else None,
        regulation=str(item.get("regulation", "")),
    )


def parse_engine_config(raw: Dict[str, Any]) -> EngineConfig:
    """
    Convert a raw config mapping into a typed `EngineConfig`.

    Raises
    ------
    ConfigError
        If a value is invalid or a range breaks the ordering invariant.
    """
    base = default_engine_config()

    # ---- ranges ----
    overrides: List[ParameterRange] = [_parse_range(item) for item in raw.get("ranges", []) or []]
    catalog = base.catalog.with_overrides(overrides) if overrides else base.catalog

    # ---- trend ----
    noise = dict(base.noise_thresholds)
    for name, value in ((raw.get("trend", {}) or {}).get("noise_thresholds") or {}).items():
        threshold = float(value)
        if threshold < 0:
            raise ConfigError(f"noise threshold for {name} must be >= 0")
        noise[_parameter(name)] = threshold

    # ---- alerts ----
    a = raw.get("alerts", {}) or {}
    cooldown_minutes = float(a.get("cooldown_minutes", base.alert_cooldown.total_seconds() / 60.0))
    if cooldown_minutes < 0:
        raise ConfigError("alerts.cooldown_minutes must be >= 0")

    # ---- compliance ----
    c = raw.get("compliance", {}) or {}
    required = base.required_parameters
    if "required_parameters" in c:
        required = tuple(_parameter(p) for p in c["required_parameters"] or [])
    max_age_days = float(c.get("max_reading_age_days", base.max_reading_age.days))

    # ---- monitor ----
    history_size = int((raw.get("monitor", {}) or {}).get("history_size", base.history_size))
    if history_size < 2:
        raise ConfigError("monitor.history_size must be at least 2")

    # ---- webhook ----
    webhook = None
    w = raw.get("webhook")
    if w:
        if "url" not in w:
            raise ConfigError("webhook.url is required when a webhook section is present")
        webhook = WebhookConfigData(
            url=str(w["url"]),
            auth_header=w.get("auth_header"),
            timeout_s=float(w.get("timeout_s", 3.0)),
            verify_tls=bool(w.get("verify_tls", True)),
            min_severity=_severity(w.get("min_severity", SeverityLevel.CAUTION.value)),
        )

    return EngineConfig(
        catalog=catalog,
        noise_thresholds=noise,
        alert_cooldown=timedelta(minutes=cooldown_minutes),
        required_parameters=required,
        max_reading_age=timedelta(days=max_age_days),
        history_size=history_size,
        webhook=webhook,
    )


def load_engine_config(path: Optional[str] = None) -> EngineConfig:
    """
    Load engine configuration from YAML.

    Parameters
    ----------
    path
        Explicit path to config.yaml. If None, uses default resolution.

    Returns
    -------
    EngineConfig
        Parsed and validated configuration.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ConfigError
        If required fields are missing or invalid.
    """
    cfg_path = Path(path).expanduser().resolve() if path else _resolve_default_config_path()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config not found: {cfg_path}")

    return parse_engine_config(_read_yaml(cfg_path))
