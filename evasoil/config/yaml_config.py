from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from evasoil.core.analytics.stats_engine import DEFAULT_TREND_WINDOW
from evasoil.core.state.series_buffer import DEFAULT_CAPACITY
from evasoil.core.window_selector import parse_token
from evasoil.domain.errors import ConfigError, InvalidRangeToken
from evasoil.domain.models import RangeToken, ThresholdConfig

STORE_KINDS = ("http", "memory")


@dataclass(frozen=True)
class AnalyticsConfig:
    """Analytics engine tuning."""
    trend_window: int = DEFAULT_TREND_WINDOW
    capacity: int = DEFAULT_CAPACITY
    default_range: RangeToken = RangeToken.H24


@dataclass(frozen=True)
class StoreConfig:
    """
    Readings store selection.

    ``kind: http`` talks to the ingest server; ``kind: memory`` runs an
    in-process store fed by a fake device every
    ``demo_interval_s`` seconds (demo and tests).
    """
    kind: str = "http"
    base_url: str = "http://127.0.0.1:8000"
    push_host: str = "127.0.0.1"
    push_port: int = 9009
    timeout_s: float = 5.0
    verify_tls: bool = True
    reconnect_delay_s: float = 0.5
    demo_interval_s: float = 2.0


@dataclass(frozen=True)
class UiConfig:
    """Dashboard settings."""
    refresh_hz: float = 5.0
    device_id: str = "ESP32_PlantGuard_01"
    export_dir: str = "."
    settings_path: str = "evasoil_settings.json"


@dataclass(frozen=True)
class LoggingConfig:
    """Logging level and optional log file."""
    level: str = "INFO"
    file: Optional[str] = None


@dataclass(frozen=True)
class AppConfig:
    """
    Root application configuration loaded from YAML.

    This is the single source of truth for runtime-tunable values so the
    dashboard can be configured without code changes.
    """
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    ui: UiConfig = field(default_factory=UiConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _read_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"{path} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config.yaml must contain a YAML mapping at the root")
    return data


def _resolve_default_config_path() -> Path:
    """
    Resolve config.yaml location.

    Priority:
    1) APP_CONFIG env var if provided
    2) config.yaml next to the executable
    3) ./config.yaml in current working directory
    """
    env = os.getenv("APP_CONFIG")
    if env:
        return Path(env).expanduser().resolve()

    exe_dir = Path(sys.executable).resolve().parent
    candidate = exe_dir / "config.yaml"
    if candidate.exists():
        return candidate

    return Path("config.yaml").resolve()


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    s = raw.get(name) or {}
    if not isinstance(s, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return s


def parse_app_config(raw: Dict[str, Any]) -> AppConfig:
    """
    Convert a YAML mapping into typed config objects.

    Missing sections and keys fall back to defaults.

    Raises
    ------
    ConfigError
        If a value has the wrong type or violates a constraint.
    """
    try:
        a = _section(raw, "analytics")
        analytics = AnalyticsConfig(
            trend_window=int(a.get("trend_window", DEFAULT_TREND_WINDOW)),
            capacity=int(a.get("capacity", DEFAULT_CAPACITY)),
            default_range=parse_token(str(a.get("default_range", RangeToken.H24.value))),
        )

        s = _section(raw, "store")
        store = StoreConfig(
            kind=str(s.get("kind", "http")).lower(),
            base_url=str(s.get("base_url", "http://127.0.0.1:8000")),
            push_host=str(s.get("push_host", "127.0.0.1")),
            push_port=int(s.get("push_port", 9009)),
            timeout_s=float(s.get("timeout_s", 5.0)),
            verify_tls=bool(s.get("verify_tls", True)),
            reconnect_delay_s=float(s.get("reconnect_delay_s", 0.5)),
            demo_interval_s=float(s.get("demo_interval_s", 2.0)),
        )

        t = _section(raw, "thresholds")
        d = ThresholdConfig()
        thresholds = ThresholdConfig(
            moisture_low=float(t.get("moisture_low", d.moisture_low)),
            temp_low=float(t.get("temp_low", d.temp_low)),
            temp_high=float(t.get("temp_high", d.temp_high)),
            light_low=float(t.get("light_low", d.light_low)),
        )

        u = _section(raw, "ui")
        ui = UiConfig(
            refresh_hz=float(u.get("refresh_hz", 5.0)),
            device_id=str(u.get("device_id", "ESP32_PlantGuard_01")),
            export_dir=str(u.get("export_dir", ".")),
            settings_path=str(u.get("settings_path", "evasoil_settings.json")),
        )

        lg = _section(raw, "logging")
        log_file = lg.get("file")
        logging_cfg = LoggingConfig(
            level=str(lg.get("level", "INFO")).upper(),
            file=str(log_file) if log_file else None,
        )
    except InvalidRangeToken as e:
        raise ConfigError(f"analytics.default_range: {e}") from e
    except (TypeError, ValueError) as e:
        if isinstance(e, ConfigError):
            raise
        raise ConfigError(f"invalid config value: {e}") from e

    if analytics.trend_window < 1:
        raise ConfigError("analytics.trend_window must be >= 1")
    if analytics.capacity < 1:
        raise ConfigError("analytics.capacity must be >= 1")
    if store.kind not in STORE_KINDS:
        raise ConfigError(f"store.kind must be one of {STORE_KINDS}, got {store.kind!r}")
    if thresholds.temp_low > thresholds.temp_high:
        raise ConfigError("thresholds.temp_low must be <= thresholds.temp_high")
    if ui.refresh_hz <= 0:
        raise ConfigError("ui.refresh_hz must be > 0")

    return AppConfig(analytics=analytics, store=store, thresholds=thresholds, ui=ui, logging=logging_cfg)


def load_app_config(path: Optional[str] = None) -> AppConfig:
    """
    Load application configuration from YAML.

    Parameters
    ----------
    path
        Explicit path to config.yaml. If None, uses default resolution.

    Returns
    -------
    AppConfig
        Parsed and validated configuration.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ConfigError
        If the file is not a mapping or a value is invalid.
    """
    cfg_path = Path(path).expanduser().resolve() if path else _resolve_default_config_path()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config not found: {cfg_path}")

    return parse_app_config(_read_yaml(cfg_path))
