from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from evasoil.config.settings_store import ThresholdSettingsStore
from evasoil.config.yaml_config import AppConfig, load_app_config
from evasoil.core.analytics.stats_engine import StatsEngine
from evasoil.core.view_store import ViewStore
from evasoil.dev.fake_device import FakeDevice, FakeDeviceThread, store_sink
from evasoil.runtime.analytics_runtime import AnalyticsRuntime
from evasoil.services.controller import AnalyticsController
from evasoil.store.memory_store import InMemoryReadingStore
from evasoil.store.remote_store import HttpReadingStore, HttpStoreConfig

LOGGER = logging.getLogger(__name__)

AnyStore = Union[HttpReadingStore, InMemoryReadingStore]


@dataclass(frozen=True)
class AppWiring:
    """Everything the UI layer needs to run the system."""
    config: AppConfig
    store: AnyStore
    views: ViewStore
    settings: ThresholdSettingsStore
    runtime: AnalyticsRuntime
    demo_feeder: Optional[FakeDeviceThread] = None


def build_store(cfg: AppConfig) -> AnyStore:
    if cfg.store.kind == "memory":
        return InMemoryReadingStore()

    s = cfg.store
    return HttpReadingStore(
        HttpStoreConfig(
            base_url=s.base_url,
            push_host=s.push_host,
            push_port=s.push_port,
            timeout_s=s.timeout_s,
            verify_tls=s.verify_tls,
            reconnect_delay_s=s.reconnect_delay_s,
        )
    )


def build_app_system(config_path: Optional[str] = None, cfg: Optional[AppConfig] = None) -> AppWiring:
    """
    Wire store, settings, controller and runtime from configuration.

    Parameters
    ----------
    config_path
        Explicit config.yaml path; ignored when `cfg` is given.
    cfg
        Already-loaded configuration (tests).
    """
    cfg = cfg or load_app_config(config_path)

    # --- SETTINGS ---
    settings = ThresholdSettingsStore(cfg.ui.settings_path, defaults=cfg.thresholds)
    settings.load()

    # --- STORE ---
    store = build_store(cfg)

    # --- VIEWS ---
    views = ViewStore()

    # --- CONTROLLER ---
    controller = AnalyticsController(
        thresholds=settings.thresholds,
        stats_engine=StatsEngine(trend_window=cfg.analytics.trend_window),
        capacity=cfg.analytics.capacity,
        sink=views,
    )

    # --- RUNTIME ---
    runtime = AnalyticsRuntime(controller=controller, store=store)

    demo_feeder = None
    if isinstance(store, InMemoryReadingStore):
        demo_feeder = FakeDeviceThread(
            FakeDevice(device_id=cfg.ui.device_id),
            store_sink(store),
            interval_s=cfg.store.demo_interval_s,
        )

    LOGGER.info("Wired %s store (trend window %d)", cfg.store.kind, cfg.analytics.trend_window)
    return AppWiring(
        config=cfg,
        store=store,
        views=views,
        settings=settings,
        runtime=runtime,
        demo_feeder=demo_feeder,
    )
