from __future__ import annotations

import argparse
import logging
import sys

from PySide6.QtWidgets import QApplication

from evasoil.bootstrap import build_app_system
from evasoil.config.yaml_config import load_app_config
from evasoil.core.window_selector import parse_token
from evasoil.logging_config import setup_logging
from evasoil.ui.main_dashboard import MainWindow
from evasoil.ui.theme import APP_QSS

LOGGER = logging.getLogger(__name__)


def main() -> None:
    """
    Launch the dashboard.

    Usage::

        python -m evasoil.dev.run_app [--config path/to/config.yaml] [--range 6h]

    With ``store.kind: memory`` the window is fed by an in-process fake
    device, so no ingest server is needed.
    """
    parser = argparse.ArgumentParser(description="EvaSoil dashboard")
    parser.add_argument("--config", default=None, help="config.yaml path (default: APP_CONFIG or ./config.yaml)")
    parser.add_argument("--range", dest="token", default=None, help="initial range token (1h, 6h, 24h, 7d, 30d)")
    args, qt_args = parser.parse_known_args()

    cfg = load_app_config(args.config)
    setup_logging(cfg.logging.level, cfg.logging.file)

    app = QApplication([sys.argv[0], *qt_args])
    app.setStyleSheet(APP_QSS)

    wiring = build_app_system(cfg=cfg)
    win = MainWindow(wiring)
    win.show()

    wiring.runtime.start()
    win.select_range(parse_token(args.token) if args.token else cfg.analytics.default_range)
    feeder = wiring.demo_feeder
    if feeder is not None:
        feeder.start()
        LOGGER.info("Demo feeder running every %.1fs", cfg.store.demo_interval_s)

    def _shutdown() -> None:
        if feeder is not None:
            feeder.stop()
            feeder.join()
        wiring.runtime.stop()

    app.aboutToQuit.connect(_shutdown)
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
