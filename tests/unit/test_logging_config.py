"""
Unit tests for evasoil.logging_config.setup_logging.
"""

from __future__ import annotations

import logging

from evasoil.logging_config import setup_logging


def _ours():
    return [h for h in logging.getLogger().handlers if getattr(h, "_evasoil", False)]


def test_repeated_setup_replaces_handlers(tmp_path) -> None:
    log_file = tmp_path / "logs" / "app.log"
    try:
        setup_logging("DEBUG", str(log_file))
        setup_logging("DEBUG", str(log_file))

        assert len(_ours()) == 2
        assert logging.getLogger().level == logging.DEBUG

        logging.getLogger("evasoil.test").warning("hello file")
        for h in _ours():
            h.flush()
        assert "hello file" in log_file.read_text(encoding="utf-8")
    finally:
        for h in _ours():
            logging.getLogger().removeHandler(h)
            h.close()


def test_unknown_level_falls_back_to_info() -> None:
    try:
        setup_logging("chatty")
        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("werkzeug").level == logging.WARNING
    finally:
        for h in _ours():
            logging.getLogger().removeHandler(h)
            h.close()
