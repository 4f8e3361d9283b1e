from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, request
from flask.json import jsonify

from evasoil.ingest.coercion import coerce_submission
from evasoil.logging_config import setup_logging
from evasoil.store.memory_store import InMemoryReadingStore
from evasoil.transport.ndjson import reading_to_obj
from evasoil.transport.tcp_server import LivePushServer

LOGGER = logging.getLogger(__name__)

LATEST_LIMIT = 100


def _parse_ts(value: str) -> datetime:
    """
    Parse an ISO-8601 query parameter into a naive local datetime.

    Aware values (e.g. with a ``Z`` suffix) are converted to local time so
    they compare with the store's naive timestamps.
    """
    dt = datetime.fromisoformat(value.strip())
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def _error(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


def create_app(store: InMemoryReadingStore, push_server: Optional[LivePushServer] = None) -> Flask:
    """
    Build the ingest Flask app around a readings store.

    Parameters
    ----------
    store
        Store receiving device submissions.
    push_server
        Optional live push server; when given it is subscribed to the store so
        every insert is broadcast as one NDJSON line.
    """
    app = Flask(__name__)

    if push_server is not None:
        store.subscribe(push_server.send)

    @app.post("/api/sensor-data")
    def post_reading():
        # devices do not always send a JSON content type
        body = request.get_json(force=True, silent=True)
        LOGGER.debug("Received data: %r", body)
        if not isinstance(body, dict):
            return _error("Request body must be a JSON object", 400)

        sub = coerce_submission(body)
        try:
            reading = store.insert(**sub.as_insert_kwargs())
        except Exception as e:
            LOGGER.exception("Insert failed")
            return _error(str(e), 500)

        LOGGER.info("Stored reading %s from %s", reading.id, reading.device_id)
        return jsonify({"success": True, "data": reading_to_obj(reading)}), 200

    @app.get("/api/sensor-data")
    def get_readings():
        start_raw = request.args.get("from")
        end_raw = request.args.get("to")

        try:
            if start_raw is None and end_raw is None:
                rows = store.latest(LATEST_LIMIT)
            else:
                if not start_raw:
                    return _error("'from' is required when 'to' is given", 400)
                start = _parse_ts(start_raw)
                end = _parse_ts(end_raw) if end_raw else datetime.now()
                rows = store.query(start, end)
        except ValueError as e:
            return _error(f"Invalid timestamp: {e}", 400)
        except Exception:
            LOGGER.exception("Fetch failed")
            return _error("Failed to fetch data", 500)

        return jsonify({"success": True, "data": [reading_to_obj(r) for r in rows]}), 200

    @app.delete("/api/sensor-data")
    def delete_readings():
        action = request.args.get("action")

        try:
            if action == "clear_all":
                store.clear_all()
                return jsonify({"success": True, "message": "All history cleared"}), 200

            if action == "clear_device":
                device_id = request.args.get("device_id")
                if not device_id:
                    return _error("Device ID required", 400)
                store.clear_device(device_id)
                return jsonify({"success": True, "message": f"History cleared for {device_id}"}), 200
        except Exception as e:
            LOGGER.exception("Clear (%s) failed", action)
            return _error(str(e), 500)

        return _error("Invalid action", 400)

    @app.get("/health")
    def health():
        return jsonify({"status": "ok", "readings": len(store)}), 200

    return app


def main() -> None:
    """
    Run the ingest server with its live push server.

    Settings come from a ``.env`` file next to this module (or the
    executable when frozen): INGEST_HOST, INGEST_PORT, PUSH_HOST, PUSH_PORT,
    LOG_LEVEL.
    """
    exe_dir = Path(sys.executable).resolve().parent if getattr(sys, "frozen", False) else Path(__file__).resolve().parent
    load_dotenv(exe_dir / ".env")

    setup_logging(os.getenv("LOG_LEVEL", "INFO"))

    store = InMemoryReadingStore()
    push = LivePushServer(
        host=os.getenv("PUSH_HOST", "127.0.0.1"),
        port=int(os.getenv("PUSH_PORT", "9009")),
    )
    push.start()

    app = create_app(store, push_server=push)
    try:
        # do NOT use debug=True: the reloader would start a second push server
        app.run(
            host=os.getenv("INGEST_HOST", "0.0.0.0"),
            port=int(os.getenv("INGEST_PORT", "8000")),
            debug=False,
        )
    finally:
        push.close()


if __name__ == "__main__":
    main()
