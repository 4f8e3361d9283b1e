"""
Live push stream defaults.

The dashboard normally takes these from ``store.push_host`` /
``store.push_port`` in config.yaml and the ingest server from PUSH_HOST /
PUSH_PORT in its ``.env``.
"""

from __future__ import annotations

HOST: str = "127.0.0.1"
PORT: int = 9009
TIMEOUT_S: float = 5.0

# Longest NDJSON line a client buffers before giving up on it.
MAX_LINE_BYTES: int = 64 * 1024
