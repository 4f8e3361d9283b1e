from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from evasoil.domain.errors import QueryFailure
from evasoil.domain.models import Reading
from evasoil.runtime.live_push_receiver_thread import LivePushReceiverConfig, LivePushReceiverThread
from evasoil.store.base import InsertCallback
from evasoil.transport.ndjson import reading_from_obj

LOGGER = logging.getLogger(__name__)

API_PATH = "/api/sensor-data"


@dataclass(frozen=True)
class HttpStoreConfig:
    """
    Connection settings for the ingest server.

    Parameters
    ----------
    base_url
        Ingest server root, e.g. ``http://127.0.0.1:8000``.
    push_host, push_port
        Live push TCP endpoint.
    timeout_s
        HTTP request timeout in seconds.
    verify_tls
        Whether to verify TLS certificates.
    reconnect_delay_s
        Delay between live push reconnect attempts.
    """

    base_url: str = "http://127.0.0.1:8000"
    push_host: str = "127.0.0.1"
    push_port: int = 9009
    timeout_s: float = 5.0
    verify_tls: bool = True
    reconnect_delay_s: float = 0.5


class HttpReadingStore:
    """
    `ReadingStore` backed by the ingest server.

    Range queries and clears go over HTTP with ``requests``. Live inserts
    arrive on the server's NDJSON push stream; each subscription owns one
    :class:`LivePushReceiverThread`.

    Notes
    -----
    - This class performs side effects (network I/O).
    - Any transport or decoding error in :meth:`query` is raised as
      :class:`~evasoil.domain.errors.QueryFailure`.
    """

    def __init__(self, cfg: HttpStoreConfig, session: Optional[requests.Session] = None):
        self._cfg = cfg
        self._session = session or requests.Session()
        self._receivers: Dict[int, LivePushReceiverThread] = {}
        self._handles = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def url(self) -> str:
        return self._cfg.base_url.rstrip("/") + API_PATH

    def query(self, start: datetime, end: datetime) -> List[Reading]:
        """
        Fetch readings with ``start <= created_at <= end``, ascending.

        Raises
        ------
        QueryFailure
            On network errors, HTTP error statuses or malformed payloads.
        """
        try:
            r = self._session.get(
                self.url,
                params={"from": start.isoformat(), "to": end.isoformat()},
                timeout=self._cfg.timeout_s,
                verify=self._cfg.verify_tls,
            )
            r.raise_for_status()
            body = r.json()
            rows: List[Dict[str, Any]] = body["data"]
            readings = [reading_from_obj(obj) for obj in rows]
        except requests.RequestException as e:
            raise QueryFailure(f"range query failed: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise QueryFailure(f"malformed range query response: {e!r}") from e

        readings.sort(key=lambda x: x.sort_key)
        return readings

    def _delete(self, params: Dict[str, str]) -> bool:
        try:
            r = self._session.delete(
                self.url,
                params=params,
                timeout=self._cfg.timeout_s,
                verify=self._cfg.verify_tls,
            )
            r.raise_for_status()
            return bool(r.json().get("success", False))
        except (requests.RequestException, ValueError) as e:
            LOGGER.error("Clear request %s failed: %s", params, e)
            return False

    def clear_all(self) -> bool:
        return self._delete({"action": "clear_all"})

    def clear_device(self, device_id: str) -> bool:
        return self._delete({"action": "clear_device", "device_id": device_id})

    def subscribe(self, callback: InsertCallback) -> int:
        """
        Start a live push receiver that forwards readings to `callback`.

        Returns
        -------
        int
            Handle to pass to :meth:`unsubscribe`.
        """
        receiver = LivePushReceiverThread(
            LivePushReceiverConfig(
                host=self._cfg.push_host,
                port=self._cfg.push_port,
                reconnect_delay_s=self._cfg.reconnect_delay_s,
                connect_timeout_s=self._cfg.timeout_s,
            ),
            callback=callback,
        )
        with self._lock:
            handle = next(self._handles)
            self._receivers[handle] = receiver
        receiver.start()
        return handle

    def unsubscribe(self, handle: int) -> None:
        """Stop and join the receiver behind `handle`; unknown handles are ignored."""
        with self._lock:
            receiver = self._receivers.pop(handle, None)
        if receiver is None:
            return
        receiver.stop()
        receiver.join(timeout=2.0)
