from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from evasoil.store.base import InsertCallback
from evasoil.transport.tcp_client import TCPNDJSONClient

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class LivePushReceiverConfig:
    """
    Configuration for the live push receiver thread.

    Parameters
    ----------
    host
        Live push server host.
    port
        Live push server port.
    reconnect_delay_s
        Delay in seconds between reconnect attempts after a failure.
    connect_timeout_s
        TCP connect timeout (seconds) used during the connect phase.
        After connecting, the socket is placed in blocking mode for streaming.
    """

    host: str
    port: int
    reconnect_delay_s: float = 0.5
    connect_timeout_s: float = 5.0


class LivePushReceiverThread:
    """
    Dedicated I/O thread that turns the ingest server's NDJSON push stream
    into store insert notifications.

    Responsibilities
    ----------------
    - Own and manage the TCP connection lifecycle.
    - Auto-reconnect on failures until stopped.
    - Decode incoming NDJSON messages (via :meth:`TCPNDJSONClient.messages`).
    - Hand each decoded reading to `callback`. The callback is expected to be
      cheap (normally it only enqueues a `LiveInsert`).

    Stop Behavior
    -------------
    :meth:`stop` sets the stop event and closes the TCP client socket to break
    any blocking receive.
    """

    def __init__(
        self,
        cfg: LivePushReceiverConfig,
        callback: InsertCallback,
        stop_event: Optional[threading.Event] = None,
    ):
        self._cfg = cfg
        self._callback = callback
        self._stop = stop_event or threading.Event()
        self._thread = threading.Thread(target=self._run, name="live-push-receiver", daemon=True)
        self._client: Optional[TCPNDJSONClient] = None

    def start(self) -> None:
        if not self._thread.is_alive():
            self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        client = self._client
        if client is not None:
            client.close()

    def join(self, timeout: float | None = 2.0) -> None:
        self._thread.join(timeout=timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.is_set():
            client = TCPNDJSONClient(
                host=self._cfg.host,
                port=self._cfg.port,
                timeout_s=self._cfg.connect_timeout_s,
            )
            self._client = client
            try:
                client.connect()
                # stop() may have run before the socket existed
                if self._stop.is_set():
                    break
                for reading in client.messages():
                    if self._stop.is_set():
                        break
                    try:
                        self._callback(reading)
                    except Exception:
                        LOGGER.exception("Live push callback failed for reading %s", reading.id)
            except (OSError, RuntimeError, ValueError) as e:
                if self._stop.is_set():
                    break
                LOGGER.warning(
                    "Live push from %s:%s lost (%r); reconnecting in %.1fs",
                    self._cfg.host,
                    self._cfg.port,
                    e,
                    self._cfg.reconnect_delay_s,
                )
                self._stop.wait(self._cfg.reconnect_delay_s)
            finally:
                client.close()
                self._client = None
