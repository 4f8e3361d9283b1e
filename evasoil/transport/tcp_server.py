from __future__ import annotations

import logging
import socket
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from evasoil.domain.models import Reading
from evasoil.transport.client_config import HOST, PORT
from evasoil.transport.ndjson import encode_message

LOGGER = logging.getLogger(__name__)


@dataclass
class LivePushServer:
    """
    TCP server that broadcasts newly inserted readings as NDJSON.

    Behavior
    --------
    - Binds and listens on (host, port)
    - Accepts dashboard clients on a background thread
    - Sends each reading to every connected client as one UTF-8 NDJSON line
    - Drops clients whose connection fails during send

    Concurrency Model
    -----------------
    The client list is protected by a lock so that accept/send/close can be
    called safely from different threads (accept loop, Flask request threads).
    A second lock serialises broadcasts, so concurrent `send` calls never
    interleave bytes of different lines on one socket.

    Parameters
    ----------
    host
        Interface to bind on.
    port
        Port to bind on. ``0`` picks a free port (see :attr:`bound_port`).
    """

    host: str = HOST
    port: int = PORT

    _server_sock: Optional[socket.socket] = field(default=None, init=False, repr=False)
    _clients: List[socket.socket] = field(default_factory=list, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _send_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _thread: Optional[threading.Thread] = field(default=None, init=False, repr=False)
    _stop: threading.Event = field(default_factory=threading.Event, init=False, repr=False)

    def start(self) -> None:
        """
        Bind, listen and start the accept loop thread.

        Raises
        ------
        OSError
            If binding or listening fails (e.g., port already in use).
        """
        self._server_sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._server_sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._server_sock.bind((self.host, self.port))
        self._server_sock.listen(8)
        LOGGER.info("Live push server listening on %s:%s", self.host, self.bound_port)

        self._thread = threading.Thread(target=self._accept_loop, name="live-push-accept", daemon=True)
        self._thread.start()

    @property
    def bound_port(self) -> int:
        if not self._server_sock:
            return self.port
        return self._server_sock.getsockname()[1]

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    def _accept_loop(self) -> None:
        while not self._stop.is_set() and self._server_sock:
            try:
                client, addr = self._server_sock.accept()
            except OSError:
                break
            with self._lock:
                self._clients.append(client)
            LOGGER.info("Live push client connected from %s", addr)

    def send(self, reading: Reading) -> None:
        """
        Broadcast one reading to all connected clients.

        Notes
        -----
        - If no client is connected, this method does nothing.
        - Clients that fail during send are closed and removed.
        """
        data = (encode_message(reading) + "\n").encode("utf-8")

        dead: List[socket.socket] = []
        with self._send_lock:
            with self._lock:
                clients = list(self._clients)
            for sock in clients:
                try:
                    sock.sendall(data)
                except OSError:
                    dead.append(sock)

        if dead:
            with self._lock:
                for sock in dead:
                    if sock in self._clients:
                        self._clients.remove(sock)
                    try:
                        sock.close()
                    except OSError:
                        pass
            LOGGER.info("Dropped %d disconnected live push client(s)", len(dead))

    def close(self) -> None:
        """
        Close all client sockets and the server socket.

        Notes
        -----
        Safe to call multiple times. Errors during close are swallowed.
        """
        self._stop.set()
        with self._lock:
            for sock in self._clients:
                try:
                    sock.close()
                except OSError:
                    pass
            self._clients.clear()
        if self._server_sock:
            try:
                # wakes the blocking accept() in the accept loop
                self._server_sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            try:
                self._server_sock.close()
            except OSError:
                pass
            self._server_sock = None
