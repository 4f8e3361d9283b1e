from __future__ import annotations

import logging
import socket
from dataclasses import dataclass, field
from typing import Iterator, Optional

from evasoil.domain.models import Reading
from evasoil.transport.client_config import HOST, MAX_LINE_BYTES, PORT, TIMEOUT_S
from evasoil.transport.ndjson import decode_message

LOGGER = logging.getLogger(__name__)


@dataclass
class TCPNDJSONClient:
    """
    Receiving end of the ingest server's live push stream.

    Each newly stored reading arrives as one JSON object terminated by
    ``\\n``. :meth:`lines` splits the byte stream into text lines and
    :meth:`messages` decodes them into :class:`Reading` objects.

    Undecodable lines are logged and skipped, so one corrupt push cannot end
    the session. A line that grows past `max_line_bytes` without a newline is
    discarded as well.

    Parameters
    ----------
    host, port
        Push server address.
    timeout_s
        Applied to the connect call only; the stream itself blocks.
    max_line_bytes
        Upper bound for one buffered line.
    """

    host: str = HOST
    port: int = PORT
    timeout_s: float = TIMEOUT_S
    max_line_bytes: int = MAX_LINE_BYTES

    _sock: Optional[socket.socket] = field(default=None, init=False, repr=False)

    @property
    def connected(self) -> bool:
        return self._sock is not None

    def connect(self) -> None:
        sock = socket.create_connection((self.host, self.port), timeout=self.timeout_s)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
        sock.settimeout(None)
        self._sock = sock
        LOGGER.info("Subscribed to live pushes from %s:%s", self.host, self.port)

    def lines(self) -> Iterator[str]:
        """
        Yield non-empty lines from the stream.

        Raises
        ------
        RuntimeError
            If :meth:`connect` has not been called.
        ConnectionError
            When the server closes the stream.
        """
        sock = self._sock
        if sock is None:
            raise RuntimeError("Not connected")

        pending = bytearray()
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                raise ConnectionError("Live push stream closed by server")
            pending.extend(chunk)

            start = 0
            nl = pending.find(b"\n", start)
            while nl != -1:
                raw = bytes(pending[start:nl])
                start = nl + 1
                nl = pending.find(b"\n", start)
                try:
                    text = raw.decode("utf-8").strip()
                except UnicodeDecodeError:
                    LOGGER.warning("Dropping non UTF-8 push line (%d bytes)", len(raw))
                    continue
                if text:
                    yield text
            del pending[:start]

            if len(pending) > self.max_line_bytes:
                LOGGER.warning("Dropping oversized push line (%d bytes)", len(pending))
                pending.clear()

    def messages(self) -> Iterator[Reading]:
        for line in self.lines():
            try:
                yield decode_message(line)
            except (KeyError, ValueError):
                LOGGER.warning("Undecodable push line: %r", line[:200])

    def close(self) -> None:
        sock, self._sock = self._sock, None
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        sock.close()
