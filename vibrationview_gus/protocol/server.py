"""TCP line server exposing the GUS command dispatcher.

Each line received is one GUS command; each command gets one response.
Single-line responses are terminated by a newline. Multi-line responses
(XML documents) are followed by an empty line so the host can tell where
the document ends.

Example:
    Serve a simulated controller on an ephemeral port::

        server = GusServer(dispatcher, port=0)
        server.start()
        host, port = server.address
        # telnet host port
        # > GUS_OpenApp
        # < ACK:2024.2.1.0
        server.stop()
"""

from __future__ import annotations

import logging
import socketserver
import threading
from typing import Any

from .dispatcher import CommandDispatcher

logger = logging.getLogger(__name__)

ENCODING = "utf-8"


def frame_response(response: str) -> bytes:
    """Encode a response for the wire, adding the document terminator."""
    text = response.rstrip("\r\n")
    if "\n" in text:
        text += "\n"
    return (text + "\n").encode(ENCODING)


class _GusRequestHandler(socketserver.StreamRequestHandler):
    """Handle one host connection, forwarding lines to the dispatcher."""

    server: _GusTcpServer

    def handle(self) -> None:
        logger.info("Host connected from %s:%s", *self.client_address[:2])
        for raw_line in self.rfile:
            line = raw_line.decode(ENCODING, errors="replace").strip()
            if not line:
                continue
            response = self.server.dispatch(line)
            self.wfile.write(frame_response(response))
            self.wfile.flush()
        logger.info("Host disconnected")


class _GusTcpServer(socketserver.TCPServer):
    """TCPServer holding the dispatcher and the lock that serializes it."""

    allow_reuse_address = True

    def __init__(
        self,
        server_address: tuple[str, int],
        dispatcher: CommandDispatcher,
        **kwargs: Any,
    ) -> None:
        self.dispatcher = dispatcher
        self.dispatch_lock = threading.Lock()
        super().__init__(server_address, _GusRequestHandler, **kwargs)

    def dispatch(self, line: str) -> str:
        with self.dispatch_lock:
            return self.dispatcher.dispatch(line)


class GusServer:
    """
    TCP server for GUS hosts.

    Connections are handled one at a time. Use start()/stop() to run in a
    background daemon thread, or serve_forever() to block the caller.

    Args:
        dispatcher: Command dispatcher to serve
        host: Bind address (default ``"127.0.0.1"``)
        port: Bind port (default ``5025``). ``0`` picks an ephemeral port.
    """

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        host: str = "127.0.0.1",
        port: int = 5025,
    ) -> None:
        self._server = _GusTcpServer((host, port), dispatcher)
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """Start serving in a daemon thread."""
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()
        logger.info("GUS server listening on %s:%d", *self.address)

    def serve_forever(self) -> None:
        """Serve in the calling thread until shutdown() or KeyboardInterrupt."""
        logger.info("GUS server listening on %s:%d", *self.address)
        self._server.serve_forever()

    def stop(self) -> None:
        """Shut down the server and wait for the serving thread to exit."""
        if self._thread is not None:
            self._server.shutdown()
            self._thread.join()
            self._thread = None
        self._server.server_close()
        logger.info("GUS server stopped")

    @property
    def address(self) -> tuple[str, int]:
        """Actual bound ``(host, port)``."""
        addr = self._server.server_address
        return (str(addr[0]), int(addr[1]))
