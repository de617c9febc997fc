"""Non-blocking UDP datagram link between the two nodes.

``receive()`` returns at most one datagram per call and never blocks;
``send()`` is fire-and-forget. Loss, duplication and reordering are left to
the session to cope with.
"""

from __future__ import annotations

import logging
import socket
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

MAX_DATAGRAM = 256


class UdpLink:
    """Datagram socket bound locally and aimed at a single peer."""

    def __init__(self, local_port: int, peer_host: str, peer_port: int, *, bind_host: str = "") -> None:
        self.peer: Tuple[str, int] = (peer_host, peer_port)
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind((bind_host, local_port))
        self.sock.setblocking(False)
        logger.info("Listening on UDP %s, peer %s:%d", self.sock.getsockname(), peer_host, peer_port)

    @property
    def local_port(self) -> int:
        return self.sock.getsockname()[1]

    def receive(self) -> Optional[str]:
        """Return one pending datagram as text, or None when nothing is queued."""
        try:
            data, addr = self.sock.recvfrom(MAX_DATAGRAM)
        except (BlockingIOError, InterruptedError):
            return None
        except (ConnectionResetError, ConnectionRefusedError):
            # ICMP port-unreachable from an earlier send (peer not up yet)
            logger.debug("receive() – peer unreachable")
            return None
        text = data.decode("utf-8", errors="replace").strip()
        logger.debug("receive() %r from %s", text, addr)
        return text or None

    def send(self, text: str) -> None:
        """Best-effort send; a full buffer or unreachable peer just drops the datagram."""
        try:
            self.sock.sendto(text.encode("utf-8"), self.peer)
        except (BlockingIOError, ConnectionRefusedError) as e:
            logger.debug("send() dropped %r – %s", text, e)

    def close(self) -> None:
        self.sock.close()

    def __enter__(self) -> "UdpLink":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
