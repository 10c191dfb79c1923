# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
UDP Sink

Fire-and-forget datagram transport: one serialized message per datagram,
broadcast to a configured port. Nothing is awaited from the receiver.
"""

import logging
import socket

from geomsim.utils.status import TransportError

logger = logging.getLogger(__name__)

DEFAULT_BROADCAST_PORT = 45678
BROADCAST_HOST = "<broadcast>"


class UdpSink:
    """Sends geomessage text as UDP datagrams"""

    def __init__(self, port: int = DEFAULT_BROADCAST_PORT, host: str = BROADCAST_HOST):
        """
        Args:
            port: Destination UDP port
            host: Destination address ("<broadcast>" = 255.255.255.255)
        """
        self.host = host
        self.port = port
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)

    @property
    def port(self) -> int:
        return self._port

    @port.setter
    def port(self, port: int):
        port = int(port)
        if not 0 < port < 65536:
            raise ValueError(f"Port out of range: {port}")
        self._port = port

    @property
    def destination(self):
        return (self.host, self._port)

    def send(self, text: str) -> int:
        """Send one message; returns the number of bytes written."""
        payload = text.encode("utf-8")
        try:
            written = self.sock.sendto(payload, self.destination)
        except OSError as e:
            raise TransportError(f"{self.host}:{self._port}", e) from e
        logger.debug(f"Sent {written} bytes to {self.host}:{self._port}")
        return written

    def close(self):
        self.sock.close()
