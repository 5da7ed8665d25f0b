"""Raw-socket transmitter for ESP-NOW frames."""

from __future__ import annotations

import logging
import socket
from typing import Optional

from .espnow import CHANNEL_FREQUENCIES, DATARATE_6MBPS, MAX_PAYLOAD, EspNowPacket

log = logging.getLogger(__name__)

ETH_P_ALL = 0x0003
AF_PACKET = getattr(socket, "AF_PACKET", 17)
SO_PRIORITY = getattr(socket, "SO_PRIORITY", 12)
DEFAULT_PRIORITY = 7


def _checked_mac(mac: bytes) -> bytes:
    mac = bytes(mac)
    if len(mac) != 6:
        raise ValueError(f"MAC address must be 6 bytes, got {len(mac)}")
    return mac


class EspNowSender:
    """Sends ESP-NOW frames through a monitor-mode interface."""

    def __init__(
        self,
        interface: str,
        datarate: int = DATARATE_6MBPS,
        channel_freq: int = CHANNEL_FREQUENCIES[1],
        src_mac: Optional[bytes] = None,
    ) -> None:
        self.interface = interface
        self.socket_priority = DEFAULT_PRIORITY
        self.packet = EspNowPacket(datarate=datarate, channel_freq=channel_freq)
        if src_mac is not None:
            self.packet.src_mac = _checked_mac(src_mac)
        self._sock: Optional[socket.socket] = None

    @property
    def started(self) -> bool:
        return self._sock is not None

    def start(self) -> None:
        """Open a raw packet socket bound to the interface."""
        if self._sock is not None:
            return
        sock = socket.socket(AF_PACKET, socket.SOCK_RAW, socket.htons(ETH_P_ALL))
        try:
            sock.bind((self.interface, ETH_P_ALL))
            sock.setsockopt(socket.SOL_SOCKET, SO_PRIORITY, self.socket_priority)
        except OSError:
            sock.close()
            raise
        log.debug("sender bound to %s", self.interface)
        self._sock = sock

    def stop(self) -> None:
        """Close the socket if it is open."""
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def frame(self, payload: bytes, dst_mac: bytes) -> bytes:
        """Address the packet, load the payload and return the wire bytes."""
        body = bytes(payload)
        if len(body) > MAX_PAYLOAD:
            raise ValueError(f"payload exceeds {MAX_PAYLOAD} bytes")
        self.packet.set_dst_mac(dst_mac)
        self.packet.payload = body
        return self.packet.to_bytes()

    def send(self, payload: Optional[bytes] = None, dst_mac: Optional[bytes] = None) -> int:
        """Transmit a frame; with no payload, resend the current packet.

        Returns the number of bytes written.
        """
        if self._sock is None:
            raise RuntimeError("sender is not started")
        if payload is None:
            raw = self.packet.to_bytes()
        else:
            target = self.packet.dst_mac if dst_mac is None else dst_mac
            raw = self.frame(payload, target)
        return self._sock.send(raw)

    def __enter__(self) -> "EspNowSender":
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()