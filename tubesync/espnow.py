"""ESP-NOW vendor action frames wrapped in a radiotap header."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Optional

DATARATE_1MBPS = 0x02
DATARATE_2MBPS = 0x04
DATARATE_6MBPS = 0x0C
DATARATE_9MBPS = 0x12
DATARATE_12MBPS = 0x18
DATARATE_18MBPS = 0x24
DATARATE_24MBPS = 0x30
DATARATE_36MBPS = 0x48
DATARATE_48MBPS = 0x60
DATARATE_54MBPS = 0x6C

CHANNEL_FREQUENCIES = {channel: 2407 + 5 * channel for channel in range(1, 14)}

WLAN_LEN = 24
ACTIONFRAME_HEADER_LEN = 8
VENDORSPECIFIC_CONTENT_LEN = 7
MAX_PAYLOAD = 250
LEN_RAWBYTES_MAX = 512

ESPRESSIF_OUI = b"\x18\xfe\x34"

_RADIOTAP = struct.Struct("<BBHIBBHH")
_WLAN_HEADER = struct.Struct("<BBH6s6s6sH")
_ACTION_HEADER = struct.Struct("<B3s4s")
_VENDOR_HEADER = struct.Struct("<BB3sBB")

RADIOTAP_LEN = _RADIOTAP.size

_FRAME_TYPE_ACTION = 0xD0
_CATEGORY_VENDOR = 0x7F
_ELEMENT_VENDOR = 0xDD
_ESPNOW_TYPE = 0x04
_ESPNOW_VERSION = 0x01
_SEQUENCE = 0x0280


def _checked_mac(mac: bytes) -> bytes:
    mac = bytes(mac)
    if len(mac) != 6:
        raise ValueError(f"MAC address must be 6 bytes, got {len(mac)}")
    return mac


@dataclass
class EspNowPacket:
    """One outgoing ESP-NOW frame."""

    datarate: int = DATARATE_6MBPS
    channel_freq: int = CHANNEL_FREQUENCIES[1]
    src_mac: bytes = field(default=bytes(6))
    dst_mac: bytes = field(default=bytes(6))
    bssid: bytes = field(default=bytes(6))
    payload: bytes = b""

    def set_dst_mac(self, mac: bytes) -> None:
        """Address the frame; the destination also serves as BSSID."""
        mac = _checked_mac(mac)
        self.dst_mac = mac
        self.bssid = mac

    def to_bytes(self) -> bytes:
        """Serialise the frame as it goes on the wire."""
        body = bytes(self.payload)
        if len(body) > MAX_PAYLOAD:
            raise ValueError(f"payload exceeds {MAX_PAYLOAD} bytes")
        radiotap = _RADIOTAP.pack(
            0, 0, RADIOTAP_LEN, 0x0000000E, 0x10,
            self.datarate, self.channel_freq, 0x00C0,
        )
        wlan = _WLAN_HEADER.pack(
            _FRAME_TYPE_ACTION, 0x00, 0x0000,
            _checked_mac(self.dst_mac), _checked_mac(self.src_mac),
            _checked_mac(self.bssid), _SEQUENCE,
        )
        action = _ACTION_HEADER.pack(_CATEGORY_VENDOR, ESPRESSIF_OUI, bytes(4))
        vendor = _VENDOR_HEADER.pack(
            _ELEMENT_VENDOR, len(body) + 5, ESPRESSIF_OUI, _ESPNOW_TYPE, _ESPNOW_VERSION
        )
        # Four padding bytes, then the frame check sequence the radio recomputes.
        trailer = bytes(4) + (0).to_bytes(4, "little")
        return radiotap + wlan + action + vendor + body + trailer


def radiotap_length(raw: bytes) -> Optional[int]:
    """Length of the radiotap header, or None if the frame is too short."""
    if len(raw) < 4:
        return None
    return raw[2] | (raw[3] << 8)


def source_mac(raw: bytes) -> Optional[bytes]:
    """The transmitter address of a received frame, or None."""
    rt = radiotap_length(raw)
    if rt is None or len(raw) < rt + 10 + 6:
        return None
    return bytes(raw[rt + 10 : rt + 16])


def payload_length(raw: bytes) -> Optional[int]:
    """Payload length declared in the vendor element, or None."""
    rt = radiotap_length(raw)
    offset = (rt or 0) + WLAN_LEN + ACTIONFRAME_HEADER_LEN + 1
    if rt is None or len(raw) < offset:
        return None
    if len(raw) <= offset:
        return None
    return raw[offset] - 5


def payload(raw: bytes) -> Optional[bytes]:
    """The ESP-NOW payload of a received frame, or None."""
    rt = radiotap_length(raw)
    if rt is None:
        return None
    start = rt + WLAN_LEN + ACTIONFRAME_HEADER_LEN + VENDORSPECIFIC_CONTENT_LEN
    if len(raw) < start:
        return None
    length = payload_length(raw)
    return bytes(raw[start : start + max(length or 0, 0)])