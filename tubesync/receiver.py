"""Receiver for ESP-NOW frames with an in-process packet filter."""

from __future__ import annotations

import logging
import socket
import threading
from typing import Callable, Optional, Sequence

from . import espnow

log = logging.getLogger(__name__)

ETH_P_ALL = 0x0003
AF_PACKET = getattr(socket, "AF_PACKET", 17)
MSG_TRUNC = getattr(socket, "MSG_TRUNC", 0x20)
ACCEPT_SNAPLEN = 0x00040000

Instruction = tuple[int, int, int, int]
Callback = Callable[[bytes, bytes], None]


def _mac_msb(mac: Optional[bytes]) -> int:
    if mac is None:
        return 0
    return (mac[0] << 8) | mac[1]


def _mac_lsb(mac: Optional[bytes]) -> int:
    if mac is None:
        return 0
    return (((((mac[2] << 8) | mac[3]) << 8) | mac[4]) << 8) | mac[5]


def build_filter(dst_mac: Optional[bytes]) -> list[Instruction]:
    """Classic BPF program accepting ESP-NOW action frames for ``dst_mac``."""
    if dst_mac is not None:
        dst_mac = bytes(dst_mac)
        if len(dst_mac) != 6:
            raise ValueError(f"MAC address must be 6 bytes, got {len(dst_mac)}")
    msb = _mac_msb(dst_mac)
    lsb = _mac_lsb(dst_mac)
    return [
        (0x30, 0, 0, 0x00000003),
        (0x64, 0, 0, 0x00000008),
        (0x07, 0, 0, 0x00000000),
        (0x30, 0, 0, 0x00000002),
        (0x4C, 0, 0, 0x00000000),
        (0x02, 0, 0, 0x00000000),
        (0x07, 0, 0, 0x00000000),
        (0x50, 0, 0, 0x00000000),
        (0x54, 0, 0, 0x000000FC),
        (0x15, 0, 23, 0x000000D0),
        (0x40, 0, 0, 0x00000018),
        (0x15, 0, 21, 0x7F18FE34),
        (0x50, 0, 0, 0x00000020),
        (0x15, 0, 19, 0x000000DD),
        (0x40, 0, 0, 0x00000021),
        (0x54, 0, 0, 0x00FFFFFF),
        (0x15, 0, 16, 0x0018FE34),
        (0x50, 0, 0, 0x00000025),
        (0x15, 0, 14, 0x00000004),
        (0x50, 0, 0, 0x00000000),
        (0x45, 12, 0, 0x00000004),
        (0x45, 0, 6, 0x00000008),
        (0x50, 0, 0, 0x00000001),
        (0x45, 0, 4, 0x00000001),
        (0x40, 0, 0, 0x00000012),
        (0x15, 0, 7, lsb),
        (0x48, 0, 0, 0x00000010),
        (0x15, 4, 5, msb),
        (0x40, 0, 0, 0x00000006),
        (0x15, 0, 3, lsb),
        (0x48, 0, 0, 0x00000004),
        (0x15, 0, 1, msb),
        (0x06, 0, 0, ACCEPT_SNAPLEN),
        (0x06, 0, 0, 0x00000000),
    ]


_WIDTHS = {0x00: 4, 0x08: 2, 0x10: 1}
_MASK = 0xFFFFFFFF


def _run_filter(program: Sequence[Instruction], packet: bytes) -> int:
    """Evaluate a classic BPF program; return the accepted length (0 rejects)."""
    a = x = 0
    memory = [0] * 16
    pc = 0
    while pc < len(program):
        code, jt, jf, k = program[pc]
        pc += 1
        cls = code & 0x07
        if cls in (0x00, 0x01):
            mode = code & 0xE0
            if mode == 0x00:
                value = k
            elif mode == 0x80:
                value = len(packet)
            elif mode == 0x60:
                value = memory[k]
            elif mode in (0x20, 0x40) and cls == 0x00:
                offset = k + (x if mode == 0x40 else 0)
                width = _WIDTHS[code & 0x18]
                if offset < 0 or offset + width > len(packet):
                    return 0
                value = int.from_bytes(packet[offset : offset + width], "big")
            elif mode == 0xA0 and cls == 0x01:
                if k >= len(packet):
                    return 0
                value = (packet[k] & 0x0F) * 4
            else:
                raise ValueError(f"unsupported load instruction 0x{code:02x}")
            if cls == 0x00:
                a = value
            else:
                x = value
        elif cls == 0x02:
            memory[k] = a
        elif cls == 0x03:
            memory[k] = x
        elif cls == 0x04:
            operand = x if code & 0x08 else k
            op = code & 0xF0
            if op == 0x00:
                a = a + operand
            elif op == 0x10:
                a = a - operand
            elif op == 0x20:
                a = a * operand
            elif op == 0x30:
                if operand == 0:
                    return 0
                a = a // operand
            elif op == 0x40:
                a = a | operand
            elif op == 0x50:
                a = a & operand
            elif op == 0x60:
                a = a << operand
            elif op == 0x70:
                a = a >> operand
            elif op == 0x80:
                a = -a
            else:
                raise ValueError(f"unsupported ALU instruction 0x{code:02x}")
            a &= _MASK
        elif cls == 0x05:
            operand = x if code & 0x08 else k
            op = code & 0xF0
            if op == 0x00:
                pc += k
                continue
            if op == 0x10:
                taken = a == operand
            elif op == 0x20:
                taken = a > operand
            elif op == 0x30:
                taken = a >= operand
            elif op == 0x40:
                taken = bool(a & operand)
            else:
                raise ValueError(f"unsupported jump instruction 0x{code:02x}")
            pc += jt if taken else jf
        elif cls == 0x06:
            return a if code & 0x18 == 0x10 else k
        else:
            if code & 0xF8 == 0x00:
                x = a
            else:
                a = x
    return 0


def parse_frame(raw: bytes) -> Optional[tuple[bytes, bytes]]:
    """Return ``(source MAC, payload)`` of an ESP-NOW frame, or None."""
    mac = espnow.source_mac(raw)
    body = espnow.payload(raw)
    length = espnow.payload_length(raw)
    if mac is None or body is None or length is None or length <= 0:
        return None
    return mac, body


class EspNowReceiver:
    """Listens on an interface and hands each ESP-NOW payload to a callback."""

    def __init__(self, interface: str, callback: Optional[Callback] = None) -> None:
        self.interface = interface
        self.callback = callback
        self._program: Optional[list[Instruction]] = None
        self._sock: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None
        self._stopping = threading.Event()

    @property
    def filter(self) -> Optional[list[Instruction]]:
        return self._program

    def set_filter(self, dst_mac: Optional[bytes]) -> None:
        """Accept only ESP-NOW frames addressed to ``dst_mac``."""
        self._program = build_filter(dst_mac)

    def unset_filter(self) -> None:
        self._program = None

    def handle_frame(self, raw: bytes) -> Optional[tuple[bytes, bytes]]:
        """Filter and parse one captured frame, passing it to the callback."""
        if self._program is not None and _run_filter(self._program, raw) == 0:
            return None
        parsed = parse_frame(raw)
        if parsed is not None and self.callback is not None:
            self.callback(*parsed)
        return parsed

    def start(self) -> None:
        """Open the raw socket and start the receive thread."""
        if self._sock is not None:
            return
        sock = socket.socket(AF_PACKET, socket.SOCK_RAW, socket.htons(ETH_P_ALL))
        try:
            sock.bind((self.interface, ETH_P_ALL))
            sock.settimeout(0.5)
        except OSError:
            sock.close()
            raise
        log.debug("receiver bound to %s", self.interface)
        self._sock = sock
        self._stopping.clear()
        if self.callback is None:
            return
        self._thread = threading.Thread(
            target=self._receive_loop, args=(sock,), name="espnow-receiver", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop the receive thread and close the socket."""
        self._stopping.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if self._sock is not None:
            self._sock.close()
            self._sock = None

    def _receive_loop(self, sock: socket.socket) -> None:
        while not self._stopping.is_set():
            try:
                raw = sock.recv(espnow.LEN_RAWBYTES_MAX, MSG_TRUNC)
            except socket.timeout:
                continue
            except OSError as exc:
                if not self._stopping.is_set():
                    log.error("socket receive failed: %s", exc)
                break
            self.handle_frame(raw)
        log.debug("receive thread exited")