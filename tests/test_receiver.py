from unittest import mock

import pytest

from tubesync import espnow
from tubesync.receiver import ACCEPT_SNAPLEN, EspNowReceiver, build_filter, parse_frame

SRC = b"\x02\x00\x00\x00\x00\x01"
DST = b"\x02\x00\x00\x00\x00\x02"
OTHER = b"\x02\x00\x00\x00\x00\x03"


def make_frame(payload=b"hello", dst=DST, src=SRC):
    packet = espnow.EspNowPacket(src_mac=src, payload=payload)
    packet.set_dst_mac(dst)
    return packet.to_bytes()


class FakeSocket:
    def __init__(self, frames):
        self.frames = list(frames)
        self.closed = False
        self.bound = None

    def bind(self, address):
        self.bound = address

    def settimeout(self, value):
        pass

    def recv(self, size, flags=0):
        if self.frames:
            return self.frames.pop(0)
        raise OSError("socket closed")

    def close(self):
        self.closed = True


def test_build_filter_shape():
    program = build_filter(DST)
    assert len(program) == 34
    assert program[-2] == (0x06, 0, 0, ACCEPT_SNAPLEN)
    assert program[-1] == (0x06, 0, 0, 0)
    assert len(build_filter(None)) == 34


def test_build_filter_rejects_bad_mac():
    with pytest.raises(ValueError):
        build_filter(b"\x01\x02\x03")


def test_parse_frame_round_trip():
    assert parse_frame(make_frame(b"\x10\x20")) == (SRC, b"\x10\x20")


def test_parse_frame_rejects_short_and_empty():
    assert parse_frame(b"\x00\x00") is None
    assert parse_frame(make_frame(b"")) is None


def test_filter_accepts_matching_destination():
    received = []
    receiver = EspNowReceiver("wlan-test", lambda mac, data: received.append((mac, data)))
    receiver.set_filter(DST)
    assert receiver.handle_frame(make_frame(b"abc")) == (SRC, b"abc")
    assert received == [(SRC, b"abc")]


def test_filter_rejects_other_destination():
    received = []
    receiver = EspNowReceiver("wlan-test", lambda mac, data: received.append(data))
    receiver.set_filter(DST)
    assert receiver.handle_frame(make_frame(dst=OTHER)) is None
    assert received == []


def test_filter_rejects_non_vendor_category():
    receiver = EspNowReceiver("wlan-test")
    receiver.set_filter(DST)
    raw = bytearray(make_frame())
    raw[espnow.RADIOTAP_LEN + espnow.WLAN_LEN] = 0x00
    assert receiver.handle_frame(bytes(raw)) is None


def test_unset_filter_accepts_any_destination():
    receiver = EspNowReceiver("wlan-test")
    receiver.set_filter(DST)
    receiver.unset_filter()
    assert receiver.filter is None
    assert receiver.handle_frame(make_frame(b"z", dst=OTHER)) == (SRC, b"z")


def test_receive_thread_dispatches_frames():
    received = []
    fake = FakeSocket([make_frame(b"one"), make_frame(b"two", dst=OTHER)])
    receiver = EspNowReceiver("wlan-test", lambda mac, data: received.append(data))
    receiver.set_filter(DST)
    with mock.patch("socket.socket", return_value=fake):
        receiver.start()
    receiver.stop()
    assert received == [b"one"]
    assert fake.closed
    assert fake.bound[0] == "wlan-test"